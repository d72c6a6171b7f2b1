import pytest

from unitlogic.kb.knowledge_base import KnowledgeBase
from unitlogic.reasoning.rules import BindCondition, IsaConclusion, TypeConclusion
from unitlogic.session.prelude import PI_DIGITS
from unitlogic.session.statements import (
	DeclareBaseUnit,
	DeclareEntityClass,
	DeclareLabel,
	DeclareLaw,
	DeclareRule,
	DeclareUnitClass,
	DeclareValue,
)
from unitlogic.units.registry import UnitRegistry
from unitlogic.units.system import TermEvaluator


@pytest.fixture
def registry() -> UnitRegistry:
	reg = UnitRegistry()
	reg.declare_dimension("Length")
	reg.declare_base_unit(["Meter", "Meters"], "Length", symbol="m", prefixing="metric")
	reg.declare_dimension("Mass")
	reg.declare_base_unit(["Gram", "Grams"], "Mass", symbol="g", prefixing="metric")
	reg.declare_dimension("Time")
	reg.declare_base_unit(["Second", "Seconds"], "Time", symbol="s", prefixing="partial_metric")
	return reg


@pytest.fixture
def evaluator(registry: UnitRegistry) -> TermEvaluator:
	return TermEvaluator(registry)


@pytest.fixture
def kb(registry: UnitRegistry) -> KnowledgeBase:
	return KnowledgeBase(registry)


def pizza_statements() -> list:
	"""Units, a circle rule and the area law, plus MyPizza with a 0.1 m radius."""
	return [
		DeclareUnitClass("Length"),
		DeclareBaseUnit(names=("Meter", "Meters"), dimension="Length", symbol="m", prefixing="metric"),
		DeclareLabel("Pi", PI_DIGITS),
		DeclareEntityClass("Round"),
		DeclareEntityClass("Circle"),
		DeclareRule(
			bound_var="Circle",
			conditions=(BindCondition("R", "Circle.Radius"),),
			conclusions=(IsaConclusion("Circle", "Round"), TypeConclusion("Circle.Diameter", "Length")),
		),
		DeclareLaw(
			name="AreaOfACircle",
			bound_var="Circle",
			conditions=(BindCondition("R", "Circle.Radius"), BindCondition("A", "Circle.Area")),
			equation="A = Pi * R^2",
		),
		DeclareValue("MyPizza", classes=("Circle",), properties={"Radius": "0.1 * Meters"}),
	]


@pytest.fixture
def pizza() -> list:
	return pizza_statements()


PIZZA_SCRIPT = [
	{"kind": "declare_unit_class", "name": "Length"},
	{"kind": "declare_base_unit", "names": ["Meter", "Meters"], "dimension": "Length", "symbol": "m", "prefixing": "metric"},
	{"kind": "declare_label", "name": "Pi", "value": PI_DIGITS},
	{"kind": "declare_entity_class", "name": "Round"},
	{"kind": "declare_entity_class", "name": "Circle"},
	{
		"kind": "declare_rule",
		"for": "Circle",
		"where": ["R is Circle.Radius"],
		"then": ["Circle is Round", "Circle.Diameter isa Length"],
	},
	{
		"kind": "declare_law",
		"name": "AreaOfACircle",
		"for": "Circle",
		"where": ["R is Circle.Radius", "A is Circle.Area"],
		"equation": "A = Pi * R^2",
	},
	{"kind": "declare_value", "name": "MyPizza", "classes": ["Circle"], "properties": {"Radius": "0.1 * Meters"}},
	{"kind": "find", "target": "MyPizza.Area"},
	{"kind": "find", "target": "MyPizza.Area", "law": "AreaOfACircle", "where": {"Circle": "MyPizza"}},
	{"kind": "check", "predicate": "MyPizza isa Circle"},
	{"kind": "check", "predicate": "MyPizza is Round"},
	{"kind": "check", "predicate": "MyPizza.Diameter isa Length"},
	{"kind": "check", "predicate": "MyPizza.Area = Pi * 0.01 * Meters^2"},
	{"kind": "check", "predicate": "MyPizza.Radius * 2 has dimension Length"},
]


@pytest.fixture
def pizza_script() -> list:
	"""The same pizza session as a JSON-ready statement list."""
	return [dict(item) for item in PIZZA_SCRIPT]
