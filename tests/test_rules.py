import pytest

from unitlogic.errors import (
	MalformedStatementError,
	TypeConstraintViolationError,
	UnknownEntityOrClassError,
)
from unitlogic.kb.knowledge_base import KnowledgeBase
from unitlogic.kb.slots import TypeConstraint
from unitlogic.reasoning.rules import (
	BindCondition,
	IsaCondition,
	IsaConclusion,
	Rule,
	RuleEngine,
	TypeConclusion,
)
from unitlogic.units.dim import DimVector


def circle_rule() -> Rule:
	return Rule(
		bound_var="Circle",
		conditions=(BindCondition("R", "Circle.Radius"),),
		conclusions=(IsaConclusion("Circle", "Round"), TypeConclusion("Circle.Diameter", "Length")),
	)


@pytest.fixture
def engine(kb: KnowledgeBase) -> RuleEngine:
	kb.declare_class("Round")
	kb.declare_class("Circle")
	return RuleEngine(kb)


def test_rule_derives_facts_for_new_values(kb: KnowledgeBase, engine: RuleEngine) -> None:
	assert engine.add_rule(circle_rule()) == []
	kb.declare_value("MyPizza", ["Circle"], {"Radius": "0.1 * Meters"})
	derived = engine.saturate(["MyPizza"])
	assert ("isa", "MyPizza", "Round") in derived
	assert ("type", "MyPizza.Diameter", "Length") in derived
	assert kb.is_a("MyPizza", "Round")
	assert kb.get_property("MyPizza", "Diameter") == TypeConstraint(DimVector.axis("Length"))


def test_saturation_reaches_a_fixed_point(kb: KnowledgeBase, engine: RuleEngine) -> None:
	kb.declare_value("MyPizza", ["Circle"], {"Radius": "0.1 * Meters"})
	first = engine.add_rule(circle_rule())
	assert len(first) == 2
	count = kb.fact_count
	assert engine.saturate() == []
	assert kb.fact_count == count


def test_conditions_gate_the_rule(kb: KnowledgeBase, engine: RuleEngine) -> None:
	kb.declare_value("Plate", ["Circle"])
	engine.add_rule(circle_rule())
	assert not kb.is_a("Plate", "Round")


def test_rules_chain(kb: KnowledgeBase, engine: RuleEngine) -> None:
	kb.declare_class("Edible")
	engine.add_rule(circle_rule())
	engine.add_rule(Rule(bound_var="X", conditions=(IsaCondition("X", "Round"),), conclusions=(IsaConclusion("X", "Edible"),)))
	kb.declare_value("MyPizza", ["Circle"], {"Radius": "0.1 * Meters"})
	derived = engine.saturate(["MyPizza"])
	assert ("isa", "MyPizza", "Edible") in derived


def test_rules_follow_entity_references(kb: KnowledgeBase, engine: RuleEngine) -> None:
	kb.declare_class("Hot")
	kb.declare_value("Oven", ["Circle"])
	kb.declare_value("MyPizza", properties={"BakedIn": "Oven"})
	engine.add_rule(
		Rule(
			bound_var="Food",
			conditions=(BindCondition("Where", "Food.BakedIn"), IsaCondition("Where", "Circle")),
			conclusions=(IsaConclusion("Where", "Hot"), TypeConclusion("Food.Temperature", "Length / Length")),
		)
	)
	assert kb.is_a("Oven", "Hot")
	assert kb.get_property("MyPizza", "Temperature") == TypeConstraint(DimVector())


def test_type_conclusion_validates_existing_values(kb: KnowledgeBase, engine: RuleEngine) -> None:
	kb.declare_value("Clock", ["Circle"], {"Radius": "2 * Seconds"})
	rule = Rule(
		bound_var="Circle",
		conditions=(BindCondition("R", "Circle.Radius"),),
		conclusions=(TypeConclusion("R", "Length"),),
	)
	with pytest.raises(TypeConstraintViolationError):
		engine.add_rule(rule)


def test_rule_validation(engine: RuleEngine) -> None:
	with pytest.raises(UnknownEntityOrClassError):
		engine.compile(Rule(bound_var="Circle", conclusions=(IsaConclusion("Circle", "Square"),)))
	with pytest.raises(MalformedStatementError):
		engine.compile(Rule(bound_var="Circle", conditions=(IsaCondition("Y", "Round"),), conclusions=(IsaConclusion("Circle", "Round"),)))
	with pytest.raises(MalformedStatementError):
		engine.compile(Rule(bound_var="Circle", conclusions=(TypeConclusion("Circle.Area", "2 * Meters"),)))
	with pytest.raises(MalformedStatementError):
		engine.compile(Rule(bound_var="Circle"))


def test_runaway_saturation_is_bounded(kb: KnowledgeBase) -> None:
	kb.declare_class("Round")
	kb.declare_class("Circle")
	engine = RuleEngine(kb, max_rounds=1)
	kb.declare_value("A", ["Circle"], {"Radius": "1 * Meters"})
	kb.declare_value("B", ["Circle"], {"Radius": "2 * Meters"})
	with pytest.raises(MalformedStatementError, match="did not converge"):
		engine.add_rule(circle_rule())
