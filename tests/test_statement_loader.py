import json

import pytest

from unitlogic.errors import MalformedStatementError
from unitlogic.io.statement_loader import StatementLoader
from unitlogic.reasoning.rules import BindCondition, IsaCondition, IsaConclusion, TypeConclusion
from unitlogic.session.config import SessionConfig
from unitlogic.session.session import Session
from unitlogic.session.statements import (
	Check,
	DeclareBaseUnit,
	DeclareRule,
	EqualityPredicate,
	Find,
	MembershipPredicate,
	Show,
	TypePredicate,
)

def test_pizza_script_runs_clean(pizza_script: list) -> None:
	statements = StatementLoader.load(pizza_script)
	report = Session(SessionConfig()).run(statements)
	assert report.ok, [str(e) for e in report.errors] + [c.reason for c in report.failed_checks]
	assert len(report.checks) == 5
	assert len(report.finds) == 2
	assert report.finds[1].cached

def test_statement_shapes(pizza_script: list) -> None:
	statements = StatementLoader.load(pizza_script)
	base = statements[1]
	assert isinstance(base, DeclareBaseUnit)
	assert base.names == ("Meter", "Meters")
	rule = statements[5]
	assert isinstance(rule, DeclareRule)
	assert rule.conditions == (BindCondition("R", "Circle.Radius"),)
	assert isinstance(rule.conclusions[0], IsaConclusion)
	assert isinstance(rule.conclusions[1], TypeConclusion)
	find = statements[9]
	assert isinstance(find, Find)
	assert (find.entity, find.property, find.law) == ("MyPizza", "Area", "AreaOfACircle")
	assert find.bindings == {"Circle": "MyPizza"}

def test_predicate_forms() -> None:
	assert isinstance(StatementLoader.predicate("MyPizza isa Circle"), MembershipPredicate)
	assert StatementLoader.predicate("MyPizza is Round").form == "is"
	assert isinstance(StatementLoader.predicate("MyPizza.Diameter isa Length"), TypePredicate)
	assert isinstance(StatementLoader.predicate("Impulse = Velocity / Mass"), EqualityPredicate)
	assert isinstance(StatementLoader.predicate("Meters / Seconds has dimension Velocity"), TypePredicate)
	assert isinstance(StatementLoader.predicate({"equal": ["1 * Meters", "100 * Centimeters"]}), EqualityPredicate)
	assert isinstance(StatementLoader.predicate({"isa": ["MyPizza", "Circle"]}), MembershipPredicate)
	with pytest.raises(MalformedStatementError):
		StatementLoader.predicate("MyPizza near Oven")
	with pytest.raises(MalformedStatementError):
		StatementLoader.predicate({"approx": ["a", "b"]})

def test_conditions_and_conclusions() -> None:
	conds = StatementLoader.conditions(["Food isa Pizza", "O is Food.BakedIn"])
	assert conds == (IsaCondition("Food", "Pizza"), BindCondition("O", "Food.BakedIn"))
	concl = StatementLoader.conclusions(["O isa Length", "Food is Round"], {"O"})
	assert isinstance(concl[0], TypeConclusion)
	assert concl[1] == IsaConclusion("Food", "Round")
	with pytest.raises(MalformedStatementError):
		StatementLoader.conditions(["X.A isa Y.B"])

def test_malformed_scripts() -> None:
	with pytest.raises(MalformedStatementError, match="statement 0"):
		StatementLoader.load([{"kind": "declare_planet", "name": "Mars"}])
	with pytest.raises(MalformedStatementError, match="missing field"):
		StatementLoader.load([{"kind": "declare_label", "name": "Pi"}])
	with pytest.raises(MalformedStatementError):
		StatementLoader.load([{"kind": "find", "target": "Area"}])
	with pytest.raises(MalformedStatementError):
		StatementLoader.loads(json.dumps({"kind": "declare_unit_class"}))

def test_lines_are_carried() -> None:
	(stmt,) = StatementLoader.loads(json.dumps([{"kind": "check", "predicate": "A = A", "line": 12}]))
	assert isinstance(stmt, Check)
	assert stmt.line == 12
	assert stmt.text == "A = A"

def test_parenthesized_expression_predicates() -> None:
	pred = StatementLoader.predicate("(1 * Meter / Second ^ 2) is Acceleration")
	assert isinstance(pred, TypePredicate)
	assert str(pred.dim) == "Acceleration"
	assert isinstance(StatementLoader.predicate("(MyPizza.Radius * 2) isa Length"), TypePredicate)

def test_show_statements() -> None:
	script = [
		{"kind": "show", "expr": "(1 * Meter / Second ^ 2) is Acceleration"},
		{"kind": "show", "expr": "3 * Feet", "text": "three feet"},
		{"kind": "show", "target": {"isa": ["Meters", "Length"]}},
	]
	paren, feet, mapped = StatementLoader.load(script)
	assert isinstance(paren, Show)
	assert isinstance(paren.target, TypePredicate)
	assert feet.text == "three feet"
	assert not isinstance(feet.target, (TypePredicate, EqualityPredicate, MembershipPredicate))
	assert isinstance(mapped.target, MembershipPredicate)
	report = Session(SessionConfig(prelude=True)).run([paren, feet])
	assert report.ok, [str(e) for e in report.errors]
	assert [s.value for s in report.shows] == ["true", "3 Feet"]
	with pytest.raises(MalformedStatementError, match="missing field"):
		StatementLoader.load([{"kind": "show"}])
