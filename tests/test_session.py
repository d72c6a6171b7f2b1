import pytest

from unitlogic.errors import StatementError
from unitlogic.kb.slots import Value
from unitlogic.reasoning.rules import BindCondition
from unitlogic.session.config import SessionConfig
from unitlogic.session.session import Session
from unitlogic.session.statements import (
	Check,
	DeclareBaseUnit,
	DeclareEntityClass,
	DeclareLabel,
	DeclareLaw,
	DeclareUnitClass,
	DeclareValue,
	EqualityPredicate,
	Find,
	MembershipPredicate,
	Show,
	TypePredicate,
)


def run(statements, **config) -> Session:
	session = Session(SessionConfig(**config))
	session.run(statements)
	return session


def test_three_find_forms_agree(pizza: list) -> None:
	forms = [
		Find("MyPizza", "Area"),
		Find("MyPizza", "Area", law="AreaOfACircle"),
		Find("MyPizza", "Area", law="AreaOfACircle", bindings={"Circle": "MyPizza"}),
	]
	results = []
	for form in forms:
		report = run(pizza + [form]).report()
		assert report.ok, report.errors
		assert len(report.finds) == 1
		results.append(report.finds[0])
	assert all(r.law == "AreaOfACircle" for r in results)
	assert results[0].quantity.equals(results[1].quantity)
	assert results[1].quantity.equals(results[2].quantity)
	assert results[0].quantity.dim.exponent("Length") == 2


def test_pizza_checks_pass(pizza: list) -> None:
	checks = [
		Find("MyPizza", "Area"),
		Check(EqualityPredicate("MyPizza.Area", "Pi * 0.01 * Meters^2"), "area"),
		Check(MembershipPredicate("MyPizza", "Circle"), "isa circle"),
		Check(MembershipPredicate("MyPizza", "Round", form="is"), "is round"),
		Check(TypePredicate("MyPizza.Diameter", "Length"), "diameter"),
		Check(TypePredicate("MyPizza.Area", "Length^2"), "area type"),
	]
	report = run(pizza + checks).report()
	assert report.ok, [c.reason for c in report.failed_checks]
	assert [c.passed for c in report.checks] == [True] * 5
	assert not report.halted


def test_repeated_find_is_served_from_the_knowledge_base(pizza: list) -> None:
	report = run(pizza + [Find("MyPizza", "Area"), Find("MyPizza", "Area")]).report()
	first, second = report.finds
	assert not first.cached
	assert second.cached
	assert second.quantity == first.quantity


def test_label_composition_check() -> None:
	statements = [
		DeclareUnitClass("Length"),
		DeclareUnitClass("Mass"),
		DeclareUnitClass("Time"),
		DeclareLabel("Velocity", "Length / Time"),
		DeclareLabel("Acceleration", "Velocity / Time"),
		DeclareLabel("Force", "Acceleration / Mass"),
		DeclareLabel("Impulse", "Force * Time"),
		Check(EqualityPredicate("Impulse", "Velocity / Mass")),
		Check(EqualityPredicate("Impulse", "Velocity * Mass")),
	]
	report = run(statements).report()
	assert [c.passed for c in report.checks] == [True, False]
	assert not report.errors


def test_declaration_error_halts() -> None:
	statements = [
		DeclareUnitClass("Length"),
		DeclareUnitClass("Length"),
		DeclareUnitClass("Time"),
	]
	session = run(statements)
	report = session.report()
	assert report.halted
	assert report.statements_run == 2
	assert [e.code for e in report.errors] == ["E_DUPLICATE_NAME"]
	assert report.errors[0].index == 1
	assert "Time" not in session.registry.dimensions()


def test_find_error_is_recorded_and_session_continues(pizza: list) -> None:
	statements = pizza + [
		DeclareValue("EmptyPlate", classes=("Circle",)),
		Find("EmptyPlate", "Area"),
		Find("MyPizza", "Crust"),
		Check(MembershipPredicate("EmptyPlate", "Circle")),
	]
	report = run(statements).report()
	assert [e.code for e in report.errors] == ["E_UNBOUND_PROPERTY", "E_NO_APPLICABLE_LAW"]
	assert not report.halted
	assert report.checks[0].passed


def test_ambiguous_law_is_reported(pizza: list) -> None:
	statements = pizza + [
		DeclareLaw(
			name="SquareishArea",
			bound_var="Circle",
			conditions=(BindCondition("R", "Circle.Radius"), BindCondition("A", "Circle.Area")),
			equation="A = 4 * R^2",
		),
		Find("MyPizza", "Area"),
		Find("MyPizza", "Area", law="SquareishArea"),
	]
	report = run(statements).report()
	assert [e.code for e in report.errors] == ["E_AMBIGUOUS_LAW"]
	assert report.finds[0].law == "SquareishArea"


def test_failed_checks_are_data() -> None:
	statements = [
		DeclareUnitClass("Length"),
		DeclareBaseUnit(names=("Meter", "Meters"), dimension="Length"),
		DeclareUnitClass("Time"),
		DeclareBaseUnit(names=("Second", "Seconds"), dimension="Time"),
		Check(EqualityPredicate("1 * Meters", "2 * Meters")),
		Check(EqualityPredicate("1 * Meters + 1 * Seconds", "2 * Meters")),
		Check(EqualityPredicate("1 * Meters", "1 * Seconds")),
		Check(EqualityPredicate("1 * Meters", "1 * Meters")),
	]
	report = run(statements).report()
	assert [c.passed for c in report.checks] == [False, False, False, True]
	assert "E_DIMENSION_MISMATCH" in report.checks[1].reason
	assert not report.errors
	assert not report.ok


def test_abort_on_failed_check() -> None:
	statements = [
		DeclareUnitClass("Length"),
		DeclareBaseUnit(names=("Meter", "Meters"), dimension="Length"),
		Check(EqualityPredicate("1 * Meters", "2 * Meters")),
		Check(EqualityPredicate("1 * Meters", "1 * Meters")),
	]
	report = run(statements, abort_on_failed_check=True).report()
	assert report.halted
	assert len(report.checks) == 1


def test_malformed_check_halts(pizza: list) -> None:
	report = run(pizza + [Check(MembershipPredicate("Ghost", "Circle")), Find("MyPizza", "Area")]).report()
	assert report.halted
	assert [e.code for e in report.errors] == ["E_UNKNOWN_ENTITY_OR_CLASS"]
	assert not report.finds


def test_raise_errors() -> None:
	session = Session(SessionConfig(raise_errors=True))
	with pytest.raises(StatementError) as info:
		session.run([DeclareUnitClass("Length"), DeclareBaseUnit(names=("Meter",), dimension="Span")])
	assert info.value.code == "E_UNKNOWN_UNIT"
	assert info.value.index == 1


def test_prelude_units() -> None:
	checks = [
		Check(EqualityPredicate("1 * Kilograms", "1000 * Grams")),
		Check(EqualityPredicate("1 * Hours", "3600 * Seconds")),
		Check(EqualityPredicate("1 * Feet", "0.3048 * Meters")),
		Check(EqualityPredicate("1 * Years", "31557600 * s")),
		Check(TypePredicate("1 * Meter / Second^2", "Acceleration")),
		Check(TypePredicate("1 * Kilogram * Meter / Second^2", "Force")),
	]
	report = run(checks, prelude=True).report()
	assert report.ok, [c.reason for c in report.failed_checks]
	assert "prelude" in [e.kind for e in report.log]


def test_class_schema_through_session() -> None:
	statements = [
		DeclareUnitClass("Length"),
		DeclareBaseUnit(names=("Meter", "Meters"), dimension="Length", prefixing="metric"),
		DeclareEntityClass("Disk", properties={"Radius": "Length"}),
		DeclareValue("Coin", classes=("Disk",)),
		Check(TypePredicate("Coin.Radius", "Length")),
		Check(TypePredicate("Coin.Radius * 2", "Length")),
		DeclareValue("BadCoin", classes=("Disk",), properties={"Radius": "1 * Meters^2"}),
		Check(MembershipPredicate("Coin", "Disk")),
	]
	report = run(statements).report()
	assert [c.passed for c in report.checks] == [True, True]
	assert [e.code for e in report.errors] == ["E_TYPE_CONSTRAINT_VIOLATION"]
	assert report.halted


def test_log_records_every_step(pizza: list) -> None:
	report = run(pizza + [Find("MyPizza", "Area")]).report()
	kinds = [e.kind for e in report.log]
	assert kinds[0] == "declare_unit_class"
	assert "declare_rule" in kinds
	assert "derived" in kinds
	assert kinds[-1] == "find"


def test_verbose_prints(pizza: list, capsys: pytest.CaptureFixture) -> None:
	run(pizza + [Find("MyPizza", "Area"), Check(MembershipPredicate("MyPizza", "Round"), "round")], verbose=True)
	out = capsys.readouterr().out
	assert "[FIND] find MyPizza.Area" in out
	assert "[CHECK] PASS round" in out


def test_check_computes_a_property_nobody_asked_for(pizza: list) -> None:
	session = run(pizza + [Check(EqualityPredicate("MyPizza.Area", "Pi * 0.01 * Meters^2"), "area")])
	report = session.report()
	assert report.ok, report.errors
	assert report.checks[0].passed
	assert isinstance(session.kb.get_property("MyPizza", "Area"), Value)
	kinds = [e.kind for e in report.log]
	assert kinds.index("solve") < kinds.index("check")


def test_type_check_computes_a_missing_property(pizza: list) -> None:
	report = run(pizza + [Check(TypePredicate("MyPizza.Area", "Length^2"), "area type")]).report()
	assert report.ok, report.errors
	assert "[Length^2] = [Length^2]" in report.checks[0].reason


def test_check_on_a_property_no_law_computes_halts(pizza: list) -> None:
	statements = pizza + [
		Check(EqualityPredicate("MyPizza.Crust", "1 * Meters")),
		Check(MembershipPredicate("MyPizza", "Circle")),
	]
	report = run(statements).report()
	assert [e.code for e in report.errors] == ["E_UNBOUND_PROPERTY"]
	assert report.halted
	assert not report.checks


def test_unknown_prefixing_mode_is_a_statement_error() -> None:
	statements = [
		DeclareUnitClass("Length"),
		DeclareBaseUnit(names=("Meter",), dimension="Length", prefixing="bogus"),
		DeclareUnitClass("Time"),
	]
	session = run(statements)
	report = session.report()
	assert [e.code for e in report.errors] == ["E_MALFORMED_STATEMENT"]
	assert report.errors[0].index == 1
	assert report.halted
	assert "unknown prefixing mode" in str(report.errors[0])
	assert session.registry.lookup("Meter") is None


def test_named_law_must_relate_the_property(pizza: list) -> None:
	statements = pizza + [
		DeclareEntityClass("Square"),
		DeclareLaw(
			name="AreaOfASquare",
			bound_var="Square",
			conditions=(BindCondition("S", "Square.Side"), BindCondition("A", "Square.Area")),
			equation="A = S^2",
		),
		Find("MyPizza", "Radius", law="AreaOfACircle"),
		Find("MyPizza", "Radius", law="AreaOfASquare"),
		Find("MyPizza", "Diameter", law="AreaOfACircle"),
	]
	report = run(statements).report()
	assert [f.cached for f in report.finds] == [True]
	assert [e.code for e in report.errors] == ["E_NO_APPLICABLE_LAW", "E_NO_APPLICABLE_LAW"]
	assert not report.halted


def test_show_records_values_and_verdicts(pizza: list, capsys: pytest.CaptureFixture) -> None:
	statements = pizza + [
		Show("MyPizza.Area", "area"),
		Show("MyPizza.Radius * 2", "diameter"),
		Show(MembershipPredicate("MyPizza", "Round"), "round"),
		Show("Length^2", "area dimension"),
		Show("MyPizza.Radius + 1", "bad sum"),
		Show(TypePredicate("MyPizza.Area", "Length"), "area is a length"),
	]
	session = run(statements, verbose=True)
	report = session.report()
	area, diameter, round_, dim, wrong = report.shows
	assert area.value == "0.03 Meters^2"
	assert area.quantity.precision == 1
	assert diameter.value == "0.2 Meters"
	assert round_.value == "true"
	assert dim.value == "[Length^2]"
	assert wrong.value == "false"
	assert [e.code for e in report.errors] == ["E_DIMENSION_MISMATCH"]
	assert report.errors[0].index == len(pizza) + 4
	assert not report.halted
	assert report.summary()["shows"] == 5
	assert "solve" in [e.kind for e in report.log]
	assert "[SHOW] area = 0.03 Meters^2" in capsys.readouterr().out


def test_prelude_constants() -> None:
	statements = [
		Check(EqualityPredicate("ElementaryCharge", "1.602176634e-19 * Coulombs"), "charge"),
		Check(TypePredicate("ElementaryCharge", "Charge"), "charge type"),
		Check(TypePredicate("VacuumPermittivity", "Charge^2 / (Energy * Length)"), "permittivity type"),
		Check(TypePredicate("1 * Volts * Coulombs", "Energy"), "volt coulomb"),
		Show(TypePredicate("1 * Meter / Second ^ 2", "Acceleration"), "acceleration"),
		Show("VacuumPermittivity", "permittivity"),
	]
	report = run(statements, prelude=True).report()
	assert report.ok, [c.reason for c in report.failed_checks] + [str(e) for e in report.errors]
	accel, eps = report.shows
	assert accel.value == "true"
	assert eps.quantity.precision == 11
	assert not eps.quantity.exact
	assert eps.value.startswith("8.8541878128")
	assert eps.value.endswith("Farads / Meters")
