"""
Standard bootstrap statements: Length, Mass, Time and Current with their usual
units, the kinematic and electrical units and labels, a few dimensionless
constants and two physical ones (vacuum permittivity, elementary charge).

Loaded by Session when SessionConfig.prelude is set. Constants written as
decimals are truncations: they are inexact, compare with tolerance and carry
the significant figures they were written with. The elementary charge is
exact since the 2019 SI redefinition, so it is written as an integer ratio.
The electrical units have no symbols so single letters stay free for law locals.
"""

from __future__ import annotations
from typing import List

from unitlogic.session.statements import (
	DeclareBaseUnit,
	DeclareDerivedUnit,
	DeclareLabel,
	DeclareUnitClass,
	Statement,
)


PI_DIGITS = (
	"3.1415926535897932384626433832795028841971693993751058209749445923078164062862089986280348253421170679"
)
E_DIGITS = "2.71828182845904523536028747135266249775724709369995"
GOLDEN_RATIO_DIGITS = "1.61803398874989484820458683436563811772030917980576"
VACUUM_PERMITTIVITY = "8.8541878128e-12 * Farads / Meters"
ELEMENTARY_CHARGE = "1602176634 * Coulombs / 10^28"


def standard_statements() -> List[Statement]:
	return [
		DeclareUnitClass("Length"),
		DeclareBaseUnit(names=("Meter", "Meters"), dimension="Length", symbol="m", prefixing="metric"),
		DeclareDerivedUnit(names=("Foot", "Feet"), symbol="ft", value="0.3048 * Meters"),
		DeclareUnitClass("Mass"),
		DeclareBaseUnit(names=("Gram", "Grams"), dimension="Mass", symbol="g", prefixing="metric"),
		DeclareUnitClass("Time"),
		DeclareBaseUnit(names=("Second", "Seconds"), dimension="Time", symbol="s", prefixing="partial_metric"),
		DeclareDerivedUnit(names=("Minute", "Minutes"), symbol="min", value="60 * Seconds"),
		DeclareDerivedUnit(names=("Hour", "Hours"), symbol="h", value="60 * Minutes"),
		DeclareDerivedUnit(names=("Day", "Days"), symbol="d", value="24 * Hours"),
		DeclareDerivedUnit(names=("Year", "Years"), symbol="yr", value="365.25 * Days"),
		DeclareLabel("Velocity", "Length / Time"),
		DeclareLabel("Acceleration", "Velocity / Time"),
		DeclareLabel("Force", "Mass * Acceleration"),
		DeclareLabel("Energy", "Force * Length"),
		DeclareUnitClass("Current"),
		DeclareBaseUnit(names=("Ampere", "Amperes"), dimension="Current", prefixing="metric"),
		DeclareLabel("Charge", "Current * Time"),
		DeclareDerivedUnit(names=("Newton", "Newtons"), value="Kilograms * Meters / Seconds^2"),
		DeclareDerivedUnit(names=("Joule", "Joules"), value="Newtons * Meters"),
		DeclareDerivedUnit(names=("Coulomb", "Coulombs"), value="Amperes * Seconds"),
		DeclareDerivedUnit(names=("Volt", "Volts"), value="Joules / Coulombs"),
		DeclareDerivedUnit(names=("Farad", "Farads"), value="Coulombs / Volts"),
		DeclareLabel("Pi", PI_DIGITS),
		DeclareLabel("EulersConstant", E_DIGITS),
		DeclareLabel("GoldenRatio", GOLDEN_RATIO_DIGITS),
		DeclareLabel("VacuumPermittivity", VACUUM_PERMITTIVITY),
		DeclareLabel("ElementaryCharge", ELEMENTARY_CHARGE),
	]


__all__ = [
	"standard_statements",
	"PI_DIGITS",
	"E_DIGITS",
	"GOLDEN_RATIO_DIGITS",
	"VACUUM_PERMITTIVITY",
	"ELEMENTARY_CHARGE",
]
