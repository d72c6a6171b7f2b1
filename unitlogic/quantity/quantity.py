"""
Quantity: an arbitrary-precision magnitude paired with a dimension vector.

The magnitude is a SymPy number expressed in the canonical base units of its
dimension (Meters, Grams, Seconds, ... whatever was declared first for each
axis). Decimal literals arrive as exact Rationals, so a 101-digit constant keeps
every digit; root extraction yields exact algebraic numbers.

  • q1 * q2, q1 / q2   → magnitudes multiply/divide, vectors add/subtract
  • q ** p             → p int / Fraction / SymPy Rational scales the vector
  • q1 + q2, q1 - q2   → require equal vectors (DimensionMismatchError)
  • convert_to(reg, u) → same magnitude, display unit u (requires equal vectors)
  • value_in(reg, u)   → magnitude rescaled into unit u
  • equals(other, ...) → exact certificate or relative tolerance (see equality.py)

`exact` is False once any operand came from a truncated constant (label
constants, float literals); comparisons involving such values use tolerance.
`precision` counts significant figures (None for exact counting numbers and
unit scales). Products, quotients and powers keep the smallest count; sums
keep the digits down to the last decimal place both operands know, so
1.2 + 0.34 has 2. describe() rounds to it.
`display` remembers which named units the value was written in, combined
through arithmetic, so describe() can render it the way it was declared.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from fractions import Fraction
from typing import TYPE_CHECKING, Dict, Optional, Tuple, Union

import numpy as np
import sympy as sp

from unitlogic.errors import DimensionMismatchError
from unitlogic.units.dim import DimVector, DIMLESS

if TYPE_CHECKING:
	from unitlogic.units.registry import UnitRegistry


DisplayUnit = Tuple[Tuple[str, Fraction], ...]
Scalar = Union[int, Fraction, sp.Basic]


def _combine_display(lhs: DisplayUnit, rhs: DisplayUnit, sign: int) -> DisplayUnit:
	combined: Dict[str, Fraction] = dict(lhs)
	for name, exp in rhs:
		combined[name] = combined.get(name, Fraction(0)) + sign * exp
	return tuple(sorted((n, e) for n, e in combined.items() if e != 0))


def _to_fraction(p: Scalar) -> Fraction | None:
	"""Return p as a Fraction when it is an exact rational, else None."""
	if isinstance(p, bool):
		return None
	if isinstance(p, (int, Fraction)):
		return Fraction(p)
	ps = sp.sympify(p)
	if ps.is_Rational:
		return Fraction(int(ps.p), int(ps.q))
	return None


def _least_precision(*ps: Optional[int]) -> Optional[int]:
	known = [p for p in ps if p is not None]
	if not known:
		return None
	return min(known)


def leading_exponent(value: sp.Expr) -> Optional[int]:
	"""Power of ten of the leading digit of |value|; None for zero."""
	v = sp.Abs(sp.sympify(value))
	if v.is_zero:
		return None
	x = float(sp.N(v, 20))
	if x == 0.0 or not np.isfinite(x):
		e = int(sp.floor(sp.log(sp.N(v, 30), 10)))
	else:
		e = int(np.floor(np.log10(x)))
	# float rounding can land one decade off at exact powers of ten
	if sp.Integer(10) ** e > v:
		e -= 1
	elif sp.Integer(10) ** (e + 1) <= v:
		e += 1
	return e


def additive_precision(a: sp.Expr, pa: Optional[int], b: sp.Expr, pb: Optional[int], result: sp.Expr) -> Optional[int]:
	"""
	Significant figures of a + b: digits from the leading digit of the result
	down to the last decimal place that is still known in both operands.
	"""
	if pa is None and pb is None:
		return None
	ends = []
	for value, p in ((a, pa), (b, pb)):
		if p is None:
			continue
		e = leading_exponent(value)
		if e is not None:
			ends.append(e - p)
	if not ends:
		return _least_precision(pa, pb)
	start = leading_exponent(result)
	if start is None:
		return 1
	return max(1, start - max(ends))


@dataclass(frozen=True)
class Quantity:
	"""Magnitude in canonical base units, its dimension vector, exactness, display unit and precision."""
	magnitude: sp.Expr
	dim: DimVector = DIMLESS
	exact: bool = True
	display: DisplayUnit = ()
	precision: Optional[int] = None

	def __post_init__(self) -> None:
		object.__setattr__(self, "magnitude", sp.sympify(self.magnitude))
		if not self.magnitude.is_number:
			raise TypeError(f"Quantity magnitude must be numeric, got {self.magnitude}")

	@classmethod
	def dimensionless(cls, value: Scalar, exact: bool = True, precision: Optional[int] = None) -> "Quantity":
		return cls(magnitude=sp.sympify(value), dim=DIMLESS, exact=exact, precision=precision)

	@staticmethod
	def coerce(value: "Quantity | Scalar") -> "Quantity":
		if isinstance(value, Quantity):
			return value
		if isinstance(value, float):
			return Quantity(magnitude=sp.Rational(repr(value)), exact=False)
		return Quantity.dimensionless(value)

	def is_dimensionless(self) -> bool:
		return self.dim.is_dimensionless()

	def multiply(self, other: "Quantity | Scalar") -> "Quantity":
		o = Quantity.coerce(other)
		return Quantity(
			magnitude=self.magnitude * o.magnitude,
			dim=self.dim * o.dim,
			exact=self.exact and o.exact,
			display=_combine_display(self.display, o.display, 1),
			precision=_least_precision(self.precision, o.precision),
		)

	def divide(self, other: "Quantity | Scalar") -> "Quantity":
		o = Quantity.coerce(other)
		if o.magnitude.is_zero:
			raise ZeroDivisionError("Quantity division by zero")
		return Quantity(
			magnitude=self.magnitude / o.magnitude,
			dim=self.dim / o.dim,
			exact=self.exact and o.exact,
			display=_combine_display(self.display, o.display, -1),
			precision=_least_precision(self.precision, o.precision),
		)

	def power(self, exponent: "Quantity | Scalar") -> "Quantity":
		"""
		Raise to an int, Fraction or SymPy number. A Quantity exponent must be
		dimensionless. Irrational exponents are only allowed on dimensionless bases.
		"""
		exact = self.exact
		precision = self.precision
		if isinstance(exponent, Quantity):
			if not exponent.is_dimensionless():
				raise DimensionMismatchError("exponent must be dimensionless", exponent.dim.pretty())
			exact = exact and exponent.exact
			precision = _least_precision(precision, exponent.precision)
			exponent = exponent.magnitude
		p = _to_fraction(exponent)
		if self.magnitude.is_zero and (p is None or p < 0):
			raise ZeroDivisionError("zero raised to a negative or non-rational power")
		if p is None:
			if not self.is_dimensionless():
				raise DimensionMismatchError(
					"non-rational exponent on a dimensioned quantity", self.dim.pretty()
				)
			return Quantity(
				magnitude=self.magnitude ** sp.sympify(exponent), dim=DIMLESS, exact=exact, precision=precision
			)
		return Quantity(
			magnitude=self.magnitude ** sp.Rational(p.numerator, p.denominator),
			dim=self.dim.scale_by(p),
			exact=exact,
			display=tuple((n, e * p) for n, e in self.display),
			precision=precision,
		)

	def _require_same(self, o: "Quantity", op: str) -> None:
		if not self.dim.same(o.dim):
			raise DimensionMismatchError(
				f"'{op}' requires equal dimensions", f"{self.dim.pretty()} {op} {o.dim.pretty()}"
			)

	def add(self, other: "Quantity | Scalar") -> "Quantity":
		o = Quantity.coerce(other)
		self._require_same(o, "+")
		total = self.magnitude + o.magnitude
		return Quantity(
			magnitude=total,
			dim=self.dim,
			exact=self.exact and o.exact,
			display=self.display or o.display,
			precision=additive_precision(self.magnitude, self.precision, o.magnitude, o.precision, total),
		)

	def subtract(self, other: "Quantity | Scalar") -> "Quantity":
		o = Quantity.coerce(other)
		self._require_same(o, "-")
		total = self.magnitude - o.magnitude
		return Quantity(
			magnitude=total,
			dim=self.dim,
			exact=self.exact and o.exact,
			display=self.display or o.display,
			precision=additive_precision(self.magnitude, self.precision, o.magnitude, o.precision, total),
		)

	def negate(self) -> "Quantity":
		return replace(self, magnitude=-self.magnitude)

	def __mul__(self, other: "Quantity | Scalar") -> "Quantity":
		return self.multiply(other)

	def __rmul__(self, other: Scalar) -> "Quantity":
		return Quantity.coerce(other).multiply(self)

	def __truediv__(self, other: "Quantity | Scalar") -> "Quantity":
		return self.divide(other)

	def __rtruediv__(self, other: Scalar) -> "Quantity":
		return Quantity.coerce(other).divide(self)

	def __pow__(self, p: "Quantity | Scalar") -> "Quantity":
		return self.power(p)

	def __add__(self, other: "Quantity | Scalar") -> "Quantity":
		return self.add(other)

	def __sub__(self, other: "Quantity | Scalar") -> "Quantity":
		return self.subtract(other)

	def __neg__(self) -> "Quantity":
		return self.negate()

	def convert_to(self, registry: "UnitRegistry", target: "str | Quantity") -> "Quantity":
		"""
		Express this quantity in `target` (a unit name or a unit-valued Quantity such as
		Meters/Second). The canonical magnitude is unchanged; only the display unit moves.
		"""
		if isinstance(target, str):
			unit = registry.unit(target)
			t_dim = unit.dim
			t_display: DisplayUnit = ((unit.primary, Fraction(1)),)
		else:
			t_dim = target.dim
			t_display = target.display
		if not self.dim.same(t_dim):
			raise DimensionMismatchError(
				"conversion requires equal dimensions", f"{self.dim.pretty()} -> {t_dim.pretty()}"
			)
		return replace(self, display=t_display)

	def value_in(self, registry: "UnitRegistry", target: "str | Quantity") -> sp.Expr:
		"""Magnitude rescaled into `target` units (canonical magnitude / target scale)."""
		if isinstance(target, str):
			unit = registry.unit(target)
			scale, t_dim = unit.scale, unit.dim
		else:
			scale, t_dim = target.magnitude, target.dim
		if not self.dim.same(t_dim):
			raise DimensionMismatchError(
				"conversion requires equal dimensions", f"{self.dim.pretty()} -> {t_dim.pretty()}"
			)
		return self.magnitude / scale

	def equals(self, other: "Quantity", rel_tol: float = 1e-9, abs_tol: float = 0.0) -> bool:
		"""Dimension-checked equality; see EqualityChecks for the exact/tolerance cascade."""
		from unitlogic.quantity.equality import EqualityChecks
		return EqualityChecks(rel_tol=rel_tol, abs_tol=abs_tol).quantities_equal(self, other)

	def describe(self, registry: "UnitRegistry | None" = None, digits: int = 15) -> str:
		"""
		Render `value unit` in the display unit when it matches, else in canonical
		base units, rounded to the quantity's significant figures when it has them.
		"""
		value = self.magnitude
		unit_text = ""
		if registry is not None:
			display = self.display
			if display and not registry.display_dim(display).same(self.dim):
				display = ()
			if display:
				value = self.magnitude / registry.display_scale(display)
				unit_text = registry.format_display(display)
			elif not self.is_dimensionless():
				unit_text = registry.format_display(registry.canonical_display(self.dim))
		else:
			if not self.is_dimensionless():
				unit_text = f"[{self.dim.pretty()}]"
		if value.is_Integer:
			num = str(value)
		else:
			num = str(sp.N(value, _least_precision(self.precision, digits)))
		if unit_text:
			return f"{num} {unit_text}"
		return num

	def to_payload(self, registry: "UnitRegistry | None" = None) -> Dict[str, object]:
		return {
			"magnitude": str(self.magnitude),
			"approx": str(sp.N(self.magnitude, 17)),
			"dim": self.dim.to_payload(),
			"exact": bool(self.exact),
			"precision": self.precision,
			"text": self.describe(registry),
		}


__all__ = ["Quantity", "DisplayUnit", "Scalar", "leading_exponent", "additive_precision"]
