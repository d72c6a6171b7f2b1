"""
Class DimVector models a dimension as an immutable sparse vector of rational
exponents over named base axes (Length, Mass, Time, ... as declared by the
script). It supports the group-like arithmetic used by the quantity engine:

  • d1 * d2     → exponent-wise addition
  • d1 / d2     → exponent-wise subtraction
  • d.pow(p)    → scale by an int or Fraction p
  • d ** p      → same as d.pow(p)
  • d1 + d2     → require equal dims; returns that same dim (addition typing rule)
  • d1 - d2     → require equal dims; returns that same dim (subtraction typing rule)
  • same, is_dimensionless, axes, exponent, pretty

Axes with a zero exponent are dropped, so two vectors are equal iff they
describe the same dimension. DIMLESS is the empty vector.
"""

from __future__ import annotations
from dataclasses import dataclass
from fractions import Fraction
from typing import Dict, Mapping, Tuple, Union

from unitlogic.errors import DimensionMismatchError


PowLike = Union[int, Fraction]
Exponents = Tuple[Tuple[str, Fraction], ...]


@dataclass(frozen=True)
class DimVector:
	"""Immutable dimension vector: sorted (axis, exponent) pairs with non-zero exponents."""
	exponents: Exponents = ()

	@classmethod
	def from_mapping(cls, mapping: Mapping[str, PowLike]) -> "DimVector":
		filtered = {}
		for axis, exp in mapping.items():
			e = Fraction(exp)
			if e != 0:
				filtered[str(axis)] = e
		return cls(exponents=tuple(sorted(filtered.items())))

	@classmethod
	def axis(cls, name: str) -> "DimVector":
		"""Unit vector on a single base axis."""
		return cls(exponents=((str(name), Fraction(1)),))

	def to_mapping(self) -> Dict[str, Fraction]:
		return dict(self.exponents)

	def add(self, other: "DimVector") -> "DimVector":
		combined = self.to_mapping()
		for axis, exp in other.exponents:
			combined[axis] = combined.get(axis, Fraction(0)) + exp
		return DimVector.from_mapping(combined)

	def sub(self, other: "DimVector") -> "DimVector":
		combined = self.to_mapping()
		for axis, exp in other.exponents:
			combined[axis] = combined.get(axis, Fraction(0)) - exp
		return DimVector.from_mapping(combined)

	def scale_by(self, p: PowLike) -> "DimVector":
		if isinstance(p, bool) or not isinstance(p, (int, Fraction)):
			raise TypeError("scale_by expects int or Fraction")
		p = Fraction(p)
		return DimVector.from_mapping({axis: exp * p for axis, exp in self.exponents})

	def pow(self, p: PowLike) -> "DimVector":
		return self.scale_by(p)

	def __mul__(self, other: "DimVector") -> "DimVector":
		return self.add(other)

	def __truediv__(self, other: "DimVector") -> "DimVector":
		return self.sub(other)

	def __pow__(self, p: PowLike) -> "DimVector":
		return self.pow(p)

	def __add__(self, other: "DimVector") -> "DimVector":
		if not self.same(other):
			raise DimensionMismatchError(
				"addition requires equal dimensions", f"{self.pretty()} + {other.pretty()}"
			)
		return self

	def __sub__(self, other: "DimVector") -> "DimVector":
		if not self.same(other):
			raise DimensionMismatchError(
				"subtraction requires equal dimensions", f"{self.pretty()} - {other.pretty()}"
			)
		return self

	def same(self, other: "DimVector") -> bool:
		return self.exponents == other.exponents

	def is_dimensionless(self) -> bool:
		return not self.exponents

	def axes(self) -> Tuple[str, ...]:
		return tuple(axis for axis, _ in self.exponents)

	def exponent(self, axis: str) -> Fraction:
		return self.to_mapping().get(axis, Fraction(0))

	def pretty(self) -> str:
		parts = []
		for axis, e in self.exponents:
			if e == 1:
				parts.append(axis)
			else:
				parts.append(f"{axis}^{e}")

		if not parts:
			return "1"
		else:
			return " ".join(parts)

	def to_payload(self) -> Dict[str, str]:
		"""JSON-friendly form: axis → exponent as text (keeps rational exponents exact)."""
		return {axis: str(e) for axis, e in self.exponents}


DIMLESS = DimVector()


__all__ = ["DimVector", "DIMLESS", "PowLike"]
