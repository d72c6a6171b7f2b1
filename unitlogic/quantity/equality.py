"""Equality checks for quantities (class-based).

Provides:
  • EqualityChecks.symbolic_equal(a, b)
  • EqualityChecks.close(a, b) -> bool        (relative/absolute tolerance)
  • EqualityChecks.quantities_equal(q1, q2)   (dimension gate + cascade)

Cascade: both magnitudes exact Rationals → decided exactly. Otherwise a
symbolic certificate simplify(a-b)==0 accepts; failing that, the tolerance
path compares float64 values with numpy.isclose and falls back to
high-precision evaluation when the values leave the float64 range.
"""

from __future__ import annotations
import math
import numpy as np
import sympy as sp

from unitlogic.quantity.quantity import Quantity


class EqualityChecks:
	"""Encapsulates exact and tolerance-based magnitude comparison."""

	def __init__(self, rel_tol: float = 1e-9, abs_tol: float = 0.0) -> None:
		self.rel_tol = float(rel_tol)
		self.abs_tol = float(abs_tol)

	def symbolic_equal(self, a: sp.Expr, b: sp.Expr) -> bool:
		"""
		Return True iff simplify(a - b) is exactly zero (symbolic certificate).
		"""
		d = sp.simplify(a - b)
		if d == 0:
			return True
		else:
			return False

	@staticmethod
	def _as_float(v: sp.Expr) -> float:
		try:
			return float(sp.N(v, 30))
		except (TypeError, OverflowError):
			return float("nan")

	@staticmethod
	def _representable(v: sp.Expr, f: float) -> bool:
		"""False when float64 overflowed or flushed a non-zero value to zero."""
		if not math.isfinite(f):
			return False
		if f == 0.0 and v.is_zero is not True:
			return False
		return True

	def close(self, a: sp.Expr, b: sp.Expr) -> bool:
		"""
		Relative-tolerance comparison |a-b| <= max(rel_tol * max(|a|,|b|), abs_tol).
		"""
		fa = self._as_float(a)
		fb = self._as_float(b)
		if self._representable(a, fa) and self._representable(b, fb):
			return bool(np.isclose(fa, fb, rtol=self.rel_tol, atol=self.abs_tol))
		diff = sp.N(sp.Abs(a - b), 50)
		scale = sp.N(sp.Max(sp.Abs(a), sp.Abs(b)), 50)
		bound = sp.Max(sp.Float(self.rel_tol, 50) * scale, sp.Float(self.abs_tol, 50))
		return bool(diff <= bound)

	def magnitudes_equal(self, a: sp.Expr, b: sp.Expr, exact: bool) -> bool:
		if exact and a.is_Rational and b.is_Rational:
			return bool(a == b)
		if self.symbolic_equal(a, b):
			return True
		return self.close(a, b)

	def quantities_equal(self, q1: Quantity, q2: Quantity) -> bool:
		"""
		Return False for unequal dimension vectors; otherwise compare canonical magnitudes
		exactly when both sides are exact, with tolerance when either is not.
		"""
		if not q1.dim.same(q2.dim):
			return False
		return self.magnitudes_equal(q1.magnitude, q2.magnitude, exact=q1.exact and q2.exact)


__all__ = ["EqualityChecks"]
