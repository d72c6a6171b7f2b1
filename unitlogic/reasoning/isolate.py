"""
Single-unknown equation isolation by inverse operations.

Given lhs = rhs and an unknown symbol x occurring exactly once, peel the
side holding x until x stands alone:

  • Add  a + f(x) = r   →  f(x) = r - a
  • Mul  a * f(x) = r   →  f(x) = r / a
  • Pow  f(x)^p  = r    →  f(x) = r^(1/p)   (p free of x; principal root)

Anything else around x (a function head, x in an exponent, x twice) raises
UnsolvableEquationError. No general solver is used: the result is exactly the
closed form the inverse steps produce, so the term evaluator can still check
its dimensions.
"""

from __future__ import annotations
from typing import List, Tuple

import sympy as sp

from unitlogic.errors import UnsolvableEquationError
from unitlogic.io.sympy_utils import SympyUtils


def _split(args: Tuple[sp.Basic, ...], x: sp.Symbol) -> Tuple[sp.Basic, List[sp.Basic]]:
	inner = [a for a in args if x in a.free_symbols]
	rest = [a for a in args if x not in a.free_symbols]
	return inner[0], rest


def isolate(lhs: sp.Expr, rhs: sp.Expr, x: sp.Symbol) -> sp.Expr:
	"""Return an expression free of x such that x = expression."""
	count = SympyUtils.occurrences(lhs, x) + SympyUtils.occurrences(rhs, x)
	if count == 0:
		raise UnsolvableEquationError("unknown does not occur in the equation", x.name)
	if count > 1:
		raise UnsolvableEquationError("unknown occurs more than once", x.name)
	if x in rhs.free_symbols:
		lhs, rhs = rhs, lhs

	while lhs != x:
		if isinstance(lhs, sp.Add):
			inner, rest = _split(lhs.args, x)
			rhs = rhs - sp.Add(*rest)
			lhs = inner
		elif isinstance(lhs, sp.Mul):
			inner, rest = _split(lhs.args, x)
			rhs = rhs / sp.Mul(*rest)
			lhs = inner
		elif isinstance(lhs, sp.Pow):
			base, expo = lhs.args
			if x in expo.free_symbols:
				raise UnsolvableEquationError("unknown occurs in an exponent", str(lhs))
			if expo.is_zero:
				raise UnsolvableEquationError("unknown is raised to the power zero", str(lhs))
			rhs = rhs ** (sp.Integer(1) / expo)
			lhs = base
		else:
			raise UnsolvableEquationError(f"cannot invert {type(lhs).__name__}", str(lhs))
	return rhs


__all__ = ["isolate"]
