"""
Term evaluator (dimensional soundness + arithmetic in one pass)

Class: TermEvaluator
--------------------
Evaluates a SymPy expression tree to a *term*: either a Quantity (number with
a dimension vector) or a bare DimVector (dimensional label algebra such as
Mass * Length / Time^2).

  • numbers          : dimensionless Quantity (Floats are inexact); decimal
                       literals carry the significant figures they were written with
  • symbols          : scope → resolver → registry (dimension, unit, label)
  • +/− : require equal dims and equal term kinds; result keeps that dim.
  • */÷ : multiply magnitudes, add/subtract exponent vectors. Literal ±1
          factors are neutral on a bare vector (so A - B parses cleanly).
  • pow : the exponent must be a dimensionless Quantity; rational exponents
          scale the vector, others require a dimensionless base.
  • sin/cos/tan/exp/log: require a dimensionless argument; return dimensionless.
  • Abs : preserves the argument's dimension.

A Quantity and a bare DimVector never mix in one node (DimensionMismatchError).
Unknown names raise UnknownUnitError; dividing by zero raises
MalformedStatementError.

Public API
----------
- TermEvaluator(registry, resolver=None)
- evaluate(expr, scope=None) -> Quantity | DimVector
- dimension_of(expr, scope=None) -> DimVector
- check_expr(expr, target=None) -> tuple[bool, DimVector, str]
"""

from __future__ import annotations
from dataclasses import replace
from fractions import Fraction
from typing import TYPE_CHECKING, Callable, List, Mapping, Optional, Tuple, Union

import sympy as sp

from unitlogic.errors import DimensionMismatchError, MalformedStatementError, UnknownUnitError
from unitlogic.io.sympy_utils import Measured, SympyUtils
from unitlogic.quantity.quantity import Quantity
from unitlogic.units.dim import DIMLESS, DimVector

if TYPE_CHECKING:
	from unitlogic.units.registry import UnitRegistry


Term = Union[Quantity, DimVector]
Resolver = Callable[[str], Optional[Term]]

_UNARY = {
	sp.sin: sp.sin,
	sp.cos: sp.cos,
	sp.tan: sp.tan,
	sp.exp: sp.exp,
	sp.log: sp.log,
}


def term_dim(term: Term) -> DimVector:
	"""The dimension vector of a term, whichever kind it is."""
	if isinstance(term, Quantity):
		return term.dim
	return term


class TermEvaluator:
	"""Single entry point for evaluating expressions over units, labels and bound values."""

	def __init__(self, registry: "UnitRegistry", resolver: Optional[Resolver] = None) -> None:
		self.registry = registry
		self.resolver = resolver

	def evaluate(self, expr: sp.Expr | str, scope: Optional[Mapping[str, Term]] = None) -> Term:
		"""
		Return the term for a SymPy expression or a source string; raise on
		unknown names or dimension errors.
		"""
		if isinstance(expr, str):
			expr = SympyUtils.to_sympy(expr)
		elif not isinstance(expr, sp.Basic):
			raise TypeError("evaluate expects a SymPy expression or a string")
		try:
			return self._eval(expr, scope or {})
		except ZeroDivisionError as exc:
			raise MalformedStatementError("division by zero", str(expr)) from exc

	def dimension_of(self, expr: sp.Expr | str, scope: Optional[Mapping[str, Term]] = None) -> DimVector:
		return term_dim(self.evaluate(expr, scope))

	def check_expr(self, expr: sp.Expr | str, target: DimVector | None = None) -> Tuple[bool, DimVector, str]:
		"""
		Returns (ok, dim, msg). If target is provided, ok is True iff inferred == target.
		"""
		d = self.dimension_of(expr)
		if target is not None and not d.same(target):
			return False, d, f"dim {d.pretty()} != target {target.pretty()}"
		return True, d, "ok"

	def _eval(self, e: sp.Basic, scope: Mapping[str, Term]) -> Term:
		if isinstance(e, sp.Number):
			return Quantity(magnitude=e, exact=not isinstance(e, sp.Float))

		if isinstance(e, sp.NumberSymbol):
			return Quantity(magnitude=e)

		if isinstance(e, Measured):
			return Quantity(magnitude=e.value, precision=e.digits)

		if e.is_Symbol:
			return self._lookup(e.name, scope)

		if isinstance(e, sp.Add):
			return self._eval_add(e, scope)

		if isinstance(e, sp.Mul):
			return self._eval_mul(e, scope)

		if isinstance(e, sp.Pow):
			return self._eval_pow(e, scope)

		if isinstance(e, sp.Function):
			return self._eval_function(e, scope)

		raise MalformedStatementError(f"unsupported expression node {type(e).__name__}", str(e))

	def _lookup(self, name: str, scope: Mapping[str, Term]) -> Term:
		if name in scope:
			return scope[name]
		if self.resolver is not None:
			found = self.resolver(name)
			if found is not None:
				return found
		found = self.registry.lookup(name)
		if found is None:
			raise UnknownUnitError("unknown name", name)
		return found

	def _eval_add(self, e: sp.Add, scope: Mapping[str, Term]) -> Term:
		"""Every summand must be of the same kind and dimension."""
		terms = [self._eval(a, scope) for a in e.args]
		acc = terms[0]
		for t in terms[1:]:
			if isinstance(acc, Quantity) and isinstance(t, Quantity):
				acc = acc.add(t)
			elif isinstance(acc, DimVector) and isinstance(t, DimVector):
				acc = acc + t
			else:
				raise DimensionMismatchError("cannot add a quantity and a bare dimension", str(e))
		return acc

	def _eval_mul(self, e: sp.Mul, scope: Mapping[str, Term]) -> Term:
		"""Product of factors; literal ±1 factors are neutral when the product is a bare vector."""
		quantities: List[Quantity] = []
		vectors: List[DimVector] = []
		signs: List[sp.Basic] = []
		for a in e.args:
			if isinstance(a, sp.Number) and abs(a) == 1:
				signs.append(a)
				continue
			t = self._eval(a, scope)
			if isinstance(t, Quantity):
				quantities.append(t)
			else:
				vectors.append(t)
		if vectors and quantities:
			raise DimensionMismatchError("cannot multiply a quantity by a bare dimension", str(e))
		if vectors:
			d = DIMLESS
			for v in vectors:
				d = d * v
			return d
		q = Quantity.dimensionless(1)
		for s in signs:
			q = q.multiply(Quantity(magnitude=s, exact=not isinstance(s, sp.Float)))
		for t in quantities:
			q = q.multiply(t)
		return q

	def _eval_pow(self, e: sp.Pow, scope: Mapping[str, Term]) -> Term:
		"""The exponent must evaluate to a dimensionless Quantity."""
		base, expo = e.args
		b = self._eval(base, scope)
		x = self._eval(expo, scope)
		if not isinstance(x, Quantity):
			raise DimensionMismatchError("exponent must be a number, not a dimension", str(expo))
		if isinstance(b, Quantity):
			return b.power(x)
		if not x.is_dimensionless():
			raise DimensionMismatchError("exponent must be dimensionless", x.dim.pretty())
		p = x.magnitude
		if not p.is_Rational:
			raise DimensionMismatchError("a dimension can only be raised to a rational power", str(e))
		return b.scale_by(Fraction(int(p.p), int(p.q)))

	def _eval_function(self, e: sp.Function, scope: Mapping[str, Term]) -> Term:
		"""
		Typing rules for permitted function heads:
		  • sin/cos/tan/exp/log : require dimensionless input; return dimensionless.
		  • Abs(x)              : preserves the dimension of x.
		"""
		f = e.func
		if len(e.args) != 1:
			raise MalformedStatementError(f"{f.__name__} expects 1 argument", str(e))
		a = self._eval(e.args[0], scope)
		if not isinstance(a, Quantity):
			raise DimensionMismatchError(f"{f.__name__} needs a quantity argument", str(e))
		if f is sp.Abs:
			return replace(a, magnitude=sp.Abs(a.magnitude))
		if f in _UNARY:
			if not a.is_dimensionless():
				raise DimensionMismatchError(f"{f.__name__} requires dimensionless input", a.dim.pretty())
			if f is sp.log and a.magnitude.is_zero:
				raise ZeroDivisionError("log of zero")
			return Quantity(magnitude=_UNARY[f](a.magnitude), exact=a.exact, precision=a.precision)
		raise MalformedStatementError(f"function not permitted: {f.__name__}", str(e))


__all__ = ["TermEvaluator", "Term", "Resolver", "term_dim"]
