"""SymPy utilities: strict parsing of expression text and structural queries on expression trees.

Provides:
  • SympyUtils.to_sympy(text): strict, deterministic parser. `^` is power, `A.B`
    (and longer chains) becomes a single Symbol named "A.B", decimal literals
    become Measured nodes (exact Rational value plus the significant figures
    they were written with), every identifier is a Symbol, and only
    whitelisted function heads may be called. The tree is kept unevaluated so
    dimension errors such as 1*Meters - 1*Meters are still seen by the evaluator.
  • SympyUtils.ensure_expr(value): accept text, numbers or SymPy trees.
  • SympyUtils.split_ref(name): property-reference symbols.
  • SympyUtils.significant_figures(literal), SympyUtils.occurrences(expr, sym).
"""

from __future__ import annotations
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Dict, Optional, Tuple
import re

import sympy as sp
from sympy.core.relational import Relational

from unitlogic.errors import MalformedStatementError


_REF_RE = re.compile(r"(?<![\w.])([A-Za-z_]\w*(?:\.[A-Za-z_]\w*)+)")
_NUM_RE = re.compile(r"(?<![\w.])((?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?)")
_NAME_RE = re.compile(r"[A-Za-z_]\w*")
_CALL_RE = re.compile(r"([A-Za-z_]\w*)\s*\(")

FUNCTIONS: Dict[str, object] = {
	"sqrt": sp.sqrt,
	"sin": sp.sin,
	"cos": sp.cos,
	"tan": sp.tan,
	"exp": sp.exp,
	"log": sp.log,
	"ln": sp.log,
	"Abs": sp.Abs,
	"abs": sp.Abs,
}


class Measured(sp.Function):
	"""
	A decimal literal as written: Measured(value, digits) holds the exact
	Rational value and its count of significant figures. Never evaluates away,
	so the term evaluator can read the precision back.
	"""

	nargs = 2

	@classmethod
	def eval(cls, value, digits):
		return None

	@property
	def value(self) -> sp.Rational:
		return self.args[0]

	@property
	def digits(self) -> int:
		return int(self.args[1])

	def _eval_evalf(self, prec):
		return self.args[0]._eval_evalf(prec)

	def _eval_is_extended_real(self):
		return True

	def _eval_is_zero(self):
		return self.args[0].is_zero

	def _eval_is_extended_positive(self):
		return self.args[0].is_extended_positive

	def _eval_is_extended_negative(self):
		return self.args[0].is_extended_negative

	def _sympystr(self, printer) -> str:
		return printer._print(sp.Float(self.args[0], self.digits))


class SympyUtils:
	"""Utility namespace for SymPy parsing and analysis."""

	@staticmethod
	def exact_number(literal: str) -> sp.Rational:
		"""Convert a decimal literal to the exact Rational it denotes."""
		try:
			frac = Fraction(Decimal(literal))
		except InvalidOperation as exc:
			raise MalformedStatementError("invalid numeric literal", literal) from exc
		return sp.Rational(frac.numerator, frac.denominator)

	@staticmethod
	def significant_figures(literal: str) -> int:
		"""
		Significant figures of a decimal literal: leading zeros never count,
		trailing zeros count once a decimal point is written ("0.10" has 2).
		"""
		mantissa = re.split(r"[eE]", literal.strip().lstrip("+-"))[0]
		digits = mantissa.replace(".", "").lstrip("0")
		if "." not in mantissa:
			digits = digits.rstrip("0")
		return max(1, len(digits))

	@staticmethod
	def to_sympy(text: str) -> sp.Expr:
		"""
		Parse expression text into an unevaluated SymPy tree, binding every
		identifier as a Symbol and rejecting relational or unknown function heads.
		"""
		s = (text or "").strip()
		if s == "":
			raise MalformedStatementError("empty expression")
		s = s.replace("^", "**")

		allowed: Dict[str, object] = {"Measured": Measured, "Rational": sp.Rational}

		refs: Dict[str, str] = {}

		def _ref_sub(m: re.Match) -> str:
			key = f"__ref{len(refs)}__"
			refs[key] = m.group(1)
			return key

		s = _REF_RE.sub(_ref_sub, s)
		for key, name in refs.items():
			allowed[key] = sp.Symbol(name)

		def _num_sub(m: re.Match) -> str:
			lit = m.group(1)
			if re.fullmatch(r"\d+", lit):
				return lit
			r = SympyUtils.exact_number(lit)
			return f"Measured(Rational({r.p}, {r.q}), {SympyUtils.significant_figures(lit)})"

		s = _NUM_RE.sub(_num_sub, s)

		call_heads = set(_CALL_RE.findall(s))
		for name in call_heads:
			if name in ("Measured", "Rational"):
				continue
			if name not in FUNCTIONS:
				raise MalformedStatementError("function not allowed", name)
			allowed[name] = FUNCTIONS[name]

		for nm in set(_NAME_RE.findall(s)):
			if nm not in allowed:
				allowed[nm] = sp.Symbol(nm)

		try:
			expr = sp.sympify(s, locals=allowed, evaluate=False)
		except (sp.SympifyError, SyntaxError, TypeError) as exc:
			raise MalformedStatementError("cannot parse expression", text) from exc
		if not isinstance(expr, sp.Basic):
			raise MalformedStatementError("non-expression construct", text)
		if isinstance(expr, Relational) or expr.atoms(Relational):
			raise MalformedStatementError("relational constructs are not expressions", text)
		return expr

	@staticmethod
	def ensure_expr(value: object) -> sp.Expr:
		"""Text is parsed; ints, Fractions and SymPy trees are passed through as SymPy."""
		if isinstance(value, sp.Basic):
			return value
		if isinstance(value, str):
			return SympyUtils.to_sympy(value)
		if isinstance(value, bool):
			raise MalformedStatementError("booleans are not expressions")
		if isinstance(value, int):
			return sp.Integer(value)
		if isinstance(value, Fraction):
			return sp.Rational(value.numerator, value.denominator)
		if isinstance(value, float):
			return SympyUtils.exact_number(repr(value))
		raise MalformedStatementError(f"cannot use {type(value).__name__} as an expression")

	@staticmethod
	def split_ref(name: str) -> Optional[Tuple[str, str]]:
		"""Split "A.B.C" into ("A.B", "C"); None for plain names."""
		if "." not in name:
			return None
		head, _, tail = name.rpartition(".")
		if not head or not tail:
			return None
		return head, tail

	@staticmethod
	def occurrences(expr: sp.Expr, sym: sp.Symbol) -> int:
		"""Number of nodes in the tree equal to `sym`."""
		n = 0
		for node in sp.preorder_traversal(expr):
			if node == sym:
				n += 1
		return n
