"""
Dimension & Unit Registry.

Class: UnitRegistry
-------------------
Owns the names a script declares for dimensions (unit classes), units and
labels. All three share one namespace; generated prefix aliases and unit
symbols claim names too, and a declaration that would collide registers none
of its names (DuplicateNameError).

  • declare_dimension(name)                          → DimVector on a new axis
  • declare_base_unit(names, dimension, symbol, mode) → scale 1 on that axis, plus prefixes
  • declare_derived_unit(names, symbol, value)        → scale and vector from a Quantity
  • resolve(name) -> (scale, DimVector)
  • declare_label(name, value)                        → lazily resolved alias (DAG only)
  • lookup(name) -> Quantity | DimVector | None       → used by the term evaluator

The first base unit declared for a dimension is that dimension's canonical
unit; every magnitude in the system is stored relative to canonical units.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from fractions import Fraction
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import sympy as sp

from unitlogic.errors import (
	CyclicDefinitionError,
	DuplicateNameError,
	MalformedStatementError,
	UnitLogicError,
	UnknownUnitError,
	UnresolvedUnitError,
)
from unitlogic.quantity.quantity import DisplayUnit, Quantity
from unitlogic.units.dim import DIMLESS, DimVector
from unitlogic.units.prefixes import PrefixMode, expand


Term = Union[Quantity, DimVector]


@dataclass(frozen=True)
class UnitDef:
	"""A named unit: aliases, symbol, dimension vector and scale relative to canonical units."""
	names: Tuple[str, ...]
	symbol: str
	dim: DimVector
	scale: sp.Expr
	exact: bool = True
	base: bool = False
	prefix_of: str = ""

	@property
	def primary(self) -> str:
		# amounts read in the last name given: ("Meter", "Meters") shows "2 Meters"
		return self.names[-1]

	def quantity(self) -> Quantity:
		"""One of this unit, displayed in this unit."""
		return Quantity(
			magnitude=self.scale,
			dim=self.dim,
			exact=self.exact,
			display=((self.primary, Fraction(1)),),
		)


@dataclass
class LabelDef:
	"""A label alias; `term` caches the resolved Quantity or DimVector."""
	name: str
	expr: Optional[sp.Expr]
	term: Optional[Term] = None
	refs: Tuple[str, ...] = field(default_factory=tuple)


def _has_fractional_literal(expr: sp.Expr) -> bool:
	"""True when the expression carries a non-integer numeric literal (a decimal truncation)."""
	for a in sp.preorder_traversal(expr):
		if isinstance(a, sp.Float):
			return True
		if isinstance(a, sp.Rational) and not a.is_Integer:
			return True
	return False


def _names_in(expr: sp.Expr) -> Tuple[str, ...]:
	return tuple(sorted(str(s) for s in expr.free_symbols))


class UnitRegistry:
	"""Single entry point for dimension, unit and label declarations and lookups."""

	def __init__(self) -> None:
		self._dimensions: Dict[str, DimVector] = {}
		self._canonical: Dict[str, str] = {}
		self._units: List[UnitDef] = []
		self._unit_names: Dict[str, int] = {}
		self._unit_symbols: Dict[str, int] = {}
		self._labels: Dict[str, LabelDef] = {}
		self._resolving: List[str] = []

	def has_name(self, name: str) -> bool:
		return (
			name in self._dimensions
			or name in self._unit_names
			or name in self._unit_symbols
			or name in self._labels
		)

	def _claim(self, names: Iterable[str]) -> None:
		"""Raise DuplicateNameError if any name is taken or repeated."""
		seen: set[str] = set()
		for n in names:
			if not n:
				continue
			if n in seen or self.has_name(n):
				raise DuplicateNameError("name already declared", n)
			seen.add(n)

	def declare_dimension(self, name: str) -> DimVector:
		if not name:
			raise MalformedStatementError("dimension needs a name")
		self._claim([name])
		d = DimVector.axis(name)
		self._dimensions[name] = d
		return d

	def dimension(self, name: str) -> DimVector:
		try:
			return self._dimensions[name]
		except KeyError as exc:
			raise UnknownUnitError("unknown dimension", name) from exc

	def dimensions(self) -> Tuple[str, ...]:
		return tuple(self._dimensions)

	def _push_unit(self, unit: UnitDef) -> UnitDef:
		idx = len(self._units)
		self._units.append(unit)
		for n in unit.names:
			self._unit_names[n] = idx
		if unit.symbol:
			self._unit_symbols[unit.symbol] = idx
		return unit

	def declare_base_unit(
		self,
		names: Sequence[str],
		dimension: str,
		symbol: str = "",
		prefixing: PrefixMode | str | None = None,
	) -> UnitDef:
		"""
		Register a base unit (scale 1) for `dimension` and, per the prefixing mode,
		its metric-prefixed aliases with exact power-of-ten scales. Nothing is
		registered if any generated name or symbol collides.
		"""
		names_t = tuple(n for n in names if n)
		if not names_t:
			raise MalformedStatementError("base unit needs at least one name")
		d = self.dimension(dimension)
		if dimension in self._canonical:
			raise MalformedStatementError(
				f"dimension already has base unit {self._canonical[dimension]}", names_t[0]
			)
		mode = PrefixMode.parse(prefixing)
		variants = expand(names_t, symbol, mode)

		claimed: List[str] = list(names_t) + [symbol]
		for v_names, v_symbol, _ in variants:
			claimed.extend(v_names)
			claimed.append(v_symbol)
		self._claim(claimed)

		unit = self._push_unit(UnitDef(names=names_t, symbol=symbol, dim=d, scale=sp.Integer(1), base=True))
		self._canonical[dimension] = unit.primary
		for v_names, v_symbol, v_scale in variants:
			self._push_unit(UnitDef(names=v_names, symbol=v_symbol, dim=d, scale=v_scale, prefix_of=unit.primary))
		return unit

	def declare_derived_unit(
		self,
		names: Sequence[str],
		symbol: str,
		value: Union[Quantity, sp.Expr, str],
	) -> UnitDef:
		"""
		Register a unit defined by a conversion Quantity (e.g. 0.3048 * Meters).
		Expressions are evaluated against already-known units only; unknown names
		raise UnresolvedUnitError and self-references raise CyclicDefinitionError.
		"""
		names_t = tuple(n for n in names if n)
		if not names_t:
			raise MalformedStatementError("derived unit needs at least one name")
		self._claim(list(names_t) + [symbol])
		q = self._conversion_quantity(names_t, symbol, value)
		return self._push_unit(UnitDef(names=names_t, symbol=symbol, dim=q.dim, scale=q.magnitude, exact=q.exact))

	def _conversion_quantity(self, names: Tuple[str, ...], symbol: str, value: Union[Quantity, sp.Expr, str]) -> Quantity:
		if isinstance(value, Quantity):
			return value
		from unitlogic.io.sympy_utils import SympyUtils
		from unitlogic.units.system import TermEvaluator

		expr = SympyUtils.ensure_expr(value)
		own = set(names)
		if symbol:
			own.add(symbol)
		for ref in _names_in(expr):
			if ref in own:
				raise CyclicDefinitionError("unit definition refers to itself", ref)
		try:
			term = TermEvaluator(self).evaluate(expr)
		except UnknownUnitError as exc:
			raise UnresolvedUnitError("derived unit refers to an unknown unit", exc.subject) from exc
		if not isinstance(term, Quantity):
			raise MalformedStatementError("derived unit value must be a quantity, not a bare dimension", names[0])
		if _has_fractional_literal(expr):
			term = replace(term, exact=False)
		return term

	def unit(self, name: str) -> UnitDef:
		idx = self._unit_names.get(name)
		if idx is None:
			idx = self._unit_symbols.get(name)
		if idx is None:
			raise UnknownUnitError("unknown unit", name)
		return self._units[idx]

	def resolve(self, name: str) -> Tuple[sp.Expr, DimVector]:
		"""Return (scale factor relative to canonical units, dimension vector)."""
		u = self.unit(name)
		return u.scale, u.dim

	def canonical_unit(self, dimension: str) -> Optional[str]:
		return self._canonical.get(dimension)

	def declare_label(self, name: str, value: Union[Quantity, DimVector, sp.Expr, str]) -> LabelDef:
		"""
		Register a label. Quantities and vectors are stored as-is; expressions are
		stored unresolved and checked for cycles through other labels now.
		Forward references to undeclared names are allowed until first use.
		"""
		if not name:
			raise MalformedStatementError("label needs a name")
		if isinstance(value, (Quantity, DimVector)):
			self._claim([name])
			label = LabelDef(name=name, expr=None, term=value)
			self._labels[name] = label
			return label

		from unitlogic.io.sympy_utils import SympyUtils
		expr = SympyUtils.ensure_expr(value)
		refs = _names_in(expr)
		if name in refs:
			raise CyclicDefinitionError("label refers to itself", name)
		self._claim([name])
		self._check_label_cycle(name, refs)
		label = LabelDef(name=name, expr=expr, refs=refs)
		self._labels[name] = label
		if all(self.has_name(r) for r in refs):
			try:
				self.label_term(name)
			except UnknownUnitError:
				pass
			except UnitLogicError:
				del self._labels[name]
				raise
		return label

	def _check_label_cycle(self, name: str, refs: Tuple[str, ...]) -> None:
		"""Depth-first walk through label references; reaching `name` again is a cycle."""
		stack: List[Tuple[str, Tuple[str, ...]]] = [(r, (name, r)) for r in refs]
		visited: set[str] = set()
		while stack:
			ref, path = stack.pop()
			if ref == name:
				raise CyclicDefinitionError("label definitions form a cycle", " -> ".join(path))
			if ref in visited:
				continue
			visited.add(ref)
			label = self._labels.get(ref)
			if label is None:
				continue
			for nxt in label.refs:
				stack.append((nxt, path + (nxt,)))

	def label(self, name: str) -> LabelDef:
		try:
			return self._labels[name]
		except KeyError as exc:
			raise UnknownUnitError("unknown label", name) from exc

	def label_term(self, name: str) -> Term:
		"""Resolve a label on demand, caching the result; re-entry means a cycle."""
		label = self.label(name)
		if label.term is not None:
			return label.term
		if name in self._resolving:
			chain = " -> ".join(self._resolving + [name])
			raise CyclicDefinitionError("label definitions form a cycle", chain)
		from unitlogic.units.system import TermEvaluator

		self._resolving.append(name)
		try:
			term = TermEvaluator(self).evaluate(label.expr)
		finally:
			self._resolving.pop()
		if isinstance(term, Quantity) and _has_fractional_literal(label.expr):
			term = replace(term, exact=False)
		label.term = term
		return term

	def lookup(self, name: str) -> Optional[Term]:
		"""Dimension → DimVector, unit → one of that unit, label → its resolved term."""
		if name in self._dimensions:
			return self._dimensions[name]
		if name in self._unit_names or name in self._unit_symbols:
			return self.unit(name).quantity()
		if name in self._labels:
			return self.label_term(name)
		return None

	def display_dim(self, display: DisplayUnit) -> DimVector:
		d = DIMLESS
		for name, exp in display:
			if name in self._unit_names or name in self._unit_symbols:
				d = d * self.unit(name).dim.scale_by(exp)
			elif name in self._dimensions:
				d = d * self._dimensions[name].scale_by(exp)
		return d

	def display_scale(self, display: DisplayUnit) -> sp.Expr:
		scale = sp.Integer(1)
		for name, exp in display:
			if name in self._unit_names or name in self._unit_symbols:
				scale = scale * self.unit(name).scale ** sp.Rational(exp.numerator, exp.denominator)
		return scale

	def canonical_display(self, dim: DimVector) -> DisplayUnit:
		"""Express a vector in canonical base units (axis name when an axis has none)."""
		out = []
		for axis, exp in dim.exponents:
			out.append((self._canonical.get(axis, axis), exp))
		return tuple(sorted(out))

	@staticmethod
	def format_display(display: DisplayUnit) -> str:
		num: List[str] = []
		den: List[str] = []
		for name, exp in display:
			e = abs(exp)
			text = name if e == 1 else f"{name}^{e}"
			if exp > 0:
				num.append(text)
			else:
				den.append(text)
		if not num and not den:
			return ""
		head = " * ".join(num) if num else "1"
		if not den:
			return head
		if len(den) == 1:
			return f"{head} / {den[0]}"
		return f"{head} / ({' * '.join(den)})"


__all__ = ["UnitRegistry", "UnitDef", "LabelDef", "Term"]
