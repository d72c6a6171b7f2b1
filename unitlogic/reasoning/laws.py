"""
Law Solver: compute an unknown property from a named equational law.

A law quantifies one variable like a rule, binds locals to properties in its
where-conditions, and concludes with a single equation:

  law AreaOfACircle for any Circle
      where R is Circle.Radius, A is Circle.Area:
      A = Pi * R^2

solve(law, bindings, target_property, entity):
  1. bind the quantified variable: explicit binding, else the entity being
     asked about, else the sole instance of its class
     (AmbiguousBindingError / NoApplicableLawError);
  2. bind locals to known values (UnboundPropertyError when one is missing);
  3. isolate the symbol standing for the target property (isolate.py);
  4. evaluate the closed form through the term evaluator, so the dimension
     comes from the algebra, then store it (type constraints are checked by
     the knowledge base).

Equations may name properties through locals (`A`) or directly (`Circle.Area`).
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Set, Tuple

import sympy as sp

from unitlogic.errors import (
	AmbiguousBindingError,
	AmbiguousLawError,
	DuplicateNameError,
	MalformedStatementError,
	NoApplicableLawError,
	UnboundPropertyError,
	UnknownEntityOrClassError,
)
from unitlogic.io.sympy_utils import SympyUtils
from unitlogic.kb.knowledge_base import KnowledgeBase
from unitlogic.kb.slots import EntityRef, Value
from unitlogic.quantity.quantity import Quantity
from unitlogic.reasoning.isolate import isolate
from unitlogic.reasoning.rules import (
	BindCondition,
	Condition,
	Match,
	check_conditions,
	match_conditions,
	quantified_class,
	split_ref,
)
from unitlogic.units.system import Term, TermEvaluator


@dataclass(frozen=True)
class Equation:
	lhs: sp.Expr
	rhs: sp.Expr

	@classmethod
	def parse(cls, text: str) -> "Equation":
		"""Split `lhs = rhs` text into two parsed sides."""
		parts = text.split("=")
		if len(parts) != 2:
			raise MalformedStatementError("equation needs exactly one '='", text)
		return cls(lhs=SympyUtils.to_sympy(parts[0]), rhs=SympyUtils.to_sympy(parts[1]))

	def symbols(self) -> Set[sp.Symbol]:
		return self.lhs.free_symbols | self.rhs.free_symbols

	def __str__(self) -> str:
		return f"{self.lhs} = {self.rhs}"


@dataclass(frozen=True)
class Law:
	name: str
	bound_var: str
	conditions: Tuple[Condition, ...]
	equation: Equation


@dataclass(frozen=True)
class Solution:
	"""A solved property and how it was obtained."""
	law: str
	entity: str
	prop: str
	quantity: Quantity
	closed_form: sp.Expr


class LawSolver:
	"""Indexes laws by name and by quantified class, and solves them for one unknown."""

	def __init__(self, kb: KnowledgeBase) -> None:
		self.kb = kb
		self._laws: Dict[str, Law] = {}
		self._by_class: Dict[str, List[str]] = {}

	def declare(self, law: Law) -> Law:
		if not law.name:
			raise MalformedStatementError("law needs a name")
		if law.name in self._laws:
			raise DuplicateNameError("law already declared", law.name)
		if not law.bound_var:
			raise MalformedStatementError("law needs a quantified variable", law.name)
		locals_ = check_conditions(self.kb, law.bound_var, law.conditions)
		heads = {law.bound_var} | locals_
		for sym in law.equation.symbols():
			name = sym.name
			if "." in name:
				head, _ = split_ref(name)
				if head not in heads:
					raise MalformedStatementError("equation refers to an unbound variable", name)
			elif name not in locals_ and self.kb.registry.lookup(name) is None:
				raise MalformedStatementError("equation uses an unknown name", name)
		self._laws[law.name] = law
		self._by_class.setdefault(quantified_class(self.kb, law.bound_var), []).append(law.name)
		return law

	def law(self, name: str) -> Law:
		try:
			return self._laws[name]
		except KeyError as exc:
			raise NoApplicableLawError("unknown law", name) from exc

	def _properties(self, law: Law) -> Set[str]:
		"""Properties of the quantified variable the law can relate."""
		props = {split_ref(c.ref)[1] for c in law.conditions if isinstance(c, BindCondition) and split_ref(c.ref)[0] == law.bound_var}
		for sym in law.equation.symbols():
			if "." in sym.name:
				head, prop = split_ref(sym.name)
				if head == law.bound_var:
					props.add(prop)
		return props

	def require_applicable(self, law: Law, entity: str, prop: str) -> Law:
		"""Raise NoApplicableLawError unless `law` relates `prop` on one of the entity's classes."""
		cls = quantified_class(self.kb, law.bound_var)
		if not self.kb.is_a(entity, cls):
			raise NoApplicableLawError(f"{entity} is not a {cls}", law.name)
		if prop not in self._properties(law):
			raise NoApplicableLawError(f"law does not relate {prop}", law.name)
		return law

	def select(self, entity: str, prop: str) -> Law:
		"""The unique law over one of the entity's classes that relates `prop`."""
		ent = self.kb.entity(entity)
		found = []
		for cls in ent.classes:
			for name in self._by_class.get(cls, []):
				if prop in self._properties(self._laws[name]) and name not in found:
					found.append(name)
		if not found:
			raise NoApplicableLawError("no law computes this property", f"{entity}.{prop}")
		if len(found) > 1:
			raise AmbiguousLawError(f"several laws compute this property: {', '.join(found)}", f"{entity}.{prop}")
		return self._laws[found[0]]

	def _bind(self, law: Law, bindings: Mapping[str, str], entity: Optional[str]) -> str:
		cls = quantified_class(self.kb, law.bound_var)
		explicit = bindings.get(law.bound_var)
		if explicit is not None:
			if not self.kb.is_a(explicit, cls):
				raise NoApplicableLawError(f"{explicit} is not a {cls}", law.name)
			return explicit
		if entity is not None and self.kb.is_a(entity, cls):
			return entity
		candidates = self.kb.iterate_instances_of(cls).names()
		if not candidates:
			raise NoApplicableLawError(f"no instance of {cls} to bind", law.name)
		if len(candidates) > 1:
			raise AmbiguousBindingError(f"several instances of {cls}: {', '.join(candidates)}", law.name)
		return candidates[0]

	def solve(
		self,
		law_name: str,
		bindings: Optional[Mapping[str, str]] = None,
		target_property: str = "",
		entity: Optional[str] = None,
	) -> Solution:
		law = self.law(law_name)
		bindings = dict(bindings or {})
		for var in bindings:
			if var != law.bound_var:
				raise MalformedStatementError("binding for a variable the law does not quantify", var)
		for name in bindings.values():
			self.kb.entity(name)
		bound = self._bind(law, bindings, entity)
		owner = entity or bound
		if owner != bound:
			raise NoApplicableLawError(f"law binds {bound}, not {owner}", law.name)
		if not target_property:
			raise MalformedStatementError("solve needs a target property", law.name)

		target = (bound, target_property)
		m = match_conditions(self.kb, law.bound_var, bound, law.conditions, open_refs=[target])
		if m is None:
			raise self._explain(law, bound, target)

		unknown, scope, equation = self._scope(law, m, target)
		closed = isolate(equation.lhs, equation.rhs, unknown)
		term = TermEvaluator(self.kb.registry).evaluate(closed, scope)
		if not isinstance(term, Quantity):
			raise MalformedStatementError("law evaluates to a dimension, not a quantity", law.name)
		self.kb.assert_is(bound, target_property, Value(term))
		return Solution(law=law.name, entity=bound, prop=target_property, quantity=term, closed_form=closed)

	def _explain(self, law: Law, bound: str, target: Tuple[str, str]) -> Exception:
		"""Say why the where-conditions did not hold for the bound entity."""
		m = match_conditions(self.kb, law.bound_var, bound, law.conditions, open_refs=self._all_refs(law, bound))
		if m is None:
			return NoApplicableLawError(f"conditions do not hold for {bound}", law.name)
		for local, (owner, prop) in m.refs.items():
			if (owner, prop) != target and not self._has_value(owner, prop):
				return UnboundPropertyError("property has no value", f"{owner}.{prop}")
		return NoApplicableLawError(f"conditions do not hold for {bound}", law.name)

	def _all_refs(self, law: Law, bound: str) -> List[Tuple[str, str]]:
		refs = []
		entities = {law.bound_var: bound}
		for c in law.conditions:
			if isinstance(c, BindCondition):
				head, prop = split_ref(c.ref)
				if head in entities:
					refs.append((entities[head], prop))
		return refs

	def _has_value(self, entity: str, prop: str) -> bool:
		return isinstance(self.kb.get_property(entity, prop), Value)

	def _scope(self, law: Law, m: Match, target: Tuple[str, str]) -> Tuple[sp.Symbol, Dict[str, Term], Equation]:
		"""
		Values for every known symbol of the equation and the symbol standing for
		the target. Locals and direct references to the same property are unified.
		"""
		scope: Dict[str, Term] = {}
		unknown: Optional[sp.Symbol] = None
		aliases: Dict[sp.Symbol, sp.Symbol] = {}

		for local, (owner, prop) in m.refs.items():
			if (owner, prop) == target:
				unknown = sp.Symbol(local)
				continue
			slot = m.slots[local]
			if isinstance(slot, Value):
				scope[local] = slot.quantity
			elif not isinstance(slot, EntityRef) and sp.Symbol(local) in law.equation.symbols():
				raise UnboundPropertyError("property has no value", f"{owner}.{prop}")

		for sym in law.equation.symbols():
			if "." not in sym.name:
				continue
			head, prop = split_ref(sym.name)
			owner = m.entities.get(head)
			if owner is None:
				raise UnknownEntityOrClassError("reference does not name an entity", sym.name)
			if (owner, prop) == target:
				if unknown is None:
					unknown = sym
				else:
					aliases[sym] = unknown
				continue
			slot = self.kb.get_property(owner, prop)
			if not isinstance(slot, Value):
				raise UnboundPropertyError("property has no value", f"{owner}.{prop}")
			scope[sym.name] = slot.quantity

		if unknown is None:
			raise NoApplicableLawError(f"law does not relate {target[1]}", law.name)
		equation = law.equation
		if aliases:
			# the same property under a local and a reference is one unknown
			equation = Equation(lhs=equation.lhs.xreplace(aliases), rhs=equation.rhs.xreplace(aliases))
		return unknown, scope, equation


__all__ = ["Law", "LawSolver", "Equation", "Solution"]
