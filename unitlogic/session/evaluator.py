"""
Query/Check Evaluator.

Class: QueryEvaluator
---------------------
  • find(entity, prop, law=None, bindings=None) -> FindResult
      returns the stored value when there is one (the knowledge base is
      append-only, so it doubles as the memo), otherwise solves a law: the
      named one, or the unique law relating the property for the entity.
      A named law must relate the property on one of the entity's classes,
      even when the value is already stored.
  • check(predicate, text) -> CheckResult
      EqualityPredicate    quantities compare through EqualityChecks,
                           bare dimensions compare as vectors, mixed kinds fail
      MembershipPredicate  isa / is against the class index
      TypePredicate        a property or expression has a given dimension;
                           a property with only a type constraint uses it
  • show(target, text) -> ShowResult
      an expression rendered through Quantity.describe, or a predicate's verdict

A property a check or show needs but nobody stored is computed on demand
through its unique law, like a find; those solutions are kept in `computed`
until the session takes them. Only when no law relates the property does the
reference stay unbound.

A check whose sides cannot be combined (dimension mismatch inside the
expression) is a failed check. Unknown entities, classes, properties or
names are malformed predicates and propagate as errors.
"""

from __future__ import annotations
from typing import List, Mapping, Optional, Union

import sympy as sp

from unitlogic.errors import (
	DimensionMismatchError,
	MalformedStatementError,
	NoApplicableLawError,
	UnboundPropertyError,
)
from unitlogic.io.sympy_utils import SympyUtils
from unitlogic.kb.knowledge_base import KnowledgeBase
from unitlogic.kb.slots import EntityRef, Unset, Value
from unitlogic.quantity.equality import EqualityChecks
from unitlogic.quantity.quantity import Quantity
from unitlogic.reasoning.laws import LawSolver
from unitlogic.session.config import CheckResult, FindResult, ShowResult
from unitlogic.session.statements import (
	EqualityPredicate,
	ExprLike,
	MembershipPredicate,
	Predicate,
	TypePredicate,
)
from unitlogic.units.dim import DimVector
from unitlogic.units.system import Term, TermEvaluator, term_dim


class QueryEvaluator:
	"""Answers find, check and show statements against the knowledge base."""

	def __init__(self, kb: KnowledgeBase, solver: LawSolver, rel_tol: float = 1e-9, abs_tol: float = 0.0) -> None:
		self.kb = kb
		self.solver = solver
		self.equality = EqualityChecks(rel_tol=rel_tol, abs_tol=abs_tol)
		self.computed: List[FindResult] = []

	def find(
		self,
		entity: str,
		prop: str,
		law: Optional[str] = None,
		bindings: Optional[Mapping[str, str]] = None,
	) -> FindResult:
		self.kb.entity(entity)
		if law:
			self.solver.require_applicable(self.solver.law(law), entity, prop)
		slot = self.kb.get_property(entity, prop)
		if isinstance(slot, Value):
			return FindResult(
				entity=entity,
				prop=prop,
				quantity=slot.quantity,
				cached=True,
				text=slot.quantity.describe(self.kb.registry),
			)
		if isinstance(slot, EntityRef):
			raise MalformedStatementError(f"property refers to entity {slot.name}", f"{entity}.{prop}")
		chosen = law or self.solver.select(entity, prop).name
		sol = self.solver.solve(chosen, bindings=bindings, target_property=prop, entity=entity)
		return FindResult(
			entity=sol.entity,
			prop=sol.prop,
			quantity=sol.quantity,
			law=sol.law,
			text=sol.quantity.describe(self.kb.registry),
		)

	def take_computed(self) -> List[FindResult]:
		"""Hand over the properties solved on demand since the last call."""
		out, self.computed = self.computed, []
		return out

	# ----- on-demand resolution -----

	def _compute(self, name: str) -> Optional[Quantity]:
		"""Solve entity.prop through the unique law relating it; None when no law does."""
		parts = SympyUtils.split_ref(name)
		if parts is None or not self.kb.has_entity(parts[0]):
			return None
		try:
			res = self.find(parts[0], parts[1])
		except NoApplicableLawError:
			return None
		self.computed.append(res)
		return res.quantity

	def _resolve_value(self, name: str) -> Optional[Term]:
		try:
			return self.kb.resolve_ref(name)
		except UnboundPropertyError:
			found = self._compute(name)
			if found is None:
				raise
			return found

	def _resolve_dimension(self, name: str) -> Optional[Term]:
		try:
			return self.kb.resolve_dimension(name)
		except UnboundPropertyError:
			found = self._compute(name)
			if found is None:
				raise
			return found

	def _value_evaluator(self) -> TermEvaluator:
		return TermEvaluator(self.kb.registry, resolver=self._resolve_value)

	# ----- checks -----

	def check(self, predicate: Predicate, text: str = "") -> CheckResult:
		if isinstance(predicate, EqualityPredicate):
			return self._check_equality(predicate, text)
		if isinstance(predicate, MembershipPredicate):
			return self._check_membership(predicate, text)
		if isinstance(predicate, TypePredicate):
			return self._check_type(predicate, text)
		raise MalformedStatementError(f"unsupported predicate {type(predicate).__name__}", text)

	def _check_equality(self, p: EqualityPredicate, text: str) -> CheckResult:
		ev = self._value_evaluator()
		try:
			lhs = ev.evaluate(SympyUtils.ensure_expr(p.lhs))
			rhs = ev.evaluate(SympyUtils.ensure_expr(p.rhs))
		except DimensionMismatchError as exc:
			return CheckResult(passed=False, text=text, reason=str(exc))
		if isinstance(lhs, Quantity) and isinstance(rhs, Quantity):
			if not lhs.dim.same(rhs.dim):
				return CheckResult(
					passed=False,
					text=text,
					reason=f"dimension {lhs.dim.pretty()} is not {rhs.dim.pretty()}",
				)
			ok = self.equality.quantities_equal(lhs, rhs)
			reg = self.kb.registry
			reason = f"{lhs.describe(reg)} {'=' if ok else '!='} {rhs.describe(reg)}"
			return CheckResult(passed=ok, text=text, reason=reason)
		if isinstance(lhs, DimVector) and isinstance(rhs, DimVector):
			ok = lhs.same(rhs)
			return CheckResult(passed=ok, text=text, reason=f"[{lhs.pretty()}] {'=' if ok else '!='} [{rhs.pretty()}]")
		return CheckResult(passed=False, text=text, reason="cannot compare a quantity with a bare dimension")

	def _check_membership(self, p: MembershipPredicate, text: str) -> CheckResult:
		parts = SympyUtils.split_ref(p.entity)
		if parts is not None:
			slot = self.kb.get_property(*parts)
			if not isinstance(slot, EntityRef):
				raise MalformedStatementError("property does not refer to an entity", p.entity)
			if slot.name == p.cls:
				return CheckResult(passed=True, text=text, reason=f"{p.entity} is {slot.name}")
			subject = slot.name
		else:
			subject = p.entity
		ok = self.kb.is_a(subject, p.cls)
		verb = p.form or "isa"
		reason = f"{subject} {verb} {p.cls}" if ok else f"{subject} is not a {p.cls}"
		return CheckResult(passed=ok, text=text, reason=reason)

	def _check_type(self, p: TypePredicate, text: str) -> CheckResult:
		want = self._dimension(p.dim)
		subject = SympyUtils.ensure_expr(p.subject)
		parts = SympyUtils.split_ref(subject.name) if isinstance(subject, sp.Symbol) else None
		if parts is not None:
			slot = self.kb.get_property(*parts)
			if isinstance(slot, EntityRef):
				return CheckResult(passed=False, text=text, reason=f"{subject.name} refers to entity {slot.name}")
			if isinstance(slot, Unset):
				found = self._compute(subject.name)
				if found is None:
					raise UnboundPropertyError("nothing is known about this property", subject.name)
				got = found.dim
			else:
				got = slot.dimension()
		else:
			ev = TermEvaluator(self.kb.registry, resolver=self._resolve_dimension)
			try:
				got = term_dim(ev.evaluate(subject))
			except DimensionMismatchError as exc:
				return CheckResult(passed=False, text=text, reason=str(exc))
		ok = got.same(want)
		reason = f"[{got.pretty()}] {'=' if ok else '!='} [{want.pretty()}]"
		return CheckResult(passed=ok, text=text, reason=reason)

	def _dimension(self, dim: object) -> DimVector:
		if isinstance(dim, DimVector):
			return dim
		return term_dim(TermEvaluator(self.kb.registry).evaluate(SympyUtils.ensure_expr(dim)))

	# ----- show -----

	def show(self, target: Union[Predicate, ExprLike], text: str = "") -> ShowResult:
		"""Render an expression's value (or a bare dimension), or a predicate's verdict."""
		if isinstance(target, (EqualityPredicate, MembershipPredicate, TypePredicate)):
			res = self.check(target, text)
			return ShowResult(text=text, value="true" if res.passed else "false", detail=res.reason)
		term = self._value_evaluator().evaluate(SympyUtils.ensure_expr(target))
		if isinstance(term, Quantity):
			return ShowResult(text=text, value=term.describe(self.kb.registry), quantity=term)
		return ShowResult(text=text, value=f"[{term.pretty()}]")


__all__ = ["QueryEvaluator"]
