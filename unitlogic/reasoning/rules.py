"""
Rule Engine: monotonic forward chaining over the knowledge base.

A rule quantifies one variable over entities (over the instances of a class
when the variable is named after one, over every Entity otherwise), tests its
where-conditions left to right and, when they all hold, applies its
conclusions:

  for any Circle where R is Circle.Radius:
      Circle is Round
      Circle.Diameter isa Length

Conditions
  • IsaCondition(subject, cls)   membership test
  • BindCondition(local, ref)    `ref` ("X.Prop") must be known; binds `local`

Conclusions
  • IsaConclusion(subject, cls)  adds an isa fact
  • TypeConclusion(target, dim)  records a type constraint on a property, or
                                 validates an existing value against it

Subjects are the quantified variable or a local bound to an entity-valued
property. Saturation drains a worklist of touched entities until no rule
adds a fact; facts are never retracted.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Deque, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

import sympy as sp

from unitlogic.errors import MalformedStatementError, UnknownEntityOrClassError
from unitlogic.io.sympy_utils import SympyUtils
from unitlogic.kb.knowledge_base import ROOT_CLASS, KnowledgeBase
from unitlogic.kb.slots import EntityRef, Slot, TypeConstraint, Unset
from unitlogic.units.dim import DimVector
from unitlogic.units.system import TermEvaluator


@dataclass(frozen=True)
class IsaCondition:
	subject: str
	cls: str


@dataclass(frozen=True)
class BindCondition:
	local: str
	ref: str


@dataclass(frozen=True)
class IsaConclusion:
	subject: str
	cls: str


@dataclass(frozen=True)
class TypeConclusion:
	target: str
	dim: Union[DimVector, sp.Basic, str]


Condition = Union[IsaCondition, BindCondition]
Conclusion = Union[IsaConclusion, TypeConclusion]


@dataclass(frozen=True)
class Rule:
	bound_var: str
	conditions: Tuple[Condition, ...] = ()
	conclusions: Tuple[Conclusion, ...] = ()
	name: str = ""

	def label(self) -> str:
		return self.name or f"rule over {self.bound_var}"


@dataclass
class Match:
	"""Bindings produced by a successful match."""
	entities: Dict[str, str] = field(default_factory=dict)
	refs: Dict[str, Tuple[str, str]] = field(default_factory=dict)
	slots: Dict[str, Slot] = field(default_factory=dict)


def split_ref(ref: str) -> Tuple[str, str]:
	parts = SympyUtils.split_ref(ref)
	if parts is None:
		raise MalformedStatementError("expected a property reference X.Prop", ref)
	return parts


def quantified_class(kb: KnowledgeBase, bound_var: str) -> str:
	"""The class a quantified variable ranges over: itself when it names a class, else Entity."""
	if kb.has_class(bound_var):
		return bound_var
	return ROOT_CLASS


def check_conditions(kb: KnowledgeBase, bound_var: str, conditions: Sequence[Condition]) -> Set[str]:
	"""
	Validate conditions at declaration time and return the locals they define.
	Classes must exist; every subject or reference head must already be bound.
	"""
	subjects: Set[str] = {bound_var}
	locals_: Set[str] = set()
	for cond in conditions:
		if isinstance(cond, IsaCondition):
			if cond.subject not in subjects and cond.subject not in locals_:
				raise MalformedStatementError("condition uses an unbound variable", cond.subject)
			if not kb.has_class(cond.cls):
				raise UnknownEntityOrClassError("unknown class", cond.cls)
		elif isinstance(cond, BindCondition):
			head, _ = split_ref(cond.ref)
			if head not in subjects and head not in locals_:
				raise MalformedStatementError("reference uses an unbound variable", cond.ref)
			if not cond.local or cond.local == bound_var or cond.local in locals_:
				raise MalformedStatementError("local variable is bound twice", cond.local)
			locals_.add(cond.local)
		else:
			raise MalformedStatementError(f"unsupported condition {type(cond).__name__}")
	return locals_


def match_conditions(
	kb: KnowledgeBase,
	bound_var: str,
	entity: str,
	conditions: Sequence[Condition],
	open_refs: Iterable[Tuple[str, str]] = (),
) -> Optional[Match]:
	"""
	Evaluate conditions left to right for one candidate entity. A BindCondition
	holds when its property carries any slot; references listed in `open_refs`
	are allowed to be unset (the law solver's unknown).
	"""
	m = Match(entities={bound_var: entity})
	allowed = set(open_refs)
	for cond in conditions:
		if isinstance(cond, IsaCondition):
			subj = m.entities.get(cond.subject)
			if subj is None or not kb.is_a(subj, cond.cls):
				return None
		else:
			head, prop = split_ref(cond.ref)
			owner = m.entities.get(head)
			if owner is None:
				return None
			slot = kb.get_property(owner, prop)
			if isinstance(slot, Unset) and (owner, prop) not in allowed:
				return None
			m.refs[cond.local] = (owner, prop)
			m.slots[cond.local] = slot
			if isinstance(slot, EntityRef) and kb.has_entity(slot.name):
				m.entities[cond.local] = slot.name
	return m


class RuleEngine:
	"""Holds declared rules and saturates the knowledge base with their conclusions."""

	def __init__(self, kb: KnowledgeBase, max_rounds: int = 10_000) -> None:
		self.kb = kb
		self.max_rounds = int(max_rounds)
		self.rules: List[Rule] = []

	def compile(self, rule: Rule) -> Rule:
		"""Validate a rule and evaluate its type conclusions to dimension vectors."""
		if not rule.bound_var:
			raise MalformedStatementError("rule needs a quantified variable")
		locals_ = check_conditions(self.kb, rule.bound_var, rule.conditions)
		subjects = {rule.bound_var} | locals_
		ref_locals = {c.local for c in rule.conditions if isinstance(c, BindCondition)}
		out: List[Conclusion] = []
		for concl in rule.conclusions:
			if isinstance(concl, IsaConclusion):
				if concl.subject not in subjects:
					raise MalformedStatementError("conclusion uses an unbound variable", concl.subject)
				if not self.kb.has_class(concl.cls):
					raise UnknownEntityOrClassError("unknown class", concl.cls)
				out.append(concl)
			elif isinstance(concl, TypeConclusion):
				if "." in concl.target:
					head, _ = split_ref(concl.target)
					if head not in subjects:
						raise MalformedStatementError("conclusion uses an unbound variable", concl.target)
				elif concl.target not in ref_locals:
					raise MalformedStatementError("type conclusion needs a property or a bound local", concl.target)
				dim = concl.dim
				if not isinstance(dim, DimVector):
					term = TermEvaluator(self.kb.registry).evaluate(dim)
					if not isinstance(term, DimVector):
						raise MalformedStatementError("type conclusion needs a dimension, not a quantity", str(dim))
					dim = term
				out.append(replace(concl, dim=dim))
			else:
				raise MalformedStatementError(f"unsupported conclusion {type(concl).__name__}")
		if not out:
			raise MalformedStatementError("rule has no conclusions", rule.label())
		return replace(rule, conclusions=tuple(out))

	def add_rule(self, rule: Rule) -> List[Tuple[str, ...]]:
		"""Compile and register a rule, then run it (and everything it enables) over all entities."""
		compiled = self.compile(rule)
		self.rules.append(compiled)
		return self.saturate()

	def apply(self, rule: Rule, entity: str) -> List[Tuple[str, ...]]:
		"""Fire one rule for one entity; return the facts that were new."""
		if not self.kb.is_a(entity, quantified_class(self.kb, rule.bound_var)):
			return []
		m = match_conditions(self.kb, rule.bound_var, entity, rule.conditions)
		if m is None:
			return []
		new: List[Tuple[str, ...]] = []
		for concl in rule.conclusions:
			if isinstance(concl, IsaConclusion):
				subj = m.entities.get(concl.subject)
				if subj is None:
					continue
				if self.kb.assert_isa(subj, concl.cls):
					new.append(("isa", subj, concl.cls))
			else:
				if "." in concl.target:
					head, prop = split_ref(concl.target)
					owner = m.entities.get(head)
					if owner is None:
						continue
				else:
					owner, prop = m.refs[concl.target]
				if self.kb.assert_is(owner, prop, TypeConstraint(concl.dim)):
					new.append(("type", f"{owner}.{prop}", concl.dim.pretty()))
		return new

	def _referrers(self, entity: str) -> List[str]:
		out = []
		for ent in self.kb.entities():
			for slot in ent.slots.values():
				if isinstance(slot, EntityRef) and slot.name == entity:
					out.append(ent.name)
					break
		return out

	def saturate(self, seeds: Optional[Iterable[str]] = None) -> List[Tuple[str, ...]]:
		"""
		Run every rule over the seed entities (all entities when None) and over
		every entity touched by a new fact, until nothing new is derived.
		"""
		if seeds is None:
			seeds = [e.name for e in self.kb.entities()]
		queue: Deque[str] = deque()
		queued: Set[str] = set()
		for s in seeds:
			if s not in queued:
				queue.append(s)
				queued.add(s)
		derived: List[Tuple[str, ...]] = []
		rounds = 0
		while queue:
			rounds += 1
			if rounds > self.max_rounds:
				raise MalformedStatementError("rule saturation did not converge", str(self.max_rounds))
			entity = queue.popleft()
			queued.discard(entity)
			touched: Set[str] = set()
			for rule in self.rules:
				facts = self.apply(rule, entity)
				for fact in facts:
					owner = fact[1].rpartition(".")[0] if fact[0] == "type" else fact[1]
					touched.add(owner)
				derived.extend(facts)
			for t in sorted(touched):
				for e in [t] + self._referrers(t):
					if e not in queued:
						queue.append(e)
						queued.add(e)
		return derived


__all__ = [
	"Rule",
	"RuleEngine",
	"IsaCondition",
	"BindCondition",
	"IsaConclusion",
	"TypeConclusion",
	"Condition",
	"Conclusion",
	"Match",
	"split_ref",
	"quantified_class",
	"check_conditions",
	"match_conditions",
]
