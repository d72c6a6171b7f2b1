"""
Knowledge Base: entity classes, value instances and the facts known about them.

Class: KnowledgeBase
--------------------
Facts are append-only within a session and come in two shapes:

  • isa facts       (entity, class)      asserting a class also asserts its ancestors
  • property facts  (entity, property)   a Slot (TypeConstraint, Value or EntityRef)

Re-asserting a known fact is a no-op that returns False, which is what lets
rule saturation reach a fixed point. `Entity` is the predeclared root class;
every value instance is an Entity.

The class index maps each class to the insertion-ordered list of its
instances and is extended as isa facts arrive; iterate_instances_of returns
a restartable view over that list.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import sympy as sp

from unitlogic.errors import (
	ConflictingValueError,
	DuplicateNameError,
	MalformedStatementError,
	TypeConstraintViolationError,
	UnboundPropertyError,
	UnknownEntityOrClassError,
)
from unitlogic.kb.slots import UNSET, EntityRef, Slot, TypeConstraint, Unset, Value, is_set
from unitlogic.quantity.equality import EqualityChecks
from unitlogic.quantity.quantity import Quantity
from unitlogic.units.dim import DimVector
from unitlogic.units.registry import UnitRegistry
from unitlogic.units.system import Term, TermEvaluator


ROOT_CLASS = "Entity"

PropertyInput = Union[Slot, Quantity, DimVector, sp.Basic, str]


@dataclass
class EntityClass:
	"""A named type, its parents and its class-level property schema."""
	name: str
	parents: Tuple[str, ...] = ()
	properties: Dict[str, Slot] = field(default_factory=dict)


@dataclass
class Entity:
	"""A value instance: the classes it belongs to (ancestors included) and its slots."""
	name: str
	classes: List[str] = field(default_factory=list)
	slots: Dict[str, Slot] = field(default_factory=dict)

	def to_payload(self) -> Dict[str, object]:
		return {
			"name": self.name,
			"classes": list(self.classes),
			"slots": {k: s.to_payload() for k, s in self.slots.items()},
		}


class InstanceView:
	"""
	Lazy, restartable sequence of the instances of one class in declaration order.
	Each iteration walks the live index, so instances added meanwhile are seen.
	"""

	def __init__(self, index: List[str], entities: Mapping[str, Entity]) -> None:
		self._index = index
		self._entities = entities

	def __iter__(self) -> Iterator[Entity]:
		i = 0
		while i < len(self._index):
			yield self._entities[self._index[i]]
			i += 1

	def __len__(self) -> int:
		return len(self._index)

	def names(self) -> Tuple[str, ...]:
		return tuple(self._index)


class KnowledgeBase:
	"""Owns entity classes, value instances and the append-only fact set."""

	def __init__(self, registry: UnitRegistry, rel_tol: float = 1e-9, abs_tol: float = 0.0) -> None:
		self.registry = registry
		self.equality = EqualityChecks(rel_tol=rel_tol, abs_tol=abs_tol)
		self._classes: Dict[str, EntityClass] = {ROOT_CLASS: EntityClass(name=ROOT_CLASS)}
		self._entities: Dict[str, Entity] = {}
		self._index: Dict[str, List[str]] = {ROOT_CLASS: []}
		self._isa_count = 0
		self._slot_count = 0

	# ----- classes -----

	def has_class(self, name: str) -> bool:
		return name in self._classes

	def entity_class(self, name: str) -> EntityClass:
		try:
			return self._classes[name]
		except KeyError as exc:
			raise UnknownEntityOrClassError("unknown class", name) from exc

	def classes(self) -> Tuple[str, ...]:
		return tuple(self._classes)

	def declare_class(
		self,
		name: str,
		parents: Sequence[str] = (),
		properties: Optional[Mapping[str, PropertyInput]] = None,
	) -> EntityClass:
		"""
		Declare an entity class. Parents must already exist; class properties
		become type constraints (dimensions) or default values (quantities) on
		every instance.
		"""
		if not name:
			raise MalformedStatementError("entity class needs a name")
		if name in self._classes or name in self._entities or self.registry.has_name(name):
			raise DuplicateNameError("name already declared", name)
		for p in parents:
			if p not in self._classes:
				raise UnknownEntityOrClassError("unknown parent class", p)
		schema: Dict[str, Slot] = {}
		for prop, raw in (properties or {}).items():
			slot = self.to_slot(raw)
			if isinstance(slot, EntityRef):
				raise MalformedStatementError("class properties must be dimensions or quantities", f"{name}.{prop}")
			schema[prop] = slot
		cls = EntityClass(name=name, parents=tuple(p for p in parents if p != ROOT_CLASS), properties=schema)
		self._classes[name] = cls
		self._index[name] = []
		return cls

	def ancestors(self, name: str) -> Tuple[str, ...]:
		"""The class itself, then its ancestors breadth first, ending with Entity."""
		self.entity_class(name)
		out: List[str] = []
		queue = [name]
		while queue:
			c = queue.pop(0)
			if c in out:
				continue
			out.append(c)
			queue.extend(self._classes[c].parents)
		if ROOT_CLASS in out:
			out.remove(ROOT_CLASS)
		out.append(ROOT_CLASS)
		return tuple(out)

	# ----- entities -----

	def has_entity(self, name: str) -> bool:
		return name in self._entities

	def entity(self, name: str) -> Entity:
		try:
			return self._entities[name]
		except KeyError as exc:
			raise UnknownEntityOrClassError("unknown entity", name) from exc

	def entities(self) -> Tuple[Entity, ...]:
		return tuple(self._entities.values())

	def declare_value(
		self,
		name: str,
		classes: Sequence[str] = (),
		properties: Optional[Mapping[str, PropertyInput]] = None,
	) -> Entity:
		"""
		Declare a value instance of the listed classes (Entity when empty).
		Every property is evaluated before anything is recorded, so a failing
		declaration leaves the knowledge base untouched.
		"""
		if not name:
			raise MalformedStatementError("value needs a name")
		if name in self._entities or name in self._classes or self.registry.has_name(name):
			raise DuplicateNameError("name already declared", name)
		for c in classes:
			if c not in self._classes:
				raise UnknownEntityOrClassError("unknown class", c)
		slots = {prop: self.to_slot(raw) for prop, raw in (properties or {}).items()}

		ent = Entity(name=name)
		self._entities[name] = ent
		try:
			self.assert_isa(name, ROOT_CLASS)
			for prop, slot in slots.items():
				self.assert_is(name, prop, slot)
			for c in classes:
				self.assert_isa(name, c)
		except Exception:
			self._forget(name)
			raise
		return ent

	def _forget(self, name: str) -> None:
		ent = self._entities.pop(name)
		for c in ent.classes:
			self._index[c].remove(name)
		self._isa_count -= len(ent.classes)
		self._slot_count -= sum(1 for s in ent.slots.values() if is_set(s))

	# ----- facts -----

	def assert_isa(self, entity: str, cls: str) -> bool:
		"""Record entity isa cls (and its ancestors); True if anything new was learned."""
		ent = self.entity(entity)
		new = False
		for c in self.ancestors(cls):
			if c in ent.classes:
				continue
			ent.classes.append(c)
			self._index[c].append(entity)
			self._isa_count += 1
			new = True
			for prop, slot in self._classes[c].properties.items():
				if isinstance(slot, Value) and isinstance(ent.slots.get(prop), Value):
					# an instance value overrides the class default but keeps its dimension
					slot = TypeConstraint(slot.quantity.dim)
				self.assert_is(entity, prop, slot)
		return new

	def is_a(self, entity: str, cls: str) -> bool:
		ent = self.entity(entity)
		self.entity_class(cls)
		return cls in ent.classes

	def assert_is(self, entity: str, prop: str, slot: Slot) -> bool:
		"""
		Merge a slot into entity.prop. Returns False when nothing new was learned.
		A value or constraint with the wrong dimension raises
		TypeConstraintViolationError; a different value raises ConflictingValueError.
		"""
		ent = self.entity(entity)
		if not prop:
			raise MalformedStatementError("property needs a name", entity)
		if isinstance(slot, Unset):
			return False
		current = ent.slots.get(prop, UNSET)
		where = f"{entity}.{prop}"

		if isinstance(current, Unset):
			ent.slots[prop] = slot
			self._slot_count += 1
			return True

		if isinstance(current, TypeConstraint):
			if isinstance(slot, EntityRef):
				raise TypeConstraintViolationError(
					f"expected a quantity of dimension {current.dim.pretty()}, got entity {slot.name}", where
				)
			if not slot.dimension().same(current.dim):
				raise TypeConstraintViolationError(
					f"expected dimension {current.dim.pretty()}, got {slot.dimension().pretty()}", where
				)
			if isinstance(slot, Value):
				ent.slots[prop] = slot
				return True
			return False

		if isinstance(current, Value):
			if isinstance(slot, TypeConstraint):
				if not slot.dim.same(current.quantity.dim):
					raise TypeConstraintViolationError(
						f"value has dimension {current.quantity.dim.pretty()}, constraint requires {slot.dim.pretty()}",
						where,
					)
				return False
			if isinstance(slot, Value):
				if not slot.quantity.dim.same(current.quantity.dim):
					raise TypeConstraintViolationError(
						f"value has dimension {current.quantity.dim.pretty()}, got {slot.quantity.dim.pretty()}",
						where,
					)
				if self.equality.quantities_equal(current.quantity, slot.quantity):
					return False
			raise ConflictingValueError("property already holds a different value", where)

		if isinstance(slot, EntityRef) and slot.name == current.name:
			return False
		raise ConflictingValueError(f"property already refers to {current.name}", where)

	def get_property(self, entity: str, prop: str) -> Slot:
		"""The slot for entity.prop; UNSET when nothing is known."""
		return self.entity(entity).slots.get(prop, UNSET)

	def iterate_instances_of(self, cls: str) -> InstanceView:
		self.entity_class(cls)
		return InstanceView(self._index[cls], self._entities)

	@property
	def fact_count(self) -> int:
		return self._isa_count + self._slot_count

	# ----- evaluation -----

	def resolve_ref(self, name: str) -> Optional[Term]:
		"""
		Term resolver for `Entity.Prop` symbols: the property's value.
		Plain names are left to the registry.
		"""
		if "." not in name:
			return None
		head, _, prop = name.rpartition(".")
		slot = self.get_property(head, prop)
		if isinstance(slot, Value):
			return slot.quantity
		if isinstance(slot, EntityRef):
			raise MalformedStatementError("property refers to an entity, not a quantity", name)
		raise UnboundPropertyError("property has no value", name)

	def resolve_dimension(self, name: str) -> Optional[Term]:
		"""
		Like resolve_ref, but a property carrying only a type constraint stands in
		as a unit quantity of that dimension, so expressions can be typed.
		"""
		if "." in name:
			head, _, prop = name.rpartition(".")
			slot = self.get_property(head, prop)
			if isinstance(slot, TypeConstraint):
				return Quantity(magnitude=sp.Integer(1), dim=slot.dim)
		return self.resolve_ref(name)

	def evaluator(self) -> TermEvaluator:
		return TermEvaluator(self.registry, resolver=self.resolve_ref)

	def to_slot(self, raw: PropertyInput) -> Slot:
		"""
		Turn a declared property into a slot: a bare entity name → EntityRef,
		a quantity → Value, a dimensional expression → TypeConstraint.
		"""
		if isinstance(raw, (Unset, TypeConstraint, Value, EntityRef)):
			return raw
		if isinstance(raw, Quantity):
			return Value(raw)
		if isinstance(raw, DimVector):
			return TypeConstraint(raw)
		from unitlogic.io.sympy_utils import SympyUtils

		expr = SympyUtils.ensure_expr(raw)
		if isinstance(expr, sp.Symbol) and expr.name in self._entities:
			return EntityRef(expr.name)
		term = self.evaluator().evaluate(expr)
		if isinstance(term, Quantity):
			return Value(term)
		return TypeConstraint(term)


__all__ = ["KnowledgeBase", "Entity", "EntityClass", "InstanceView", "ROOT_CLASS", "PropertyInput"]
