"""
Property slots: the tagged variant stored for every (entity, property) pair.

A slot is never None. Reading a property nobody set yields UNSET.

  • Unset                 no information yet
  • TypeConstraint(dim)   the property must have this dimension
  • Value(quantity)       a concrete quantity (its dimension is implied)
  • EntityRef(name)       the property names another entity
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional, Union

from unitlogic.quantity.quantity import Quantity
from unitlogic.units.dim import DimVector


@dataclass(frozen=True)
class Unset:
	kind = "unset"

	def dimension(self) -> Optional[DimVector]:
		return None

	def to_payload(self) -> Dict[str, object]:
		return {"kind": self.kind}


@dataclass(frozen=True)
class TypeConstraint:
	dim: DimVector
	kind = "type"

	def dimension(self) -> Optional[DimVector]:
		return self.dim

	def to_payload(self) -> Dict[str, object]:
		return {"kind": self.kind, "dim": self.dim.to_payload()}


@dataclass(frozen=True)
class Value:
	quantity: Quantity
	kind = "value"

	def dimension(self) -> Optional[DimVector]:
		return self.quantity.dim

	def to_payload(self) -> Dict[str, object]:
		return {"kind": self.kind, "quantity": self.quantity.to_payload()}


@dataclass(frozen=True)
class EntityRef:
	name: str
	kind = "entity"

	def dimension(self) -> Optional[DimVector]:
		return None

	def to_payload(self) -> Dict[str, object]:
		return {"kind": self.kind, "name": self.name}


Slot = Union[Unset, TypeConstraint, Value, EntityRef]

UNSET = Unset()


def is_set(slot: Slot) -> bool:
	return not isinstance(slot, Unset)


__all__ = ["Slot", "Unset", "TypeConstraint", "Value", "EntityRef", "UNSET", "is_set"]
