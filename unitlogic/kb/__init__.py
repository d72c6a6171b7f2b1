from .slots import Slot, Unset, TypeConstraint, Value, EntityRef, UNSET
from .knowledge_base import KnowledgeBase, Entity, EntityClass, InstanceView, ROOT_CLASS

__all__ = [
	"Slot", "Unset", "TypeConstraint", "Value", "EntityRef", "UNSET",
	"KnowledgeBase", "Entity", "EntityClass", "InstanceView", "ROOT_CLASS",
]
