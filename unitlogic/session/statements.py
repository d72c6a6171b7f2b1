"""
Typed statement stream consumed by a Session, and the predicates a Check carries.

Expressions may be given as SymPy trees or as text (parsed with
SympyUtils.to_sympy when the statement runs). Every statement can carry the
source `line` it came from so errors can point back at it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple, Union

import sympy as sp

from unitlogic.quantity.quantity import Quantity
from unitlogic.reasoning.laws import Equation
from unitlogic.reasoning.rules import Conclusion, Condition
from unitlogic.units.dim import DimVector


ExprLike = Union[sp.Basic, str, int]


@dataclass(frozen=True)
class DeclareUnitClass:
	name: str
	line: Optional[int] = None
	kind = "declare_unit_class"


@dataclass(frozen=True)
class DeclareBaseUnit:
	names: Tuple[str, ...]
	dimension: str
	symbol: str = ""
	prefixing: str = "none"
	line: Optional[int] = None
	kind = "declare_base_unit"


@dataclass(frozen=True)
class DeclareDerivedUnit:
	names: Tuple[str, ...]
	value: Union[ExprLike, Quantity]
	symbol: str = ""
	line: Optional[int] = None
	kind = "declare_derived_unit"


@dataclass(frozen=True)
class DeclareLabel:
	name: str
	value: Union[ExprLike, Quantity, DimVector]
	line: Optional[int] = None
	kind = "declare_label"


@dataclass(frozen=True)
class DeclareEntityClass:
	name: str
	parents: Tuple[str, ...] = ()
	properties: Mapping[str, ExprLike] = field(default_factory=dict)
	line: Optional[int] = None
	kind = "declare_entity_class"


@dataclass(frozen=True)
class DeclareRule:
	bound_var: str
	conditions: Tuple[Condition, ...] = ()
	conclusions: Tuple[Conclusion, ...] = ()
	name: str = ""
	line: Optional[int] = None
	kind = "declare_rule"


@dataclass(frozen=True)
class DeclareLaw:
	name: str
	bound_var: str
	equation: Union[Equation, str]
	conditions: Tuple[Condition, ...] = ()
	line: Optional[int] = None
	kind = "declare_law"


@dataclass(frozen=True)
class DeclareValue:
	name: str
	classes: Tuple[str, ...] = ()
	properties: Mapping[str, ExprLike] = field(default_factory=dict)
	line: Optional[int] = None
	kind = "declare_value"


@dataclass(frozen=True)
class Find:
	entity: str
	property: str
	law: Optional[str] = None
	bindings: Dict[str, str] = field(default_factory=dict)
	line: Optional[int] = None
	kind = "find"

	def text(self) -> str:
		out = f"find {self.entity}.{self.property}"
		if self.law:
			out += f" using {self.law}"
		for var, ent in self.bindings.items():
			out += f" where {var} is {ent}"
		return out


@dataclass(frozen=True)
class EqualityPredicate:
	"""lhs = rhs, both evaluated as terms."""
	lhs: ExprLike
	rhs: ExprLike


@dataclass(frozen=True)
class MembershipPredicate:
	"""entity isa cls (or `entity is cls`, the same test)."""
	entity: str
	cls: str
	form: str = "isa"


@dataclass(frozen=True)
class TypePredicate:
	"""subject (a property reference or expression) has dimension `dim`."""
	subject: ExprLike
	dim: Union[ExprLike, DimVector]


Predicate = Union[EqualityPredicate, MembershipPredicate, TypePredicate]


@dataclass(frozen=True)
class Check:
	predicate: Predicate
	text: str = ""
	line: Optional[int] = None
	kind = "check"


@dataclass(frozen=True)
class Show:
	"""Display an expression's value, or whether a predicate holds, without recording a check."""
	target: Union[Predicate, ExprLike]
	text: str = ""
	line: Optional[int] = None
	kind = "show"


Statement = Union[
	DeclareUnitClass,
	DeclareBaseUnit,
	DeclareDerivedUnit,
	DeclareLabel,
	DeclareEntityClass,
	DeclareRule,
	DeclareLaw,
	DeclareValue,
	Find,
	Check,
	Show,
]


__all__ = [
	"DeclareUnitClass",
	"DeclareBaseUnit",
	"DeclareDerivedUnit",
	"DeclareLabel",
	"DeclareEntityClass",
	"DeclareRule",
	"DeclareLaw",
	"DeclareValue",
	"Find",
	"Check",
	"Show",
	"EqualityPredicate",
	"MembershipPredicate",
	"TypePredicate",
	"Predicate",
	"Statement",
	"ExprLike",
]
