"""
JSON statement-stream loader.

A script is a JSON list of mappings, one per statement, keyed by "kind":

  {"kind": "declare_unit_class", "name": "Length"}
  {"kind": "declare_base_unit", "names": ["Meter", "Meters"], "dimension": "Length",
   "symbol": "m", "prefixing": "metric"}
  {"kind": "declare_derived_unit", "names": ["Foot", "Feet"], "symbol": "ft", "value": "0.3048 * Meters"}
  {"kind": "declare_label", "name": "Velocity", "value": "Length / Time"}
  {"kind": "declare_entity_class", "name": "Circle", "parents": [], "properties": {"Radius": "Length"}}
  {"kind": "declare_rule", "for": "Circle", "where": ["R is Circle.Radius"],
   "then": ["Circle is Round", "Circle.Diameter isa Length"]}
  {"kind": "declare_law", "name": "AreaOfACircle", "for": "Circle",
   "where": ["R is Circle.Radius", "A is Circle.Area"], "equation": "A = Pi * R^2"}
  {"kind": "declare_value", "name": "MyPizza", "classes": ["Circle"], "properties": {"Radius": "0.1 * Meters"}}
  {"kind": "find", "target": "MyPizza.Area", "law": "AreaOfACircle", "where": {"Circle": "MyPizza"}}
  {"kind": "check", "predicate": "MyPizza isa Circle"}
  {"kind": "show", "expr": "MyPizza.Area"}
  {"kind": "show", "expr": "(1 * Meter / Second ^ 2) is Acceleration"}

Conditions read `S isa C` (membership) or `L is X.Prop` (binding). Conclusions
read `S is C` (membership) or `X.Prop isa D` / `L isa D` (type constraint).
Check predicates read `lhs = rhs`, `S isa C` / `S is C` for a plain entity
name, and `X.Prop isa D`, `(expr) is D` or `expr has dimension D` for a
dimension test. A show target is read as a predicate when it has one of
those shapes, otherwise as an expression.

Malformed input raises MalformedStatementError naming the statement position.
"""

from __future__ import annotations
import json
import re
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Set, Tuple, Union

from unitlogic.errors import MalformedStatementError
from unitlogic.io.sympy_utils import SympyUtils
from unitlogic.reasoning.laws import Equation
from unitlogic.reasoning.rules import (
	BindCondition,
	Conclusion,
	Condition,
	IsaCondition,
	IsaConclusion,
	TypeConclusion,
)
from unitlogic.session.statements import (
	Check,
	DeclareBaseUnit,
	DeclareDerivedUnit,
	DeclareEntityClass,
	DeclareLabel,
	DeclareLaw,
	DeclareRule,
	DeclareUnitClass,
	DeclareValue,
	EqualityPredicate,
	Find,
	ExprLike,
	MembershipPredicate,
	Predicate,
	Show,
	Statement,
	TypePredicate,
)


_IDENT = r"[A-Za-z_]\w*"
_REF = rf"{_IDENT}(?:\.{_IDENT})+"
_RELATION_RE = re.compile(r"^\s*(\S+)\s+(isa|is)\s+(.+?)\s*$")
_DIMENSION_RE = re.compile(r"^\s*(.+?)\s+has\s+dimension\s+(.+?)\s*$")
_PAREN_RELATION_RE = re.compile(r"^\s*\((.+)\)\s+(isa|is)\s+(.+?)\s*$")


class StatementLoader:
	"""Class facade for turning JSON scripts into typed statements."""

	@staticmethod
	def load(source: Union[str, Path, Sequence[Mapping[str, object]]]) -> List[Statement]:
		"""Load from a path to a JSON file, or from an already-decoded list of mappings."""
		if isinstance(source, (str, Path)):
			with open(source, "r", encoding="utf-8") as f:
				data = json.load(f)
		else:
			data = source
		if not isinstance(data, list):
			raise MalformedStatementError("script must be a JSON list of statements")
		return [StatementLoader.build(i, item) for i, item in enumerate(data)]

	@staticmethod
	def loads(text: str) -> List[Statement]:
		return StatementLoader.load(json.loads(text))

	@staticmethod
	def build(index: int, item: Mapping[str, object]) -> Statement:
		"""Build one statement from its mapping."""
		where = f"statement {index}"
		if not isinstance(item, Mapping):
			raise MalformedStatementError("statement must be an object", where)
		kind = item.get("kind")
		line = item.get("line")
		if line is not None:
			line = int(line)

		def req(key: str, *aliases: str) -> object:
			for k in (key,) + aliases:
				if k in item:
					return item[k]
			raise MalformedStatementError(f"missing field '{key}'", where)

		if kind == "declare_unit_class":
			return DeclareUnitClass(name=str(req("name")), line=line)
		if kind == "declare_base_unit":
			return DeclareBaseUnit(
				names=_names(req("names", "name")),
				dimension=str(req("dimension", "class")),
				symbol=str(item.get("symbol", "") or ""),
				prefixing=str(item.get("prefixing", "none") or "none"),
				line=line,
			)
		if kind == "declare_derived_unit":
			return DeclareDerivedUnit(
				names=_names(req("names", "name")),
				symbol=str(item.get("symbol", "") or ""),
				value=SympyUtils.ensure_expr(req("value")),
				line=line,
			)
		if kind == "declare_label":
			return DeclareLabel(name=str(req("name")), value=SympyUtils.ensure_expr(req("value")), line=line)
		if kind == "declare_entity_class":
			return DeclareEntityClass(
				name=str(req("name")),
				parents=_names(item.get("parents", ())),
				properties=_properties(item.get("properties", {}), where),
				line=line,
			)
		if kind == "declare_rule":
			conditions = StatementLoader.conditions(item.get("where", item.get("conditions", ())), where)
			locals_ = {c.local for c in conditions if isinstance(c, BindCondition)}
			return DeclareRule(
				bound_var=str(req("bound_var", "for")),
				conditions=conditions,
				conclusions=StatementLoader.conclusions(req("then", "conclusions"), locals_, where),
				name=str(item.get("name", "") or ""),
				line=line,
			)
		if kind == "declare_law":
			eq = req("equation")
			if not isinstance(eq, str):
				raise MalformedStatementError("equation must be text 'lhs = rhs'", where)
			return DeclareLaw(
				name=str(req("name")),
				bound_var=str(req("bound_var", "for")),
				conditions=StatementLoader.conditions(item.get("where", item.get("conditions", ())), where),
				equation=Equation.parse(eq),
				line=line,
			)
		if kind == "declare_value":
			return DeclareValue(
				name=str(req("name")),
				classes=_names(item.get("classes", ())),
				properties=_properties(item.get("properties", {}), where),
				line=line,
			)
		if kind == "find":
			entity, prop = _target(item, where)
			bindings = item.get("where", item.get("bindings", {})) or {}
			if not isinstance(bindings, Mapping):
				raise MalformedStatementError("find bindings must map variables to entities", where)
			law = item.get("law", item.get("using"))
			return Find(
				entity=entity,
				property=prop,
				law=str(law) if law else None,
				bindings={str(k): str(v) for k, v in bindings.items()},
				line=line,
			)
		if kind == "check":
			raw = req("predicate")
			text = str(item.get("text", raw if isinstance(raw, str) else json.dumps(raw, sort_keys=True)))
			return Check(predicate=StatementLoader.predicate(raw, where), text=text, line=line)
		if kind == "show":
			raw = req("expr", "target")
			text = str(item.get("text", raw if isinstance(raw, str) else json.dumps(raw, sort_keys=True)))
			return Show(target=StatementLoader.show_target(raw, where), text=text, line=line)
		raise MalformedStatementError(f"unknown statement kind {kind!r}", where)

	@staticmethod
	def conditions(raw: object, where: str = "") -> Tuple[Condition, ...]:
		out: List[Condition] = []
		for c in _items(raw, where):
			lhs, verb, rhs = _relation(c, where)
			if "." in rhs:
				if verb != "is" or "." in lhs:
					raise MalformedStatementError("binding reads 'L is X.Prop'", where)
				out.append(BindCondition(local=lhs, ref=rhs))
			else:
				out.append(IsaCondition(subject=lhs, cls=rhs))
		return tuple(out)

	@staticmethod
	def conclusions(raw: object, locals_: Set[str], where: str = "") -> Tuple[Conclusion, ...]:
		out: List[Conclusion] = []
		for c in _items(raw, where):
			lhs, _, rhs = _relation(c, where)
			if "." in lhs or lhs in locals_:
				out.append(TypeConclusion(target=lhs, dim=SympyUtils.to_sympy(rhs)))
			else:
				out.append(IsaConclusion(subject=lhs, cls=rhs))
		return tuple(out)

	@staticmethod
	def predicate(raw: object, where: str = "") -> Predicate:
		"""Parse a check predicate from text or from a {"equal"|"isa"|"is"|"type": [a, b]} mapping."""
		if isinstance(raw, Mapping):
			if len(raw) != 1:
				raise MalformedStatementError("predicate mapping needs exactly one key", where)
			key, val = next(iter(raw.items()))
			if not isinstance(val, (list, tuple)) or len(val) != 2:
				raise MalformedStatementError("predicate needs two operands", where)
			a, b = val
			if key == "equal":
				return EqualityPredicate(lhs=SympyUtils.ensure_expr(a), rhs=SympyUtils.ensure_expr(b))
			if key in ("isa", "is"):
				return MembershipPredicate(entity=str(a), cls=str(b), form=key)
			if key == "type":
				return TypePredicate(subject=SympyUtils.ensure_expr(a), dim=SympyUtils.ensure_expr(b))
			raise MalformedStatementError(f"unknown predicate {key!r}", where)
		if not isinstance(raw, str):
			raise MalformedStatementError("predicate must be text or a mapping", where)

		m = _DIMENSION_RE.match(raw)
		if m:
			return TypePredicate(subject=SympyUtils.to_sympy(m.group(1)), dim=SympyUtils.to_sympy(m.group(2)))
		if raw.count("=") == 1:
			lhs, rhs = raw.split("=")
			return EqualityPredicate(lhs=SympyUtils.to_sympy(lhs), rhs=SympyUtils.to_sympy(rhs))
		m = _PAREN_RELATION_RE.match(raw)
		if m:
			return TypePredicate(subject=SympyUtils.to_sympy(m.group(1)), dim=SympyUtils.to_sympy(m.group(3)))
		m = _RELATION_RE.match(raw)
		if m:
			subject, verb, obj = m.groups()
			if re.fullmatch(_IDENT, subject):
				return MembershipPredicate(entity=subject, cls=obj, form=verb)
			if re.fullmatch(_REF, subject):
				return TypePredicate(subject=SympyUtils.to_sympy(subject), dim=SympyUtils.to_sympy(obj))
		raise MalformedStatementError("cannot read predicate", raw)

	@staticmethod
	def show_target(raw: object, where: str = "") -> Union[Predicate, ExprLike]:
		"""A predicate when the text (or mapping) has a predicate's shape, else an expression."""
		if isinstance(raw, Mapping):
			return StatementLoader.predicate(raw, where)
		if not isinstance(raw, str):
			return SympyUtils.ensure_expr(raw)
		if "=" in raw or any(r.match(raw) for r in (_DIMENSION_RE, _PAREN_RELATION_RE, _RELATION_RE)):
			return StatementLoader.predicate(raw, where)
		return SympyUtils.to_sympy(raw)


def _names(raw: object) -> Tuple[str, ...]:
	if isinstance(raw, str):
		return tuple(n.strip() for n in raw.split(",") if n.strip())
	return tuple(str(n) for n in (raw or ()))


def _items(raw: object, where: str) -> List[str]:
	if isinstance(raw, str):
		return [raw]
	if not isinstance(raw, (list, tuple)):
		raise MalformedStatementError("expected a list of clauses", where)
	return [str(c) for c in raw]


def _relation(text: str, where: str) -> Tuple[str, str, str]:
	m = _RELATION_RE.match(text)
	if not m:
		raise MalformedStatementError(f"cannot read clause {text!r}", where)
	return m.group(1), m.group(2), m.group(3)


def _properties(raw: object, where: str) -> Dict[str, object]:
	if not isinstance(raw, Mapping):
		raise MalformedStatementError("properties must be an object", where)
	return {str(k): SympyUtils.ensure_expr(v) for k, v in raw.items()}


def _target(item: Mapping[str, object], where: str) -> Tuple[str, str]:
	if "target" in item:
		target = str(item["target"])
		head, dot, prop = target.rpartition(".")
		if not dot or not head or not prop:
			raise MalformedStatementError("find target reads 'Entity.Property'", where)
		return head, prop
	if "entity" in item and "property" in item:
		return str(item["entity"]), str(item["property"])
	raise MalformedStatementError("find needs a target", where)


__all__ = ["StatementLoader"]
