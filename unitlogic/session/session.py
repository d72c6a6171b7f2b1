"""
Session: a deterministic, sequential fold over a statement stream.

Class: Session
--------------
Owns one UnitRegistry, one KnowledgeBase, the RuleEngine, the LawSolver and
the QueryEvaluator. Each statement is applied in order:

  • declarations populate the registry and knowledge base; a new rule runs
    over every entity, a new value re-saturates with every rule
  • find solves (or returns the stored value) and re-saturates the entity
  • check records a CheckResult; a property it needs that a law can compute
    is solved first and saturated like a find
  • show records a ShowResult (a rendered value or a predicate's verdict)

Error policy
  • declaration errors halt the session (later statements may depend on them)
  • find and show errors are recorded and the session continues
  • failed checks are data; `abort_on_failed_check` makes them halt
  • `raise_errors` re-raises the StatementError instead of recording it

Every step appends a LogEvent to the session state; `verbose` prints
[CHECK] / [FIND] / [SHOW] / [ERROR] lines.
"""

from __future__ import annotations
from typing import Iterable, List, Optional

from unitlogic.errors import MalformedStatementError, StatementError, UnitLogicError
from unitlogic.kb.knowledge_base import KnowledgeBase
from unitlogic.reasoning.laws import Equation, Law, LawSolver
from unitlogic.reasoning.rules import Rule, RuleEngine
from unitlogic.session.config import CheckResult, FindResult, LogEvent, SessionConfig, SessionReport, SessionState, ShowResult
from unitlogic.session.evaluator import QueryEvaluator
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
	Find,
	Show,
	Statement,
)
from unitlogic.units.registry import UnitRegistry


class Session:
	"""Single entry point for running statements against a fresh reasoning state."""

	def __init__(self, config: Optional[SessionConfig] = None) -> None:
		self.config = config or SessionConfig()
		self.registry = UnitRegistry()
		self.kb = KnowledgeBase(self.registry, rel_tol=self.config.rel_tol, abs_tol=self.config.abs_tol)
		self.rules = RuleEngine(self.kb, max_rounds=self.config.max_saturation_rounds)
		self.laws = LawSolver(self.kb)
		self.evaluator = QueryEvaluator(self.kb, self.laws, rel_tol=self.config.rel_tol, abs_tol=self.config.abs_tol)
		self.state = SessionState()
		if self.config.prelude:
			from unitlogic.session.prelude import standard_statements
			prelude = standard_statements()
			for stmt in prelude:
				self._apply(stmt)
			self._log("prelude", {"statements": len(prelude)})

	def _log(self, kind: str, payload: dict) -> None:
		self.state.log.append(LogEvent(kind=kind, payload=payload))

	def run(self, statements: Iterable[Statement]) -> SessionReport:
		"""Apply statements in order until the stream ends or the session halts."""
		for stmt in statements:
			if self.state.halted:
				break
			self.execute(stmt)
		return self.report()

	def execute(self, stmt: Statement) -> None:
		"""Apply one statement under the session's error policy."""
		if self.state.halted:
			return
		idx = self.state.index
		self.state.index += 1
		kind = getattr(stmt, "kind", type(stmt).__name__)
		try:
			self._apply(stmt)
		except UnitLogicError as exc:
			err = StatementError(idx, exc, line=getattr(stmt, "line", None), kind=kind)
			self.state.errors.append(err)
			self._log("error", err.to_payload())
			if self.config.verbose:
				print(f"[ERROR] {err}")
			if self.config.raise_errors:
				raise err from exc
			if not isinstance(stmt, (Find, Show)):
				self.state.halted = True
				self._log("halt", {"index": idx, "reason": exc.code})

	def _apply(self, stmt: Statement) -> None:
		if isinstance(stmt, DeclareUnitClass):
			self.registry.declare_dimension(stmt.name)
			self._log("declare_unit_class", {"name": stmt.name})
		elif isinstance(stmt, DeclareBaseUnit):
			unit = self.registry.declare_base_unit(stmt.names, stmt.dimension, stmt.symbol, stmt.prefixing)
			self._log("declare_base_unit", {"names": list(unit.names), "dimension": stmt.dimension, "prefixing": str(stmt.prefixing)})
		elif isinstance(stmt, DeclareDerivedUnit):
			unit = self.registry.declare_derived_unit(stmt.names, stmt.symbol, stmt.value)
			self._log("declare_derived_unit", {"names": list(unit.names), "scale": str(unit.scale), "dim": unit.dim.to_payload()})
		elif isinstance(stmt, DeclareLabel):
			self.registry.declare_label(stmt.name, stmt.value)
			self._log("declare_label", {"name": stmt.name})
		elif isinstance(stmt, DeclareEntityClass):
			self.kb.declare_class(stmt.name, stmt.parents, stmt.properties)
			self._log("declare_entity_class", {"name": stmt.name, "parents": list(stmt.parents)})
		elif isinstance(stmt, DeclareRule):
			rule = Rule(bound_var=stmt.bound_var, conditions=tuple(stmt.conditions), conclusions=tuple(stmt.conclusions), name=stmt.name)
			derived = self.rules.add_rule(rule)
			self._log("declare_rule", {"name": rule.label(), "derived": len(derived)})
			self._log_derived(derived)
		elif isinstance(stmt, DeclareLaw):
			equation = stmt.equation if isinstance(stmt.equation, Equation) else Equation.parse(stmt.equation)
			law = self.laws.declare(Law(name=stmt.name, bound_var=stmt.bound_var, conditions=tuple(stmt.conditions), equation=equation))
			self._log("declare_law", {"name": law.name, "equation": str(law.equation)})
		elif isinstance(stmt, DeclareValue):
			ent = self.kb.declare_value(stmt.name, stmt.classes, stmt.properties)
			derived = self.rules.saturate([ent.name])
			self._log("declare_value", {"name": ent.name, "classes": list(ent.classes), "derived": len(derived)})
			self._log_derived(derived)
		elif isinstance(stmt, Find):
			self._find(stmt)
		elif isinstance(stmt, Check):
			self._check(stmt)
		elif isinstance(stmt, Show):
			self._show(stmt)
		else:
			raise MalformedStatementError(f"unsupported statement {type(stmt).__name__}")

	def _log_derived(self, derived: List[tuple]) -> None:
		if derived:
			self._log("derived", {"facts": [list(f) for f in derived]})

	def _find(self, stmt: Find) -> FindResult:
		res = self.evaluator.find(stmt.entity, stmt.property, law=stmt.law, bindings=stmt.bindings)
		res = FindResult(
			entity=res.entity,
			prop=res.prop,
			quantity=res.quantity,
			law=res.law,
			cached=res.cached,
			text=res.text,
			index=self.state.index - 1,
		)
		self.state.finds.append(res)
		self._log("find", res.to_payload())
		if not res.cached:
			self._log_derived(self.rules.saturate([res.entity]))
		if self.config.verbose:
			print(f"[FIND] {stmt.text()} = {res.text}")
		return res

	def _saturate_computed(self) -> None:
		"""Log and saturate every property a check or show had solved on demand."""
		for res in self.evaluator.take_computed():
			self._log("solve", res.to_payload())
			self._log_derived(self.rules.saturate([res.entity]))

	def _check(self, stmt: Check) -> CheckResult:
		res = self.evaluator.check(stmt.predicate, stmt.text)
		self._saturate_computed()
		res = CheckResult(passed=res.passed, text=res.text, reason=res.reason, index=self.state.index - 1, line=stmt.line)
		self.state.checks.append(res)
		self._log("check", res.to_payload())
		if self.config.verbose:
			status = "PASS" if res.passed else "FAIL"
			print(f"[CHECK] {status} {res.text}: {res.reason}")
		if not res.passed and self.config.abort_on_failed_check:
			self.state.halted = True
			self._log("halt", {"index": res.index, "reason": "failed check"})
		return res

	def _show(self, stmt: Show) -> ShowResult:
		res = self.evaluator.show(stmt.target, stmt.text)
		self._saturate_computed()
		res = ShowResult(
			text=res.text,
			value=res.value,
			detail=res.detail,
			quantity=res.quantity,
			index=self.state.index - 1,
			line=stmt.line,
		)
		self.state.shows.append(res)
		self._log("show", res.to_payload())
		if self.config.verbose:
			print(f"[SHOW] {res.text} = {res.value}")
		return res

	def report(self) -> SessionReport:
		return SessionReport(
			checks=list(self.state.checks),
			finds=list(self.state.finds),
			errors=list(self.state.errors),
			log=list(self.state.log),
			halted=self.state.halted,
			statements_run=self.state.index,
			shows=list(self.state.shows),
		)


__all__ = ["Session"]
