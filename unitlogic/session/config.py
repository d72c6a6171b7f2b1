"""
Session configuration and typed containers for check/find results and the event log.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from unitlogic.errors import StatementError
from unitlogic.quantity.quantity import Quantity


@dataclass
class SessionConfig:
	"""
	Comparison tolerances and error policy.
	"""
	rel_tol: float = 1e-9
	abs_tol: float = 0.0
	abort_on_failed_check: bool = False
	raise_errors: bool = False
	prelude: bool = False
	verbose: bool = False
	max_saturation_rounds: int = 10_000


@dataclass(frozen=True)
class CheckResult:
	"""
	Outcome of one check statement. A failed check is data, not an error.
	"""
	passed: bool
	text: str
	reason: str
	index: int = -1
	line: Optional[int] = None

	def to_payload(self) -> Dict[str, object]:
		return {"passed": self.passed, "text": self.text, "reason": self.reason, "index": self.index, "line": self.line}


@dataclass(frozen=True)
class FindResult:
	"""
	A resolved (entity, property) binding; `law` is empty when the value was already known.
	"""
	entity: str
	prop: str
	quantity: Quantity
	law: str = ""
	cached: bool = False
	text: str = ""
	index: int = -1

	def to_payload(self) -> Dict[str, object]:
		return {
			"entity": self.entity,
			"property": self.prop,
			"law": self.law,
			"cached": self.cached,
			"text": self.text,
			"index": self.index,
			"quantity": {
				"magnitude": str(self.quantity.magnitude),
				"dim": self.quantity.dim.to_payload(),
				"exact": self.quantity.exact,
				"precision": self.quantity.precision,
			},
		}


@dataclass(frozen=True)
class ShowResult:
	"""
	What a show statement displayed: a rendered value, or "true"/"false" for a predicate.
	"""
	text: str
	value: str
	detail: str = ""
	quantity: Optional[Quantity] = None
	index: int = -1
	line: Optional[int] = None

	def to_payload(self) -> Dict[str, object]:
		out: Dict[str, object] = {"text": self.text, "value": self.value, "index": self.index, "line": self.line}
		if self.detail:
			out["detail"] = self.detail
		return out


@dataclass
class LogEvent:
	"""
	Structured event for run-time logging.
	"""
	kind: str
	payload: Dict[str, object]


@dataclass
class SessionState:
	"""
	Mutable state tracked across statements.
	"""
	index: int = 0
	log: List[LogEvent] = field(default_factory=list)
	checks: List[CheckResult] = field(default_factory=list)
	finds: List[FindResult] = field(default_factory=list)
	shows: List[ShowResult] = field(default_factory=list)
	errors: List[StatementError] = field(default_factory=list)
	halted: bool = False


@dataclass
class SessionReport:
	"""
	Everything a run produced, in statement order.
	"""
	checks: List[CheckResult]
	finds: List[FindResult]
	errors: List[StatementError]
	log: List[LogEvent]
	halted: bool
	statements_run: int
	shows: List[ShowResult] = field(default_factory=list)

	@property
	def failed_checks(self) -> List[CheckResult]:
		return [c for c in self.checks if not c.passed]

	@property
	def ok(self) -> bool:
		return not self.errors and not self.failed_checks

	def summary(self) -> Dict[str, object]:
		return {
			"statements_run": self.statements_run,
			"checks": len(self.checks),
			"checks_failed": len(self.failed_checks),
			"finds": len(self.finds),
			"shows": len(self.shows),
			"errors": len(self.errors),
			"halted": self.halted,
			"ok": self.ok,
		}
