"""
Error kinds raised by the registry, quantity engine, knowledge base, rule engine
and law solver.

Every error carries a stable `code` so run logs and reports can refer to the
kind without depending on message text. StatementError wraps any of them with
the position of the statement that raised it.
"""

from __future__ import annotations
from typing import Optional


class UnitLogicError(Exception):
	"""Base class; `code` is the stable identifier written to run logs."""

	code = "E_UNITLOGIC"

	def __init__(self, message: str, subject: Optional[str] = None) -> None:
		self.message = message
		self.subject = subject
		super().__init__(self.__str__())

	def __str__(self) -> str:
		if self.subject:
			return f"{self.code}: {self.message} ({self.subject})"
		return f"{self.code}: {self.message}"


class UnknownUnitError(UnitLogicError):
	code = "E_UNKNOWN_UNIT"


class UnresolvedUnitError(UnitLogicError):
	code = "E_UNRESOLVED_UNIT"


class CyclicDefinitionError(UnitLogicError):
	code = "E_CYCLIC_DEFINITION"


class DimensionMismatchError(UnitLogicError):
	code = "E_DIMENSION_MISMATCH"


class UnknownEntityOrClassError(UnitLogicError):
	code = "E_UNKNOWN_ENTITY_OR_CLASS"


class TypeConstraintViolationError(UnitLogicError):
	code = "E_TYPE_CONSTRAINT_VIOLATION"


class UnboundPropertyError(UnitLogicError):
	code = "E_UNBOUND_PROPERTY"


class AmbiguousBindingError(UnitLogicError):
	code = "E_AMBIGUOUS_BINDING"


class AmbiguousLawError(UnitLogicError):
	code = "E_AMBIGUOUS_LAW"


class NoApplicableLawError(UnitLogicError):
	code = "E_NO_APPLICABLE_LAW"


class UnsolvableEquationError(UnitLogicError):
	code = "E_UNSOLVABLE_EQUATION"


class DuplicateNameError(UnitLogicError):
	code = "E_DUPLICATE_NAME"


class ConflictingValueError(UnitLogicError):
	code = "E_CONFLICTING_VALUE"


class MalformedStatementError(UnitLogicError):
	code = "E_MALFORMED_STATEMENT"


class StatementError(Exception):
	"""A UnitLogicError tagged with the index (and source line, if known) of its statement."""

	def __init__(self, index: int, cause: UnitLogicError, line: Optional[int] = None, kind: str = "") -> None:
		self.index = index
		self.line = line
		self.kind = kind
		self.cause = cause
		super().__init__(self.__str__())

	@property
	def code(self) -> str:
		return self.cause.code

	def __str__(self) -> str:
		where = f"statement {self.index}"
		if self.line is not None:
			where = f"{where} (line {self.line})"
		if self.kind:
			where = f"{where} [{self.kind}]"
		return f"{where}: {self.cause}"

	def to_payload(self) -> dict[str, object]:
		return {
			"index": int(self.index),
			"line": self.line,
			"kind": self.kind,
			"code": self.cause.code,
			"message": self.cause.message,
			"subject": self.cause.subject,
		}


__all__ = [
	"UnitLogicError",
	"UnknownUnitError",
	"UnresolvedUnitError",
	"CyclicDefinitionError",
	"DimensionMismatchError",
	"UnknownEntityOrClassError",
	"TypeConstraintViolationError",
	"UnboundPropertyError",
	"AmbiguousBindingError",
	"AmbiguousLawError",
	"NoApplicableLawError",
	"UnsolvableEquationError",
	"DuplicateNameError",
	"ConflictingValueError",
	"MalformedStatementError",
	"StatementError",
]
