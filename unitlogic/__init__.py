"""
Top-level re-exports: the reasoning and unit-algebra core and the session that drives it.
"""

from .errors import UnitLogicError, StatementError
from .units.dim import DimVector, DIMLESS
from .units.registry import UnitRegistry
from .units.system import TermEvaluator
from .quantity.quantity import Quantity
from .quantity.equality import EqualityChecks
from .kb.knowledge_base import KnowledgeBase
from .reasoning.rules import RuleEngine
from .reasoning.laws import LawSolver
from .session.config import SessionConfig, SessionReport, CheckResult, FindResult
from .session.evaluator import QueryEvaluator
from .session.session import Session
from .io.statement_loader import StatementLoader

__version__ = "0.1.0"

__all__ = [
	"UnitLogicError", "StatementError",
	"DimVector", "DIMLESS", "UnitRegistry", "TermEvaluator",
	"Quantity", "EqualityChecks",
	"KnowledgeBase", "RuleEngine", "LawSolver",
	"SessionConfig", "SessionReport", "CheckResult", "FindResult",
	"QueryEvaluator", "Session", "StatementLoader",
]
