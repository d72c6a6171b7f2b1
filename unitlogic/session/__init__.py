from .config import SessionConfig, LogEvent, SessionState, SessionReport, CheckResult, FindResult
from .session import Session
from .evaluator import QueryEvaluator

__all__ = [
	"SessionConfig", "LogEvent", "SessionState", "SessionReport", "CheckResult", "FindResult",
	"Session", "QueryEvaluator",
]
