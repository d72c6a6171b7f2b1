"""
Forward chaining and equation solving: package re-exports

Public API:
  RuleEngine, Rule, IsaCondition, BindCondition, IsaConclusion, TypeConclusion,
  LawSolver, Law, Equation, isolate
"""

from .rules import RuleEngine, Rule, IsaCondition, BindCondition, IsaConclusion, TypeConclusion
from .laws import LawSolver, Law, Equation, Solution
from .isolate import isolate

__all__ = [
	"RuleEngine", "Rule", "IsaCondition", "BindCondition", "IsaConclusion", "TypeConclusion",
	"LawSolver", "Law", "Equation", "Solution", "isolate",
]
