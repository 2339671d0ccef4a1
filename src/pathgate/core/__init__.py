from __future__ import annotations

from .engine import Gate
from .model import Decision, Response, permission_denied
from .rules import PathRuleSet, RuleSnapshot

__all__ = ["Gate", "Decision", "Response", "permission_denied", "PathRuleSet", "RuleSnapshot"]
