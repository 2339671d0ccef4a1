"""pathgate: path-prefix request authorization gate."""

from __future__ import annotations

from .core.engine import Gate
from .core.errors import ConfigError, OracleError, PathGateError, RuleSetError, RuleSourceError
from .core.model import Decision, Response, permission_denied
from .core.ports import RightsOracle
from .core.rules import PathRuleSet
from .oracles.static import CallableRightsOracle, StaticRightsOracle

__version__ = "1.0.0"

__all__ = [
    "Gate",
    "PathRuleSet",
    "Decision",
    "Response",
    "permission_denied",
    "RightsOracle",
    "StaticRightsOracle",
    "CallableRightsOracle",
    "PathGateError",
    "ConfigError",
    "RuleSetError",
    "RuleSourceError",
    "OracleError",
    "__version__",
]
