from __future__ import annotations


class PathGateError(Exception):
    """Base class for errors raised by pathgate."""


class RuleSetError(PathGateError, ValueError):
    """A rule document is malformed (wrong types, unknown shape)."""


class ConfigError(PathGateError, ValueError):
    """A configuration value has the wrong type or cannot be parsed."""


class RuleSourceError(PathGateError):
    """A rule source could not be read or parsed."""


class OracleError(PathGateError):
    """A rights oracle could not produce an answer.

    The gate treats this (and any other oracle exception) as "rights absent".
    """


__all__ = ["PathGateError", "ConfigError", "RuleSetError", "RuleSourceError", "OracleError"]
