from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Optional

from .core.engine import Gate
from .core.errors import ConfigError
from .core.ports import RightsOracle
from .core.rules import PathRuleSet
from .oracles.static import StaticRightsOracle

if TYPE_CHECKING:
    from .storage import HotReloader

logger = logging.getLogger("pathgate.config")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"{key}: expected a boolean, got {value!r}")


def _parse_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key}: expected a number, got {value!r}") from e


@dataclass(frozen=True)
class GateOptions:
    """Settings for building a gate from configuration.

    Keys mirror a ``[security]`` config section; environment variables use
    the ``PATHGATE_`` prefix.
    """

    section: str = "security"
    rules_path: Optional[str] = None
    root_is_public: Optional[bool] = None
    oracle_url: Optional[str] = None
    oracle_timeout: float = 2.0
    reload_interval: float = 60.0

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], *, section: str = "security") -> "GateOptions":
        """Read options from a config section (e.g. a ``configparser`` section).

        Keys: ``rules``, ``root_is_public``, ``oracle_url``, ``oracle_timeout``,
        ``reload_interval``. Missing keys keep their defaults.
        """
        root = values.get("root_is_public")
        return cls(
            section=section,
            rules_path=values.get("rules") or None,
            root_is_public=None if root in (None, "") else _parse_bool(root, "root_is_public"),
            oracle_url=values.get("oracle_url") or None,
            oracle_timeout=_parse_float(values.get("oracle_timeout", 2.0), "oracle_timeout"),
            reload_interval=_parse_float(values.get("reload_interval", 60.0), "reload_interval"),
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GateOptions":
        env = os.environ if environ is None else environ
        values = {
            "rules": env.get("PATHGATE_RULES"),
            "root_is_public": env.get("PATHGATE_ROOT_IS_PUBLIC"),
            "oracle_url": env.get("PATHGATE_ORACLE_URL"),
            "oracle_timeout": env.get("PATHGATE_ORACLE_TIMEOUT") or 2.0,
            "reload_interval": env.get("PATHGATE_RELOAD_INTERVAL") or 60.0,
        }
        return cls.from_mapping(values)

    @classmethod
    def from_config(cls, parser: Any, section: str = "security") -> "GateOptions":
        """Read options from a section of a ``configparser.ConfigParser``.

        A missing section yields the defaults.
        """
        values: Mapping[str, Any] = parser[section] if parser.has_section(section) else {}
        return cls.from_mapping(values, section=section)


def build_gate(options: GateOptions, oracle: RightsOracle | None = None, **gate_kwargs: Any) -> Gate:
    """Build a :class:`Gate` from options.

    Rules come from ``rules_path`` or the built-in defaults. The oracle is the
    argument if given, else an HTTP oracle for ``oracle_url``, else one that
    grants nothing.
    """
    if options.rules_path:
        from .storage import load_rules

        rules = load_rules(options.rules_path)
    else:
        rules = PathRuleSet.default()
    if options.root_is_public is not None:
        rules.root_is_public = options.root_is_public

    if oracle is None:
        if options.oracle_url:
            from .oracles.http import HTTPOracleConfig, HTTPRightsOracle

            oracle = HTTPRightsOracle(
                HTTPOracleConfig(api_url=options.oracle_url, timeout_seconds=options.oracle_timeout)
            )
        else:
            logger.warning("pathgate: no rights oracle configured; admin and user paths will be denied")
            oracle = StaticRightsOracle()

    return Gate(oracle, rules, **gate_kwargs)


def build_reloader(options: GateOptions, gate: Gate) -> Optional["HotReloader"]:
    """Build a :class:`HotReloader` polling ``rules_path`` every ``reload_interval`` seconds.

    Returns None when no rule file is configured. The caller starts it.
    """
    if not options.rules_path:
        return None
    from .storage import FileRuleSource, HotReloader

    return HotReloader(gate, FileRuleSource(options.rules_path), poll_interval=options.reload_interval)


__all__ = ["GateOptions", "build_gate", "build_reloader"]
