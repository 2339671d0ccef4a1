from __future__ import annotations

import json
from typing import Any, Dict, Literal, Optional

from ..core.errors import RuleSourceError

Format = Literal["json", "yaml"]


def detect_format(
    text: str, *, filename: Optional[str] = None, content_type: Optional[str] = None
) -> Format:
    """Pick a parser: Content-Type first, then file extension, then content."""
    if content_type:
        ct = content_type.lower()
        if "yaml" in ct or "yml" in ct:
            return "yaml"
        if "json" in ct:
            return "json"
    if filename:
        name = filename.lower()
        if name.endswith((".yaml", ".yml")):
            return "yaml"
        if name.endswith(".json"):
            return "json"
    stripped = text.lstrip()
    if stripped.startswith(("{", "[")):
        return "json"
    return "yaml"


def _parse_yaml(text: str) -> Any:
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as e:  # pragma: no cover
        raise RuleSourceError("YAML rule files require PyYAML. Install with extra: pathgate[yaml].") from e
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RuleSourceError(f"invalid YAML rules: {e}") from e


def parse_rules_text(
    text: str, *, filename: Optional[str] = None, content_type: Optional[str] = None
) -> Dict[str, Any]:
    """Parse a JSON or YAML rule document into a mapping.

    An empty document parses to ``{}``; a non-mapping document raises
    :class:`RuleSourceError`.
    """
    fmt = detect_format(text, filename=filename, content_type=content_type)
    if fmt == "json":
        try:
            doc = json.loads(text)
        except json.JSONDecodeError as e:
            raise RuleSourceError(f"invalid JSON rules: {e}") from e
    else:
        doc = _parse_yaml(text)
    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise RuleSourceError(f"rule document must be a mapping, got {type(doc).__name__}")
    return doc


__all__ = ["detect_format", "parse_rules_text"]
