"""Static checks for path rule sets.

Prefix rules fail open or closed in ways that are easy to miss when
reading a config: an empty prefix matches every path, a ``/`` public prefix
makes every unknown path public, and a prefix placed in a lower-priority
list underneath a higher-priority one is never reached. ``analyze_rules``
reports such problems as plain dicts so they can be printed or asserted on.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Tuple, Union

from .core.rules import PathRuleSet

Issue = Dict[str, Any]

_LISTS = ("admin", "user", "public")


def _issue(code: str, message: str, list_name: str, prefix: str) -> Issue:
    return {"code": code, "message": message, "list": list_name, "prefix": prefix}


def analyze_rules(rules: Union[PathRuleSet, Mapping[str, Any]]) -> List[Issue]:
    if not isinstance(rules, PathRuleSet):
        rules = PathRuleSet.from_mapping(rules)
    snap = rules.snapshot()
    lists: Dict[str, Tuple[str, ...]] = {
        "admin": snap.admin_prefixes,
        "user": snap.user_prefixes,
        "public": snap.public_prefixes,
    }
    issues: List[Issue] = []

    for name in _LISTS:
        seen: set[str] = set()
        for prefix in lists[name]:
            if prefix == "":
                issues.append(
                    _issue("EMPTY_PREFIX", f"empty {name} prefix matches every path", name, prefix)
                )
            if prefix in seen:
                issues.append(
                    _issue("DUPLICATE_PREFIX", f"{name} prefix {prefix!r} listed twice", name, prefix)
                )
            seen.add(prefix)

    if "/" in lists["public"]:
        issues.append(
            _issue(
                "PUBLIC_CATCH_ALL",
                "public prefix '/' makes every path without an admin or user prefix public",
                "public",
                "/",
            )
        )

    # A prefix below a higher-priority prefix can never govern a path.
    for lower, higher, code in (
        ("user", "admin", "SHADOWED_BY_ADMIN"),
        ("public", "admin", "SHADOWED_BY_ADMIN"),
        ("public", "user", "SHADOWED_BY_USER"),
    ):
        for prefix in lists[lower]:
            if prefix == "":
                continue
            for outer in lists[higher]:
                if outer and prefix.startswith(outer):
                    issues.append(
                        _issue(
                            code,
                            f"{lower} prefix {prefix!r} is covered by {higher} prefix {outer!r}",
                            lower,
                            prefix,
                        )
                    )
                    break

    return issues


__all__ = ["Issue", "analyze_rules"]
