from __future__ import annotations

import argparse
import json
import sys
from typing import Any, List, Optional, Sequence

from . import __version__
from .core.engine import Gate
from .core.errors import PathGateError
from .core.rules import PathRuleSet
from .lint import analyze_rules
from .oracles.static import StaticRightsOracle
from .storage import load_rules

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_LINT_ERRORS = 3
EXIT_LOAD_ERROR = 4
EXIT_REJECTED = 5


def _load(path: str) -> PathRuleSet:
    return load_rules(path)


def _print(obj: Any, fmt: str) -> None:
    if fmt == "json":
        print(json.dumps(obj, indent=2, sort_keys=True))
        return
    if isinstance(obj, list):
        if not obj:
            print("OK: no issues")
        for item in obj:
            print(f"{item['code']}: {item['message']}")
        return
    for key in sorted(obj):
        print(f"{key}: {obj[key]}")


def cmd_lint(args: argparse.Namespace) -> int:
    try:
        rules = _load(args.rules)
    except (OSError, PathGateError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_LOAD_ERROR
    issues = analyze_rules(rules)
    _print(issues, args.format)
    if issues and args.strict:
        return EXIT_LINT_ERRORS
    return EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    try:
        rules = _load(args.rules)
    except (OSError, PathGateError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_LOAD_ERROR
    gate = Gate(StaticRightsOracle(admin=args.admin, user=args.user), rules)
    decision = gate.decide(args.path, None)
    _print(
        {
            "path": args.path,
            "allowed": decision.allowed,
            "category": decision.category,
            "prefix": decision.prefix,
            "reason": decision.reason,
        },
        args.format,
    )
    return EXIT_OK if decision.allowed else EXIT_REJECTED


def cmd_defaults(args: argparse.Namespace) -> int:
    print(json.dumps(PathRuleSet.default().to_dict(), indent=2))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pathgate", description="Path-prefix authorization gate tools")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(dest="command")

    lint = sub.add_parser("lint", help="report problems in a rule file")
    lint.add_argument("rules", help="JSON or YAML rule file")
    lint.add_argument("--strict", action="store_true", help="non-zero exit when issues are found")
    lint.add_argument("--format", choices=("json", "text"), default="text")
    lint.set_defaults(func=cmd_lint)

    check = sub.add_parser("check", help="decide one path against a rule file")
    check.add_argument("rules", help="JSON or YAML rule file")
    check.add_argument("path", help="URL path, e.g. /admin/users")
    check.add_argument("--admin", action="store_true", help="caller has admin rights")
    check.add_argument("--user", action="store_true", help="caller has user rights")
    check.add_argument("--format", choices=("json", "text"), default="text")
    check.set_defaults(func=cmd_check)

    defaults = sub.add_parser("defaults", help="print the built-in rule set")
    defaults.set_defaults(func=cmd_defaults)
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return EXIT_USAGE
    rc = func(args)
    return rc if isinstance(rc, int) else EXIT_OK


def _entrypoint() -> None:  # pragma: no cover
    sys.exit(main())


__all__: List[str] = [
    "EXIT_OK",
    "EXIT_USAGE",
    "EXIT_LINT_ERRORS",
    "EXIT_LOAD_ERROR",
    "EXIT_REJECTED",
    "build_parser",
    "main",
]
