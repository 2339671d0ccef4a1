from __future__ import annotations

import inspect
import logging
import time
from typing import Any, Iterable, Mapping, Optional, Tuple

from .model import Category, Decision, Response, permission_denied
from .ports import DecisionLogSink, DenyFunction, MetricsSink, NextHandler, PathGetter, RightsOracle, RunSync
from .rules import PathRuleSet, RuleSnapshot, first_match

logger = logging.getLogger("pathgate.engine")

_ADMIN = "has_admin_rights"
_USER = "has_user_rights"


def _wsgi_str(value: str) -> str:
    # WSGI environ strings carry the raw bytes as latin-1 (PEP 3333)
    try:
        return value.encode("latin-1").decode("utf-8", "replace")
    except UnicodeEncodeError:
        return value


def default_path_of(request: Any) -> str:
    """Extract the URL path from common request shapes.

    Handles WSGI environ dicts, ASGI scopes, objects with ``url.path``
    (Starlette, Litestar, httpx) and objects with a string ``path``
    attribute (Flask, Django).
    """
    if isinstance(request, Mapping):
        if "PATH_INFO" in request or "SCRIPT_NAME" in request:
            raw = (request.get("SCRIPT_NAME") or "") + (request.get("PATH_INFO") or "")
            return _wsgi_str(raw) or "/"
        if "path" in request:
            return str(request["path"])
    url = getattr(request, "url", None)
    url_path = getattr(url, "path", None)
    if isinstance(url_path, str):
        return url_path
    path = getattr(request, "path", None)
    if isinstance(path, str):
        return path
    raise TypeError(f"cannot determine URL path of {type(request).__name__}")


def classify(snap: RuleSnapshot, path: str) -> Tuple[Category, Optional[str]]:
    """Find the rule governing *path*, without asking any rights question.

    Order is root override, admin, user, public; the first category that
    matches wins even when later lists also match.
    """
    if snap.root_is_public and path == "/":
        return "root", None
    prefix = first_match(path, snap.admin_prefixes)
    if prefix is not None:
        return "admin", prefix
    prefix = first_match(path, snap.user_prefixes)
    if prefix is not None:
        return "user", prefix
    prefix = first_match(path, snap.public_prefixes)
    if prefix is not None:
        return "public", prefix
    return "unmatched", None


def _decision(category: Category, prefix: Optional[str], granted: bool) -> Decision:
    if category == "root":
        return Decision(True, category, None, "root is public")
    if category == "public":
        return Decision(True, category, prefix, "public prefix")
    if category == "unmatched":
        return Decision(False, category, None, "no matching prefix")
    if granted:
        return Decision(True, category, prefix, f"{category} rights granted")
    return Decision(False, category, prefix, f"{category} rights required")


class Gate:
    """Path-prefix authorization gate.

    Decides per request whether the path is public, needs user rights or
    needs admin rights, asks the rights oracle at most once, and either
    continues the handler chain or calls the deny function.
    """

    def __init__(
        self,
        oracle: RightsOracle,
        rules: PathRuleSet | None = None,
        *,
        deny_function: DenyFunction = permission_denied,
        path_of: PathGetter = default_path_of,
        metrics: MetricsSink | None = None,
        logger_sink: DecisionLogSink | None = None,
    ) -> None:
        self._oracle = oracle
        self._rules = rules if rules is not None else PathRuleSet.default()
        self._deny = deny_function
        self.path_of = path_of
        self.metrics = metrics
        self.logger_sink = logger_sink

    @classmethod
    def default(cls, oracle: RightsOracle, **kwargs: Any) -> "Gate":
        """Gate with its own copy of the built-in rule set."""
        return cls(oracle, PathRuleSet.default(), **kwargs)

    # --- configuration surface ----------------------------------------------

    @property
    def rules(self) -> PathRuleSet:
        return self._rules

    def set_rules(self, rules: PathRuleSet) -> None:
        """Swap the whole rule set (used by hot reload)."""
        self._rules = rules
        logger.debug("pathgate: rules replaced: %r", rules)

    @property
    def rights_oracle(self) -> RightsOracle:
        return self._oracle

    @rights_oracle.setter
    def rights_oracle(self, oracle: RightsOracle) -> None:
        self._oracle = oracle

    def set_rights_oracle(self, oracle: RightsOracle) -> None:
        self._oracle = oracle

    @property
    def deny_function(self) -> DenyFunction:
        return self._deny

    def set_deny_function(self, func: DenyFunction) -> None:
        self._deny = func

    def get_deny_function(self) -> DenyFunction:
        return self._deny

    @property
    def is_async_oracle(self) -> bool:
        """True when the oracle answers with awaitables."""
        flag = getattr(self._oracle, "is_async", None)
        if isinstance(flag, bool):
            return flag
        return any(
            inspect.iscoroutinefunction(getattr(self._oracle, name, None)) for name in (_ADMIN, _USER)
        )

    def add_admin_prefix(self, prefix: str) -> None:
        self._rules.add_admin_prefix(prefix)

    def add_user_prefix(self, prefix: str) -> None:
        self._rules.add_user_prefix(prefix)

    def add_public_prefix(self, prefix: str) -> None:
        self._rules.add_public_prefix(prefix)

    def set_admin_prefixes(self, prefixes: Iterable[str]) -> None:
        self._rules.set_admin_prefixes(prefixes)

    def set_user_prefixes(self, prefixes: Iterable[str]) -> None:
        self._rules.set_user_prefixes(prefixes)

    def set_public_prefixes(self, prefixes: Iterable[str]) -> None:
        self._rules.set_public_prefixes(prefixes)

    def clear(self) -> None:
        self._rules.clear()

    # --- decisions -----------------------------------------------------------

    def decide(self, path: str, request: Any) -> Decision:
        start = time.perf_counter()
        category, prefix = classify(self._rules.snapshot(), path)
        granted = False
        if category == "admin":
            granted = self._ask(_ADMIN, request)
        elif category == "user":
            granted = self._ask(_USER, request)
        decision = _decision(category, prefix, granted)
        self._record(path, decision, time.perf_counter() - start)
        return decision

    async def decide_async(self, path: str, request: Any, *, run_sync: Optional[RunSync] = None) -> Decision:
        """Async twin of :meth:`decide`.

        Coroutine oracle methods are awaited. A sync method is handed to
        ``run_sync`` (e.g. ``starlette.concurrency.run_in_threadpool``) when
        given, else called inline; an awaitable it returns is awaited.
        """
        start = time.perf_counter()
        category, prefix = classify(self._rules.snapshot(), path)
        granted = False
        if category == "admin":
            granted = await self._ask_async(_ADMIN, request, run_sync)
        elif category == "user":
            granted = await self._ask_async(_USER, request, run_sync)
        decision = _decision(category, prefix, granted)
        self._record(path, decision, time.perf_counter() - start)
        return decision

    def reject(self, path: str, request: Any) -> bool:
        return self.decide(path, request).rejected

    async def reject_async(self, path: str, request: Any) -> bool:
        return (await self.decide_async(path, request)).rejected

    def rejected(self, request: Any) -> bool:
        """Check a request, taking the path from the request itself."""
        return self.reject(self.path_of(request), request)

    # --- handler chain -------------------------------------------------------

    def serve(self, response: Response, request: Any, next_handler: NextHandler) -> None:
        if self.rejected(request):
            self._deny(response, request)
            return
        next_handler(response, request)

    async def serve_async(self, response: Response, request: Any, next_handler: NextHandler) -> None:
        if await self.reject_async(self.path_of(request), request):
            result = self._deny(response, request)
        else:
            result = next_handler(response, request)
        if inspect.isawaitable(result):
            await result

    __call__ = serve

    # --- internals -----------------------------------------------------------

    def _ask(self, name: str, request: Any) -> bool:
        try:
            answer = getattr(self._oracle, name)(request)
        except Exception:
            logger.exception("pathgate: rights oracle %s failed; treating as absent", name)
            return False
        if inspect.isawaitable(answer):
            if inspect.iscoroutine(answer):
                answer.close()
            logger.error("pathgate: rights oracle %s is async; use decide_async()", name)
            return False
        return bool(answer)

    async def _ask_async(self, name: str, request: Any, run_sync: Optional[RunSync] = None) -> bool:
        try:
            method = getattr(self._oracle, name)
            if run_sync is None or self.is_async_oracle or inspect.iscoroutinefunction(method):
                answer = method(request)
            else:
                answer = await run_sync(method, request)
            if inspect.isawaitable(answer):
                answer = await answer
        except Exception:
            logger.exception("pathgate: rights oracle %s failed; treating as absent", name)
            return False
        return bool(answer)

    def _record(self, path: str, decision: Decision, elapsed: float) -> None:
        logger.debug(
            "pathgate: %s %s (%s%s)",
            "accept" if decision.allowed else "reject",
            path,
            decision.category,
            f" {decision.prefix}" if decision.prefix is not None else "",
        )
        labels = {"decision": "accept" if decision.allowed else "reject", "category": decision.category}
        if self.metrics is not None:
            try:
                self.metrics.inc("pathgate_decisions_total", labels)
                observe = getattr(self.metrics, "observe", None)
                if observe is not None:
                    observe("pathgate_decision_seconds", elapsed, labels)
            except Exception:
                logger.debug("pathgate: metrics sink failed", exc_info=True)
        if self.logger_sink is not None:
            try:
                self.logger_sink.log(
                    {
                        "path": path,
                        "allowed": decision.allowed,
                        "category": decision.category,
                        "prefix": decision.prefix,
                        "reason": decision.reason,
                    }
                )
            except Exception:
                logger.debug("pathgate: decision logger failed", exc_info=True)


__all__ = ["Gate", "classify", "default_path_of"]
