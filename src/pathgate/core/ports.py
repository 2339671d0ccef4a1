from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Union, runtime_checkable

from .model import Response

BoolOrAwaitable = Union[bool, Awaitable[bool]]

# Called with (response, request) when a request is rejected.
DenyFunction = Callable[[Response, Any], Any]

# Called with (response, request) to continue the chain.
NextHandler = Callable[[Response, Any], Any]

# Extracts the URL path from a framework request.
PathGetter = Callable[[Any], str]

# Runs a sync callable off the event loop, e.g. run_in_threadpool(func, *args).
RunSync = Callable[..., Awaitable[Any]]


@runtime_checkable
class RightsOracle(Protocol):
    """Answers the two rights questions for a request.

    Implementations may return a plain bool or an awaitable resolving to one.
    They should not cache across requests; the gate asks each question at
    most once per decision.
    """

    def has_admin_rights(self, request: Any) -> BoolOrAwaitable: ...

    def has_user_rights(self, request: Any) -> BoolOrAwaitable: ...


class MetricsSink(Protocol):
    def inc(self, name: str, labels: Dict[str, str] | None = None) -> None: ...


class MetricsObserve(Protocol):
    def observe(self, name: str, value: float, labels: Dict[str, str] | None = None) -> None: ...


class DecisionLogSink(Protocol):
    def log(self, payload: Dict[str, Any]) -> None: ...


class RuleSource(Protocol):
    """Source of rule documents for hot reloading."""

    def load(self) -> Dict[str, Any]: ...

    def etag(self) -> Optional[str]: ...


__all__ = [
    "BoolOrAwaitable",
    "DenyFunction",
    "NextHandler",
    "PathGetter",
    "RunSync",
    "RightsOracle",
    "MetricsSink",
    "MetricsObserve",
    "DecisionLogSink",
    "RuleSource",
]
