from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, MutableMapping

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response as StarletteResponse

from ..core.engine import Gate
from ..core.model import Decision, Response

logger = logging.getLogger("pathgate.adapters.asgi")

Scope = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send = Callable[[MutableMapping[str, Any]], Awaitable[None]]


async def decide_request(gate: Gate, path: str, request: Any) -> Decision:
    """Decide without blocking the event loop on a sync oracle call.

    Sync oracle methods run in the threadpool; whatever they return, an
    awaitable included, is then resolved on the loop.
    """
    return await gate.decide_async(path, request, run_sync=run_in_threadpool)


async def render_denial(gate: Gate, request: Any, decision: Decision, add_headers: bool) -> StarletteResponse:
    """Run the gate's deny function and convert its output to Starlette."""
    response = Response()
    result = gate.deny_function(response, request)
    if inspect.isawaitable(result):
        await result
    headers = dict(response.headers)
    if add_headers:
        headers["X-PathGate-Category"] = decision.category
    return StarletteResponse(
        content=response.body,
        status_code=response.status_code,
        headers=headers,
    )


class PathGateMiddleware:
    """Pure ASGI middleware enforcing a :class:`Gate`.

    - Non-HTTP scopes pass through untouched.
    - The oracle receives a :class:`starlette.requests.Request`.
    - Sync oracles run in a worker thread; async oracles are awaited.
    """

    def __init__(self, app: Any, *, gate: Gate, add_headers: bool = False) -> None:
        self.app = app
        self.gate = gate
        self.add_headers = add_headers

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        decision = await decide_request(self.gate, request.url.path, request)
        if decision.allowed:
            scope["pathgate_decision"] = decision
            await self.app(scope, receive, send)
            return

        res = await render_denial(self.gate, request, decision, self.add_headers)
        await res(scope, receive, send)


__all__ = ["PathGateMiddleware", "decide_request", "render_denial"]
