from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, MutableMapping, cast

from litestar import Request
from litestar.enums import ScopeType
from litestar.middleware import ASGIMiddleware
from litestar.types import ASGIApp, Receive, Scope, Send

from ..core.engine import Gate
from .asgi import decide_request, render_denial

logger = logging.getLogger("pathgate.adapters.litestar")


# Precise ASGI callables for mypy when invoking a Starlette Response
_ASGIScope = MutableMapping[str, Any]
_ASGIReceive = Callable[[], Awaitable[MutableMapping[str, Any]]]
_ASGISend = Callable[[MutableMapping[str, Any]], Awaitable[None]]


class PathGateLitestarMiddleware(ASGIMiddleware):
    """Litestar middleware that checks every HTTP request against a :class:`Gate`.

    The oracle receives a :class:`litestar.Request`. Register an instance:
    ``Litestar(route_handlers=[...], middleware=[PathGateLitestarMiddleware(gate=gate)])``.
    """

    scopes = (ScopeType.HTTP,)

    def __init__(self, *, gate: Gate, add_headers: bool = False) -> None:
        self.gate = gate
        self.add_headers = add_headers

    async def handle(self, scope: Scope, receive: Receive, send: Send, next_app: ASGIApp) -> None:
        request: Request[Any, Any, Any] = Request(scope, receive=receive, send=send)
        decision = await decide_request(self.gate, request.url.path, request)
        if decision.allowed:
            await next_app(scope, receive, send)
            return

        logger.debug("pathgate: litestar request to %s denied", request.url.path)
        res = await render_denial(self.gate, request, decision, self.add_headers)
        await res(cast(_ASGIScope, scope), cast(_ASGIReceive, receive), cast(_ASGISend, send))


__all__ = ["PathGateLitestarMiddleware"]
