from __future__ import annotations

import inspect
from typing import Any, Callable, Optional

from starlette.concurrency import run_in_threadpool

from ..core.engine import Gate
from .asgi import decide_request, render_denial


def require_access(gate: Gate, add_headers: bool = False) -> Callable[..., Any]:
    """
    Starlette adapter that works both:
      - as a decorator on an endpoint (returns an async endpoint)
      - as a dependency-like callable: `dep = require_access(gate); await dep(request)`
        which returns a denial response, or None when the request may proceed
    """

    async def _dependency(request: Any) -> Optional[Any]:
        decision = await decide_request(gate, gate.path_of(request), request)
        if decision.allowed:
            return None
        return await render_denial(gate, request, decision, add_headers)

    def _decorator_or_dependency(arg: Any):
        if callable(arg):
            handler = arg

            if inspect.iscoroutinefunction(handler):

                async def _endpoint_async(request: Any):
                    deny = await _dependency(request)
                    if deny is not None:
                        return deny
                    return await handler(request)

                return _endpoint_async

            async def _endpoint_sync(request: Any):
                deny = await _dependency(request)
                if deny is not None:
                    return deny
                return await run_in_threadpool(handler, request)

            return _endpoint_sync

        # Otherwise act as a dependency: `arg` is the request.
        return _dependency(arg)

    return _decorator_or_dependency


__all__ = ["require_access"]
