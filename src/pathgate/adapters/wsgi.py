from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from ..core.engine import Gate
from ..core.model import Response

logger = logging.getLogger("pathgate.adapters.wsgi")

WSGIApp = Callable[[dict, Callable[..., Any]], Iterable[bytes]]


class PathGateWSGIMiddleware:
    """WSGI middleware running every request through :meth:`Gate.serve`.

    The rights oracle receives the WSGI ``environ``. On denial the deny
    function's :class:`Response` is written out; the wrapped app is not
    called.
    """

    def __init__(self, app: WSGIApp, gate: Gate) -> None:
        self.app = app
        self.gate = gate

    def __call__(self, environ: dict, start_response: Callable[..., Any]) -> Iterable[bytes]:
        response = Response()
        passed: list[bool] = []

        def _next(_response: Response, _request: Any) -> None:
            passed.append(True)

        self.gate.serve(response, environ, _next)
        if passed:
            return self.app(environ, start_response)

        headers = response.header_items()
        if not any(k.lower() == "content-length" for k, _ in headers):
            headers.append(("Content-Length", str(len(response.body))))
        start_response(response.status_line, headers)
        return [response.body]
