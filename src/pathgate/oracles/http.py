from __future__ import annotations

import logging
from dataclasses import dataclass
from http.cookies import CookieError, SimpleCookie
from typing import Any, Mapping, Optional

try:
    import httpx  # optional dependency (declare extra: http)
except Exception:  # pragma: no cover
    httpx = None  # type: ignore[assignment]

from ..core.errors import OracleError

logger = logging.getLogger("pathgate.oracles.http")


@dataclass(frozen=True)
class HTTPOracleConfig:
    """Minimal configuration for a remote user-state service."""

    api_url: str  # e.g. "http://auth.internal:8080"
    token_cookie: str = "user"
    api_token: str | None = None  # Bearer <token> for the service itself
    timeout_seconds: float = 2.0


def _header(request: Any, name: str) -> Optional[str]:
    headers = getattr(request, "headers", None)
    if headers is None:
        if isinstance(request, Mapping):
            # WSGI environ
            return request.get("HTTP_" + name.upper().replace("-", "_"))
        return None
    try:
        return headers.get(name)
    except Exception:
        logger.debug("request headers not readable", exc_info=True)
        return None


def session_token(request: Any, cookie_name: str) -> Optional[str]:
    """Find the caller's session token: cookie first, then bearer header."""
    cookies = getattr(request, "cookies", None)
    if isinstance(cookies, Mapping) and cookies.get(cookie_name):
        return str(cookies[cookie_name])

    raw_cookie = _header(request, "cookie")
    if raw_cookie:
        jar: SimpleCookie = SimpleCookie()
        try:
            jar.load(raw_cookie)
        except CookieError:
            logger.debug("malformed Cookie header ignored")
        else:
            morsel = jar.get(cookie_name)
            if morsel is not None and morsel.value:
                return morsel.value

    auth = _header(request, "authorization")
    if auth and auth.lower().startswith("bearer "):
        token = auth[7:].strip()
        return token or None
    return None


class HTTPRightsOracle:
    """Rights oracle backed by a remote user-state service.

    - Sends ``POST {api_url}/check`` with ``{"right": ..., "token": ...}``.
    - Reads ``{"allowed": bool}`` from the reply.
    - Requests without a session token are answered False without a call.
    - With an ``httpx.AsyncClient`` both methods return awaitables.
    """

    def __init__(
        self,
        config: HTTPOracleConfig,
        *,
        client: "httpx.Client | None" = None,
        async_client: "httpx.AsyncClient | None" = None,
    ) -> None:
        if httpx is None:
            raise RuntimeError(
                "HTTPRightsOracle requires 'httpx' installed. Install with extra: pathgate[http]."
            )
        self.cfg = config
        self._client = client
        self._aclient = async_client

        if self._client is None and self._aclient is None:
            self._client = httpx.Client(timeout=self.cfg.timeout_seconds)

    @property
    def is_async(self) -> bool:
        return self._aclient is not None

    # ------------- helpers -------------

    def _headers(self) -> dict[str, str]:
        h = {"content-type": "application/json"}
        if self.cfg.api_token:
            h["authorization"] = f"Bearer {self.cfg.api_token}"
        return h

    def _url(self) -> str:
        return f"{self.cfg.api_url.rstrip('/')}/check"

    def _check(self, right: str, request: Any):
        token = session_token(request, self.cfg.token_cookie)
        body = {"right": right, "token": token}

        if self._aclient is not None:

            async def _run() -> bool:
                if token is None:
                    return False
                try:
                    resp = await self._aclient.post(self._url(), json=body, headers=self._headers())
                    resp.raise_for_status()
                    data = resp.json()
                except (httpx.HTTPError, ValueError) as e:
                    raise OracleError(f"rights check '{right}' failed: {e}") from e
                return bool(data.get("allowed", False))

            return _run()

        if token is None:
            return False
        assert self._client is not None
        try:
            resp = self._client.post(self._url(), json=body, headers=self._headers())
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise OracleError(f"rights check '{right}' failed: {e}") from e
        return bool(data.get("allowed", False))

    # ------------- RightsOracle -------------

    def has_admin_rights(self, request: Any):
        return self._check("admin", request)

    def has_user_rights(self, request: Any):
        return self._check("user", request)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()


__all__ = ["HTTPOracleConfig", "HTTPRightsOracle", "session_token"]
