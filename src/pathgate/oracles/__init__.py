from __future__ import annotations

from .static import CallableRightsOracle, StaticRightsOracle

__all__ = ["StaticRightsOracle", "CallableRightsOracle", "HTTPRightsOracle", "HTTPOracleConfig"]


def __getattr__(name: str):
    # httpx is optional; import the HTTP oracle lazily
    if name in ("HTTPRightsOracle", "HTTPOracleConfig"):
        from . import http

        return getattr(http, name)
    raise AttributeError(name)
