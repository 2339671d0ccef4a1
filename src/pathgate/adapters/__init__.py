from __future__ import annotations

__all__ = ["wsgi", "asgi", "starlette", "litestar"]
