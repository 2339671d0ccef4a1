from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Dict, Literal, Optional

Category = Literal["root", "admin", "user", "public", "unmatched"]


@dataclass(frozen=True)
class Decision:
    """Outcome of one gate decision.

    ``category`` names the rule that governed the path; ``prefix`` is the
    matched prefix (None for the root override and for unmatched paths).
    """

    allowed: bool
    category: Category
    prefix: Optional[str] = None
    reason: str = ""

    @property
    def rejected(self) -> bool:
        return not self.allowed


@dataclass
class Response:
    """Framework-neutral response written by deny functions.

    Adapters translate it into their own response type after the deny
    function returns.
    """

    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def error(self, message: str, status: int) -> None:
        """Replace the response with a plain-text error."""
        self.status_code = int(status)
        self.headers["Content-Type"] = "text/plain; charset=utf-8"
        self.headers["X-Content-Type-Options"] = "nosniff"
        self.body = (message + "\n").encode("utf-8")

    @property
    def status_line(self) -> str:
        try:
            phrase = HTTPStatus(self.status_code).phrase
        except ValueError:
            phrase = "Unknown"
        return f"{self.status_code} {phrase}"

    def header_items(self) -> list[tuple[str, str]]:
        return list(self.headers.items())


def permission_denied(response: Response, request: Any) -> None:
    """Default deny function: 403 with a fixed plain-text body."""
    response.error("Permission denied.", 403)


__all__ = ["Category", "Decision", "Response", "permission_denied"]
