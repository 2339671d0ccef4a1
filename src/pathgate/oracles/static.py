from __future__ import annotations

from typing import Any, Callable, Optional


class StaticRightsOracle:
    """Oracle with fixed answers. Grants nothing by default."""

    def __init__(self, *, admin: bool = False, user: bool = False) -> None:
        self.admin = admin
        self.user = user

    def has_admin_rights(self, request: Any) -> bool:
        return self.admin

    def has_user_rights(self, request: Any) -> bool:
        return self.user


class CallableRightsOracle:
    """Adapt two plain callables to the oracle interface.

    A missing callable answers False.
    """

    def __init__(
        self,
        *,
        admin: Optional[Callable[[Any], Any]] = None,
        user: Optional[Callable[[Any], Any]] = None,
    ) -> None:
        self._admin = admin
        self._user = user

    def has_admin_rights(self, request: Any) -> Any:
        if self._admin is None:
            return False
        return self._admin(request)

    def has_user_rights(self, request: Any) -> Any:
        if self._user is None:
            return False
        return self._user(request)
