from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .errors import RuleSetError

DEFAULT_ADMIN_PREFIXES: Tuple[str, ...] = ("/admin",)
DEFAULT_USER_PREFIXES: Tuple[str, ...] = ("/repo", "/data")
# "/" itself is served by the root override; a "/" prefix here would make
# every unknown path public.
DEFAULT_PUBLIC_PREFIXES: Tuple[str, ...] = (
    "/login",
    "/register",
    "/favicon.ico",
    "/style",
    "/img",
    "/js",
    "/robots.txt",
    "/sitemap_index.xml",
)


@dataclass(frozen=True)
class RuleSnapshot:
    """Immutable view of a :class:`PathRuleSet` taken for one decision."""

    admin_prefixes: Tuple[str, ...]
    user_prefixes: Tuple[str, ...]
    public_prefixes: Tuple[str, ...]
    root_is_public: bool


def _as_prefixes(value: Any, key: str) -> Tuple[str, ...]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise RuleSetError(f"'{key}' must be a list of strings, got {type(value).__name__}")
    out = tuple(value)
    for item in out:
        if not isinstance(item, str):
            raise RuleSetError(f"'{key}' entries must be strings, got {type(item).__name__}")
    return out


class PathRuleSet:
    """Three ordered path-prefix lists plus the root override.

    Writers replace whole tuples under a lock, so a reader holding a
    :class:`RuleSnapshot` never sees a half-applied change.
    """

    def __init__(
        self,
        admin: Iterable[str] = (),
        user: Iterable[str] = (),
        public: Iterable[str] = (),
        *,
        root_is_public: bool = True,
    ) -> None:
        self._lock = threading.RLock()
        self._admin: Tuple[str, ...] = _as_prefixes(admin, "admin")
        self._user: Tuple[str, ...] = _as_prefixes(user, "user")
        self._public: Tuple[str, ...] = _as_prefixes(public, "public")
        self._root_is_public = bool(root_is_public)

    @classmethod
    def default(cls) -> "PathRuleSet":
        """Built-in policy: ``/admin`` for admins, ``/repo`` and ``/data`` for
        users, login/registration and static assets public, root public."""
        return cls(
            DEFAULT_ADMIN_PREFIXES,
            DEFAULT_USER_PREFIXES,
            DEFAULT_PUBLIC_PREFIXES,
            root_is_public=True,
        )

    @classmethod
    def from_mapping(cls, doc: Mapping[str, Any]) -> "PathRuleSet":
        if not isinstance(doc, Mapping):
            raise RuleSetError(f"rule document must be a mapping, got {type(doc).__name__}")
        root = doc.get("root_is_public", True)
        if not isinstance(root, bool):
            raise RuleSetError("'root_is_public' must be a boolean")
        return cls(
            doc.get("admin", ()),
            doc.get("user", ()),
            doc.get("public", ()),
            root_is_public=root,
        )

    def to_dict(self) -> Dict[str, Any]:
        snap = self.snapshot()
        return {
            "admin": list(snap.admin_prefixes),
            "user": list(snap.user_prefixes),
            "public": list(snap.public_prefixes),
            "root_is_public": snap.root_is_public,
        }

    def snapshot(self) -> RuleSnapshot:
        with self._lock:
            return RuleSnapshot(self._admin, self._user, self._public, self._root_is_public)

    # --- read accessors ------------------------------------------------------

    @property
    def admin_prefixes(self) -> Tuple[str, ...]:
        return self._admin

    @property
    def user_prefixes(self) -> Tuple[str, ...]:
        return self._user

    @property
    def public_prefixes(self) -> Tuple[str, ...]:
        return self._public

    @property
    def root_is_public(self) -> bool:
        return self._root_is_public

    @root_is_public.setter
    def root_is_public(self, value: bool) -> None:
        with self._lock:
            self._root_is_public = bool(value)

    # --- mutators ------------------------------------------------------------

    def add_admin_prefix(self, prefix: str) -> None:
        with self._lock:
            self._admin = self._admin + (prefix,)

    def add_user_prefix(self, prefix: str) -> None:
        with self._lock:
            self._user = self._user + (prefix,)

    def add_public_prefix(self, prefix: str) -> None:
        with self._lock:
            self._public = self._public + (prefix,)

    def set_admin_prefixes(self, prefixes: Iterable[str]) -> None:
        new = _as_prefixes(prefixes, "admin")
        with self._lock:
            self._admin = new

    def set_user_prefixes(self, prefixes: Iterable[str]) -> None:
        new = _as_prefixes(prefixes, "user")
        with self._lock:
            self._user = new

    def set_public_prefixes(self, prefixes: Iterable[str]) -> None:
        new = _as_prefixes(prefixes, "public")
        with self._lock:
            self._public = new

    def clear(self) -> None:
        """Drop all admin and user prefixes.

        Public prefixes and the root override are kept, so afterwards only
        the public check governs.
        """
        with self._lock:
            self._admin = ()
            self._user = ()

    def copy(self) -> "PathRuleSet":
        snap = self.snapshot()
        return PathRuleSet(
            snap.admin_prefixes,
            snap.user_prefixes,
            snap.public_prefixes,
            root_is_public=snap.root_is_public,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PathRuleSet):
            return NotImplemented
        return self.snapshot() == other.snapshot()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        snap = self.snapshot()
        return (
            f"PathRuleSet(admin={list(snap.admin_prefixes)!r}, user={list(snap.user_prefixes)!r}, "
            f"public={list(snap.public_prefixes)!r}, root_is_public={snap.root_is_public!r})"
        )


def first_match(path: str, prefixes: Tuple[str, ...]) -> Optional[str]:
    """Return the first prefix in list order that *path* starts with."""
    for prefix in prefixes:
        if path.startswith(prefix):
            return prefix
    return None


__all__ = [
    "DEFAULT_ADMIN_PREFIXES",
    "DEFAULT_USER_PREFIXES",
    "DEFAULT_PUBLIC_PREFIXES",
    "RuleSnapshot",
    "PathRuleSet",
    "first_match",
]
