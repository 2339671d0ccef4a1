from __future__ import annotations

import hashlib
import logging
import os
import random
import tempfile
import threading
import time
from typing import Any, Dict, Optional, Tuple

from ..core.engine import Gate
from ..core.errors import RuleSetError, RuleSourceError
from ..core.ports import RuleSource
from ..core.rules import PathRuleSet
from .loader import parse_rules_text

logger = logging.getLogger("pathgate.storage")


def atomic_write(path: str, data: str, *, encoding: str = "utf-8") -> None:
    """Write data atomically to *path*.

    Uses a temporary file in the same directory followed by os.replace().
    """
    directory = os.path.dirname(path) or "."
    fd, tmp = tempfile.mkstemp(prefix=".pathgate.tmp.", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            f.write(data)
        os.replace(tmp, path)
    finally:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass


class FileRuleSource:
    """
    Rule source backed by a local JSON or YAML file.

    ETag semantics:
      - By default, ETag = SHA-256 of file content.
      - If include_mtime_in_etag=True, the ETag also includes mtime (ns),
        so a simple "touch" will trigger a reload.

    The last SHA is cached by (size, mtime_ns) to avoid rehashing.
    """

    def __init__(
        self,
        path: str,
        *,
        include_mtime_in_etag: bool = False,
        chunk_size: int = 512 * 1024,
    ) -> None:
        self.path = path
        self.include_mtime_in_etag = include_mtime_in_etag
        self._chunk_size = int(chunk_size)

        self._cached_stat_sig: Optional[Tuple[int, int]] = None  # (size, mtime_ns)
        self._cached_sha: Optional[str] = None

    # --- helpers -------------------------------------------------------------

    def _stat_sig(self) -> Tuple[int, int]:
        st = os.stat(self.path)
        return (st.st_size, st.st_mtime_ns)

    def _hash_file(self) -> str:
        h = hashlib.sha256()
        with open(self.path, "rb") as f:
            for chunk in iter(lambda: f.read(self._chunk_size), b""):
                h.update(chunk)
        return h.hexdigest()

    def _ensure_content_sha(self) -> Tuple[Optional[str], Optional[Tuple[int, int]]]:
        try:
            sig = self._stat_sig()
        except FileNotFoundError:
            self._cached_stat_sig = None
            self._cached_sha = None
            return None, None

        if self._cached_stat_sig != sig or self._cached_sha is None:
            sha = self._hash_file()
            self._cached_stat_sig = sig
            self._cached_sha = sha
        else:
            sha = self._cached_sha
        return sha, sig

    # --- RuleSource interface -----------------------------------------------

    def etag(self) -> Optional[str]:
        sha, sig = self._ensure_content_sha()
        if sha is None:
            return None
        if self.include_mtime_in_etag and sig is not None:
            return f"{sha}:{sig[1]}"
        return sha

    def load(self) -> Dict[str, Any]:
        with open(self.path, "r", encoding="utf-8") as f:
            text = f.read()
        return parse_rules_text(text, filename=self.path)


def load_rules(path: str) -> PathRuleSet:
    """Read a rule file and build a :class:`PathRuleSet` from it."""
    return PathRuleSet.from_mapping(FileRuleSource(path).load())


class HotReloader:
    """
    Keeps a gate's rules in sync with a rule source.

      - ETag-first: only load/apply when source.etag() changes.
      - Errors are logged and suppressed with exponential backoff + jitter;
        the gate keeps its last good rules.
      - Optional background polling thread with start()/stop().

    Gate.set_rules() is called only after a document loaded and validated.
    """

    def __init__(
        self,
        gate: Gate,
        source: RuleSource,
        *,
        poll_interval: float | None = 60.0,
        backoff_min: float = 2.0,
        backoff_max: float = 30.0,
        jitter_ratio: float = 0.15,
        thread_daemon: bool = True,
    ) -> None:
        self.gate = gate
        self.source = source
        self.poll_interval = poll_interval
        self.backoff_min = float(backoff_min)
        self.backoff_max = float(backoff_max)
        self.jitter_ratio = float(jitter_ratio)
        self.thread_daemon = bool(thread_daemon)

        # None so the first check always loads
        self._last_etag: Optional[str] = None
        self._suppress_until: float = 0.0
        self._backoff: float = self.backoff_min
        self._last_reload_at: float | None = None
        self._last_error: Exception | None = None

        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # --------------------------------------------------------------------- #
    # Public API
    # --------------------------------------------------------------------- #

    def check_and_reload(self, *, force: bool = False) -> bool:
        """
        Perform a single reload check.

        Returns:
            True if new rules were loaded and applied; otherwise False.
        """
        now = time.time()
        with self._lock:
            if not force and now < self._suppress_until:
                return False

            try:
                etag = self.source.etag()
                if not force and etag is not None and etag == self._last_etag:
                    return False

                rules = PathRuleSet.from_mapping(self.source.load())
                self.gate.set_rules(rules)

                self._last_etag = etag
                self._last_reload_at = now
                self._last_error = None
                self._backoff = self.backoff_min
                logger.info("pathgate: rules reloaded from %s", self._src_name())
                return True

            except (RuleSourceError, RuleSetError) as e:
                self._register_error(now, e, level="error", msg="pathgate: invalid rule document")
            except FileNotFoundError as e:
                self._register_error(now, e, level="warning", msg="pathgate: rules not found: %s")
            except Exception as e:  # pragma: no cover
                self._register_error(now, e, level="error", msg="pathgate: rule reload error")

            return False

    def start(self, interval: float | None = None) -> None:
        """Start the background polling thread."""
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            poll_iv = float(interval if interval is not None else (self.poll_interval or 60.0))
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run_loop, args=(poll_iv,), daemon=self.thread_daemon
            )
            self._thread.start()

    def stop(self, timeout: float | None = 1.0) -> None:
        """Signal the polling thread to stop and optionally wait for it."""
        with self._lock:
            if not self._thread:
                return
            self._stop_event.set()
            self._thread.join(timeout=timeout)
            if not self._thread.is_alive():
                self._thread = None

    # --------------------------------------------------------------------- #
    # Diagnostics
    # --------------------------------------------------------------------- #

    @property
    def last_etag(self) -> Optional[str]:
        with self._lock:
            return self._last_etag

    @property
    def last_reload_at(self) -> float | None:
        with self._lock:
            return self._last_reload_at

    @property
    def last_error(self) -> Exception | None:
        with self._lock:
            return self._last_error

    @property
    def suppressed_until(self) -> float:
        with self._lock:
            return self._suppress_until

    # --------------------------------------------------------------------- #
    # Internals
    # --------------------------------------------------------------------- #

    def _src_name(self) -> str:
        path = getattr(self.source, "path", None)
        return path if isinstance(path, str) else self.source.__class__.__name__

    def _register_error(self, now: float, err: Exception, *, level: str, msg: str) -> None:
        self._last_error = err

        log_args: tuple[object, ...] = ()
        if "%s" in msg:
            log_args = (self._src_name(),)

        if level == "warning":
            logger.warning(msg, *log_args)
        else:
            logger.error(msg + ": %s", *log_args, err)

        self._backoff = min(self.backoff_max, max(self.backoff_min, self._backoff * 2.0))
        jitter = self._backoff * self.jitter_ratio * random.uniform(-1.0, 1.0)
        self._suppress_until = now + max(0.2, self._backoff + jitter)

    def _run_loop(self, base_interval: float) -> None:
        while not self._stop_event.is_set():
            try:
                self.check_and_reload()
            except Exception as e:  # pragma: no cover
                logger.exception("pathgate: reloader loop error", exc_info=e)

            now = time.time()
            sleep_for = base_interval

            with self._lock:
                if now < self._suppress_until:
                    sleep_for = min(sleep_for, max(0.2, self._suppress_until - now))

            jitter = base_interval * self.jitter_ratio * random.uniform(-1.0, 1.0)
            sleep_for = max(0.2, sleep_for + jitter)

            # short waits so stop() is prompt
            end = time.time() + sleep_for
            while not self._stop_event.is_set():
                remaining = end - time.time()
                if remaining <= 0:
                    break
                self._stop_event.wait(timeout=min(0.5, remaining))


__all__ = ["atomic_write", "FileRuleSource", "HotReloader", "load_rules", "parse_rules_text"]
