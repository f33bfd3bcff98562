"""Backend wrapper that logs every call, warning about slow ones."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

DEFAULT_THRESHOLD = 0.5


class BackendLogger:
    """Delegates to ``backend`` and logs each call with its outcome and duration.

    Calls slower than ``threshold`` seconds are logged as warnings; others at
    debug level.
    """

    def __init__(
        self,
        backend: Any,
        threshold: float = DEFAULT_THRESHOLD,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._backend = backend
        self.threshold = threshold
        self._log = logger or logging.getLogger(__name__)

    def _log_method(self, start: float, fmt: str, *args: Any) -> None:
        duration = time.monotonic() - start
        level = logging.WARNING if duration > self.threshold else logging.DEBUG
        self._log.log(level, fmt + ", duration=%.6fs", *args, duration)

    def start(self) -> None:
        return self._backend.start()

    def get(self, key: str, range_end: str, limit: int, revision: int) -> tuple[int, Any]:
        start = time.monotonic()
        rev, kv, err = 0, None, None
        try:
            rev, kv = self._backend.get(key, range_end, limit, revision)
            return rev, kv
        except Exception as exc:
            err = exc
            raise
        finally:
            size = len(getattr(kv, "value", None) or b"") if kv is not None else 0
            self._log_method(
                start,
                "GET %s, rev=%d => revRet=%d, kv=%s, size=%d, err=%s",
                key, revision, rev, kv is not None, size, err,
            )

    def create(self, key: str, value: Optional[bytes], lease: int) -> int:
        start = time.monotonic()
        rev, err = 0, None
        try:
            rev = self._backend.create(key, value, lease)
            return rev
        except Exception as exc:
            err = exc
            raise
        finally:
            self._log_method(
                start,
                "CREATE %s, size=%d, lease=%d => rev=%d, err=%s",
                key, len(value or b""), lease, rev, err,
            )

    def delete(self, key: str, revision: int) -> tuple[int, Any, bool]:
        start = time.monotonic()
        rev, kv, deleted, err = 0, None, False, None
        try:
            rev, kv, deleted = self._backend.delete(key, revision)
            return rev, kv, deleted
        except Exception as exc:
            err = exc
            raise
        finally:
            self._log_method(
                start,
                "DELETE %s, rev=%d => rev=%d, kv=%s, deleted=%s, err=%s",
                key, revision, rev, kv is not None, deleted, err,
            )

    def list(self, prefix: str, start_key: str, limit: int, revision: int) -> tuple[int, list]:
        start = time.monotonic()
        rev, kvs, err = 0, [], None
        try:
            rev, kvs = self._backend.list(prefix, start_key, limit, revision)
            return rev, kvs
        except Exception as exc:
            err = exc
            raise
        finally:
            self._log_method(
                start,
                "LIST %s, start=%s, limit=%d, rev=%d => rev=%d, kvs=%d, err=%s",
                prefix, start_key, limit, revision, rev, len(kvs or []), err,
            )

    def count(self, prefix: str, start_key: str, revision: int) -> tuple[int, int]:
        start = time.monotonic()
        rev, count, err = 0, 0, None
        try:
            rev, count = self._backend.count(prefix, start_key, revision)
            return rev, count
        except Exception as exc:
            err = exc
            raise
        finally:
            self._log_method(
                start,
                "COUNT %s, start=%s, rev=%d => rev=%d, count=%d, err=%s",
                prefix, start_key, revision, rev, count, err,
            )

    def update(
        self, key: str, value: Optional[bytes], revision: int, lease: int
    ) -> tuple[int, Any, bool]:
        start = time.monotonic()
        rev, kv, updated, err = 0, None, False, None
        try:
            rev, kv, updated = self._backend.update(key, value, revision, lease)
            return rev, kv, updated
        except Exception as exc:
            err = exc
            raise
        finally:
            kv_rev = getattr(kv, "mod_revision", 0) if kv is not None else 0
            self._log_method(
                start,
                "UPDATE %s, value=%d, rev=%d, lease=%s => rev=%d, kvrev=%d, updated=%s, err=%s",
                key, len(value or b""), revision, lease, rev, kv_rev, updated, err,
            )

    def watch(self, prefix: str, revision: int) -> Any:
        return self._backend.watch(prefix, revision)

    def db_size(self) -> int:
        return self._backend.db_size()

    def current_revision(self) -> int:
        return self._backend.current_revision()

    def compact(self, revision: int) -> int:
        """History is managed by the bucket itself; nothing to compact."""
        return revision