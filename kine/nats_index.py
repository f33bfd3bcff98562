"""In-memory ordered index of key revisions seen on a NATS KV bucket."""

from __future__ import annotations

import enum
import itertools
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Iterator, Optional

from sortedcontainers import SortedDict

DEFAULT_HISTORY = 10


class KeyValueOp(enum.Enum):
    """Kind of update recorded for a key."""

    PUT = "PUT"
    DELETE = "DEL"
    PURGE = "PURGE"

    @classmethod
    def from_header(cls, value: Optional[str]) -> KeyValueOp:
        """Map a ``KV-Operation`` header value to an operation; default is PUT."""
        if value == "DEL":
            return cls.DELETE
        if value == "PURGE":
            return cls.PURGE
        return cls.PUT


@dataclass(frozen=True)
class SeqOp:
    """One update of a key: its stream sequence, operation and expiry time."""

    seq: int
    op: KeyValueOp
    expires: Optional[float] = None

    def live(self, now: float) -> bool:
        """True if this update leaves the key present and unexpired at ``now``."""
        return self.op is KeyValueOp.PUT and (self.expires is None or self.expires > now)


def _visible(ops: deque, revision: int) -> Optional[SeqOp]:
    if revision <= 0:
        return ops[-1]
    for op in reversed(ops):
        if op.seq <= revision:
            return op
    return None


class RevisionIndex:
    """Sorted map from key to its most recent updates, bounded by ``history``."""

    def __init__(self, history: int = DEFAULT_HISTORY) -> None:
        if history < 1:
            raise ValueError("history must be at least 1")
        self._history = history
        self._tree: SortedDict = SortedDict()
        self._lock = threading.RLock()
        self._last_seq = 0

    def record(
        self,
        key: str,
        seq: int,
        op: KeyValueOp = KeyValueOp.PUT,
        expires: Optional[float] = None,
    ) -> None:
        """Note an update of ``key`` at stream sequence ``seq``.

        ``expires`` is an absolute ``time.time()`` value after which a PUT
        no longer counts, or None for no lease. The oldest update of a key is
        dropped once its history is full.
        """
        with self._lock:
            self._last_seq = seq
            ops = self._tree.get(key)
            if ops is None:
                ops = deque(maxlen=self._history)
                self._tree[key] = ops
            ops.append(SeqOp(seq, op, expires))

    def bucket_revision(self) -> int:
        """Return the latest sequence recorded."""
        with self._lock:
            return self._last_seq

    def _matches(self, prefix: str, start_key: str, revision: int) -> Iterator[tuple[str, int]]:
        seek = prefix
        if start_key:
            seek = f"{prefix.removesuffix('/')}/{start_key}"
        now = time.time()
        keys = self._tree.irange(minimum=seek) if seek else iter(self._tree.keys())
        for key in keys:
            if not key.startswith(prefix):
                break
            op = _visible(self._tree[key], revision)
            if op is not None and op.live(now):
                yield key, op.seq

    def count(self, prefix: str, start_key: str = "", revision: int = 0) -> int:
        """Count live keys under ``prefix`` from ``start_key``, as of ``revision``.

        A revision of zero or less means the latest state.
        """
        with self._lock:
            return sum(1 for _ in self._matches(prefix, start_key, revision))

    def list(
        self, prefix: str, start_key: str = "", limit: int = 0, revision: int = 0
    ) -> list[tuple[str, int]]:
        """Return ``(key, seq)`` pairs of live keys in key order.

        ``limit`` of zero or less means no limit; ``revision`` of zero or less
        means the latest state.
        """
        with self._lock:
            matches = self._matches(prefix, start_key, revision)
            if limit > 0:
                matches = itertools.islice(matches, limit)
            return list(matches)