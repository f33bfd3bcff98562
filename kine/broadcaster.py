"""Fan-out of a single item stream to many independent subscribers."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Any, Callable, Iterable, Iterator

log = logging.getLogger(__name__)

ConnectFunc = Callable[[], Iterable[Any]]

SUBSCRIPTION_BUFFER = 100


class Subscription:
    """A bounded, iterable feed of items handed out by a :class:`Broadcaster`.

    Iteration yields buffered items and ends once the subscription has been
    closed and its buffer drained.
    """

    def __init__(self, broadcaster: Broadcaster, capacity: int = SUBSCRIPTION_BUFFER) -> None:
        self._broadcaster = broadcaster
        self._capacity = capacity
        self._items: deque[Any] = deque()
        self._cond = threading.Condition()
        self._closed = False

    def _offer(self, item: Any) -> bool:
        """Buffer an item; return False if the subscriber is too slow."""
        with self._cond:
            if self._closed:
                return True
            if len(self._items) >= self._capacity:
                return False
            self._items.append(item)
            self._cond.notify_all()
            return True

    def _finish(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def close(self) -> None:
        """Stop receiving items from the broadcaster."""
        self._broadcaster._unsubscribe(self)

    def __iter__(self) -> Iterator[Any]:
        while True:
            with self._cond:
                while not self._items and not self._closed:
                    self._cond.wait()
                if not self._items:
                    return
                item = self._items.popleft()
            yield item

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class Broadcaster:
    """Reads one source and copies every item to all current subscribers.

    The source is obtained lazily from ``connect`` on the first subscription,
    and again after a previous source has been exhausted. Subscribers whose
    buffer is full are dropped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._running = False
        self._subs: dict[Subscription, None] = {}

    def subscribe(self, connect: ConnectFunc) -> Subscription:
        """Register a new subscriber, starting the source if it is not running."""
        with self._lock:
            if not self._running:
                source = connect()
                thread = threading.Thread(target=self._stream, args=(source,), daemon=True)
                self._running = True
                thread.start()
            sub = Subscription(self)
            self._subs[sub] = None
            return sub

    def _remove(self, sub: Subscription) -> None:
        if sub in self._subs:
            del self._subs[sub]
            sub._finish()

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            self._remove(sub)

    def _stream(self, source: Iterable[Any]) -> None:
        try:
            for item in source:
                with self._lock:
                    for sub in list(self._subs):
                        if not sub._offer(item):
                            # Slow consumer, drop it.
                            self._remove(sub)
        except Exception:
            log.exception("broadcast source failed")
        finally:
            with self._lock:
                for sub in list(self._subs):
                    self._remove(sub)
                self._running = False