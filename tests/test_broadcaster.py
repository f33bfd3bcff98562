import queue

import pytest

from kine.broadcaster import Broadcaster

_END = object()


class Feed:
    def __init__(self):
        self.q = queue.Queue()

    def push(self, *items):
        for item in items:
            self.q.put(item)

    def end(self):
        self.q.put(_END)

    def __iter__(self):
        while True:
            item = self.q.get()
            if item is _END:
                return
            yield item


def test_all_subscribers_receive_every_item():
    feed = Feed()
    calls = []

    def connect():
        calls.append(1)
        return feed

    b = Broadcaster()
    first = b.subscribe(connect)
    second = b.subscribe(connect)
    feed.push("x", "y", "z")
    feed.end()
    assert list(first) == ["x", "y", "z"]
    assert list(second) == ["x", "y", "z"]
    assert len(calls) == 1


def test_closed_subscription_stops_receiving():
    feed = Feed()
    b = Broadcaster()
    closed = b.subscribe(lambda: feed)
    open_sub = b.subscribe(lambda: feed)
    closed.close()
    feed.push(1, 2)
    feed.end()
    assert list(closed) == []
    assert list(open_sub) == [1, 2]


def test_slow_consumer_is_dropped_after_buffer_fills():
    b = Broadcaster()
    sub = b.subscribe(lambda: iter(range(150)))
    assert list(sub) == list(range(100))


def test_connect_error_propagates_and_allows_retry():
    b = Broadcaster()

    def failing():
        raise OSError("no source")

    with pytest.raises(OSError):
        b.subscribe(failing)

    sub = b.subscribe(lambda: iter(["ok"]))
    assert list(sub) == ["ok"]


def test_reconnects_after_source_is_exhausted():
    b = Broadcaster()
    calls = []

    def connect_first():
        calls.append("first")
        return iter([1])

    def connect_second():
        calls.append("second")
        return iter([2])

    assert list(b.subscribe(connect_first)) == [1]
    assert list(b.subscribe(connect_second)) == [2]
    assert calls == ["first", "second"]


def test_context_manager_closes_subscription():
    feed = Feed()
    b = Broadcaster()
    other = b.subscribe(lambda: feed)
    with b.subscribe(lambda: feed) as sub:
        pass
    feed.push("a")
    feed.end()
    assert list(sub) == []
    assert list(other) == ["a"]