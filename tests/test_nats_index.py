import time

import pytest

from kine.nats_index import KeyValueOp, RevisionIndex, SeqOp


@pytest.fixture
def listed():
    index = RevisionIndex()
    for seq, key in enumerate(["/a/b/c", "/a", "/b", "/a/b", "/c", "/d/a", "/d/b"], start=1):
        index.record(key, seq, KeyValueOp.PUT)
    return index


def keys(matches):
    return [key for key, _ in matches]


def test_list_all(listed):
    matches = listed.list("/", "", 0, 0)
    assert listed.bucket_revision() == 7
    assert len(matches) == 7
    assert keys(matches) == sorted(keys(matches))


def test_list_prefix(listed):
    matches = listed.list("/a", "", 0, 0)
    assert len(matches) == 3
    assert keys(matches) == sorted(keys(matches))


def test_list_start_key(listed):
    matches = listed.list("/", "b", 0, 0)
    assert len(matches) == 4
    assert keys(matches) == sorted(keys(matches))


def test_list_up_to_revision(listed):
    matches = listed.list("/", "", 0, 3)
    assert keys(matches) == ["/a", "/a/b/c", "/b"]


def test_list_limit(listed):
    matches = listed.list("/", "", 4, 0)
    assert keys(matches) == ["/a", "/a/b", "/a/b/c", "/b"]


def test_list_limit_after_start_key(listed):
    matches = listed.list("/", "b", 2, 0)
    assert keys(matches) == ["/b", "/c"]


def test_list_returns_latest_sequences(listed):
    assert dict(listed.list("/", "", 0, 0))["/a/b/c"] == 1
    assert dict(listed.list("/", "", 0, 0))["/d/b"] == 7


def test_seek_past_end_is_empty(listed):
    assert listed.list("/", "zzz", 0, 0) == []
    assert listed.count("/", "zzz", 0) == 0


def test_count_with_expiring_lease():
    index = RevisionIndex()
    index.record("/a", 1)
    index.record("/a/b", 2)
    index.record("/a/b/c", 3)
    index.record("/b", 4, KeyValueOp.PUT, time.time() + 60)
    assert index.bucket_revision() == 4
    assert index.count("/", "", 0) == 4


def test_count_skips_expired_and_recreated():
    index = RevisionIndex()
    index.record("/a", 1)
    index.record("/a/b", 2)
    index.record("/a/b/c", 3)
    index.record("/b", 4, KeyValueOp.PUT, time.time() - 1)
    assert index.count("/", "", 0) == 3
    index.record("/b", 5, KeyValueOp.DELETE)
    index.record("/b", 6, KeyValueOp.PUT)
    assert index.bucket_revision() == 6
    assert index.count("/", "", 0) == 4


def test_deleted_key_visible_at_earlier_revision():
    index = RevisionIndex()
    index.record("/a", 1)
    index.record("/a", 2, KeyValueOp.DELETE)
    assert index.list("/", "", 0, 0) == []
    assert index.list("/", "", 0, 1) == [("/a", 1)]
    assert index.count("/", "", 1) == 1


def test_revision_before_any_update_hides_key():
    index = RevisionIndex()
    index.record("/a", 5)
    assert index.list("/", "", 0, 4) == []


def test_history_drops_oldest():
    index = RevisionIndex(history=2)
    index.record("/a", 1)
    index.record("/a", 2)
    index.record("/a", 3)
    assert index.list("/", "", 0, 1) == []
    assert index.list("/", "", 0, 2) == [("/a", 2)]


def test_invalid_history():
    with pytest.raises(ValueError):
        RevisionIndex(history=0)


def test_op_from_header():
    assert KeyValueOp.from_header("DEL") is KeyValueOp.DELETE
    assert KeyValueOp.from_header("PURGE") is KeyValueOp.PURGE
    assert KeyValueOp.from_header(None) is KeyValueOp.PUT


def test_seq_op_live():
    now = time.time()
    assert SeqOp(1, KeyValueOp.PUT).live(now)
    assert not SeqOp(1, KeyValueOp.PUT, now - 1).live(now)
    assert not SeqOp(1, KeyValueOp.PURGE).live(now)