import datetime as dt

import pytest

from softlock.locks.exceptions import LockStorageError
from softlock.locks.models import ModelLock
from softlock.locks.store import SqlLockStore
from softlock.locks.subjects import SubjectRef

from conftest import NOW

REF = SubjectRef.of("post", 1)


@pytest.fixture
def store(db):
    return SqlLockStore(db)


def test_token_generated_on_insert(store):
    record = store.new_record(REF)
    record.locked_until = NOW + dt.timedelta(minutes=1)
    assert record.token is None
    store.save(record)
    assert record.token


def test_token_is_stable_across_save(store):
    record = store.new_record(REF)
    record.locked_until = NOW + dt.timedelta(minutes=1)
    token = record.get_token()
    assert record.get_token() == token
    store.save(record)
    assert record.get_token() == token
    record.locked_until = NOW + dt.timedelta(minutes=5)
    store.save(record)
    assert record.token == token


def test_find_active_and_expired(store):
    for minutes in (-2, -1, 3):
        record = store.new_record(REF)
        record.locked_until = NOW + dt.timedelta(minutes=minutes)
        store.save(record)

    active = store.find_active(REF, NOW)
    assert active.locked_until.replace(tzinfo=dt.timezone.utc) == NOW + dt.timedelta(minutes=3)
    assert store.find_active(SubjectRef.of("post", 2), NOW) is None
    assert len(store.find_expired(NOW)) == 2
    # boundary: expiry instant counts as expired
    assert len(store.find_expired(NOW + dt.timedelta(minutes=3))) == 3


def test_delete(store):
    record = store.new_record(REF)
    record.locked_until = NOW
    assert store.delete(record) is False  # never saved
    store.save(record)
    assert store.delete(record) is True


def test_delete_many_and_subject(store):
    for subject_id in ("1", "1", "2"):
        record = store.new_record(SubjectRef("post", subject_id))
        record.locked_until = NOW
        store.save(record)

    assert store.delete_many([]) == 0
    assert store.delete_subject(REF) == 2
    remaining = store.find_expired(NOW)
    assert [r.subject_id for r in remaining] == ["2"]
    assert store.delete_many(remaining) == 1


def test_save_failure_is_wrapped_and_rolled_back(store, db):
    broken = ModelLock(subject_type=None, subject_id="1", locked_until=NOW)
    with pytest.raises(LockStorageError) as exc:
        store.save(broken)
    assert exc.value.operation == "save"
    assert exc.value.original_error is not None
    # session still usable
    assert store.find_active(REF, NOW) is None
