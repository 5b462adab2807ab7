import datetime as dt
from unittest.mock import Mock

import pytest
from sqlalchemy import func, select

from softlock.locks.engine import DEFAULT_DURATION, LockEngine, LockingOptions
from softlock.locks.events import UnlockRequested
from softlock.locks.exceptions import InvalidDuration, LockStorageError
from softlock.locks.models import ModelLock
from softlock.locks.subjects import SubjectRef

from conftest import NOW, Someone

REF = SubjectRef.of("post", 1)


def _count(db):
    return db.scalar(select(func.count()).select_from(ModelLock))


class TestResolveDuration:
    def test_hard_default_is_five_minutes(self, engine):
        assert DEFAULT_DURATION == "5 minutes"
        assert engine.resolve_duration() == NOW + dt.timedelta(minutes=5)

    def test_config_default(self, engine, options):
        options.default_duration = "10 minutes"
        assert engine.resolve_duration() == NOW + dt.timedelta(minutes=10)

    def test_subject_default_beats_config(self, engine, options):
        options.default_duration = "10 minutes"
        assert engine.resolve_duration(None, "3 minutes") == NOW + dt.timedelta(minutes=3)

    def test_explicit_beats_everything(self, engine, options):
        options.default_duration = "10 minutes"
        assert engine.resolve_duration("2 minutes", "3 minutes") == NOW + dt.timedelta(minutes=2)

    def test_zero_and_empty_fall_through(self, engine, options):
        options.default_duration = "10 minutes"
        assert engine.resolve_duration(0, "") == NOW + dt.timedelta(minutes=10)
        assert engine.resolve_duration(dt.timedelta(0)) == NOW + dt.timedelta(minutes=10)

    def test_negative_is_honoured(self, engine, options):
        options.default_duration = "10 minutes"
        assert engine.resolve_duration("-1 minute") == NOW - dt.timedelta(minutes=1)

    def test_invalid_is_raised_not_defaulted(self, engine):
        with pytest.raises(InvalidDuration):
            engine.resolve_duration("soonish")

    def test_subject_durations_from_config(self, engine, options, post):
        options.subject_durations = {"post": "7 minutes"}
        assert engine.subject_default(post) == "7 minutes"
        post.lock_duration = "3 minutes"
        assert engine.subject_default(post) == "3 minutes"
        assert engine.subject_default(SubjectRef.of("comment", 1)) is None


class TestResolveHolder:
    def test_principal_object(self, engine):
        assert engine.resolve_holder(Someone(99)) == "99"

    def test_raw_identifier(self, engine):
        assert engine.resolve_holder(11) == "11"
        assert engine.resolve_holder("session-abc") == "session-abc"

    def test_current_principal(self, engine):
        assert engine.resolve_holder() == "7"

    def test_current_principal_disabled(self, engine, options):
        options.use_current_principal = False
        assert engine.resolve_holder() is None

    def test_no_authenticated_principal(self, db, clock):
        engine = LockEngine(Mock(), LockingOptions(), principal=lambda: None, clock=clock)
        assert engine.resolve_holder() is None

    def test_no_principal_lookup(self, clock):
        assert LockEngine(Mock(), clock=clock).resolve_holder() is None


class TestAcquire:
    def test_creates_record_with_token(self, engine, db):
        record = engine.acquire(REF)
        assert record.id is not None
        assert record.token
        assert record.holder_id == "7"
        assert record.subject == REF
        assert _count(db) == 1

    def test_relock_reuses_active_record(self, engine, db):
        first = engine.acquire(REF, "1 minute")
        token, record_id = first.token, first.id
        second = engine.acquire(REF, "9 minutes", 42)
        assert second.id == record_id
        assert second.token == token
        assert second.holder_id == "42"
        assert engine.is_active(second)
        assert _count(db) == 1

    def test_principal_as_first_argument(self, engine):
        record = engine.acquire(REF, Someone(99))
        assert record.holder_id == "99"
        assert engine.now() + dt.timedelta(minutes=5) == record.locked_until.replace(tzinfo=dt.timezone.utc)

    def test_expired_record_is_not_reused(self, engine, db, clock):
        old = engine.acquire(REF, "1 minute")
        old_id = old.id
        clock.advance(minutes=2)
        new = engine.acquire(REF)
        assert new.id != old_id
        assert _count(db) == 2

    def test_invalid_duration_persists_nothing(self, engine, db):
        with pytest.raises(InvalidDuration):
            engine.acquire(REF, "whenever")
        assert _count(db) == 0

    def test_storage_failure_propagates(self, clock):
        store = Mock()
        store.find_active.return_value = None
        store.new_record.return_value = ModelLock(subject_type="post", subject_id="1")
        store.save.side_effect = LockStorageError("save", RuntimeError("disk full"))
        engine = LockEngine(store, clock=clock)
        with pytest.raises(LockStorageError) as exc:
            engine.acquire(REF)
        assert "disk full" in str(exc.value)


class TestVerifyAndActive:
    def test_missing_record(self, engine):
        assert engine.is_active(None) is False
        assert engine.verify(None, None) is True
        assert engine.verify(None, "anything") is True

    def test_active_record(self, engine):
        record = engine.acquire(REF)
        assert engine.is_active(record)
        assert engine.verify(record, record.token)
        assert not engine.verify(record, "invalid_token")
        assert not engine.verify(record, None)

    def test_expiry_is_strict(self, engine, clock):
        record = engine.acquire(REF, "1 minute")
        clock.advance(minutes=1)
        assert not engine.is_active(record)
        assert engine.verify(record, None)


class TestRelease:
    def test_release_deletes_row(self, engine, db):
        record = engine.acquire(REF)
        assert engine.release(record) is True
        assert _count(db) == 0
        assert engine.find_active(REF) is None

    def test_release_missing(self, engine):
        assert engine.release(None) is False

    def test_release_does_not_notify(self, engine, received):
        engine.release(engine.acquire(REF))
        assert received == []


class TestRequestRelease:
    def test_inactive_is_noop(self, engine, received):
        assert engine.request_release(None, "bob", "please") is None
        record = engine.acquire(REF, "-1 minute")
        assert engine.request_release(record, "bob", "please") is None
        assert received == []

    def test_notifies_without_shortening(self, engine, received):
        record = engine.acquire(REF, "2 minutes")
        result = engine.request_release(record, "bob", "please")
        assert received == [UnlockRequested(REF, "bob", "please")]
        assert result.locked_until.replace(tzinfo=dt.timezone.utc) == NOW + dt.timedelta(minutes=2)

    def test_shortens_and_keeps_holder(self, engine, options, received):
        options.shorten_duration = "66 seconds"
        record = engine.acquire(REF, "10 minutes", "alice")
        result = engine.request_release(record, Someone("bob"), "need it")
        assert received == [UnlockRequested(REF, "bob", "need it")]
        assert result.holder_id == "alice"
        assert result.locked_until.replace(tzinfo=dt.timezone.utc) == NOW + dt.timedelta(seconds=66)

    def test_shorten_disabled_per_call(self, engine, options):
        options.shorten_duration = "66 seconds"
        record = engine.acquire(REF, "10 minutes")
        result = engine.request_release(record, shorten=False)
        assert result.locked_until.replace(tzinfo=dt.timezone.utc) == NOW + dt.timedelta(minutes=10)

    def test_record_vanished_meanwhile(self, engine, db, received):
        record = engine.acquire(REF)
        other = engine.find_active(REF)
        engine.store.delete(other)
        assert engine.request_release(record, "bob") is None
        assert received == []


def test_notify_without_dispatcher(db, clock):
    engine = LockEngine(Mock(), clock=clock)
    engine.notify(UnlockRequested(REF))  # no dispatcher, no error


def test_options_from_settings():
    from softlock.shared.config import Settings

    s = Settings(
        LOCK_DURATION="10 minutes",
        LOCK_USE_AUTHENTICATED_USER=False,
        LOCK_REQUEST_SHORTEN_DURATION="66 seconds",
        LOCK_CHANNELS_REQUEST="locks, admin",
        LOCK_SUBJECT_DURATIONS={"post": "3 minutes"},
    )
    options = LockingOptions.from_settings(s)
    assert options.default_duration == "10 minutes"
    assert options.use_current_principal is False
    assert options.shorten_duration == "66 seconds"
    assert options.notification_channels["request"] == ["locks", "admin"]
    assert options.notification_channels["locked"] == []
    assert options.subject_durations == {"post": "3 minutes"}
