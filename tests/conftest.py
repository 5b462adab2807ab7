"""Shared pytest fixtures for softlock tests."""

import datetime as dt

import pytest
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from softlock.shared.db import Base, create_all, make_engine, make_session_factory
from softlock.locks.engine import LockEngine, LockingOptions
from softlock.locks.events import EventDispatcher, LockEvent
from softlock.locks.store import SqlLockStore
from softlock.locks.subjects import SubjectRef

NOW = dt.datetime(2026, 10, 17, 12, 0, 0, tzinfo=dt.timezone.utc)


class Post(Base):
    """Lockable test entity."""

    __tablename__ = "posts"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), default="")

    def lock_ref(self) -> SubjectRef:
        return SubjectRef.of("post", self.id)


class Someone:
    """Minimal principal."""

    def __init__(self, ident):
        self.ident = ident

    def get_auth_identifier(self):
        return self.ident


class Clock:
    def __init__(self, now: dt.datetime):
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + dt.timedelta(**kwargs)


@pytest.fixture
def clock():
    return Clock(NOW)


@pytest.fixture
def db_engine():
    bind = make_engine("sqlite://")
    create_all(bind)
    yield bind
    bind.dispose()


@pytest.fixture
def db(db_engine):
    session = make_session_factory(db_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def options():
    return LockingOptions()


@pytest.fixture
def dispatcher():
    return EventDispatcher()


@pytest.fixture
def received(dispatcher):
    events = []
    dispatcher.listen(LockEvent, events.append)
    return events


@pytest.fixture
def current_user():
    return Someone(7)


@pytest.fixture
def engine(db, options, dispatcher, clock, current_user):
    return LockEngine(
        SqlLockStore(db),
        options,
        principal=current_user.get_auth_identifier,
        dispatcher=dispatcher,
        clock=clock,
    )


@pytest.fixture
def post(db):
    p = Post(id=1, title="hello")
    db.add(p)
    db.commit()
    return p
