from __future__ import annotations
from pathlib import Path
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy import create_engine, Engine
from sqlalchemy.pool import StaticPool
from .config import settings


class Base(DeclarativeBase):
    pass


def make_engine(url: str) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    kwargs = {}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every checkout sees an empty db
        kwargs["poolclass"] = StaticPool
    elif url.startswith("sqlite:///"):
        Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, echo=False, future=True, connect_args=connect_args, **kwargs)


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, future=True)


def create_all(bind: Engine) -> None:
    """Create tables for every mapped model (dev / tests; prod uses alembic)."""
    from ..auth import models as _auth_models  # noqa: F401
    from ..locks import models as _lock_models  # noqa: F401

    Base.metadata.create_all(bind)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = make_session_factory(engine)
