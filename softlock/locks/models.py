# softlock/locks/models.py
from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, Index, event, func
from ..shared.db import Base
from .subjects import SubjectRef


def generate_token() -> str:
    return uuid.uuid4().hex


class ModelLock(Base):
    __tablename__ = "model_locks"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    subject_type: Mapped[str] = mapped_column(String(64), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(64), nullable=False)
    holder_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    locked_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    token: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        # expired rows may sit next to the active one until flushed, so no unique here
        Index("ix_model_locks_subject", "subject_type", "subject_id"),
    )

    @property
    def subject(self) -> SubjectRef:
        return SubjectRef(self.subject_type, self.subject_id)

    def get_token(self) -> str:
        """Token identifying this lock; generated once, never replaced."""
        if not self.token:
            self.token = generate_token()
        return self.token

    def __repr__(self) -> str:
        return f"ModelLock[{self.subject} | {self.holder_id} | {self.locked_until}]"


@event.listens_for(ModelLock, "before_insert")
@event.listens_for(ModelLock, "before_update")
def _ensure_token(mapper, connection, target: ModelLock) -> None:
    target.get_token()
