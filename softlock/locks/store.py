# softlock/locks/store.py
from __future__ import annotations
from datetime import datetime
from typing import Iterable, List, Optional, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .exceptions import LockStorageError
from .models import ModelLock
from .subjects import SubjectRef


class LockStore(Protocol):
    def find_active(self, ref: SubjectRef, now: datetime) -> Optional[ModelLock]: ...
    def new_record(self, ref: SubjectRef) -> ModelLock: ...
    def save(self, record: ModelLock) -> ModelLock: ...
    def delete(self, record: ModelLock) -> bool: ...
    def find_expired(self, now: datetime) -> List[ModelLock]: ...
    def delete_many(self, records: Iterable[ModelLock]) -> int: ...


class SqlLockStore:
    """Lock records in the ``model_locks`` table, one commit per write."""

    def __init__(self, db: Session):
        self.db = db

    def find_active(self, ref: SubjectRef, now: datetime) -> Optional[ModelLock]:
        return self.db.scalar(
            select(ModelLock)
            .where(
                ModelLock.subject_type == ref.type,
                ModelLock.subject_id == ref.id,
                ModelLock.locked_until > now,
            )
            .order_by(ModelLock.locked_until.desc())
            .limit(1)
        )

    def new_record(self, ref: SubjectRef) -> ModelLock:
        return ModelLock(subject_type=ref.type, subject_id=ref.id)

    def save(self, record: ModelLock) -> ModelLock:
        try:
            self.db.add(record)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise LockStorageError("save", exc) from exc
        self.db.refresh(record)
        return record

    def delete(self, record: ModelLock) -> bool:
        if record.id is None:  # never persisted
            return False
        return self._delete_ids([record.id]) > 0

    def find_expired(self, now: datetime) -> List[ModelLock]:
        return list(
            self.db.scalars(
                select(ModelLock).where(ModelLock.locked_until <= now).order_by(ModelLock.id)
            ).all()
        )

    def delete_many(self, records: Iterable[ModelLock]) -> int:
        ids = [r.id for r in records if r.id is not None]
        if not ids:
            return 0
        return self._delete_ids(ids)

    def delete_subject(self, ref: SubjectRef) -> int:
        """Drop every row for a subject, active or not."""
        ids = self.db.scalars(
            select(ModelLock.id).where(
                ModelLock.subject_type == ref.type, ModelLock.subject_id == ref.id
            )
        ).all()
        return self._delete_ids(list(ids)) if ids else 0

    def _delete_ids(self, ids: List[int]) -> int:
        try:
            result = self.db.execute(
                delete(ModelLock)
                .where(ModelLock.id.in_(ids))
                .execution_options(synchronize_session="fetch")
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise LockStorageError("delete", exc) from exc
        return result.rowcount or 0
