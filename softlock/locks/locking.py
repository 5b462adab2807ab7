# softlock/locks/locking.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from .durations import DurationInput, as_utc
from .engine import HolderInput, LockEngine
from .events import SubjectLocked, SubjectUnlocked
from .models import ModelLock
from .subjects import Lockable, SubjectRef, as_ref

_UNLOADED = object()


class Locking:
    def __init__(self, subject: "Lockable | SubjectRef", engine: LockEngine):
        self.subject = subject
        self.ref = as_ref(subject)
        self.engine = engine
        self._record = _UNLOADED

    @property
    def record(self) -> Optional[ModelLock]:
        if self._record is _UNLOADED:
            self._record = self.engine.find_active(self.ref)
        return self._record

    @record.setter
    def record(self, value: Optional[ModelLock]) -> None:
        self._record = value

    def refresh(self) -> "Locking":
        self._record = _UNLOADED
        return self

    def is_locked(self) -> bool:
        return self.engine.is_active(self.record)

    def is_accessible(self, token: Optional[str] = None) -> bool:
        if self.is_locked():
            return self.engine.verify(self.record, token)
        return True

    def locked_until(self) -> Optional[datetime]:
        if self.is_locked():
            return as_utc(self.record.locked_until)
        return None

    def locked_by(self) -> Optional[str]:
        if self.is_locked():
            return self.record.holder_id
        return None

    def lock(self, duration: "DurationInput | None" = None, holder: HolderInput = None) -> str:
        """Lock the subject and return the token for further access."""
        record = self.engine.acquire(self.subject, duration, holder)
        self._record = record
        self.engine.notify(SubjectLocked(self.ref))
        return record.get_token()

    def unlock(self) -> bool:
        """Release the lock. Unlocking an unlocked subject is a silent no-op."""
        record = self.record
        self._record = None
        if record is None:
            return False
        released = self.engine.release(record)
        if released:
            self.engine.notify(SubjectUnlocked(self.ref))
        return released

    def request_unlock(self, user: HolderInput = None, message: str = "") -> Optional[datetime]:
        """Ask the holder to release; returns the (maybe shortened) expiry."""
        if not self.is_locked():
            return None
        record = self.engine.request_release(self.record, user, message)
        if record is None:
            self._record = None
            return None
        self._record = record
        return self.locked_until()
