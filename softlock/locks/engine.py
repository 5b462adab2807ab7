# softlock/locks/engine.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..shared.logging import get_logger
from .durations import DurationInput, as_utc, is_empty, parse_until, utcnow
from .events import Dispatcher, LockEvent, UnlockRequested
from .models import ModelLock
from .store import LockStore
from .subjects import Lockable, Principal, SubjectRef, as_ref

logger = get_logger(__name__)

DEFAULT_DURATION = "5 minutes"

HolderInput = Any  # Principal, raw identifier or None
PrincipalLookup = Callable[[], Any]


@dataclass
class LockingOptions:
    default_duration: Optional[DurationInput] = None
    use_current_principal: bool = True
    shorten_duration: Optional[DurationInput] = None
    notification_channels: Dict[str, List[str]] = field(default_factory=dict)
    holder_model: str = "users"
    subject_durations: Dict[str, DurationInput] = field(default_factory=dict)
    broadcast_enabled: bool = True
    broadcast_as: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings) -> "LockingOptions":
        return cls(
            default_duration=settings.LOCK_DURATION,
            use_current_principal=settings.LOCK_USE_AUTHENTICATED_USER,
            shorten_duration=settings.LOCK_REQUEST_SHORTEN_DURATION,
            notification_channels=settings.lock_channels,
            holder_model=settings.LOCK_HOLDER_MODEL,
            subject_durations=dict(settings.LOCK_SUBJECT_DURATIONS),
            broadcast_enabled=settings.LOCK_BROADCAST_ENABLED,
            broadcast_as=dict(settings.LOCK_BROADCAST_AS),
        )


def holder_identifier(holder: HolderInput) -> Optional[str]:
    if isinstance(holder, Principal):
        holder = holder.get_auth_identifier()
    if holder is None or holder == "":
        return None
    return str(holder)


class LockEngine:
    def __init__(
        self,
        store: LockStore,
        options: Optional[LockingOptions] = None,
        *,
        principal: Optional[PrincipalLookup] = None,
        dispatcher: Optional[Dispatcher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.options = options or LockingOptions()
        self.principal = principal
        self.dispatcher = dispatcher
        self.clock = clock

    def now(self) -> datetime:
        return as_utc(self.clock())

    # --- precedence -------------------------------------------------------

    def subject_default(self, subject: "Lockable | SubjectRef") -> Optional[DurationInput]:
        """Per-subject default: entity ``lock_duration`` first, then config by type."""
        own = getattr(subject, "lock_duration", None)
        if not is_empty(own):
            return own
        return self.options.subject_durations.get(as_ref(subject).type)

    def resolve_duration(
        self,
        explicit: Optional[DurationInput] = None,
        subject_default: Optional[DurationInput] = None,
    ) -> datetime:
        """Precedence: explicit > subject default > configured default > 5 minutes."""
        for candidate in (explicit, subject_default, self.options.default_duration):
            if not is_empty(candidate):
                return parse_until(candidate, self.now())
        return parse_until(DEFAULT_DURATION, self.now())

    def resolve_holder(self, explicit: HolderInput = None) -> Optional[str]:
        holder = holder_identifier(explicit)
        if holder is not None:
            return holder
        if self.options.use_current_principal and self.principal is not None:
            return holder_identifier(self.principal())
        return None

    # --- lifecycle --------------------------------------------------------

    def find_active(self, subject: "Lockable | SubjectRef") -> Optional[ModelLock]:
        return self.store.find_active(as_ref(subject), self.now())

    def acquire(
        self,
        subject: "Lockable | SubjectRef",
        duration: "DurationInput | Principal | None" = None,
        holder: HolderInput = None,
        subject_default: Optional[DurationInput] = None,
    ) -> ModelLock:
        # acquire(subject, user) is shorthand for acquire(subject, None, user)
        if isinstance(duration, Principal):
            duration, holder = None, duration
        if subject_default is None:
            subject_default = self.subject_default(subject)

        ref = as_ref(subject)
        # concurrent acquires: last write wins
        record = self.store.find_active(ref, self.now()) or self.store.new_record(ref)
        record = self._lock(record, self.resolve_duration(duration, subject_default), self.resolve_holder(holder))
        logger.debug("Locked %s until %s by %s", ref, record.locked_until, record.holder_id)
        return record

    def _lock(self, record: ModelLock, until: datetime, holder: Optional[str]) -> ModelLock:
        record.locked_until = until
        record.holder_id = holder
        record.get_token()
        return self.store.save(record)

    # activity is derived at check time, never stored
    def is_active(self, record: Optional[ModelLock]) -> bool:
        return record is not None and self.now() < as_utc(record.locked_until)

    def verify(self, record: Optional[ModelLock], token: Optional[str]) -> bool:
        """An inactive lock lets everyone through; an active one only its token."""
        if not self.is_active(record):
            return True
        return record.token is not None and record.token == token

    def release(self, record: Optional[ModelLock]) -> bool:
        if record is None:
            return False
        ref = record.subject
        deleted = self.store.delete(record)
        logger.debug("Released %s (deleted=%s)", ref, deleted)
        return deleted

    def request_release(
        self,
        record: Optional[ModelLock],
        requesting_user: HolderInput = None,
        message: str = "",
        shorten: bool = True,
    ) -> Optional[ModelLock]:
        """Notify the holder and shorten the lock. Inactive or vanished locks are ignored."""
        if not self.is_active(record):
            return None
        ref = record.subject
        current = self.store.find_active(ref, self.now())
        if current is None:
            return None

        user = requesting_user.get_auth_identifier() if isinstance(requesting_user, Principal) else requesting_user
        self.notify(UnlockRequested(ref, user, message))
        logger.info("Unlock of %s requested by %s", ref, user)

        if shorten and not is_empty(self.options.shorten_duration):
            until = parse_until(self.options.shorten_duration, self.now())
            current = self._lock(current, until, current.holder_id)
        return current

    def notify(self, event: LockEvent) -> None:
        if self.dispatcher is not None:
            self.dispatcher.dispatch(event)
