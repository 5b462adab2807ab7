# softlock/locks/events.py
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional, Protocol, Type

from ..shared.logging import get_logger
from .subjects import SubjectRef

logger = get_logger(__name__)


@dataclass(frozen=True)
class LockEvent:
    subject: SubjectRef

    # broadcast channel group in the config ("locked" / "unlocked" / "request")
    kind: ClassVar[str] = ""

    def broadcast_as(self, names: Optional[Mapping[str, str]] = None) -> str:
        return (names or {}).get(self.kind) or type(self).__name__

    def payload(self) -> Dict[str, Any]:
        return {"subject": {"type": self.subject.type, "id": self.subject.id}}


@dataclass(frozen=True)
class SubjectLocked(LockEvent):
    kind: ClassVar[str] = "locked"


@dataclass(frozen=True)
class SubjectUnlocked(LockEvent):
    kind: ClassVar[str] = "unlocked"


@dataclass(frozen=True)
class UnlockRequested(LockEvent):
    user: Any = None
    message: str = ""

    kind: ClassVar[str] = "request"

    def payload(self) -> Dict[str, Any]:
        data = super().payload()
        data.update(user=self.user, message=self.message)
        return data


class Dispatcher(Protocol):
    def dispatch(self, event: LockEvent) -> None: ...


Listener = Callable[[LockEvent], None]
Broadcaster = Callable[[str, str, Dict[str, Any]], None]


class EventDispatcher:
    """In-process dispatcher with per-event-class listeners and channel broadcasting."""

    def __init__(
        self,
        channels: Optional[Mapping[str, List[str]]] = None,
        *,
        broadcast_enabled: bool = True,
        broadcast_as: Optional[Mapping[str, str]] = None,
    ):
        self.channels = dict(channels or {})
        self.broadcast_enabled = broadcast_enabled
        self.broadcast_names = dict(broadcast_as or {})
        self._listeners: Dict[Type[LockEvent], List[Listener]] = defaultdict(list)
        self._broadcasters: List[Broadcaster] = []

    @classmethod
    def from_options(cls, options) -> "EventDispatcher":
        return cls(
            options.notification_channels,
            broadcast_enabled=options.broadcast_enabled,
            broadcast_as=options.broadcast_as,
        )

    def listen(self, event_type: Type[LockEvent], listener: Listener) -> None:
        """Subscribe to an event class (``LockEvent`` receives everything)."""
        self._listeners[event_type].append(listener)

    def add_broadcaster(self, broadcaster: Broadcaster) -> None:
        self._broadcasters.append(broadcaster)

    def dispatch(self, event: LockEvent) -> None:
        for event_type, listeners in list(self._listeners.items()):
            if not isinstance(event, event_type):
                continue
            for listener in listeners:
                try:
                    listener(event)
                except Exception:
                    logger.exception("Lock event listener failed for %s", type(event).__name__)

        self._broadcast(event)

    def _broadcast(self, event: LockEvent) -> None:
        if not self.broadcast_enabled or not self._broadcasters:
            return
        name = event.broadcast_as(self.broadcast_names)
        payload = event.payload()
        for channel in self.channels.get(event.kind, []):
            for broadcaster in self._broadcasters:
                try:
                    broadcaster(channel, name, payload)
                except Exception:
                    logger.exception("Broadcasting %s on %s failed", name, channel)
