# softlock/locks/subjects.py
from __future__ import annotations

from typing import Any, Callable, Dict, NamedTuple, Optional, Protocol, Type, runtime_checkable

from sqlalchemy.orm import Session


class SubjectRef(NamedTuple):
    """Polymorphic reference to a locked entity: (type tag, id)."""

    type: str
    id: str

    @classmethod
    def of(cls, type_: str, id_: Any) -> "SubjectRef":
        return cls(str(type_), str(id_))

    def __str__(self) -> str:
        return f"{self.type}#{self.id}"


@runtime_checkable
class Lockable(Protocol):
    # optional ``lock_duration`` attribute is the per-subject default
    def lock_ref(self) -> SubjectRef: ...


@runtime_checkable
class Principal(Protocol):
    """An authenticated identity that can hold locks."""

    def get_auth_identifier(self) -> Any: ...


def as_ref(subject: "Lockable | SubjectRef") -> SubjectRef:
    if isinstance(subject, SubjectRef):
        return subject
    return subject.lock_ref()


class SubjectRegistry:
    """Maps subject type tags to ORM models so refs can be loaded again."""

    def __init__(self) -> None:
        self._models: Dict[str, Type[Any]] = {}

    def register(self, type_: str, model: Type[Any]) -> None:
        self._models[type_] = model

    def model_for(self, type_: str) -> Optional[Type[Any]]:
        return self._models.get(type_)

    def resolver(self, db: Session) -> Callable[[SubjectRef], Any]:
        # unregistered tags resolve to the ref itself
        def _resolve(ref: SubjectRef) -> Any:
            model = self._models.get(ref.type)
            if model is None:
                return ref
            pk = int(ref.id) if ref.id.isdigit() else ref.id
            return db.get(model, pk)

        return _resolve
