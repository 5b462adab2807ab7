# softlock/locks/router.py
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from ..deps import get_db
from ..auth.utils import optional_user, current_user, require_roles
from ..auth.models import User, UserRole
from ..shared.config import settings
from .durations import as_utc
from .engine import LockEngine, LockingOptions
from .events import SubjectUnlocked
from .exceptions import InvalidDuration
from .locking import Locking
from .schemas import LockAcquireIn, LockReleaseIn, LockStatusOut, LockTokenOut, UnlockRequestIn
from .store import SqlLockStore
from .subjects import SubjectRef
from .sweep import flush_expired_locks

router = APIRouter(prefix="/api/locks", tags=["locks"])


def get_engine(
    request: Request,
    db: Session = Depends(get_db),
    user: User | None = Depends(optional_user),
) -> LockEngine:
    state = request.app.state
    options = getattr(state, "lock_options", None) or LockingOptions.from_settings(settings)
    kwargs = {}
    clock = getattr(state, "lock_clock", None)
    if clock is not None:
        kwargs["clock"] = clock
    return LockEngine(
        SqlLockStore(db),
        options,
        principal=lambda: user.get_auth_identifier() if user else None,
        dispatcher=getattr(state, "lock_dispatcher", None),
        **kwargs,
    )


def _locking(subject_type: str, subject_id: str, engine: LockEngine) -> Locking:
    return Locking(SubjectRef.of(subject_type, subject_id), engine)


def _holder_name(db: Session, holder_id: str | None, holder_model: str) -> str | None:
    if holder_id is None:
        return None
    if holder_model == User.__tablename__ and holder_id.isdigit():
        u = db.get(User, int(holder_id))
        if u:
            return u.name
    return f"#{holder_id}"


def _is_holder(locking: Locking, user: User) -> bool:
    return locking.locked_by() == str(user.get_auth_identifier())


@router.get("", response_model=LockStatusOut)
def get_lock(
    subject_type: str,
    subject_id: str,
    db: Session = Depends(get_db),
    engine: LockEngine = Depends(get_engine),
):
    locking = _locking(subject_type, subject_id, engine)
    until = locking.locked_until()
    rem = int((until - engine.now()).total_seconds()) if until else 0
    return LockStatusOut(
        subject_type=locking.ref.type,
        subject_id=locking.ref.id,
        locked=locking.is_locked(),
        locked_until=until,
        locked_by=locking.locked_by(),
        holder_name=_holder_name(db, locking.locked_by(), engine.options.holder_model),
        remaining_sec=max(rem, 0),
    )


@router.post("/acquire", response_model=LockTokenOut)
def acquire_lock(
    req: LockAcquireIn,
    engine: LockEngine = Depends(get_engine),
    user: User = Depends(require_roles(UserRole.admin, UserRole.editor)),
):
    locking = _locking(req.subject_type, req.subject_id, engine)
    if locking.is_locked() and not _is_holder(locking, user) and not locking.is_accessible(req.token):
        raise HTTPException(status_code=423, detail=f"Locked by {locking.locked_by()}")

    try:
        token = locking.lock(req.duration)
    except InvalidDuration as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    return LockTokenOut(
        subject_type=locking.ref.type,
        subject_id=locking.ref.id,
        token=token,
        locked_until=as_utc(locking.record.locked_until),
        locked_by=locking.record.holder_id,
    )


@router.post("/release")
def release(
    req: LockReleaseIn,
    engine: LockEngine = Depends(get_engine),
    user: User = Depends(current_user),
):
    locking = _locking(req.subject_type, req.subject_id, engine)
    if not locking.is_locked():
        return {"released": False}
    if not _is_holder(locking, user) and not locking.is_accessible(req.token):
        raise HTTPException(423, "not holder")
    return {"released": locking.unlock()}


@router.post("/request-unlock")
def request_unlock(
    req: UnlockRequestIn,
    engine: LockEngine = Depends(get_engine),
    user: User = Depends(current_user),
):
    locking = _locking(req.subject_type, req.subject_id, engine)
    until = locking.request_unlock(user, req.message)
    return {"locked_until": until}


@router.get("/verify")
def verify(
    subject_type: str,
    subject_id: str,
    token: str | None = None,
    engine: LockEngine = Depends(get_engine),
):
    return {"accessible": _locking(subject_type, subject_id, engine).is_accessible(token)}


@router.post("/force-release")
def force_release(
    subject_type: str,
    subject_id: str,
    engine: LockEngine = Depends(get_engine),
    _=Depends(require_roles(UserRole.admin)),
):
    ref = SubjectRef.of(subject_type, subject_id)
    deleted = engine.store.delete_subject(ref)
    if deleted:
        engine.notify(SubjectUnlocked(ref))
    return {"released": deleted > 0}


@router.post("/flush")
def flush(
    request: Request,
    db: Session = Depends(get_db),
    engine: LockEngine = Depends(get_engine),
    _=Depends(require_roles(UserRole.admin)),
):
    registry = getattr(request.app.state, "lock_registry", None)
    unlocked = flush_expired_locks(engine, registry.resolver(db) if registry else None)
    return {"flushed": [str(ref) for ref in unlocked]}
