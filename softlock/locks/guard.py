# softlock/locks/guard.py
from fastapi import Depends, Header, HTTPException, Request
from .engine import LockEngine
from .locking import Locking
from .router import get_engine
from .subjects import SubjectRef


def require_accessible(subject_type: str, id_param: str = "subject_id"):
    """Route dependency: 423 while the subject is locked and X-Lock-Token does not open it.

    The subject id is read from the path parameter ``id_param``.
    """

    def _dep(
        request: Request,
        engine: LockEngine = Depends(get_engine),
        x_lock_token: str | None = Header(None),
    ):
        subject_id = request.path_params.get(id_param)
        if subject_id is None:
            raise HTTPException(status_code=404, detail=f"missing path parameter {id_param}")
        locking = Locking(SubjectRef.of(subject_type, subject_id), engine)
        if not locking.is_accessible(x_lock_token):
            raise HTTPException(
                status_code=423,
                detail=f"This {subject_type} is locked by another user until {locking.locked_until()}.",
            )
        return locking

    return _dep
