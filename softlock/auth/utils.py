# softlock/auth/utils.py
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session
import jwt, datetime as dt
from ..deps import get_db
from ..shared.config import settings
from .models import User, UserRole


def create_token(user_id: int) -> str:
    now = dt.datetime.now(dt.timezone.utc)
    payload = {"sub": str(user_id), "iat": now, "exp": now + dt.timedelta(minutes=settings.ACCESS_TTL_MIN)}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def _bearer(request: Request) -> str | None:
    authz = request.headers.get("authorization")
    if not authz or not authz.lower().startswith("bearer "):
        return None
    return authz.split(" ", 1)[1]


def _load_user(db: Session, token: str) -> User:
    try:
        data = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.ExpiredSignatureError:
        raise HTTPException(401, "Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(401, "Invalid token")
    user = db.get(User, int(data["sub"]))
    if not user or not user.is_active:
        raise HTTPException(401, "User disabled")
    return user


def current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = _bearer(request)
    if not token:
        raise HTTPException(401, "Not authenticated")
    return _load_user(db, token)


def optional_user(request: Request, db: Session = Depends(get_db)) -> User | None:
    # anonymous callers lock without a holder
    token = _bearer(request)
    if not token:
        return None
    return _load_user(db, token)


def require_roles(*roles: UserRole):
    def _dep(user: User = Depends(current_user)):
        if roles and user.role not in roles:
            raise HTTPException(403, "Forbidden")
        return user

    return _dep
