# softlock/auth/router.py
import datetime as dt

from fastapi import APIRouter, Depends, HTTPException
from passlib.hash import bcrypt
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..deps import get_db
from ..locks.engine import holder_identifier
from ..shared.logging import get_logger
from .models import User
from .schemas import LoginIn, TokenOut, UserOut
from .utils import create_token, current_user

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = db.scalar(select(User).where(User.email == payload.email, User.is_active.is_(True)))
    if user is None or not bcrypt.verify(payload.password, user.password_hash):
        logger.warning("Rejected login for %s", payload.email)
        raise HTTPException(status_code=401, detail="invalid credentials")
    user.last_login_at = dt.datetime.now(dt.timezone.utc)
    db.commit()
    return TokenOut(access_token=create_token(user.id))


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(current_user)):
    # holder_id is what lock records store for this user
    out = UserOut.model_validate(user)
    out.holder_id = holder_identifier(user)
    return out
