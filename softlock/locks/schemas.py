# softlock/locks/schemas.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class SubjectIn(BaseModel):
    subject_type: str = Field(min_length=1, max_length=64)  # e.g. "post"
    subject_id: str = Field(min_length=1, max_length=64)


class LockAcquireIn(SubjectIn):
    duration: Optional[str] = None  # "3 minutes", ISO timestamp, ...
    token: Optional[str] = None  # re-lock with the token you hold


class LockReleaseIn(SubjectIn):
    token: Optional[str] = None


class UnlockRequestIn(SubjectIn):
    message: str = Field(default="", max_length=1000)


class LockTokenOut(BaseModel):
    subject_type: str
    subject_id: str
    token: str
    locked_until: datetime
    locked_by: Optional[str] = None


class LockStatusOut(BaseModel):
    subject_type: str
    subject_id: str
    locked: bool
    locked_until: Optional[datetime] = None
    locked_by: Optional[str] = None
    holder_name: Optional[str] = None
    remaining_sec: int = 0
