# backend/hopecare/schemas/auth.py
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field

Role = Literal["ADMIN", "DONOR", "VOLUNTEER"]


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=1024)


class Token(BaseModel):
    """
    Returned to the client after a successful login. The access token is an
    opaque session key, not a JWT.
    """

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class UserSession(BaseModel):
    token: str
    user_id: str
    email: EmailStr
    role: Role
    expires_at: datetime


class SessionStatus(BaseModel):
    is_authenticated: bool
    email: EmailStr | None = None
    role: Role | None = None
    expires_at: datetime | None = None


class LockoutStatus(BaseModel):
    """Admin view of the login guard's state for one identifier."""

    identifier: str
    allowed: bool
    failed_attempts: int
    is_locked: bool
    retry_after_seconds: int
    message: str | None = None


class SweepResult(BaseModel):
    removed_attempt_records: int
    removed_sessions: int
