# backend/hopecare/services/auth_provider.py
"""
Credential verification collaborator.

The login flow only needs "credentials in, user or nothing out". Production
deployments plug in the real identity provider behind AuthProvider; the
in-memory provider backs local development and tests.
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Protocol

import bcrypt

from hopecare.core.log_utils import mask_email
from hopecare.schemas.auth import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    email: str
    role: Role = "DONOR"
    is_active: bool = True


class AuthProvider(Protocol):
    def authenticate(self, email: str, password: str) -> AuthenticatedUser | None: ...


class InMemoryAuthProvider:
    """bcrypt-hashed credentials keyed by lower-cased e-mail."""

    def __init__(self, bcrypt_rounds: int = 12) -> None:
        self.bcrypt_rounds = bcrypt_rounds
        self._users: dict[str, tuple[AuthenticatedUser, bytes]] = {}
        self._lock = threading.Lock()

    def add_user(
        self,
        email: str,
        password: str,
        role: Role = "DONOR",
        user_id: str | None = None,
        is_active: bool = True,
    ) -> AuthenticatedUser:
        email = email.lower()
        user = AuthenticatedUser(
            id=user_id or str(uuid.uuid4()), email=email, role=role, is_active=is_active
        )
        hashed_pw = bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_rounds))
        with self._lock:
            self._users[email] = (user, hashed_pw)
        logger.info(f"Registered {role} user {mask_email(email)}")
        return user

    def authenticate(self, email: str, password: str) -> AuthenticatedUser | None:
        with self._lock:
            entry = self._users.get(email.lower())
        if entry is None:
            return None

        user, hashed_pw = entry
        if not bcrypt.checkpw(password.encode(), hashed_pw):
            return None
        if not user.is_active:
            logger.warning(f"Login attempt for inactive user: {mask_email(user.email)}")
            return None
        return user
