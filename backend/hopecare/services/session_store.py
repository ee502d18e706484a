# backend/hopecare/services/session_store.py
"""
In-memory store of issued login sessions.

Sessions are opaque random tokens with an absolute expiry. Validity is
decided by LoginGuard.is_session_valid so the store and the guard agree on
"now".
"""

import logging
import secrets
import threading
from datetime import UTC, datetime, timedelta

from hopecare.core.log_utils import mask_email
from hopecare.schemas.auth import UserSession
from hopecare.services.auth_provider import AuthenticatedUser
from hopecare.services.login_guard import SESSION_DURATION_SECONDS, LoginGuard

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, guard: LoginGuard, session_seconds: int = SESSION_DURATION_SECONDS):
        self.guard = guard
        self.session_seconds = session_seconds
        self._sessions: dict[str, UserSession] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(self, user: AuthenticatedUser) -> UserSession:
        issued_at = datetime.fromtimestamp(self.guard.now(), UTC)
        session = UserSession(
            token=secrets.token_urlsafe(32),
            user_id=user.id,
            email=user.email,
            role=user.role,
            expires_at=issued_at + timedelta(seconds=self.session_seconds),
        )
        with self._lock:
            self._sessions[session.token] = session
        logger.debug(f"Session issued for {mask_email(user.email)} until {session.expires_at.isoformat()}")
        return session

    def get(self, token: str) -> UserSession | None:
        """Return the session for token, or None if unknown or expired.

        Expired sessions are revoked on lookup.
        """
        with self._lock:
            session = self._sessions.get(token)
        if session is None:
            return None
        if not self.guard.is_session_valid(session):
            self.revoke(token)
            return None
        return session

    def revoke(self, token: str) -> bool:
        with self._lock:
            return self._sessions.pop(token, None) is not None

    def purge_expired(self) -> int:
        with self._lock:
            expired = [
                token
                for token, session in self._sessions.items()
                if not self.guard.is_session_valid(session)
            ]
            for token in expired:
                del self._sessions[token]
        if expired:
            logger.info(f"Purged {len(expired)} expired session(s).")
        return len(expired)
