# backend/hopecare/services/login_guard.py
"""
Login attempt guard for brute force protection.

Implements:
- Failure counting per identifier (usually the account e-mail)
- Hard lockout (5 failed attempts -> 15 min wait)
- Session expiry checks for previously issued sessions

All state lives in process memory and is lost on restart. Every operation
holds the guard's lock, but can_attempt() followed by record_attempt() is not
one transaction: two concurrent failures for the same identifier may both pass
the check before either is recorded. That race costs at most one extra attempt
and is accepted.

The failure counter is only reset by a successful login or clear_attempts().
A lockout that simply runs out leaves the counter at the threshold, so the
next failure locks the account again straight away.
"""

import logging
import math
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any, NamedTuple

from hopecare.core.log_utils import sanitize_for_log
from hopecare.core.security_logger import security_log
from hopecare.exceptions import AccountLockedError

logger = logging.getLogger(__name__)

# Constants for lockout
MAX_ATTEMPTS = 5
LOCKOUT_DURATION_SECONDS = 900  # 15 minutes
SESSION_DURATION_SECONDS = 3600  # 1 hour, used by session expiry only

DEFAULT_MAX_RECORDS = 10_000
DEFAULT_STALE_AFTER_SECONDS = 24 * 60 * 60

Clock = Callable[[], float]


@dataclass
class LoginAttemptRecord:
    """Failure history for one identifier. An absent record means no failures."""

    identifier: str
    failure_count: int = 0
    lockout_started_at: float | None = None
    last_failure_at: float = 0.0


class GuardStatus(NamedTuple):
    """Result of a non-raising guard check."""

    allowed: bool
    failed_attempts: int
    is_locked: bool = False
    retry_after_seconds: int = 0
    message: str | None = None


def _expiry_timestamp(session: Any) -> float | None:
    """Extract a session's expiry as epoch seconds, or None if it has none."""
    if isinstance(session, Mapping):
        expires_at = session.get("expires_at")
    else:
        expires_at = getattr(session, "expires_at", None)

    if expires_at is None or isinstance(expires_at, bool):
        return None
    if isinstance(expires_at, datetime):
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at.timestamp()
    if isinstance(expires_at, (int, float)):
        return float(expires_at)
    if isinstance(expires_at, str):
        try:
            parsed = datetime.fromisoformat(expires_at.strip())
        except ValueError:
            logger.debug(f"Unparseable session expiry: {sanitize_for_log(expires_at)}")
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed.timestamp()
    return None


class LoginGuard:
    """
    Tracks failed logins per identifier and enforces a timed lockout.

    Args:
        max_attempts: Consecutive failures that trigger a lockout.
        lockout_seconds: Length of the lockout window.
        max_records: Soft bound on tracked identifiers. Stale records are evicted
            to make room; live ones are kept even past the bound.
        stale_after_seconds: Idle time after which sweep_expired() drops an
            identifier that is not currently locked out.
        clock: Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        max_attempts: int = MAX_ATTEMPTS,
        lockout_seconds: float = LOCKOUT_DURATION_SECONDS,
        *,
        max_records: int = DEFAULT_MAX_RECORDS,
        stale_after_seconds: float = DEFAULT_STALE_AFTER_SECONDS,
        clock: Clock = time.time,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if lockout_seconds < 0:
            raise ValueError("lockout_seconds must not be negative")
        if max_records < 1:
            raise ValueError("max_records must be at least 1")

        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self.max_records = max_records
        self.stale_after_seconds = stale_after_seconds
        self._clock = clock
        self._records: OrderedDict[str, LoginAttemptRecord] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._records

    def now(self) -> float:
        return self._clock()

    def _lockout_remaining(self, record: LoginAttemptRecord, now: float) -> float:
        if record.lockout_started_at is None:
            return 0.0
        return self.lockout_seconds - (now - record.lockout_started_at)

    def can_attempt(self, identifier: str) -> bool:
        """
        Decide whether a login attempt for identifier may proceed.

        An expired lockout counts as unlocked even though the failure count
        is still at the threshold.

        Raises:
            AccountLockedError: identifier is inside an active lockout window.
        """
        with self._lock:
            record = self._records.get(identifier)
            if record is None:
                return True

            now = self._clock()
            remaining = self._lockout_remaining(record, now)
            if remaining > 0:
                raise AccountLockedError(identifier, retry_after_seconds=max(1, math.ceil(remaining)))
            if record.lockout_started_at is not None:
                return True

            return record.failure_count < self.max_attempts

    def check(self, identifier: str) -> GuardStatus:
        """Same decision as can_attempt(), returned as a status instead of raised."""
        with self._lock:
            record = self._records.get(identifier)
            if record is None:
                return GuardStatus(allowed=True, failed_attempts=0)

            now = self._clock()
            remaining = self._lockout_remaining(record, now)
            if remaining > 0:
                retry_after = max(1, math.ceil(remaining))
                return GuardStatus(
                    allowed=False,
                    failed_attempts=record.failure_count,
                    is_locked=True,
                    retry_after_seconds=retry_after,
                    message=f"Account is locked. Please try again in {math.ceil(retry_after / 60)} minute(s).",
                )

            if record.lockout_started_at is not None:
                return GuardStatus(
                    allowed=True,
                    failed_attempts=record.failure_count,
                    message="Lockout expired. The next failure locks the account again.",
                )
            return GuardStatus(
                allowed=record.failure_count < self.max_attempts,
                failed_attempts=record.failure_count,
            )

    def record_attempt(self, identifier: str, success: bool) -> None:
        """
        Record the outcome of a login attempt.

        A success drops the identifier's history. A failure increments the
        count; reaching the threshold starts a lockout unless one is already
        running, in which case its start time is left untouched.
        """
        locked_count = None

        with self._lock:
            if success:
                if self._records.pop(identifier, None) is not None:
                    logger.debug(f"Login succeeded, history reset for {sanitize_for_log(identifier)}")
                return

            now = self._clock()
            record = self._records.get(identifier)
            if record is None:
                self._evict_overflow(now)
                record = LoginAttemptRecord(identifier=identifier)
                self._records[identifier] = record
            else:
                self._records.move_to_end(identifier)

            record.failure_count += 1
            record.last_failure_at = now

            if record.failure_count >= self.max_attempts and self._lockout_remaining(record, now) <= 0:
                record.lockout_started_at = now
                locked_count = record.failure_count

        if locked_count is not None:
            logger.warning(
                f"ACCOUNT LOCKED: {sanitize_for_log(identifier)} for {int(self.lockout_seconds)}s "
                f"after {locked_count} failures."
            )
            security_log.account_locked(identifier, locked_count, int(self.lockout_seconds))

    def clear_attempts(self, identifier: str) -> None:
        """Drop any history for identifier. A no-op for unknown identifiers."""
        with self._lock:
            removed = self._records.pop(identifier, None)

        if removed is not None:
            logger.info(f"Login attempts cleared for {sanitize_for_log(identifier)}")
            security_log.lockout_cleared(identifier)

    def is_session_valid(self, session: Any) -> bool:
        """
        True while the current time is strictly before the session's expiry.

        session may be None, a mapping, or any object with an expires_at
        field holding a datetime, epoch seconds or an ISO 8601 string.
        """
        if session is None:
            return False
        expires_at = _expiry_timestamp(session)
        if expires_at is None:
            return False
        return self._clock() < expires_at

    def snapshot(self, identifier: str) -> LoginAttemptRecord | None:
        """Copy of the stored record, for inspection."""
        with self._lock:
            record = self._records.get(identifier)
            return replace(record) if record is not None else None

    def sweep_expired(self) -> int:
        """
        Drop records that are not locked out and have been idle for
        stale_after_seconds. Returns the number of records removed.
        """
        now = self._clock()
        with self._lock:
            stale = [
                identifier
                for identifier, record in self._records.items()
                if self._is_stale(record, now)
            ]
            for identifier in stale:
                del self._records[identifier]

        if stale:
            logger.info(f"Login guard sweep removed {len(stale)} stale record(s).")
        return len(stale)

    def _is_stale(self, record: LoginAttemptRecord, now: float) -> bool:
        return (
            self._lockout_remaining(record, now) <= 0
            and now - record.last_failure_at >= self.stale_after_seconds
        )

    def _evict_overflow(self, now: float) -> None:
        # Caller holds the lock. Only stale records are evicted; counted and
        # locked records stay even if the table overflows. Records are ordered
        # by last failure, so the first unlocked record is the only candidate.
        while len(self._records) >= self.max_records:
            victim = next(
                (
                    identifier
                    for identifier, record in self._records.items()
                    if self._lockout_remaining(record, now) <= 0
                ),
                None,
            )
            if victim is None or not self._is_stale(self._records[victim], now):
                if len(self._records) == self.max_records:
                    logger.warning(
                        f"Login guard holds {self.max_records} live record(s); "
                        "tracking beyond max_records until records go stale."
                    )
                return
            del self._records[victim]
            logger.debug(f"Login guard full, evicted stale {sanitize_for_log(victim)}")
