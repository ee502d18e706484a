# backend/hopecare/tasks/maintenance.py
"""
Maintenance tasks for the in-memory login guard and session store.
"""

import asyncio
import logging

from hopecare.schemas.auth import SweepResult
from hopecare.services.login_guard import LoginGuard
from hopecare.services.session_store import SessionStore

logger = logging.getLogger(__name__)


def sweep_once(guard: LoginGuard, sessions: SessionStore) -> SweepResult:
    """Drop stale attempt records and expired sessions."""
    result = SweepResult(
        removed_attempt_records=guard.sweep_expired(),
        removed_sessions=sessions.purge_expired(),
    )
    logger.debug(
        f"Maintenance: sweep removed {result.removed_attempt_records} attempt record(s) "
        f"and {result.removed_sessions} session(s)."
    )
    return result


async def run_login_guard_sweeper(
    guard: LoginGuard, sessions: SessionStore, interval_seconds: float
) -> None:
    """
    Periodic sweep loop, started from the application lifespan.
    Runs until cancelled; a failing sweep is logged and retried next interval.
    """
    logger.info(f"Maintenance: login guard sweeper started (every {interval_seconds}s).")
    try:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                sweep_once(guard, sessions)
            except Exception as e:
                logger.error(f"Maintenance: login guard sweep failed: {e}", exc_info=True)
    except asyncio.CancelledError:
        logger.info("Maintenance: login guard sweeper stopped.")
        raise
