# backend/hopecare/api/routers/admin.py
import logging

from fastapi import APIRouter, Depends, Response, status

from hopecare.api.deps import get_login_guard, get_session_store, require_admin_token
from hopecare.core.log_utils import mask_email
from hopecare.schemas.auth import LockoutStatus, SweepResult
from hopecare.services.login_guard import LoginGuard
from hopecare.services.session_store import SessionStore
from hopecare.tasks.maintenance import sweep_once

logger = logging.getLogger(__name__)

admin_router = APIRouter(
    dependencies=[Depends(require_admin_token)],
    tags=["Admin - Login Lockouts"],
)


@admin_router.get(
    "/login-attempts/{identifier}",
    response_model=LockoutStatus,
    summary="Inspect lockout state for an identifier",
)
async def get_lockout_status(identifier: str, guard: LoginGuard = Depends(get_login_guard)):
    result = guard.check(identifier.lower())
    return LockoutStatus(identifier=identifier.lower(), **result._asdict())


@admin_router.delete(
    "/login-attempts/{identifier}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Manually unlock an identifier",
)
async def clear_login_attempts(identifier: str, guard: LoginGuard = Depends(get_login_guard)):
    guard.clear_attempts(identifier.lower())
    logger.info(f"Admin cleared login attempts for {mask_email(identifier)}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@admin_router.post(
    "/login-attempts/sweep",
    response_model=SweepResult,
    summary="Drop stale attempt records and expired sessions now",
)
async def sweep_now(
    guard: LoginGuard = Depends(get_login_guard),
    sessions: SessionStore = Depends(get_session_store),
):
    return sweep_once(guard, sessions)
