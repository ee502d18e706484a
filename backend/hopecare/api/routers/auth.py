# backend/hopecare/api/routers/auth.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from hopecare.api.deps import (
    get_auth_provider,
    get_bearer_token,
    get_login_guard,
    get_session_store,
)
from hopecare.core.config import settings
from hopecare.core.log_utils import mask_email
from hopecare.core.rate_limit import get_real_client_ip, limiter
from hopecare.core.security_logger import security_log
from hopecare.exceptions import AccountLockedError
from hopecare.schemas.auth import LoginRequest, SessionStatus, Token
from hopecare.services.auth_provider import AuthProvider
from hopecare.services.login_guard import LoginGuard
from hopecare.services.session_store import SessionStore

logger = logging.getLogger(__name__)

auth_router = APIRouter(
    tags=["Auth - Authentication & Sessions"],
)


@auth_router.post("/login", response_model=Token, summary="Login and receive a session token")
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    guard: LoginGuard = Depends(get_login_guard),
    auth_provider: AuthProvider = Depends(get_auth_provider),
    sessions: SessionStore = Depends(get_session_store),
):
    client_ip = get_real_client_ip(request)
    email = body.email.lower()

    logger.debug(f"Login attempt for {mask_email(email)} from IP: {client_ip}")

    # Reaching the threshold always starts a lockout, so a blocked identifier
    # surfaces as AccountLockedError rather than a False return.
    try:
        guard.can_attempt(email)
    except AccountLockedError:
        security_log.failed_login(client_ip, email, "ACCOUNT_LOCKED")
        raise

    # bcrypt is CPU bound, keep it off the event loop
    user = await run_in_threadpool(auth_provider.authenticate, email, body.password)

    if user is None:
        guard.record_attempt(email, success=False)
        security_log.failed_login(client_ip, email, "BAD_CREDENTIALS")
        status_after = guard.check(email)
        logger.warning(
            f"Login failed for {mask_email(email)} - {status_after.failed_attempts} consecutive failure(s)"
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="LOGIN_BAD_CREDENTIALS")

    guard.record_attempt(email, success=True)
    security_log.successful_login(client_ip, email)

    session = sessions.create(user)
    logger.info(f"User logged in successfully: {mask_email(user.email)} (ID: {user.id})")
    return Token(access_token=session.token, expires_at=session.expires_at)


@auth_router.get("/session", response_model=SessionStatus, summary="Check session status safely")
async def check_session(
    token: str | None = Depends(get_bearer_token),
    sessions: SessionStore = Depends(get_session_store),
):
    """
    Report whether the bearer token still maps to a live session.
    Never answers 401; an invalid or expired session yields is_authenticated=False.
    """
    if token is None:
        return SessionStatus(is_authenticated=False)

    session = sessions.get(token)
    if session is None:
        return SessionStatus(is_authenticated=False)

    return SessionStatus(
        is_authenticated=True,
        email=session.email,
        role=session.role,
        expires_at=session.expires_at,
    )


@auth_router.post("/logout", summary="Logout user", status_code=status.HTTP_200_OK)
async def logout(
    token: str | None = Depends(get_bearer_token),
    sessions: SessionStore = Depends(get_session_store),
):
    if token is not None and sessions.revoke(token):
        logger.info("Session revoked on logout.")
    return {"message": "LOGOUT_SUCCESSFUL"}
