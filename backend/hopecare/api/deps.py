# backend/hopecare/api/deps.py
import logging
import secrets

from fastapi import Header, HTTPException, Request, status

from hopecare.services.auth_provider import AuthProvider
from hopecare.services.login_guard import LoginGuard
from hopecare.services.session_store import SessionStore

logger = logging.getLogger(__name__)


def get_login_guard(request: Request) -> LoginGuard:
    return request.app.state.login_guard


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_auth_provider(request: Request) -> AuthProvider:
    return request.app.state.auth_provider


def get_bearer_token(authorization: str | None = Header(default=None)) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_admin_token(
    request: Request,
    x_admin_token: str | None = Header(default=None),
) -> None:
    expected = request.app.state.admin_api_token
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="ADMIN_API_DISABLED"
        )
    if not x_admin_token or not secrets.compare_digest(x_admin_token.encode(), expected.encode()):
        logger.warning(f"Rejected admin request to {request.url.path}: bad or missing token")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="ADMIN_TOKEN_INVALID")
