# backend/hopecare/main.py
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from hopecare.api.routers.admin import admin_router
from hopecare.api.routers.auth import auth_router
from hopecare.core.config import Settings, settings
from hopecare.core.log_utils import mask_email
from hopecare.core.rate_limit import limiter, rate_limit_exceeded_handler
from hopecare.core.security_headers import SecurityHeadersMiddleware
from hopecare.exceptions import AccountLockedError
from hopecare.services.auth_provider import AuthProvider, InMemoryAuthProvider
from hopecare.services.login_guard import LoginGuard
from hopecare.services.session_store import SessionStore
from hopecare.tasks.maintenance import run_login_guard_sweeper

# Configure basic logging (ensure this is done early)
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


# --- Lifespan Management ---
@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    app_settings: Settings = app_instance.state.settings
    logger.info(f"Starting up {app_settings.APP_NAME} v{app_settings.APP_VERSION}...")
    logger.info(f"Environment: {app_settings.ENVIRONMENT}")

    sweeper: asyncio.Task | None = None
    if app_settings.LOGIN_GUARD_SWEEP_INTERVAL_SECONDS > 0:
        sweeper = asyncio.create_task(
            run_login_guard_sweeper(
                app_instance.state.login_guard,
                app_instance.state.session_store,
                app_settings.LOGIN_GUARD_SWEEP_INTERVAL_SECONDS,
            )
        )
    else:
        logger.info("LIFESPAN_HOOK: Login guard sweeper disabled.")

    yield  # Application runs here

    logger.info(f"Shutting down {app_settings.APP_NAME}...")
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper


# --- Exception Handlers ---
async def account_locked_handler(request: Request, exc: AccountLockedError):
    logger.warning(
        f"Locked account rejected: {mask_email(exc.identifier)} on {request.method} {request.url.path}"
    )
    headers = None
    if exc.retry_after_seconds is not None:
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    return JSONResponse(
        status_code=status.HTTP_423_LOCKED,
        content={
            "detail": "ACCOUNT_LOCKED",
            "message": exc.message,
            "retry_after_seconds": exc.retry_after_seconds,
        },
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    error_details = exc.errors()
    logger.warning(
        f"Request validation error: {request.method} {request.url.path} - "
        f"{len(error_details)} error(s)"
    )
    # Input values may contain passwords, so only locations and messages go back
    content = [
        {"loc": err.get("loc"), "msg": err.get("msg"), "type": err.get("type")}
        for err in error_details
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": content}
    )


async def http_exception_handler_custom(request: Request, exc: HTTPException):
    log_message = f"HTTPException: Status={exc.status_code}, Detail='{exc.detail}' for {request.method} {request.url.path}"
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(log_message, exc_info=True)
    else:
        logger.warning(log_message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler_custom(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception during request: {request.method} {request.url.path}", exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected internal server error occurred."},
    )


def create_app(
    app_settings: Settings | None = None,
    *,
    login_guard: LoginGuard | None = None,
    auth_provider: AuthProvider | None = None,
    session_store: SessionStore | None = None,
) -> FastAPI:
    """Build the application. Collaborators default to in-memory instances built from settings."""
    app_settings = app_settings or settings

    if login_guard is None:
        login_guard = LoginGuard(
            max_attempts=app_settings.LOGIN_MAX_ATTEMPTS,
            lockout_seconds=app_settings.LOGIN_LOCKOUT_SECONDS,
            max_records=app_settings.LOGIN_GUARD_MAX_RECORDS,
            stale_after_seconds=app_settings.LOGIN_GUARD_STALE_AFTER_SECONDS,
        )
    if session_store is None:
        session_store = SessionStore(login_guard, app_settings.SESSION_DURATION_SECONDS)
    if auth_provider is None:
        auth_provider = InMemoryAuthProvider()
        if app_settings.FIRST_ADMIN_EMAIL and app_settings.FIRST_ADMIN_PASSWORD:
            auth_provider.add_user(
                app_settings.FIRST_ADMIN_EMAIL, app_settings.FIRST_ADMIN_PASSWORD, role="ADMIN"
            )
        else:
            logger.warning(
                "FIRST_ADMIN_EMAIL or FIRST_ADMIN_PASSWORD not set. In-memory credential store is empty."
            )

    app = FastAPI(
        title=app_settings.APP_NAME,
        version=app_settings.APP_VERSION,
        description=app_settings.APP_DESCRIPTION,
        lifespan=lifespan,
        openapi_url=f"{app_settings.API_V1_STR}/openapi.json",
        docs_url=f"{app_settings.API_V1_STR}/docs",
        redoc_url=None,
    )

    app.state.settings = app_settings
    app.state.login_guard = login_guard
    app.state.session_store = session_store
    app.state.auth_provider = auth_provider
    app.state.admin_api_token = app_settings.ADMIN_API_TOKEN

    # --- Rate Limiting Setup ---
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # --- Middleware ---
    app.add_middleware(
        SecurityHeadersMiddleware,
        content_security_policy=app_settings.CONTENT_SECURITY_POLICY,
        permissions_policy=app_settings.PERMISSIONS_POLICY,
        csrf_enabled=app_settings.CSRF_PROTECTION_ENABLED,
        csrf_cookie_name=app_settings.CSRF_COOKIE_NAME,
        cookie_secure=app_settings.COOKIE_SECURE,
    )
    if app_settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=app_settings.BACKEND_CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-CSRF-Token", "Retry-After"],
        )
        logger.info(f"CORS enabled for origins: {app_settings.BACKEND_CORS_ORIGINS}")
    else:
        logger.info("CORS disabled (BACKEND_CORS_ORIGINS not configured).")

    # --- Exception Handlers ---
    app.add_exception_handler(AccountLockedError, account_locked_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler_custom)
    app.add_exception_handler(Exception, generic_exception_handler_custom)

    # --- API v1 Router Definition and Inclusions ---
    api_v1_router = APIRouter()
    api_v1_router.include_router(auth_router, prefix="/auth")
    api_v1_router.include_router(admin_router, prefix="/admin")
    app.include_router(api_v1_router, prefix=app_settings.API_V1_STR)

    @app.get(
        "/health",
        tags=["System Health"],
        summary="Basic System Liveness Check",
        status_code=status.HTTP_200_OK,
    )
    async def health_check_basic_system():
        return {"status": "healthy"}

    return app


app = create_app()


# --- Main entry point for Uvicorn direct run ---
if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting Uvicorn server directly for {settings.APP_NAME} (local debugging)...")
    uvicorn.run(
        "hopecare.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
