# backend/tests/conftest.py
import os
from collections.abc import AsyncGenerator

# Must be set before hopecare is imported: the limiter is configured at import time.
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOGIN_GUARD_SWEEP_INTERVAL_SECONDS", "0")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from hopecare.core.config import Settings  # noqa: E402
from hopecare.main import create_app  # noqa: E402
from hopecare.services.auth_provider import InMemoryAuthProvider  # noqa: E402
from hopecare.services.login_guard import LoginGuard  # noqa: E402
from hopecare.services.session_store import SessionStore  # noqa: E402

from .helpers import (  # noqa: E402
    ADMIN_EMAIL,
    ADMIN_PASSWORD,
    ADMIN_TOKEN,
    DONOR_EMAIL,
    DONOR_PASSWORD,
    INACTIVE_EMAIL,
    INACTIVE_PASSWORD,
    FakeClock,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def guard(clock: FakeClock) -> LoginGuard:
    return LoginGuard(clock=clock)


@pytest.fixture
def session_store(guard: LoginGuard) -> SessionStore:
    return SessionStore(guard)


@pytest.fixture(scope="session")
def auth_provider() -> InMemoryAuthProvider:
    provider = InMemoryAuthProvider(bcrypt_rounds=4)
    provider.add_user(DONOR_EMAIL, DONOR_PASSWORD, role="DONOR", user_id="donor-1")
    provider.add_user(ADMIN_EMAIL, ADMIN_PASSWORD, role="ADMIN", user_id="admin-1")
    provider.add_user(INACTIVE_EMAIL, INACTIVE_PASSWORD, role="VOLUNTEER", is_active=False)
    return provider


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        COOKIE_SECURE=False,
        ADMIN_API_TOKEN=ADMIN_TOKEN,
        LOGIN_GUARD_SWEEP_INTERVAL_SECONDS=0,
    )


@pytest.fixture
def test_app(
    test_settings: Settings,
    guard: LoginGuard,
    auth_provider: InMemoryAuthProvider,
    session_store: SessionStore,
) -> FastAPI:
    return create_app(
        test_settings,
        login_guard=guard,
        auth_provider=auth_provider,
        session_store=session_store,
    )


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient over ASGITransport. Lifespan hooks do not run."""
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        yield client
