# backend/tests/helpers.py
from httpx import AsyncClient, Response

ADMIN_TOKEN = "test-admin-token"
DONOR_EMAIL = "alice@example.com"
DONOR_PASSWORD = "correct-horse-battery"
ADMIN_EMAIL = "admin@hopecare.org"
ADMIN_PASSWORD = "admin-password-123"
INACTIVE_EMAIL = "inactive@example.com"
INACTIVE_PASSWORD = "inactive-password"

LOGIN_URL = "/api/v1/auth/login"


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.current = start

    def __call__(self) -> float:
        return self.current

    def set(self, value: float) -> None:
        self.current = value

    def advance(self, seconds: float) -> None:
        self.current += seconds


async def csrf_headers(client: AsyncClient) -> dict[str, str]:
    """Fetch a fresh CSRF token; the matching cookie lands in the client's jar."""
    response = await client.get("/health")
    return {"X-CSRF-Token": response.headers["X-CSRF-Token"]}


async def login(client: AsyncClient, email: str, password: str) -> Response:
    headers = await csrf_headers(client)
    return await client.post(LOGIN_URL, json={"email": email, "password": password}, headers=headers)


async def admin_headers(client: AsyncClient) -> dict[str, str]:
    headers = await csrf_headers(client)
    headers["X-Admin-Token"] = ADMIN_TOKEN
    return headers
