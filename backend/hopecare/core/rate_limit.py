from collections.abc import Collection

from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import Response

from hopecare.core.config import settings
from hopecare.core.security_logger import security_log

# Clients are identified by their IP address. Per-identifier limits are the
# login guard's job; this only throttles raw request volume.
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


def get_real_client_ip(request: Request, trusted_proxies: Collection[str] | None = None) -> str:
    """
    Client address for logging.

    X-Forwarded-For is only honoured when the socket peer is a trusted proxy.
    The header is then read right to left, skipping trusted hops, so a client
    cannot prepend an address of its choosing.
    """
    if trusted_proxies is None:
        trusted_proxies = settings.TRUSTED_PROXIES
    peer = request.client.host if request.client else "unknown"

    forwarded_for = request.headers.get("X-Forwarded-For")
    if not forwarded_for or peer not in trusted_proxies:
        return peer

    hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
    for hop in reversed(hops):
        if hop not in trusted_proxies:
            return hop
    return hops[0] if hops else peer


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    security_log.rate_limited(get_real_client_ip(request), request.url.path)
    return _rate_limit_exceeded_handler(request, exc)
