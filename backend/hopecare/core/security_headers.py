# backend/hopecare/core/security_headers.py
"""
Security headers, CSRF double-submit and content-type enforcement.

FLOW:
- State-changing requests must echo the csrf-token cookie in X-CSRF-Token.
- POST/PUT/PATCH bodies must be JSON.
- GET responses rotate the CSRF token (cookie + response header).
- Every response, including rejections, carries the hardening headers.
"""

import logging
import secrets

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from hopecare.core.rate_limit import get_real_client_ip
from hopecare.core.security_logger import security_log

logger = logging.getLogger(__name__)

CSRF_HEADER_NAME = "X-CSRF-Token"
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
JSON_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def _tokens_match(header_token: str | None, cookie_token: str | None) -> bool:
    if not header_token or not cookie_token:
        return False
    return secrets.compare_digest(header_token.encode(), cookie_token.encode())


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        *,
        content_security_policy: str,
        permissions_policy: str,
        csrf_enabled: bool = True,
        csrf_cookie_name: str = "csrf-token",
        cookie_secure: bool = True,
    ):
        super().__init__(app)
        self.security_headers = {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "X-XSS-Protection": "1; mode=block",
            "Referrer-Policy": "strict-origin-when-cross-origin",
            "Content-Security-Policy": content_security_policy,
            "Permissions-Policy": permissions_policy,
        }
        self.csrf_enabled = csrf_enabled
        self.csrf_cookie_name = csrf_cookie_name
        self.cookie_secure = cookie_secure

    def _apply_headers(self, response: Response) -> Response:
        for name, value in self.security_headers.items():
            response.headers[name] = value
        return response

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        method = request.method.upper()

        if self.csrf_enabled and method not in SAFE_METHODS:
            if not _tokens_match(
                request.headers.get(CSRF_HEADER_NAME), request.cookies.get(self.csrf_cookie_name)
            ):
                security_log.csrf_rejected(get_real_client_ip(request), request.url.path)
                logger.warning(f"CSRF check failed for {method} {request.url.path}")
                return self._apply_headers(
                    JSONResponse(status_code=403, content={"error": "Invalid CSRF token"})
                )

        if method in JSON_BODY_METHODS:
            content_type = request.headers.get("content-type", "")
            if "application/json" not in content_type.lower():
                return self._apply_headers(
                    JSONResponse(status_code=415, content={"error": "Unsupported Media Type"})
                )

        response = await call_next(request)

        if self.csrf_enabled and method == "GET":
            new_token = secrets.token_hex(32)
            response.set_cookie(
                self.csrf_cookie_name,
                new_token,
                path="/",
                httponly=True,
                secure=self.cookie_secure,
                samesite="strict",
            )
            response.headers[CSRF_HEADER_NAME] = new_token

        return self._apply_headers(response)
