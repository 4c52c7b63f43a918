"""
CSRF Middleware
Double-submit cookie check for state-changing requests
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from investor_crm.core.config import settings
from investor_crm.utils.csrf import (
    CSRF_COOKIE_MAX_AGE,
    CSRF_COOKIE_NAME,
    CSRF_HEADER_NAME,
    generate_csrf_token,
    is_safe_method,
    validate_csrf_token,
)

logger = logging.getLogger(__name__)

# Server-to-server callers authenticate with their own secrets
EXEMPT_PREFIXES = (
    "/api/v1/webhooks/",
    "/api/v1/notifications/process",
    "/api/v1/google/oauth/callback",
    "/health",
)


def _sets_csrf_cookie(response) -> bool:
    return any(value.startswith(f"{CSRF_COOKIE_NAME}=") for value in response.headers.getlist("set-cookie"))


def set_csrf_cookie(response, token: str) -> None:
    response.set_cookie(
        CSRF_COOKIE_NAME,
        token,
        max_age=CSRF_COOKIE_MAX_AGE,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        path="/",
    )


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Enforce the double-submit check only for cookie sessions.

    Requests carrying a bearer token are not CSRF-able and pass through.
    Safe methods get a fresh cookie when none is present.
    """

    async def dispatch(self, request: Request, call_next):
        cookie_token = request.cookies.get(CSRF_COOKIE_NAME)

        if is_safe_method(request.method):
            response = await call_next(request)
            if not cookie_token and not _sets_csrf_cookie(response):
                set_csrf_cookie(response, generate_csrf_token())
            return response

        path = request.url.path
        has_bearer = request.headers.get("authorization", "").lower().startswith("bearer ")
        if has_bearer or path.startswith(EXEMPT_PREFIXES):
            return await call_next(request)

        header_token = request.headers.get(CSRF_HEADER_NAME)
        if not validate_csrf_token(cookie_token, header_token):
            logger.warning(f"🚫 CSRF validation failed: {request.method} {path}")
            return JSONResponse(status_code=403, content={"error": "Invalid CSRF token"})

        return await call_next(request)
