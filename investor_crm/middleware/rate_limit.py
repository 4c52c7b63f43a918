"""
Rate Limiting Middleware
Per-IP fixed-window limits on /api routes, plus the slowapi limiter used by
route decorators on expensive endpoints (chat, uploads, transcription)

Both sit on the `limits` package: slowapi wraps it for decorators, and the
middleware drives a FixedWindowRateLimiter directly so every /api path gets
a window without a decorator.
"""
import logging
import math
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from limits import RateLimitItem, parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter, RateLimiter
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from investor_crm.core.config import settings

logger = logging.getLogger(__name__)

# Route-level decorator limits, keyed by client IP
limiter = Limiter(key_func=get_remote_address)

RATE_LIMITS = {
    "API": parse(settings.rate_limit_api),
    "SENSITIVE": parse(settings.rate_limit_sensitive),
}

EXEMPT_PREFIXES = ("/health", "/api/v1/webhooks/")


def get_client_identifier(request: Request) -> str:
    """
    Best-effort client IP: first X-Forwarded-For hop, then X-Real-IP, then
    the socket peer.
    """
    forwarded: Optional[str] = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def select_limit(path: str) -> RateLimitItem:
    """Auth, admin and delete routes get the sensitive window."""
    is_auth_route = "/auth/" in path or "/login" in path
    is_sensitive = "/delete" in path or "/admin" in path or is_auth_route
    return RATE_LIMITS["SENSITIVE"] if is_sensitive else RATE_LIMITS["API"]


def _reset_header(reset_at: float) -> str:
    return datetime.fromtimestamp(reset_at, tz=timezone.utc).isoformat().replace("+00:00", "Z")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply fixed-window limits to every /api request."""

    def __init__(self, app, strategy: Optional[RateLimiter] = None):
        super().__init__(app)
        self.strategy = strategy or FixedWindowRateLimiter(MemoryStorage())

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not path.startswith("/api") or path.startswith(EXEMPT_PREFIXES):
            return await call_next(request)

        ip = get_client_identifier(request)
        item = select_limit(path)

        allowed = self.strategy.hit(item, "api", ip, path)
        reset_at, remaining = self.strategy.get_window_stats(item, "api", ip, path)

        headers = {
            "X-RateLimit-Limit": str(item.amount),
            "X-RateLimit-Remaining": str(max(0, remaining)),
            "X-RateLimit-Reset": _reset_header(reset_at),
        }

        if not allowed:
            logger.warning(f"🚫 Rate limit exceeded for {ip} on {path}")
            retry_after = max(0, math.ceil(reset_at - time.time()))
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too many requests",
                    "message": "Rate limit exceeded. Please try again later.",
                },
                headers={**headers, "Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        for key, value in headers.items():
            response.headers[key] = value
        return response
