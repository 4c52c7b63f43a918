"""
Request Logging Middleware
Logs each request with an ID, status and timing
"""
import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 1000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with X-Request-ID (reusing the caller's if sent) and
    logs method, path, status and duration.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()
        method = request.method
        path = request.url.path

        logger.debug(f"➡️  {method} {path} [{request_id}] ua={request.headers.get('user-agent', '-')}")

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(f"❌ {method} {path} failed after {duration_ms:.0f}ms [{request_id}]: {e}")
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        if duration_ms > SLOW_REQUEST_MS:
            logger.warning(f"🐢 Slow request: {method} {path} {response.status_code} took {duration_ms:.0f}ms [{request_id}]")
        else:
            logger.info(f"{method} {path} {response.status_code} {duration_ms:.0f}ms [{request_id}]")

        return response
