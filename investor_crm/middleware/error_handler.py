"""
Global Error Handler
Converts uncaught exceptions into JSON responses
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from investor_crm.core.config import settings
from investor_crm.core.errors import CRMError

logger = logging.getLogger(__name__)


def crm_error_response(error: CRMError) -> JSONResponse:
    content = {"error": error.message}
    if error.details is not None:
        content["details"] = error.details
    return JSONResponse(status_code=error.status_code, content=content)


async def crm_error_handler(request: Request, exc: CRMError) -> JSONResponse:
    """Exception handler registered for CRMError raised from routes."""
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
    return crm_error_response(exc)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last line of defence: log the traceback and return a generic 500."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except CRMError as e:
            return crm_error_response(e)
        except Exception as e:
            logger.error(f"🚨 Unhandled error on {request.method} {request.url.path}: {e}", exc_info=True)
            detail = str(e) if not settings.is_production else "Internal server error"
            return JSONResponse(status_code=500, content={"error": detail})
