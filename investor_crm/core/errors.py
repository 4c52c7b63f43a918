"""
Domain Errors
Exceptions raised by services and translated to HTTP responses by routes
"""
from fastapi import HTTPException


class CRMError(Exception):
    """Base class for service-level errors."""

    status_code = 500

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(CRMError):
    status_code = 400


class AuthorizationError(CRMError):
    status_code = 403


class NotFoundError(CRMError):
    status_code = 404


class ConflictError(CRMError):
    status_code = 409


class ExternalServiceError(CRMError):
    """Upstream API (Anthropic, OpenAI, Google, WhatsApp) failed."""

    status_code = 502


class GoogleAuthRequiredError(CRMError):
    """User has not authorized Google Workspace, or the grant was revoked."""

    status_code = 401

    def __init__(self, message: str = "google_auth_required", details=None):
        super().__init__(message, details)


CONFLICT_MESSAGE = "This record was modified by another user. Please refresh and try again."


def http_error_from(error: CRMError) -> HTTPException:
    """Convert a domain error into an HTTPException with a JSON-friendly detail."""
    if error.details is not None:
        detail = {"error": error.message, "details": error.details}
    else:
        detail = error.message
    return HTTPException(status_code=error.status_code, detail=detail)
