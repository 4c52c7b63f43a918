"""
CORS Configuration
Cross-Origin Resource Sharing settings for the CRM frontend

SECURITY:
- Production: only the configured HTTPS origins
- Development: localhost dev servers as well
- NO "null" origin (prevents file:// attacks)
"""
from fastapi.middleware.cors import CORSMiddleware as FastAPICORSMiddleware
from investor_crm.core.config import settings


def get_cors_middleware():
    """
    Returns the CORS middleware class and its keyword config.

    settings.app_url and CORS_ORIGINS are always allowed; dev adds localhost.
    """
    allowed_origins = [settings.app_url, *settings.extra_cors_origins]

    if not settings.is_production:
        allowed_origins += [
            "http://localhost:3000",  # Next.js dev server
            "http://localhost:5173",  # Vite dev server
            "http://localhost:8080",  # Backend dev
        ]

    # Preserve order, drop duplicates and "null"
    allowed_origins = [o for o in dict.fromkeys(allowed_origins) if o and o != "null"]

    return FastAPICORSMiddleware, {
        "allow_origins": allowed_origins,
        "allow_credentials": True,
        "allow_methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        "allow_headers": [
            "Content-Type",
            "Authorization",
            "X-CSRF-Token",
            "X-Request-ID",
        ],
        "expose_headers": [
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
        ],
        "max_age": 600,
    }
