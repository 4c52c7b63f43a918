"""
Investor CRM Backend
====================
FastAPI application for tracking fundraising relationships:
- Investor pipeline with stage transitions, contacts, activities and tasks
- LinkedIn warm-intro detection
- Meeting intelligence (transcription + analysis)
- AI BDR assistant with CRM tools
- Google Workspace, Google Chat and WhatsApp integrations

Architecture:
- investor_crm/core/: Configuration, dependencies, security, errors
- investor_crm/middleware/: CORS, CSRF, rate limiting, logging, error handling
- investor_crm/models/: Pydantic schemas
- investor_crm/services/: Business logic
- investor_crm/api/v1/routes/: API endpoints
"""
import sys
import logging
import traceback
from contextlib import asynccontextmanager
from fastapi import FastAPI

# Startup error handling
try:
    # Import core components
    from investor_crm.core.config import settings
    from investor_crm.core.dependencies import initialize_clients, shutdown_clients
    from investor_crm.core.errors import CRMError

    # Import middleware
    from investor_crm.middleware.error_handler import ErrorHandlerMiddleware, crm_error_handler
    from investor_crm.middleware.logging import RequestLoggingMiddleware
    from investor_crm.middleware.cors import get_cors_middleware
    from investor_crm.middleware.csrf import CSRFMiddleware
    from investor_crm.middleware.rate_limit import RateLimitMiddleware, limiter
    from investor_crm.middleware.security_headers import SecurityHeadersMiddleware

    # Import routes
    from investor_crm.api.v1.routes import (
        health_router,
        csrf_router,
        investors_router,
        contacts_router,
        activities_router,
        tasks_router,
        meetings_router,
        linkedin_router,
        network_router,
        search_router,
        bulk_router,
        export_router,
        preferences_router,
        saved_filters_router,
        audit_router,
        admin_router,
        chat_router,
        google_router,
        messaging_router,
        webhooks_router,
        notifications_router,
    )
except Exception as e:
    print(f"🚨 FATAL STARTUP ERROR: {e}", file=sys.stderr)
    print(f"Traceback:\n{traceback.format_exc()}", file=sys.stderr)
    sys.exit(1)

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.is_production else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# ============================================================================
# SENTRY ERROR TRACKING
# ============================================================================

if settings.sentry_dsn:
    try:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.logging import LoggingIntegration

        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            release=settings.app_version,
            traces_sample_rate=0.1,
            integrations=[
                FastApiIntegration(),
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)
            ]
        )
        logger.info("✅ Sentry error tracking initialized")
    except Exception as e:
        logger.warning(f"⚠️  Failed to initialize Sentry: {e}")
else:
    logger.info("ℹ️  Sentry not configured (SENTRY_DSN not set)")


# ============================================================================
# LIFECYCLE MANAGEMENT
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    logger.info("=" * 80)
    logger.info("Starting Investor CRM Backend")
    logger.info("=" * 80)
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Port: {settings.port}")
    logger.info(f"Debug: {settings.debug}")

    await initialize_clients()

    if settings.defer_relationship_detection or settings.defer_meeting_processing:
        logger.info("✅ Background jobs: relationship detection / meeting processing run in the Dramatiq worker")
    else:
        logger.info("ℹ️  Background jobs: running inline")

    logger.info("=" * 80)
    logger.info("✅ Application started successfully")
    logger.info("=" * 80)

    yield

    logger.info("Shutting down application...")
    await shutdown_clients()
    logger.info("✅ Application shutdown complete")


# ============================================================================
# APP INITIALIZATION
# ============================================================================

app = FastAPI(
    title="Investor CRM API",
    description="Fundraising pipeline, warm-intro network and AI assistant",
    version=settings.app_version,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

# ============================================================================
# RATE LIMITING + ERROR HANDLERS
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(CRMError, crm_error_handler)
logger.info("✅ Rate limiting enabled")

# ============================================================================
# MIDDLEWARE (last added runs first)
# ============================================================================

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(CSRFMiddleware)

cors_middleware, cors_config = get_cors_middleware()
app.add_middleware(cors_middleware, **cors_config)

app.add_middleware(RequestLoggingMiddleware)

# Global error handler (outermost)
app.add_middleware(ErrorHandlerMiddleware)

# ============================================================================
# ROUTES
# ============================================================================

app.include_router(health_router)

API_PREFIX = "/api/v1"
for router in (
    csrf_router,
    investors_router,
    contacts_router,
    activities_router,
    tasks_router,
    meetings_router,
    linkedin_router,
    network_router,
    search_router,
    bulk_router,
    export_router,
    preferences_router,
    saved_filters_router,
    audit_router,
    admin_router,
    chat_router,
    google_router,
    messaging_router,
    webhooks_router,
    notifications_router,
):
    app.include_router(router, prefix=API_PREFIX)

# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level="info"
    )
