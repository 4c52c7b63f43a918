"""
Dramatiq Background Worker
Relationship detection, meeting processing and notification delivery

Run with:
    dramatiq worker -p 2 -t 4

Environment: same as the API + REDIS_URL (+ SENTRY_DSN)
"""
import logging

from investor_crm.core.config import settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

if settings.sentry_dsn:
    try:
        import sentry_sdk
        from sentry_sdk.integrations.logging import LoggingIntegration

        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,
            integrations=[
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)
            ]
        )
        logger.info("✅ Sentry initialized in worker")
    except Exception as e:
        logger.warning(f"⚠️  Failed to initialize Sentry in worker: {e}")
else:
    logger.info("ℹ️  Sentry not configured (SENTRY_DSN not set)")

# Importing the tasks registers them with the broker
from investor_crm.services.background import broker  # noqa: E402,F401
from investor_crm.services.background.tasks import (  # noqa: E402,F401
    detect_relationships_task,
    process_meeting_task,
    send_notification_task,
)

logger.info("🚀 Dramatiq worker initialized")
logger.info(f"   Redis: {'configured' if settings.redis_url else 'NOT_SET (localhost)'}")
logger.info("   Registered tasks: detect_relationships_task, process_meeting_task, send_notification_task")
