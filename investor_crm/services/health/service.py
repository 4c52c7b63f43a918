"""
Health Checks
Liveness, readiness and configured-integration status
"""
import logging
from datetime import datetime, timezone

from supabase import Client

from investor_crm.core.config import settings
from investor_crm.services.google.oauth import is_google_configured
from investor_crm.services.messaging.whatsapp import is_whatsapp_configured

logger = logging.getLogger(__name__)


def liveness() -> dict:
    return {
        "status": "healthy",
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def check_database(supabase: Client) -> bool:
    """One cheap round trip to Supabase."""
    try:
        supabase.table("investors").select("id").limit(1).execute()
    except Exception as e:
        logger.error(f"❌ Readiness check failed: {e}")
        return False
    return True


def configured_integrations() -> dict:
    return {
        "anthropic": bool(settings.anthropic_api_key),
        "openai": bool(settings.openai_api_key),
        "google": is_google_configured(),
        "whatsapp": is_whatsapp_configured(),
        "google_chat_webhook": bool(settings.google_chat_verification_token),
        "redis": bool(settings.redis_url),
        "sentry": bool(settings.sentry_dsn),
    }
