"""
Dramatiq Background Tasks
Work that should not hold an HTTP request open

Workers run in separate processes, so each job builds its own clients.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import dramatiq
import httpx
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from supabase import Client, create_client

from investor_crm.core.config import settings
from investor_crm.services.background.broker import broker  # noqa: F401  registers the broker

logger = logging.getLogger(__name__)


def get_worker_supabase() -> Client:
    """Service-role client; jobs run without a user session."""
    return create_client(settings.supabase_url, settings.supabase_service_key or settings.supabase_anon_key)


def new_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(60.0),
        limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
    )


@dramatiq.actor(max_retries=3)
def detect_relationships_task(contact_ids: Optional[List[str]] = None) -> int:
    """Match imported LinkedIn contacts against investors; None means all contacts."""
    from investor_crm.services.linkedin.importer import run_relationship_detection

    logger.info(f"🚀 Relationship detection for {len(contact_ids) if contact_ids else 'all'} contacts")
    count = asyncio.run(run_relationship_detection(get_worker_supabase(), contact_ids))
    logger.info(f"✅ Relationship detection stored {count} relationships")
    return count


async def _process_meeting(meeting_id: str, storage_path: str, user_id: str) -> Dict[str, Any]:
    from investor_crm.services.meetings.processing import process_stored_recording

    anthropic_client = AsyncAnthropic(api_key=settings.anthropic_api_key) if settings.anthropic_api_key else None
    openai_client = AsyncOpenAI(api_key=settings.openai_api_key) if settings.openai_api_key else None

    return await process_stored_recording(
        get_worker_supabase(), anthropic_client, openai_client, meeting_id, storage_path, user_id,
    )


@dramatiq.actor(max_retries=0)
def process_meeting_task(meeting_id: str, storage_path: str, user_id: str) -> Dict[str, Any]:
    """
    Transcribe and analyze a recording already in storage.

    Not retried: a failure marks the meeting `failed` and the user re-uploads.
    """
    logger.info(f"🚀 Processing meeting {meeting_id}")
    return asyncio.run(_process_meeting(meeting_id, storage_path, user_id))


async def _send_notification(user_id: str, notification_type: str, data: Dict[str, Any], channel: str) -> dict:
    from investor_crm.services.messaging.service import send_notification

    http_client = new_http_client()
    try:
        return await send_notification(http_client, get_worker_supabase(), user_id, notification_type, data, channel)
    finally:
        await http_client.aclose()


@dramatiq.actor(max_retries=3)
def send_notification_task(user_id: str, notification_type: str, data: Dict[str, Any], channel: str = "all") -> dict:
    result = asyncio.run(_send_notification(user_id, notification_type, data, channel))
    if result["success"]:
        logger.info(f"✅ {notification_type} notification sent to {user_id} via {result['channels']}")
    else:
        logger.warning(f"⚠️  {notification_type} notification for {user_id} not sent: {result['error']}")
    return result


async def _send_email_notifications() -> dict:
    from investor_crm.services.notifications import process_email_notifications

    return await process_email_notifications(get_worker_supabase())


@dramatiq.actor(max_retries=0)
def send_email_notifications_task() -> dict:
    """Scheduled email run. Not retried: a rerun would resend reminders already delivered."""
    result = asyncio.run(_send_email_notifications())
    if result["errors"]:
        logger.warning(f"⚠️  Email notification run finished with {len(result['errors'])} errors")
    return result
