"""
Google Calendar
Schedule investor meetings on the user's primary calendar
"""
import logging
from typing import List

import httpx
from supabase import Client

from investor_crm.core.config import settings
from investor_crm.core.errors import ExternalServiceError
from investor_crm.models.schemas.google import ScheduleMeetingRequest
from investor_crm.services.activities.service import record_activity
from investor_crm.services.google.oauth import google_request
from investor_crm.utils.retry import call_with_retry

logger = logging.getLogger(__name__)

CALENDAR_EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/primary/events"


def build_event(data: ScheduleMeetingRequest) -> dict:
    time_zone = data.time_zone or settings.google_default_timezone
    event = {
        "summary": data.summary,
        "start": {"dateTime": data.start_time, "timeZone": time_zone},
        "end": {"dateTime": data.end_time, "timeZone": time_zone},
        "reminders": {"useDefault": True},
    }
    if data.description:
        event["description"] = data.description
    if data.attendees:
        event["attendees"] = [{"email": email} for email in data.attendees]
    return event


async def schedule_investor_meeting(
    http_client: httpx.AsyncClient,
    supabase: Client,
    supabase_admin: Client,
    user_id: str,
    data: ScheduleMeetingRequest,
) -> dict:
    """Create the Calendar event, store it and add a `meeting` activity."""
    event = await call_with_retry(
        google_request, http_client, supabase_admin, user_id,
        "POST", CALENDAR_EVENTS_URL,
        json=build_event(data),
    )

    if not event.get("id"):
        raise ExternalServiceError("Failed to create calendar event")

    event_url = event.get("htmlLink")

    try:
        supabase.table("calendar_events").insert({
            "investor_id": data.investor_id,
            "event_id": event["id"],
            "summary": data.summary,
            "description": data.description,
            "start_time": data.start_time,
            "end_time": data.end_time,
            "event_url": event_url,
            "attendees": data.attendees or None,
            "created_by": user_id,
        }).execute()
    except Exception as e:
        logger.error(f"❌ Calendar event {event['id']} created but not stored: {e}")

    await record_activity(
        supabase,
        data.investor_id,
        "meeting",
        f"Scheduled: {data.summary}",
        user_id,
        metadata={
            "event_id": event["id"],
            "start_time": data.start_time,
            "end_time": data.end_time,
            "attendees": data.attendees or None,
            "event_url": event_url,
        },
    )

    logger.info(f"📅 Scheduled '{data.summary}' for investor {data.investor_id}")
    return {"success": True, "event_id": event["id"], "event_url": event_url}


async def get_calendar_events(supabase: Client, investor_id: str) -> List[dict]:
    result = supabase.table("calendar_events")\
        .select("*")\
        .eq("investor_id", investor_id)\
        .order("start_time", desc=True)\
        .execute()
    return result.data or []
