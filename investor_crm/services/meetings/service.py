"""
Meeting Service
Meeting records, listing and dashboard statistics
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from supabase import Client

from investor_crm.core.errors import NotFoundError, ValidationError
from investor_crm.models.schemas.meetings import MeetingCreate
from investor_crm.services.activities.service import utc_now_iso
from investor_crm.utils.cache import CacheKeys, cache

logger = logging.getLogger(__name__)

MEETING_STATS_TTL = 300
MEETING_STATUSES = ("pending", "processing", "completed", "failed")

MEETING_SELECT = "*, investors(id, firm_name), meeting_transcripts(id, summary, sentiment, key_topics)"


def _invalidate_stats() -> None:
    cache.delete(CacheKeys.meeting_stats())


async def create_meeting(supabase: Client, data: MeetingCreate, user_id: str) -> dict:
    investor = supabase.table("investors")\
        .select("id")\
        .eq("id", data.investor_id)\
        .is_("deleted_at", "null")\
        .maybe_single()\
        .execute()

    if not investor or not investor.data:
        raise NotFoundError("Investor not found")

    result = supabase.table("meetings").insert({
        "investor_id": data.investor_id,
        "meeting_title": data.meeting_title,
        "meeting_date": data.meeting_date,
        "duration_minutes": data.duration_minutes,
        "calendar_event_id": data.calendar_event_id,
        "status": "pending",
        "created_by": user_id,
    }).execute()

    if not result.data:
        raise ValidationError("Failed to create meeting")

    _invalidate_stats()
    logger.info(f"📅 Created meeting {result.data[0]['id']} for investor {data.investor_id}")
    return result.data[0]


async def get_meetings(
    supabase: Client,
    investor_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[dict]:
    """Meetings newest first, with investor name and transcript summary."""
    query = supabase.table("meetings").select(MEETING_SELECT)

    if investor_id:
        query = query.eq("investor_id", investor_id)
    if status and status != "all":
        query = query.eq("status", status)

    result = query\
        .order("meeting_date", desc=True)\
        .range(offset, offset + limit - 1)\
        .execute()

    return result.data or []


async def get_meeting(supabase: Client, meeting_id: str) -> dict:
    result = supabase.table("meetings")\
        .select("*, investors(id, firm_name), meeting_transcripts(*)")\
        .eq("id", meeting_id)\
        .maybe_single()\
        .execute()

    if not result or not result.data:
        raise NotFoundError("Meeting not found")
    return result.data


async def update_meeting_status(
    supabase: Client,
    meeting_id: str,
    status: str,
    processing_error: Optional[str] = None,
) -> dict:
    if status not in MEETING_STATUSES:
        raise ValidationError(f"Invalid meeting status: {status}")

    changes: Dict[str, Any] = {"status": status, "updated_at": utc_now_iso()}
    if status == "completed":
        changes["processed_at"] = utc_now_iso()
    if status == "failed":
        changes["processing_error"] = processing_error or "Unknown error"

    result = supabase.table("meetings").update(changes).eq("id", meeting_id).execute()

    if not result.data:
        raise NotFoundError("Meeting not found")

    _invalidate_stats()
    return result.data[0]


async def delete_meeting(supabase: Client, meeting_id: str) -> None:
    result = supabase.table("meetings").delete().eq("id", meeting_id).execute()
    if not result.data:
        raise NotFoundError("Meeting not found")
    _invalidate_stats()
    logger.info(f"🗑️  Deleted meeting {meeting_id}")


def summarize_meetings(rows: List[dict], today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    month_prefix = today.strftime("%Y-%m")

    counts = {status: 0 for status in MEETING_STATUSES}
    for row in rows:
        if row.get("status") in counts:
            counts[row["status"]] += 1

    durations = [row["duration_minutes"] for row in rows if row.get("duration_minutes")]

    return {
        "total": len(rows),
        **counts,
        "this_month": sum(1 for row in rows if str(row.get("meeting_date") or "").startswith(month_prefix)),
        "avg_duration_minutes": round(sum(durations) / len(durations)) if durations else None,
    }


async def get_meeting_stats(supabase: Client) -> Dict[str, Any]:
    key = CacheKeys.meeting_stats()
    cached = cache.get(key)
    if cached is not None:
        return cached

    result = supabase.table("meetings").select("status, meeting_date, duration_minutes").execute()
    stats = summarize_meetings(result.data or [])
    cache.set(key, stats, ttl=MEETING_STATS_TTL)
    return stats
