"""
Activity Service
Append-only timeline of investor interactions and system changes
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client

from investor_crm.core.errors import NotFoundError, ValidationError
from investor_crm.models.schemas.activities import USER_ACTIVITY_TYPES, ActivityCreate
from investor_crm.utils.cache import CacheKeys, cache

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def today_iso() -> str:
    return date.today().isoformat()


async def record_activity(
    supabase: Client,
    investor_id: str,
    activity_type: str,
    description: str,
    user_id: Optional[str],
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[dict]:
    """
    Insert an activity row for internal services (stage changes, field
    updates, imports). A failure is logged and does not fail the caller's
    primary write.
    """
    row = {
        "investor_id": investor_id,
        "activity_type": activity_type,
        "description": description,
        "created_by": user_id,
    }
    if metadata is not None:
        row["metadata"] = metadata

    try:
        result = supabase.table("activities").insert(row).execute()
    except Exception as e:
        logger.warning(f"⚠️  Failed to record {activity_type} activity for investor {investor_id}: {e}")
        return None

    cache.delete(CacheKeys.activities(investor_id))
    return result.data[0] if result.data else None


async def log_activity(supabase: Client, data: ActivityCreate, user_id: str) -> dict:
    """
    Log a user activity (note/call/email/meeting).

    Bumps the investor's last_action_date to today, clears `stalled`, and
    when requested sets the next action fields.
    """
    if data.activity_type not in USER_ACTIVITY_TYPES:
        raise ValidationError(f"Invalid activity type: {data.activity_type}")

    investor = supabase.table("investors")\
        .select("id")\
        .eq("id", data.investor_id)\
        .is_("deleted_at", "null")\
        .maybe_single()\
        .execute()

    if not investor or not investor.data:
        raise NotFoundError("Investor not found")

    result = supabase.table("activities").insert({
        "investor_id": data.investor_id,
        "activity_type": data.activity_type,
        "description": data.description,
        "metadata": data.metadata,
        "created_by": user_id,
    }).execute()

    if not result.data:
        raise ValidationError("Failed to create activity")

    investor_update: Dict[str, Any] = {
        "last_action_date": today_iso(),
        "stalled": False,
        "updated_at": utc_now_iso(),
    }
    if data.set_next_action:
        investor_update["next_action"] = data.next_action or None
        investor_update["next_action_date"] = data.next_action_date or None

    supabase.table("investors").update(investor_update).eq("id", data.investor_id).execute()

    cache.delete(CacheKeys.activities(data.investor_id))
    cache.delete(CacheKeys.investor(data.investor_id))
    cache.delete(CacheKeys.investor_stats())

    logger.info(f"📝 Logged {data.activity_type} for investor {data.investor_id}")
    return result.data[0]


async def list_activities(supabase: Client, investor_id: str, limit: int = 50) -> List[dict]:
    """Activities for one investor, newest first."""
    key = CacheKeys.activities(investor_id)
    if limit == 50:
        cached = cache.get(key)
        if cached is not None:
            return cached

    result = supabase.table("activities")\
        .select("*")\
        .eq("investor_id", investor_id)\
        .order("created_at", desc=True)\
        .limit(limit)\
        .execute()

    activities = result.data or []
    if limit == 50:
        cache.set(key, activities)
    return activities


async def get_recent_activities(supabase: Client, limit: int = 20) -> List[dict]:
    """Latest activities across all investors, with the firm name."""
    result = supabase.table("activities")\
        .select("*, investors(firm_name)")\
        .order("created_at", desc=True)\
        .limit(limit)\
        .execute()
    return result.data or []
