"""
Saved Filters
Named filter configurations, private by default and optionally shared
"""
import logging
from typing import List, Optional

from supabase import Client

from investor_crm.core.errors import NotFoundError, ValidationError
from investor_crm.models.schemas.preferences import SavedFilterCreate, SavedFilterUpdate
from investor_crm.services.activities.service import utc_now_iso

logger = logging.getLogger(__name__)


def _visible_to(user_id: str) -> str:
    return f"user_id.eq.{user_id},is_public.eq.true"


async def create_saved_filter(supabase: Client, user_id: str, data: SavedFilterCreate) -> dict:
    result = supabase.table("saved_filters").insert({
        "user_id": user_id,
        "name": data.name,
        "description": data.description,
        "entity_type": data.entity_type,
        "filter_config": data.filter_config,
        "is_public": data.is_public,
    }).execute()

    if not result.data:
        raise ValidationError("Failed to save filter")
    return result.data[0]


async def list_saved_filters(supabase: Client, user_id: str, entity_type: Optional[str] = None) -> List[dict]:
    """Own and public filters, most recently used first."""
    query = supabase.table("saved_filters").select("*").or_(_visible_to(user_id))

    if entity_type:
        query = query.eq("entity_type", entity_type)

    result = query\
        .order("last_used_at", desc=True, nullsfirst=False)\
        .order("created_at", desc=True)\
        .execute()
    return result.data or []


async def get_saved_filter(supabase: Client, user_id: str, filter_id: str) -> dict:
    result = supabase.table("saved_filters")\
        .select("*")\
        .eq("id", filter_id)\
        .or_(_visible_to(user_id))\
        .maybe_single()\
        .execute()

    if not result or not result.data:
        raise NotFoundError("Filter not found")
    return result.data


async def update_saved_filter(supabase: Client, user_id: str, filter_id: str, data: SavedFilterUpdate) -> dict:
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No changes provided")

    result = supabase.table("saved_filters")\
        .update({**changes, "updated_at": utc_now_iso()})\
        .eq("id", filter_id)\
        .eq("user_id", user_id)\
        .execute()

    if not result.data:
        raise NotFoundError("Filter not found")
    return result.data[0]


async def delete_saved_filter(supabase: Client, user_id: str, filter_id: str) -> None:
    result = supabase.table("saved_filters")\
        .delete()\
        .eq("id", filter_id)\
        .eq("user_id", user_id)\
        .execute()

    if not result.data:
        raise NotFoundError("Filter not found")


async def track_filter_usage(supabase: Client, user_id: str, filter_id: str) -> None:
    """Bump use_count and last_used_at. Failures are logged, not raised."""
    try:
        current = await get_saved_filter(supabase, user_id, filter_id)
        supabase.table("saved_filters")\
            .update({"use_count": (current.get("use_count") or 0) + 1, "last_used_at": utc_now_iso()})\
            .eq("id", filter_id)\
            .execute()
    except NotFoundError:
        raise
    except Exception as e:
        logger.warning(f"⚠️  Failed to track usage for filter {filter_id}: {e}")
