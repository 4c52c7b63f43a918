"""
Preference Service
Display/notification preferences and messaging channel preferences per user
"""
import logging
from typing import Any, Dict

from supabase import Client

from investor_crm.core.errors import ValidationError
from investor_crm.models.schemas.preferences import (
    MessagingPreferencesUpdate,
    UserPreferences,
    UserPreferencesUpdate,
)
from investor_crm.services.activities.service import utc_now_iso
from investor_crm.services.messaging.whatsapp import validate_phone_number

logger = logging.getLogger(__name__)

MESSAGING_DEFAULTS: Dict[str, Any] = {
    "google_chat_enabled": False,
    "google_chat_space_id": None,
    "whatsapp_enabled": False,
    "whatsapp_phone_number": None,
    "notify_task_reminders": True,
    "notify_investor_updates": True,
    "notify_pipeline_alerts": True,
    "notify_ai_insights": False,
}


def _row_for(supabase: Client, table: str, user_id: str):
    result = supabase.table(table)\
        .select("*")\
        .eq("user_id", user_id)\
        .maybe_single()\
        .execute()
    return result.data if result else None


async def get_preferences(supabase: Client, user_id: str) -> dict:
    """Stored preferences merged over the defaults. Unknown keys are ignored."""
    row = _row_for(supabase, "user_preferences", user_id) or {}
    stored = row.get("preferences") or {}
    defaults = UserPreferences().model_dump()
    return {**defaults, **{key: stored[key] for key in defaults if stored.get(key) is not None}}


async def update_preferences(supabase: Client, user_id: str, data: UserPreferencesUpdate) -> dict:
    changes = data.model_dump(exclude_none=True)
    merged = {**await get_preferences(supabase, user_id), **changes}

    supabase.table("user_preferences")\
        .upsert({"user_id": user_id, "preferences": merged, "updated_at": utc_now_iso()}, on_conflict="user_id")\
        .execute()

    logger.info(f"⚙️  Updated preferences for user {user_id}: {sorted(changes)}")
    return merged


async def get_messaging_preferences(supabase: Client, user_id: str) -> dict:
    row = _row_for(supabase, "user_messaging_preferences", user_id)
    if not row:
        return {**MESSAGING_DEFAULTS, "user_id": user_id}
    return {**MESSAGING_DEFAULTS, **{k: v for k, v in row.items() if v is not None}}


async def update_messaging_preferences(supabase: Client, user_id: str, data: MessagingPreferencesUpdate) -> dict:
    changes = data.model_dump(exclude_unset=True)

    phone = changes.get("whatsapp_phone_number")
    if phone:
        validation = validate_phone_number(phone)
        if not validation["valid"]:
            raise ValidationError(validation["error"])
        changes["whatsapp_phone_number"] = validation["normalized"]

    result = supabase.table("user_messaging_preferences")\
        .upsert({"user_id": user_id, **changes, "updated_at": utc_now_iso()}, on_conflict="user_id")\
        .execute()

    if not result.data:
        raise ValidationError("Failed to update messaging preferences")
    return {**MESSAGING_DEFAULTS, **result.data[0]}
