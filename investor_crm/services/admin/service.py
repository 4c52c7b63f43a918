"""
Admin Service
User roles and system metrics for administrators
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from postgrest.exceptions import APIError
from supabase import Client

from investor_crm.core.errors import ValidationError
from investor_crm.core.security import DEFAULT_ROLE, ROLES
from investor_crm.services.activities.service import utc_now_iso
from investor_crm.services.audit.service import log_audit_event
from investor_crm.services.google.oauth import is_google_configured
from investor_crm.utils.cache import CacheKeys, cache

logger = logging.getLogger(__name__)


def _iso(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


def _role_map(supabase_admin: Client) -> Dict[str, str]:
    result = supabase_admin.table("user_roles").select("user_id, role").execute()
    return {row["user_id"]: row["role"] for row in result.data or []}


async def list_users(supabase_admin: Client) -> List[dict]:
    """Auth users joined with user_roles; users without a row are members."""
    users = supabase_admin.auth.admin.list_users()
    roles = _role_map(supabase_admin)

    return [
        {
            "id": user.id,
            "email": user.email,
            "role": roles.get(user.id, DEFAULT_ROLE),
            "created_at": _iso(user.created_at),
            "last_sign_in_at": _iso(getattr(user, "last_sign_in_at", None)),
        }
        for user in users
    ]


async def update_user_role(supabase_admin: Client, user_id: str, role: str, actor: dict) -> dict:
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}")

    existing = supabase_admin.table("user_roles")\
        .select("role")\
        .eq("user_id", user_id)\
        .maybe_single()\
        .execute()
    old_role = existing.data["role"] if existing and existing.data else DEFAULT_ROLE

    supabase_admin.table("user_roles")\
        .upsert({"user_id": user_id, "role": role, "updated_at": utc_now_iso()}, on_conflict="user_id")\
        .execute()
    cache.delete(CacheKeys.user_role(user_id))

    await log_audit_event(
        supabase_admin,
        event_type="admin",
        action="role_change",
        user=actor,
        resource_type="user",
        resource_id=user_id,
        old_data={"role": old_role},
        new_data={"role": role},
    )
    logger.info(f"🔐 Role for user {user_id} changed {old_role} -> {role} by {actor.get('user_id')}")
    return {"user_id": user_id, "role": role, "previous_role": old_role}


def _supabase_status(supabase_admin: Client) -> str:
    try:
        supabase_admin.table("user_roles").select("user_id").limit(1).execute()
    except APIError as e:
        logger.warning(f"⚠️  Supabase health check returned an error: {e.message}")
        return "degraded"
    except Exception as e:
        logger.warning(f"⚠️  Supabase health check failed: {e}")
        return "down"
    return "healthy"


async def get_system_metrics(supabase_admin: Client) -> dict:
    now = datetime.now(timezone.utc)
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

    total = supabase_admin.table("user_roles").select("user_id", count="exact").execute()

    active = supabase_admin.table("app_audit_log")\
        .select("user_id")\
        .gte("created_at", start_of_day.isoformat())\
        .execute()
    active_today = len({row["user_id"] for row in active.data or [] if row.get("user_id")})

    recent = supabase_admin.table("app_audit_log")\
        .select("id", count="exact")\
        .gte("created_at", (now - timedelta(hours=1)).isoformat())\
        .execute()

    return {
        "users": {"total": total.count or 0, "active_today": active_today},
        "api": {"requests_last_hour": recent.count or 0},
        "integrations": {
            "supabase": _supabase_status(supabase_admin),
            "google": "healthy" if is_google_configured() else "degraded",
        },
    }
