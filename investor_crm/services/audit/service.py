"""
Audit Log
Append-only record of security-relevant actions in app_audit_log
"""
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_LIMIT = 100
MAX_AUDIT_LIMIT = 1000


async def log_audit_event(
    supabase: Client,
    event_type: str,
    action: str,
    user: Optional[Dict[str, Any]] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    old_data: Optional[Dict[str, Any]] = None,
    new_data: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> None:
    """
    Insert one audit row.

    Auditing must never break the action being audited, so failures are
    logged and swallowed here.
    """
    user = user or {}
    try:
        supabase.table("app_audit_log").insert({
            "user_id": user.get("user_id"),
            "user_email": user.get("email"),
            "event_type": event_type,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "action": action,
            "old_data": old_data,
            "new_data": new_data,
            "metadata": metadata,
            "ip_address": ip_address,
            "user_agent": user_agent,
        }).execute()
    except Exception as e:
        logger.error(f"❌ Failed to write audit event {event_type}/{action}: {e}")


async def list_audit_logs(
    supabase: Client,
    event_type: Optional[str] = None,
    limit: int = DEFAULT_AUDIT_LIMIT,
) -> List[dict]:
    """Newest first; event_type 'all' means no filter."""
    limit = max(1, min(limit, MAX_AUDIT_LIMIT))
    query = supabase.table("app_audit_log").select("*")

    if event_type and event_type != "all":
        query = query.eq("event_type", event_type)

    result = query.order("created_at", desc=True).limit(limit).execute()
    return result.data or []
