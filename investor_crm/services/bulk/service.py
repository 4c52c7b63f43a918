"""
Bulk Operations
Apply one operation to up to 500 tasks, investors or interactions

Invalid input (no ids, too many ids) raises ValidationError. Invalid
operation data and database failures come back as a failed BulkResult so
the route can answer 207.
"""
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from supabase import Client

from investor_crm.core.errors import ValidationError
from investor_crm.models.schemas.activities import USER_ACTIVITY_TYPES
from investor_crm.models.schemas.bulk import BulkResult
from investor_crm.models.schemas.tasks import DATE_PATTERN, TASK_PRIORITIES, TASK_STATUSES
from investor_crm.services.activities.service import utc_now_iso
from investor_crm.utils.cache import CacheKeys, cache

logger = logging.getLogger(__name__)

MAX_BULK_ITEMS = 500

ENTITY_NOUNS = {
    "tasks": "task",
    "investors": "investor",
    "interactions": "interaction",
}

OPERATION_VERBS = {
    "delete": "deleted",
    "restore": "restored",
    "change_interaction_type": "changed type for",
}


class BulkDataError(Exception):
    """Operation data failed validation; reported in the result message."""


def _plural(noun: str, count: int) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def _require(data: Optional[Dict[str, Any]], key: str) -> Any:
    value = (data or {}).get(key)
    if not value:
        raise BulkDataError(f"{key.replace('_', ' ').capitalize()} is required")
    return value


# ============================================================================
# TASKS
# ============================================================================

def _task_update_status(supabase: Client, ids: List[str], data, user_id: str) -> None:
    status = (data or {}).get("status")
    if status not in TASK_STATUSES:
        raise BulkDataError("Invalid status value")

    changes: Dict[str, Any] = {"status": status, "updated_at": utc_now_iso()}
    if status == "completed":
        changes["completed_at"] = utc_now_iso()
        changes["completed_by"] = user_id
    elif status == "pending":
        changes["completed_at"] = None
        changes["completed_by"] = None

    supabase.table("tasks").update(changes).in_("id", ids).execute()


def _task_update_priority(supabase: Client, ids: List[str], data, user_id: str) -> None:
    priority = (data or {}).get("priority")
    if priority not in TASK_PRIORITIES:
        raise BulkDataError("Invalid priority value")
    supabase.table("tasks").update({"priority": priority, "updated_at": utc_now_iso()}).in_("id", ids).execute()


def _task_assign_due_date(supabase: Client, ids: List[str], data, user_id: str) -> None:
    due_date = (data or {}).get("due_date")
    if not due_date or not re.match(DATE_PATTERN, due_date):
        raise BulkDataError("Invalid due_date format (expected YYYY-MM-DD)")
    supabase.table("tasks").update({"due_date": due_date, "updated_at": utc_now_iso()}).in_("id", ids).execute()


def _task_delete(supabase: Client, ids: List[str], data, user_id: str) -> None:
    supabase.table("tasks").delete().in_("id", ids).execute()


# ============================================================================
# INVESTORS
# ============================================================================

def _investor_delete(supabase: Client, ids: List[str], data, user_id: str) -> None:
    now = utc_now_iso()
    supabase.table("investors")\
        .update({"deleted_at": now, "updated_at": now})\
        .in_("id", ids)\
        .is_("deleted_at", "null")\
        .execute()


def _investor_restore(supabase: Client, ids: List[str], data, user_id: str) -> None:
    supabase.table("investors")\
        .update({"deleted_at": None, "updated_at": utc_now_iso()})\
        .in_("id", ids)\
        .execute()


# ============================================================================
# INTERACTIONS (activities)
# ============================================================================

def _interaction_delete(supabase: Client, ids: List[str], data, user_id: str) -> None:
    supabase.table("activities").delete().in_("id", ids).execute()


def _interaction_change_type(supabase: Client, ids: List[str], data, user_id: str) -> None:
    interaction_type = _require(data, "interaction_type")
    if interaction_type not in USER_ACTIVITY_TYPES:
        raise BulkDataError("Invalid interaction type")
    supabase.table("activities").update({"activity_type": interaction_type}).in_("id", ids).execute()


Handler = Callable[[Client, List[str], Optional[Dict[str, Any]], str], None]

HANDLERS: Dict[Tuple[str, str], Handler] = {
    ("tasks", "update_status"): _task_update_status,
    ("tasks", "update_priority"): _task_update_priority,
    ("tasks", "assign_due_date"): _task_assign_due_date,
    ("tasks", "delete"): _task_delete,
    ("investors", "delete"): _investor_delete,
    ("investors", "restore"): _investor_restore,
    ("interactions", "delete"): _interaction_delete,
    ("interactions", "change_interaction_type"): _interaction_change_type,
}


def _invalidate(entity_type: str) -> None:
    if entity_type == "tasks":
        cache.delete(CacheKeys.task_stats())
    elif entity_type == "investors":
        cache.delete(CacheKeys.investor_stats())
        cache.invalidate_prefix("investor:")
    else:
        cache.invalidate_prefix("activities:")


def _failure(total: int, message: str) -> BulkResult:
    return BulkResult(success=False, total=total, successful=0, failed=total, message=message)


async def execute_bulk(
    supabase: Client,
    entity_type: str,
    operation: str,
    item_ids: List[str],
    data: Optional[Dict[str, Any]],
    user_id: str,
) -> BulkResult:
    """
    Run a bulk operation.

    Investor operations need the service-role client (soft-deleted rows are
    hidden by row level security); pass it as `supabase` for those.
    """
    if not item_ids:
        raise ValidationError("No items selected")
    if len(item_ids) > MAX_BULK_ITEMS:
        raise ValidationError(f"Cannot process more than {MAX_BULK_ITEMS} items at once")
    if entity_type not in ENTITY_NOUNS:
        raise ValidationError("Invalid entity_type")

    total = len(item_ids)
    handler = HANDLERS.get((entity_type, operation))
    if handler is None:
        return _failure(total, f"Invalid operation for {entity_type}")

    try:
        handler(supabase, item_ids, data, user_id)
    except BulkDataError as e:
        return _failure(total, str(e))
    except Exception as e:
        logger.error(f"❌ Bulk {operation} on {total} {entity_type} failed: {e}")
        return _failure(total, str(e) or "Failed to execute bulk operation")

    _invalidate(entity_type)
    logger.info(f"📦 Bulk {operation}: {total} {entity_type}")

    verb = OPERATION_VERBS.get(operation, operation.replace("_", " "))
    return BulkResult(
        success=True,
        total=total,
        successful=total,
        failed=0,
        message=f"Successfully {verb} {_plural(ENTITY_NOUNS[entity_type], total)}",
    )
