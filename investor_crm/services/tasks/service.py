"""
Task Service
Follow-up tasks tied to investors, with due-date filters and cached stats
"""
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from supabase import Client

from investor_crm.core.errors import NotFoundError, ValidationError
from investor_crm.models.schemas.tasks import TaskCreate, TaskFilters, TaskUpdate
from investor_crm.services.activities.service import utc_now_iso
from investor_crm.utils.cache import CacheKeys, cache

logger = logging.getLogger(__name__)

DUE_SOON_DAYS = 7
TASK_STATS_TTL = 300

TASK_SELECT = "*, investors(id, firm_name)"


def _invalidate_stats() -> None:
    cache.delete(CacheKeys.task_stats())


# ============================================================================
# CRUD
# ============================================================================

async def create_task(supabase: Client, data: TaskCreate, user_id: str) -> dict:
    investor = supabase.table("investors")\
        .select("id")\
        .eq("id", data.investor_id)\
        .is_("deleted_at", "null")\
        .maybe_single()\
        .execute()

    if not investor or not investor.data:
        raise NotFoundError("Investor not found")

    result = supabase.table("tasks").insert({
        "investor_id": data.investor_id,
        "title": data.title,
        "description": data.description or None,
        "due_date": data.due_date or None,
        "priority": data.priority,
        "status": "pending",
        "created_by": user_id,
    }).execute()

    if not result.data:
        raise ValidationError("Failed to create task")

    _invalidate_stats()
    logger.info(f"📝 Created task {result.data[0]['id']} for investor {data.investor_id}")
    return result.data[0]


async def get_tasks(supabase: Client, filters: Optional[TaskFilters] = None) -> List[dict]:
    """
    Tasks with the investor name.

    Ordered by due date (undated last), then priority.
    """
    filters = filters or TaskFilters()
    today = date.today()

    query = supabase.table("tasks").select(TASK_SELECT)

    if filters.status and filters.status != "all":
        query = query.eq("status", filters.status)
    if filters.priority and filters.priority != "all":
        query = query.eq("priority", filters.priority)
    if filters.investor_id:
        query = query.eq("investor_id", filters.investor_id)
    if filters.overdue:
        query = query.eq("status", "pending").lt("due_date", today.isoformat())
    if filters.due_soon:
        soon = today + timedelta(days=DUE_SOON_DAYS)
        query = query.eq("status", "pending")\
            .gte("due_date", today.isoformat())\
            .lte("due_date", soon.isoformat())

    result = query\
        .order("due_date", nullsfirst=False)\
        .order("priority", desc=True)\
        .range(filters.offset, filters.offset + filters.limit - 1)\
        .execute()

    return result.data or []


async def get_task(supabase: Client, task_id: str) -> dict:
    result = supabase.table("tasks")\
        .select(TASK_SELECT)\
        .eq("id", task_id)\
        .maybe_single()\
        .execute()

    if not result or not result.data:
        raise NotFoundError("Task not found")
    return result.data


async def update_task(supabase: Client, task_id: str, data: TaskUpdate, user_id: str) -> dict:
    changes: Dict[str, Any] = data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No changes provided")

    if changes.get("status") == "completed":
        changes["completed_at"] = utc_now_iso()
        changes["completed_by"] = user_id
    elif changes.get("status") == "pending":
        changes["completed_at"] = None
        changes["completed_by"] = None

    result = supabase.table("tasks")\
        .update({**changes, "updated_at": utc_now_iso()})\
        .eq("id", task_id)\
        .execute()

    if not result.data:
        raise NotFoundError("Task not found")

    _invalidate_stats()
    return result.data[0]


async def toggle_task_status(supabase: Client, task_id: str, user_id: str) -> dict:
    """pending <-> completed"""
    task = await get_task(supabase, task_id)
    new_status = "pending" if task.get("status") == "completed" else "completed"
    return await update_task(supabase, task_id, TaskUpdate(status=new_status), user_id)


async def delete_task(supabase: Client, task_id: str) -> None:
    result = supabase.table("tasks").delete().eq("id", task_id).execute()
    if not result.data:
        raise NotFoundError("Task not found")
    _invalidate_stats()
    logger.info(f"🗑️  Deleted task {task_id}")


# ============================================================================
# STATS
# ============================================================================

def summarize_tasks(rows: List[dict], today: Optional[date] = None) -> Dict[str, int]:
    today = today or date.today()
    week_end = (today + timedelta(days=DUE_SOON_DAYS)).isoformat()
    today_str = today.isoformat()

    pending = [row for row in rows if row.get("status") == "pending"]
    dated = [row for row in pending if row.get("due_date")]

    return {
        "total": len(rows),
        "pending": len(pending),
        "completed": sum(1 for row in rows if row.get("status") == "completed"),
        "overdue": sum(1 for row in dated if row["due_date"] < today_str),
        "due_today": sum(1 for row in dated if row["due_date"] == today_str),
        "due_this_week": sum(1 for row in dated if today_str <= row["due_date"] <= week_end),
    }


async def get_task_stats(supabase: Client) -> Dict[str, int]:
    key = CacheKeys.task_stats()
    cached = cache.get(key)
    if cached is not None:
        return cached

    result = supabase.table("tasks").select("status, due_date").execute()
    stats = summarize_tasks(result.data or [])
    cache.set(key, stats, ttl=TASK_STATS_TTL)
    return stats
