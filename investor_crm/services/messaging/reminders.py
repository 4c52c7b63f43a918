"""
Task Reminders
Cron-driven reminders for tasks due within a day and for overdue tasks
"""
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional

import httpx
from supabase import Client

from investor_crm.services.messaging.service import (
    NO_PREFERENCES,
    NOTIFICATION_DISABLED,
    send_notification,
)
import investor_crm.services.preferences.service as preferences_service

logger = logging.getLogger(__name__)

REMINDER_SELECT = "id, title, due_date, investor_id, created_by, investors(firm_name)"
SKIPPED_ERRORS = (NO_PREFERENCES, NOTIFICATION_DISABLED)


def _pending_tasks(supabase_admin: Client):
    return supabase_admin.table("tasks")\
        .select(REMINDER_SELECT)\
        .eq("status", "pending")\
        .not_.is_("created_by", "null")


def reminder_payload(task: dict, overdue: bool = False) -> dict:
    investor = task.get("investors") or {}
    title = task.get("title")
    return {
        "task_id": task.get("id"),
        "task_title": f"OVERDUE: {title}" if overdue else title,
        "due_date": task.get("due_date"),
        "investor_id": task.get("investor_id"),
        "investor_name": investor.get("firm_name"),
    }


async def process_task_notifications(
    http_client: httpx.AsyncClient,
    supabase_admin: Client,
    today: Optional[date] = None,
) -> Dict[str, object]:
    """
    Send task_reminder notifications to each task's creator.

    - Due today or tomorrow: sent unless the creator set task_reminders to off
    - Overdue: sent unless the creator turned overdue_alerts off
    Returns {reminders, overdue, errors[]}.
    """
    today = today or date.today()
    tomorrow = today + timedelta(days=1)

    due_soon = _pending_tasks(supabase_admin)\
        .gte("due_date", today.isoformat())\
        .lte("due_date", tomorrow.isoformat())\
        .execute().data or []
    overdue = _pending_tasks(supabase_admin)\
        .lt("due_date", today.isoformat())\
        .execute().data or []

    preferences: Dict[str, dict] = {}
    errors: List[str] = []
    counts = {"reminders": 0, "overdue": 0}

    async def _prefs(user_id: str) -> dict:
        if user_id not in preferences:
            preferences[user_id] = await preferences_service.get_preferences(supabase_admin, user_id)
        return preferences[user_id]

    for kind, tasks in (("reminders", due_soon), ("overdue", overdue)):
        for task in tasks:
            user_id = task["created_by"]
            prefs = await _prefs(user_id)
            if kind == "reminders" and prefs.get("task_reminders") == "off":
                continue
            if kind == "overdue" and not prefs.get("overdue_alerts"):
                continue

            result = await send_notification(
                http_client, supabase_admin, user_id, "task_reminder",
                reminder_payload(task, overdue=kind == "overdue"),
            )
            if result["success"]:
                counts[kind] += 1
            elif result["error"] not in SKIPPED_ERRORS:
                errors.append(f"Failed to send reminder for task {task['id']}: {result['error']}")

    logger.info(
        f"⏰ Task notifications: {counts['reminders']} reminders, "
        f"{counts['overdue']} overdue, {len(errors)} errors"
    )
    return {**counts, "errors": errors}
