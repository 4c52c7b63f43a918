"""
Chat Commands
Keyword replies for inbound Google Chat and WhatsApp messages
"""
import logging
from collections import Counter
from datetime import date
from typing import Optional

from supabase import Client

from investor_crm.services.pipeline import compute_is_stalled

logger = logging.getLogger(__name__)

SUMMARY_TASK_LIMIT = 5
STALLED_LIMIT = 5

HELP_TEXT = (
    "🤖 *CRM Assistant Commands*\n\n"
    "📊 *Pipeline*\nGet overview of all investors by stage\n\n"
    "✅ *Tasks*\nView pending and overdue tasks\n\n"
    "⚠️ *Stalled*\nSee investors needing attention\n\n"
    "Just send a message and I'll do my best to help!"
)

WELCOME_DM = (
    "👋 Hi! I'm your CRM assistant. You can ask me about your pipeline, tasks, and investors.\n\n"
    "Try:\n"
    "• 'Pipeline summary'\n"
    "• 'Overdue tasks'\n"
    "• 'Stalled investors'\n"
    "• Or just ask me anything!"
)

WELCOME_ROOM = "👋 Hi everyone! I'm the CRM bot. Mention me to get pipeline insights and updates."


def match_command(text: str) -> Optional[str]:
    """Map free text to pipeline / tasks / stalled / help, or None."""
    lowered = (text or "").lower()
    if "pipeline" in lowered or "summary" in lowered:
        return "pipeline"
    if "task" in lowered or "overdue" in lowered or "due" in lowered:
        return "tasks"
    if "stalled" in lowered or "stuck" in lowered:
        return "stalled"
    if "help" in lowered:
        return "help"
    return None


def pipeline_summary(supabase: Client) -> str:
    result = supabase.table("investors")\
        .select("stage")\
        .is_("deleted_at", "null")\
        .execute()
    investors = result.data or []

    lines = ["📊 *Pipeline Summary*", "", f"Total: {len(investors)} investors", ""]
    for stage, count in Counter(row.get("stage") for row in investors).most_common():
        lines.append(f"{stage}: {count}")
    return "\n".join(lines)


def tasks_summary(supabase: Client, today: Optional[date] = None) -> str:
    result = supabase.table("tasks")\
        .select("id, title, due_date")\
        .eq("status", "pending")\
        .order("due_date", nullsfirst=False)\
        .limit(SUMMARY_TASK_LIMIT)\
        .execute()
    tasks = result.data or []
    if not tasks:
        return "✅ No pending tasks!"

    today_str = (today or date.today()).isoformat()
    overdue = [task for task in tasks if task.get("due_date") and task["due_date"] < today_str]

    lines = ["📋 *Tasks Summary*", "", f"Next {len(tasks)} pending tasks:"]
    if overdue:
        lines.append(f"⚠️ Overdue: {len(overdue)}")
    lines.append("")
    for task in tasks:
        marker = "🔴" if task in overdue else "🟡"
        lines.append(f"{marker} {task['title']} - Due: {task.get('due_date') or 'no date'}")
    return "\n".join(lines)


def stalled_summary(supabase: Client, today: Optional[date] = None) -> str:
    result = supabase.table("investors")\
        .select("firm_name, stage, last_action_date, stage_entry_date")\
        .is_("deleted_at", "null")\
        .execute()

    stalled = [
        row for row in result.data or []
        if compute_is_stalled(row.get("last_action_date"), row.get("stage"),
                              stage_entry_date=row.get("stage_entry_date"), today=today)
    ]
    if not stalled:
        return "✅ No stalled investors!"

    lines = ["⚠️ *Stalled Investors*", "", f"{len(stalled)} investors need attention:", ""]
    for row in stalled[:STALLED_LIMIT]:
        lines.append(f"• {row['firm_name']} ({row['stage']}) - last action {row.get('last_action_date') or 'never'}")
    return "\n".join(lines)


def run_command(supabase: Client, command: str) -> str:
    if command == "pipeline":
        return pipeline_summary(supabase)
    if command == "tasks":
        return tasks_summary(supabase)
    if command == "stalled":
        return stalled_summary(supabase)
    return HELP_TEXT
