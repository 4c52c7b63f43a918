"""
Email Notifications
Task reminder, overdue and digest emails, driven by the scheduler

Each task creator's user_preferences decide what they receive:
- email_notifications off or email_frequency "off": nothing
- reminders (task_reminders "24h" for tasks due tomorrow, "1h" for tasks due
  today) and overdue alerts only go out for "immediate" and "daily"
- digests go out for "daily" and "weekly", at most once per interval
"""
import html
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from supabase import Client

from investor_crm.core.config import settings
from investor_crm.core.errors import ExternalServiceError
from investor_crm.services.notifications.mailer import is_email_configured, send_email_message
from investor_crm.services.preferences.service import get_messaging_preferences, get_preferences

logger = logging.getLogger(__name__)

EMAIL_TASK_SELECT = "id, title, due_date, investor_id, created_by, investors(firm_name)"
DIGEST_WINDOW_DAYS = 7
DIGEST_INTERVALS = {
    "daily": timedelta(hours=23),
    "weekly": timedelta(days=6, hours=23),
}
IMMEDIATE_FREQUENCIES = ("immediate", "daily")

Rendered = Tuple[str, str, str]


def _due(task: dict) -> Optional[date]:
    try:
        return date.fromisoformat(str(task.get("due_date") or "")[:10])
    except ValueError:
        return None


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def time_until_due(due: date, today: date) -> str:
    days = (due - today).days
    if days <= 0:
        return "today"
    if days == 1:
        return "tomorrow"
    return f"in {days} days"


def overdue_duration(due: date, today: date) -> str:
    days = (today - due).days
    if days < 7:
        return _plural(max(days, 1), "day")
    return _plural(days // 7, "week")


def should_send_email(prefs: dict, kind: str) -> bool:
    """kind is reminder, overdue or digest."""
    frequency = prefs.get("email_frequency")
    if not prefs.get("email_notifications") or frequency == "off":
        return False

    if kind == "digest":
        return frequency in DIGEST_INTERVALS
    if kind == "reminder" and prefs.get("task_reminders") == "off":
        return False
    if kind == "overdue" and not prefs.get("overdue_alerts"):
        return False
    return frequency in IMMEDIATE_FREQUENCIES


def _reminder_due(prefs: dict, due: date, today: date) -> bool:
    setting = prefs.get("task_reminders")
    if setting == "24h":
        return due == today + timedelta(days=1)
    if setting == "1h":
        return due == today
    return False


def _task_url(task: dict) -> str:
    return f"{settings.app_url.rstrip('/')}/tasks?task={task.get('id')}"


def _firm(task: dict) -> str:
    return (task.get("investors") or {}).get("firm_name") or "No investor"


def _wrap_html(heading: str, body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px;">'
        f"<h2>{html.escape(heading)}</h2>{body}"
        '<p style="color: #888; font-size: 12px;">Change what you receive under Settings &gt; Notifications.</p>'
        "</div>"
    )


def render_task_email(task: dict, today: date, overdue: bool = False) -> Rendered:
    """(subject, text, html) for a single reminder or overdue alert."""
    due = _due(task) or today
    title = task.get("title") or "Untitled task"
    if overdue:
        subject = f"Overdue: {title}"
        when = f"Overdue by {overdue_duration(due, today)}"
    else:
        subject = f"Reminder: {title} is due {time_until_due(due, today)}"
        when = f"Due {time_until_due(due, today)} ({due.isoformat()})"

    url = _task_url(task)
    text = f"{title}\nInvestor: {_firm(task)}\n{when}\n\nView task: {url}\n"
    body = (
        f"<p><strong>{html.escape(title)}</strong></p>"
        f"<p>Investor: {html.escape(_firm(task))}<br>{html.escape(when)}</p>"
        f'<p><a href="{html.escape(url, quote=True)}">View task</a></p>'
    )
    return subject, text, _wrap_html("Overdue task" if overdue else "Task reminder", body)


def group_digest(tasks: List[dict], today: date) -> Dict[str, List[dict]]:
    groups: Dict[str, List[dict]] = {"overdue": [], "due_today": [], "upcoming": []}
    horizon = today + timedelta(days=DIGEST_WINDOW_DAYS)
    for task in tasks:
        due = _due(task)
        if due is None or due > horizon:
            continue
        if due < today:
            groups["overdue"].append(task)
        elif due == today:
            groups["due_today"].append(task)
        else:
            groups["upcoming"].append(task)
    for rows in groups.values():
        rows.sort(key=lambda task: str(task.get("due_date")))
    return groups


def render_digest(groups: Dict[str, List[dict]], today: date) -> Rendered:
    sections = (
        ("overdue", "Overdue"),
        ("due_today", "Due today"),
        ("upcoming", f"Upcoming (next {DIGEST_WINDOW_DAYS} days)"),
    )
    total = sum(len(rows) for rows in groups.values())
    subject = f"Your task digest: {_plural(total, 'task')} need attention"

    text_parts = [f"Task digest for {today.isoformat()}"]
    html_parts = []
    for key, label in sections:
        rows = groups.get(key) or []
        if not rows:
            continue
        text_parts.append(f"\n{label} ({len(rows)})")
        items = []
        for task in rows:
            line = f"{task.get('title')} ({_firm(task)}, due {task.get('due_date')})"
            text_parts.append(f"- {line}")
            items.append(f'<li><a href="{html.escape(_task_url(task), quote=True)}">{html.escape(line)}</a></li>')
        html_parts.append(f"<h3>{html.escape(label)} ({len(rows)})</h3><ul>{''.join(items)}</ul>")

    text_parts.append(f"\nOpen tasks: {settings.app_url.rstrip('/')}/tasks\n")
    return subject, "\n".join(text_parts), _wrap_html("Task digest", "".join(html_parts))


def digest_due(frequency: str, last_sent_at: Optional[str], now: datetime) -> bool:
    if not last_sent_at:
        return True
    try:
        last = datetime.fromisoformat(last_sent_at.replace("Z", "+00:00"))
    except ValueError:
        return True
    if last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    return now - last >= DIGEST_INTERVALS[frequency]


def _user_email(supabase_admin: Client, user_id: str) -> Optional[str]:
    response = supabase_admin.auth.admin.get_user_by_id(user_id)
    user = getattr(response, "user", None)
    return getattr(user, "email", None)


async def process_email_notifications(
    supabase_admin: Client,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Dict[str, object]:
    """
    Email reminders, overdue alerts and digests for pending tasks.

    One failed delivery is recorded in errors and the run continues.
    Returns {reminders, overdue, digests, errors[]}.
    """
    if not is_email_configured():
        raise ExternalServiceError("Email delivery is not configured")

    now = now or datetime.now(timezone.utc)
    today = today or now.date()
    horizon = today + timedelta(days=DIGEST_WINDOW_DAYS)

    tasks = supabase_admin.table("tasks")\
        .select(EMAIL_TASK_SELECT)\
        .eq("status", "pending")\
        .not_.is_("created_by", "null")\
        .lte("due_date", horizon.isoformat())\
        .execute().data or []

    by_user: Dict[str, List[dict]] = {}
    for task in tasks:
        by_user.setdefault(task["created_by"], []).append(task)

    counts = {"reminders": 0, "overdue": 0, "digests": 0}
    errors: List[str] = []

    for user_id, user_tasks in by_user.items():
        prefs = await get_preferences(supabase_admin, user_id)
        if not prefs.get("email_notifications") or prefs.get("email_frequency") == "off":
            continue

        try:
            email = _user_email(supabase_admin, user_id)
        except Exception as e:
            errors.append(f"Failed to look up email for user {user_id}: {e}")
            continue
        if not email:
            continue

        outgoing: List[Tuple[str, Rendered]] = []
        for task in user_tasks:
            due = _due(task)
            if due is None:
                continue
            if due < today and should_send_email(prefs, "overdue"):
                outgoing.append(("overdue", render_task_email(task, today, overdue=True)))
            elif _reminder_due(prefs, due, today) and should_send_email(prefs, "reminder"):
                outgoing.append(("reminders", render_task_email(task, today)))

        for kind, (subject, text, body) in outgoing:
            try:
                await send_email_message(email, subject, text, body)
                counts[kind] += 1
            except Exception as e:
                errors.append(f"Failed to send {kind} email to user {user_id}: {e}")

        if not should_send_email(prefs, "digest"):
            continue
        groups = group_digest(user_tasks, today)
        if not any(groups.values()):
            continue
        messaging = await get_messaging_preferences(supabase_admin, user_id)
        if not digest_due(prefs["email_frequency"], messaging.get("last_digest_sent_at"), now):
            continue

        subject, text, body = render_digest(groups, today)
        try:
            await send_email_message(email, subject, text, body)
        except Exception as e:
            errors.append(f"Failed to send digest to user {user_id}: {e}")
            continue
        counts["digests"] += 1
        supabase_admin.table("user_messaging_preferences")\
            .upsert({"user_id": user_id, "last_digest_sent_at": now.isoformat()}, on_conflict="user_id")\
            .execute()

    logger.info(
        f"📧 Email notifications: {counts['reminders']} reminders, {counts['overdue']} overdue, "
        f"{counts['digests']} digests, {len(errors)} errors"
    )
    return {**counts, "errors": errors}
