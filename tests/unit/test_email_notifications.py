"""
Unit tests for SMTP delivery and the email reminder / digest run
"""
from datetime import date, datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from investor_crm.core.config import settings
from investor_crm.core.errors import ExternalServiceError
from investor_crm.services.notifications import digests, mailer
from investor_crm.services.notifications.digests import (
    digest_due,
    group_digest,
    overdue_duration,
    render_digest,
    render_task_email,
    should_send_email,
    time_until_due,
)

TODAY = date(2025, 6, 30)
NOW = datetime(2025, 6, 30, 13, 0, tzinfo=timezone.utc)


@pytest.fixture
def smtp_settings(monkeypatch):
    monkeypatch.setattr(settings, "smtp_host", "smtp.example.com")
    monkeypatch.setattr(settings, "smtp_user", "crm@example.com")
    monkeypatch.setattr(settings, "smtp_password", "app-password")
    monkeypatch.setattr(settings, "email_test_mode", False)


@pytest.fixture
def send(monkeypatch):
    mock = AsyncMock()
    monkeypatch.setattr(digests, "send_email_message", mock)
    return mock


def task(task_id: str, due_date: str, **extra) -> dict:
    return {
        "id": task_id, "title": f"Task {task_id}", "due_date": due_date,
        "investor_id": "inv-1", "created_by": "user-1", "investors": {"firm_name": "Acme"}, **extra,
    }


# ============================================================================
# MAILER
# ============================================================================

@pytest.mark.asyncio
async def test_send_email_message_over_smtp(smtp_settings, monkeypatch):
    smtp = MagicMock()
    monkeypatch.setattr(mailer.smtplib, "SMTP", smtp)

    await mailer.send_email_message("jo@acme.com", "Hello", "Plain body", "<p>Hi</p>")

    assert smtp.call_args.args == ("smtp.example.com", 587)
    server = smtp.return_value.__enter__.return_value
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("crm@example.com", "app-password")
    message = server.send_message.call_args.args[0]
    assert message["To"] == "jo@acme.com"
    assert message.get_body(("html",)).get_content().strip() == "<p>Hi</p>"


@pytest.mark.asyncio
async def test_send_email_message_wraps_smtp_errors(smtp_settings, monkeypatch):
    smtp = MagicMock(side_effect=OSError("connection refused"))
    monkeypatch.setattr(mailer.smtplib, "SMTP", smtp)

    with pytest.raises(ExternalServiceError):
        await mailer.send_email_message("jo@acme.com", "Hello", "body")


def test_test_mode_redirects_recipient(smtp_settings, monkeypatch):
    monkeypatch.setattr(settings, "email_test_mode", True)
    monkeypatch.setattr(settings, "email_test_recipient", "qa@example.com")

    message = mailer.build_email("jo@acme.com", "Hello", "body")

    assert message["To"] == "qa@example.com"
    assert message["Subject"] == "[TEST for jo@acme.com] Hello"


@pytest.mark.asyncio
async def test_send_requires_configuration(monkeypatch):
    monkeypatch.setattr(settings, "smtp_host", None)

    with pytest.raises(ExternalServiceError):
        await mailer.send_email_message("jo@acme.com", "Hello", "body")


# ============================================================================
# RENDERING + PREFERENCES
# ============================================================================

@pytest.mark.parametrize("due,expected", [
    (date(2025, 6, 30), "today"),
    (date(2025, 7, 1), "tomorrow"),
    (date(2025, 7, 4), "in 4 days"),
])
def test_time_until_due(due, expected):
    assert time_until_due(due, TODAY) == expected


@pytest.mark.parametrize("due,expected", [
    (date(2025, 6, 29), "1 day"),
    (date(2025, 6, 25), "5 days"),
    (date(2025, 6, 9), "3 weeks"),
])
def test_overdue_duration(due, expected):
    assert overdue_duration(due, TODAY) == expected


@pytest.mark.parametrize("prefs,kind,expected", [
    ({"email_notifications": False, "email_frequency": "daily", "task_reminders": "24h"}, "reminder", False),
    ({"email_notifications": True, "email_frequency": "off"}, "digest", False),
    ({"email_notifications": True, "email_frequency": "immediate", "task_reminders": "1h"}, "reminder", True),
    ({"email_notifications": True, "email_frequency": "daily", "task_reminders": "off"}, "reminder", False),
    ({"email_notifications": True, "email_frequency": "weekly", "task_reminders": "24h"}, "reminder", False),
    ({"email_notifications": True, "email_frequency": "daily", "overdue_alerts": False}, "overdue", False),
    ({"email_notifications": True, "email_frequency": "weekly"}, "digest", True),
    ({"email_notifications": True, "email_frequency": "immediate"}, "digest", False),
])
def test_should_send_email(prefs, kind, expected):
    assert should_send_email(prefs, kind) is expected


def test_task_email_escapes_html():
    subject, text, body = render_task_email(task("t1", "2025-07-01", title="<b>Chase</b> LPA"), TODAY)

    assert subject == "Reminder: <b>Chase</b> LPA is due tomorrow"
    assert "&lt;b&gt;Chase&lt;/b&gt; LPA" in body
    assert "<b>Chase</b>" not in body
    assert "/tasks?task=t1" in text


def test_group_digest_buckets_by_due_date():
    tasks = [task("late", "2025-06-20"), task("now", "2025-06-30"), task("soon", "2025-07-03"), task("far", "2025-08-01")]

    groups = group_digest(tasks, TODAY)

    assert [[t["id"] for t in groups[key]] for key in ("overdue", "due_today", "upcoming")] == [["late"], ["now"], ["soon"]]
    subject, text, _ = render_digest(groups, TODAY)
    assert subject == "Your task digest: 3 tasks need attention"
    assert "Overdue (1)" in text


@pytest.mark.parametrize("frequency,last_sent,expected", [
    ("daily", None, True),
    ("daily", "2025-06-29T14:30:00+00:00", False),
    ("daily", "2025-06-29T12:00:00Z", True),
    ("weekly", "2025-06-27T12:00:00+00:00", False),
    ("weekly", "2025-06-23T12:00:00+00:00", True),
])
def test_digest_due(frequency, last_sent, expected):
    assert digest_due(frequency, last_sent, NOW) is expected


# ============================================================================
# PROCESS RUN
# ============================================================================

@pytest.mark.asyncio
async def test_process_sends_reminders_overdue_and_digest(smtp_settings, send, supabase):
    supabase.respond("tasks", [
        task("t1", "2025-07-01"), task("t2", "2025-06-20"), task("t3", "2025-07-04"), task("t4", "2025-06-30"),
    ])
    supabase.auth.admin.get_user_by_id.return_value = SimpleNamespace(user=SimpleNamespace(email="bdr@example.com"))

    result = await digests.process_email_notifications(supabase, today=TODAY, now=NOW)

    assert result == {"reminders": 1, "overdue": 1, "digests": 1, "errors": []}
    subjects = [call.args[1] for call in send.await_args_list]
    assert subjects == [
        "Reminder: Task t1 is due tomorrow",
        "Overdue: Task t2",
        "Your task digest: 4 tasks need attention",
    ]
    assert {call.args[0] for call in send.await_args_list} == {"bdr@example.com"}

    task_query = supabase.queries_for("tasks")[0]
    assert task_query.called("lte") == [(("due_date", "2025-07-07"), {})]
    stamp = supabase.queries_for("user_messaging_preferences")[-1].called("upsert")[0][0][0]
    assert stamp == {"user_id": "user-1", "last_digest_sent_at": NOW.isoformat()}


@pytest.mark.asyncio
async def test_weekly_user_skips_reminders_and_recent_digest(smtp_settings, send, supabase):
    supabase.respond("tasks", [task("t1", "2025-07-01"), task("t2", "2025-06-20")])
    supabase.respond("user_preferences", {"preferences": {"email_frequency": "weekly"}})
    supabase.respond("user_messaging_preferences", {"last_digest_sent_at": "2025-06-28T08:00:00+00:00"})
    supabase.auth.admin.get_user_by_id.return_value = SimpleNamespace(user=SimpleNamespace(email="bdr@example.com"))

    result = await digests.process_email_notifications(supabase, today=TODAY, now=NOW)

    assert result == {"reminders": 0, "overdue": 0, "digests": 0, "errors": []}
    send.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_delivery_is_collected_and_digest_not_stamped(smtp_settings, send, supabase):
    supabase.respond("tasks", [task("t2", "2025-06-20")])
    supabase.auth.admin.get_user_by_id.return_value = SimpleNamespace(user=SimpleNamespace(email="bdr@example.com"))
    send.side_effect = ExternalServiceError("Failed to send email: timeout")

    result = await digests.process_email_notifications(supabase, today=TODAY, now=NOW)

    assert result["overdue"] == 0
    assert result["digests"] == 0
    assert result["errors"] == [
        "Failed to send overdue email to user user-1: Failed to send email: timeout",
        "Failed to send digest to user user-1: Failed to send email: timeout",
    ]
    assert all(not query.called("upsert") for query in supabase.queries_for("user_messaging_preferences"))


@pytest.mark.asyncio
async def test_users_with_email_off_are_skipped(smtp_settings, send, supabase):
    supabase.respond("tasks", [task("t2", "2025-06-20")])
    supabase.respond("user_preferences", {"preferences": {"email_notifications": False}})

    result = await digests.process_email_notifications(supabase, today=TODAY, now=NOW)

    assert result == {"reminders": 0, "overdue": 0, "digests": 0, "errors": []}
    supabase.auth.admin.get_user_by_id.assert_not_called()


@pytest.mark.asyncio
async def test_process_requires_smtp(monkeypatch, supabase):
    monkeypatch.setattr(settings, "smtp_host", None)

    with pytest.raises(ExternalServiceError):
        await digests.process_email_notifications(supabase, today=TODAY, now=NOW)
    assert supabase.queries == []
