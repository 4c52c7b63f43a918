"""
Unit tests for bulk operations and CSV/Excel exports
"""
import csv
import io
from datetime import date

import pytest
from openpyxl import load_workbook

from investor_crm.core.errors import ValidationError
from investor_crm.services.bulk.service import execute_bulk
from investor_crm.services.export import export_filename, export_investors, export_meetings, export_tasks, render
from investor_crm.services.export.formats import XLSX_MEDIA_TYPE, format_date
from investor_crm.utils.cache import CacheKeys, cache


# ============================================================================
# BULK
# ============================================================================

@pytest.mark.asyncio
async def test_bulk_rejects_empty_and_oversized(supabase):
    with pytest.raises(ValidationError, match="No items selected"):
        await execute_bulk(supabase, "tasks", "delete", [], None, "user-1")
    with pytest.raises(ValidationError, match="more than 500"):
        await execute_bulk(supabase, "tasks", "delete", [str(i) for i in range(501)], None, "user-1")


@pytest.mark.asyncio
async def test_bulk_complete_tasks(supabase):
    cache.set(CacheKeys.task_stats(), {"total": 1})

    result = await execute_bulk(supabase, "tasks", "update_status", ["t1", "t2"], {"status": "completed"}, "user-1")

    assert result.success is True
    assert result.successful == 2
    assert result.message == "Successfully update status 2 tasks"
    query = supabase.queries_for("tasks")[0]
    changes = query.called("update")[0][0][0]
    assert changes["status"] == "completed"
    assert changes["completed_by"] == "user-1"
    assert query.called("in_") == [(("id", ["t1", "t2"]), {})]
    assert cache.get(CacheKeys.task_stats()) is None


@pytest.mark.asyncio
async def test_bulk_reopen_clears_completion(supabase):
    await execute_bulk(supabase, "tasks", "update_status", ["t1"], {"status": "pending"}, "user-1")

    changes = supabase.queries_for("tasks")[0].called("update")[0][0][0]
    assert changes["completed_at"] is None
    assert changes["completed_by"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize("operation,data,message", [
    ("update_status", {"status": "archived"}, "Invalid status value"),
    ("update_priority", {"priority": "urgent"}, "Invalid priority value"),
    ("assign_due_date", {"due_date": "30/06/2025"}, "Invalid due_date format (expected YYYY-MM-DD)"),
])
async def test_bulk_invalid_data_is_a_failed_result(supabase, operation, data, message):
    result = await execute_bulk(supabase, "tasks", operation, ["t1", "t2"], data, "user-1")

    assert result.success is False
    assert result.failed == 2
    assert result.message == message
    assert supabase.queries_for("tasks") == []


@pytest.mark.asyncio
async def test_bulk_operation_not_valid_for_entity(supabase):
    result = await execute_bulk(supabase, "investors", "update_priority", ["i1"], {"priority": "low"}, "user-1")
    assert result.success is False
    assert result.message == "Invalid operation for investors"


@pytest.mark.asyncio
async def test_bulk_restore_investors(supabase):
    result = await execute_bulk(supabase, "investors", "restore", ["i1"], None, "user-1")

    assert result.message == "Successfully restored 1 investor"
    assert supabase.queries_for("investors")[0].called("update")[0][0][0]["deleted_at"] is None


@pytest.mark.asyncio
async def test_bulk_change_interaction_type(supabase):
    result = await execute_bulk(
        supabase, "interactions", "change_interaction_type", ["a1", "a2"], {"interaction_type": "call"}, "user-1",
    )
    assert result.message == "Successfully changed type for 2 interactions"

    rejected = await execute_bulk(
        supabase, "interactions", "change_interaction_type", ["a1"], {"interaction_type": "stage_change"}, "user-1",
    )
    assert rejected.message == "Invalid interaction type"

    missing = await execute_bulk(supabase, "interactions", "change_interaction_type", ["a1"], {}, "user-1")
    assert missing.message == "Interaction type is required"


@pytest.mark.asyncio
async def test_bulk_database_failure(supabase):
    supabase.respond("activities", RuntimeError("connection reset"))

    result = await execute_bulk(supabase, "interactions", "delete", ["a1"], None, "user-1")

    assert result.success is False
    assert result.message == "connection reset"


# ============================================================================
# EXPORT
# ============================================================================

INVESTOR = {
    "firm_name": "Acme Capital",
    "stage": "Materials Shared",
    "relationship_owner": "Todd",
    "est_value": 2500000,
    "entry_date": "2025-01-15T09:30:00+00:00",
    "stalled": False,
    "contacts": [
        {"name": "Old", "email": "old@acme.com", "is_primary": True, "deleted_at": "2025-02-01"},
        {"name": "Jo", "email": "jo@acme.com", "title": "CIO", "is_primary": False},
    ],
}


def read_csv(content: bytes):
    return list(csv.DictReader(io.StringIO(content.decode("utf-8"))))


def test_format_date():
    assert format_date(None) == ""
    assert format_date(date(2025, 6, 30)) == "2025-06-30"
    assert format_date("2025-06-30T12:00:00Z") == "2025-06-30"


def test_export_filename():
    assert export_filename("tasks", "xlsx", today=date(2025, 6, 30)) == "tasks-2025-06-30.xlsx"


@pytest.mark.asyncio
async def test_export_investors_csv(supabase):
    supabase.respond("investors", [INVESTOR])

    content, filename, media_type = await export_investors(supabase, "csv", {"stage": "all"})

    assert media_type == "text/csv"
    assert filename.startswith("investors-") and filename.endswith(".csv")
    row = read_csv(content)[0]
    assert row["firm_name"] == "Acme Capital"
    assert row["entry_date"] == "2025-01-15"
    assert row["stalled"] == "No"
    # Deleted contacts are skipped, so the first live contact stands in for the primary
    assert row["primary_contact_name"] == "Jo"
    assert row["primary_contact_email"] == "jo@acme.com"

    query = supabase.queries_for("investors")[0]
    assert query.called("eq") == []
    assert query.called("is_") == [(("deleted_at", "null"), {})]


@pytest.mark.asyncio
async def test_export_tasks_applies_filters(supabase):
    supabase.respond("tasks", [{"title": "Follow up", "status": "pending", "investors": {"firm_name": "Acme"}}])

    content, _, _ = await export_tasks(supabase, "csv", {"status": "pending", "investor_id": None})

    assert read_csv(content)[0]["investor"] == "Acme"
    assert supabase.queries_for("tasks")[0].called("eq") == [(("status", "pending"), {})]


@pytest.mark.asyncio
async def test_export_meetings_flattens_transcript(supabase):
    supabase.respond("meetings", [{
        "meeting_title": "Intro",
        "meeting_transcripts": [{
            "summary": "Went well",
            "sentiment": "positive",
            "key_topics": ["fees", "track record"],
            "action_items": [{"task": "Send deck"}],
            "objections": [],
        }],
    }])

    content, _, _ = await export_meetings(supabase, "csv")

    row = read_csv(content)[0]
    assert row["key_topics"] == "fees; track record"
    assert row["action_items_count"] == "1"
    assert row["objections_count"] == "0"


def test_render_xlsx():
    content, filename, media_type = render("investors", [INVESTOR], "xlsx")

    assert media_type == XLSX_MEDIA_TYPE
    assert filename.endswith(".xlsx")
    sheet = load_workbook(io.BytesIO(content)).active
    assert sheet.title == "Investors"
    assert sheet["A1"].value == "Investors Export"
    assert sheet["A4"].value == "Firm Name"
    assert sheet["A5"].value == "Acme Capital"
    assert sheet.freeze_panes == "A5"


def test_render_unknown_format():
    with pytest.raises(ValidationError, match="Unsupported export format: pdf"):
        render("tasks", [], "pdf")
