"""
Export Service
Investor, task, activity and meeting exports as CSV or Excel
"""
import json
import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from supabase import Client

from investor_crm.core.errors import ValidationError
from investor_crm.services.export.formats import (
    CSV_MEDIA_TYPE,
    EXPORT_FORMATS,
    XLSX_MEDIA_TYPE,
    Column,
    format_date,
    join_list,
    to_csv,
    to_xlsx,
    yes_no,
)

logger = logging.getLogger(__name__)

EXPORT_ROW_LIMIT = 10000

ExportFile = Tuple[bytes, str, str]


def _primary_contact(investor: dict) -> dict:
    contacts = [c for c in investor.get("contacts") or [] if not c.get("deleted_at")]
    primary = next((c for c in contacts if c.get("is_primary")), None)
    return primary or (contacts[0] if contacts else {})


def _investor_name(row: dict) -> str:
    return (row.get("investors") or {}).get("firm_name") or ""


def _investor_stage(row: dict) -> str:
    return (row.get("investors") or {}).get("stage") or ""


def _transcript(row: dict) -> dict:
    transcripts = row.get("meeting_transcripts") or []
    if isinstance(transcripts, dict):
        return transcripts
    return transcripts[0] if transcripts else {}


INVESTOR_COLUMNS = [
    Column("firm_name", "Firm Name", lambda r: r.get("firm_name"), 30),
    Column("stage", "Stage", lambda r: r.get("stage"), 20),
    Column("relationship_owner", "Owner", lambda r: r.get("relationship_owner"), 20),
    Column("allocator_type", "Allocator Type", lambda r: r.get("allocator_type"), 18),
    Column("est_value", "Est. Value", lambda r: r.get("est_value"), 12),
    Column("entry_date", "Entry Date", lambda r: format_date(r.get("entry_date")), 12),
    Column("stage_entry_date", "Stage Entry Date", lambda r: format_date(r.get("stage_entry_date"))),
    Column("last_action_date", "Last Action", lambda r: format_date(r.get("last_action_date")), 12),
    Column("stalled", "Stalled", lambda r: yes_no(r.get("stalled")), 10),
    Column("primary_contact_name", "Primary Contact", lambda r: _primary_contact(r).get("name"), 25),
    Column("primary_contact_email", "Contact Email", lambda r: _primary_contact(r).get("email"), 30),
    Column("primary_contact_title", "Contact Title", lambda r: _primary_contact(r).get("title"), 20),
    Column("next_action", "Next Action", lambda r: r.get("next_action"), 30),
    Column("next_action_date", "Next Action Date", lambda r: format_date(r.get("next_action_date"))),
    Column("internal_conviction", "Internal Conviction", lambda r: r.get("internal_conviction")),
    Column("internal_priority", "Internal Priority", lambda r: r.get("internal_priority")),
    Column("investment_committee_timing", "IC Timing", lambda r: r.get("investment_committee_timing"), 20),
    Column("key_objection_risk", "Key Objection", lambda r: r.get("key_objection_risk"), 30),
    Column("current_strategy_notes", "Strategy Notes", lambda r: r.get("current_strategy_notes"), 40),
    Column("partner_source", "Partner Source", lambda r: r.get("partner_source"), 20),
]

TASK_COLUMNS = [
    Column("title", "Title", lambda r: r.get("title"), 30),
    Column("description", "Description", lambda r: r.get("description"), 40),
    Column("investor", "Investor", _investor_name, 30),
    Column("investor_stage", "Investor Stage", _investor_stage, 20),
    Column("status", "Status", lambda r: r.get("status"), 12),
    Column("priority", "Priority", lambda r: r.get("priority"), 10),
    Column("due_date", "Due Date", lambda r: format_date(r.get("due_date")), 12),
    Column("created_at", "Created", lambda r: format_date(r.get("created_at")), 12),
    Column("completed_at", "Completed", lambda r: format_date(r.get("completed_at")), 12),
    Column("created_by", "Created By", lambda r: r.get("created_by"), 20),
    Column("completed_by", "Completed By", lambda r: r.get("completed_by"), 20),
]

ACTIVITY_COLUMNS = [
    Column("date", "Date", lambda r: format_date(r.get("created_at")), 12),
    Column("investor", "Investor", _investor_name, 30),
    Column("activity_type", "Type", lambda r: r.get("activity_type"), 14),
    Column("description", "Description", lambda r: r.get("description"), 50),
    Column("created_by", "Created By", lambda r: r.get("created_by"), 20),
    Column("metadata", "Metadata", lambda r: json.dumps(r["metadata"]) if r.get("metadata") else "", 40),
]

MEETING_COLUMNS = [
    Column("meeting_title", "Meeting", lambda r: r.get("meeting_title"), 30),
    Column("investor", "Investor", _investor_name, 30),
    Column("investor_stage", "Investor Stage", _investor_stage, 20),
    Column("meeting_date", "Date", lambda r: format_date(r.get("meeting_date")), 12),
    Column("duration_minutes", "Duration (min)", lambda r: r.get("duration_minutes"), 12),
    Column("status", "Status", lambda r: r.get("status"), 12),
    Column("summary", "Summary", lambda r: _transcript(r).get("summary"), 50),
    Column("sentiment", "Sentiment", lambda r: _transcript(r).get("sentiment"), 12),
    Column("key_topics", "Key Topics", lambda r: join_list(_transcript(r).get("key_topics")), 40),
    Column("action_items_count", "Action Items", lambda r: len(_transcript(r).get("action_items") or []), 12),
    Column("objections_count", "Objections", lambda r: len(_transcript(r).get("objections") or []), 12),
]

EXPORTS: Dict[str, Tuple[str, str, List[Column], str]] = {
    # type: (table, select, columns, sheet title)
    "investors": ("investors", "*, contacts(name, email, title, is_primary, deleted_at)", INVESTOR_COLUMNS, "Investors"),
    "tasks": ("tasks", "*, investors(firm_name, stage)", TASK_COLUMNS, "Tasks"),
    "activities": ("activities", "*, investors(firm_name)", ACTIVITY_COLUMNS, "Activities"),
    "meetings": ("meetings", "*, investors(firm_name, stage), meeting_transcripts(summary, sentiment, key_topics, action_items, objections)", MEETING_COLUMNS, "Meetings"),
}

ORDER_COLUMNS = {
    "investors": "firm_name",
    "tasks": "due_date",
    "activities": "created_at",
    "meetings": "meeting_date",
}


def export_filename(export_type: str, fmt: str, today: Optional[date] = None) -> str:
    return f"{export_type}-{(today or date.today()).isoformat()}.{fmt}"


def render(export_type: str, rows: List[dict], fmt: str) -> ExportFile:
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Unsupported export format: {fmt}")
    _, _, columns, title = EXPORTS[export_type]

    if fmt == "csv":
        return to_csv(columns, rows), export_filename(export_type, fmt), CSV_MEDIA_TYPE
    return to_xlsx(columns, rows, title), export_filename(export_type, fmt), XLSX_MEDIA_TYPE


async def _export(supabase: Client, export_type: str, fmt: str, filters: Optional[dict] = None) -> ExportFile:
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Unsupported export format: {fmt}")

    table, select, _, _ = EXPORTS[export_type]
    query = supabase.table(table).select(select)

    if export_type == "investors":
        query = query.is_("deleted_at", "null")
    for key, value in (filters or {}).items():
        if value is not None and value != "" and value != "all":
            query = query.eq(key, value)

    order_column = ORDER_COLUMNS[export_type]
    result = query\
        .order(order_column, desc=export_type in ("activities", "meetings"))\
        .limit(EXPORT_ROW_LIMIT)\
        .execute()

    rows = result.data or []
    logger.info(f"📤 Exporting {len(rows)} {export_type} as {fmt}")
    return render(export_type, rows, fmt)


async def export_investors(supabase: Client, fmt: str = "csv", filters: Optional[dict] = None) -> ExportFile:
    return await _export(supabase, "investors", fmt, filters)


async def export_tasks(supabase: Client, fmt: str = "csv", filters: Optional[dict] = None) -> ExportFile:
    return await _export(supabase, "tasks", fmt, filters)


async def export_activities(supabase: Client, fmt: str = "csv", filters: Optional[dict] = None) -> ExportFile:
    return await _export(supabase, "activities", fmt, filters)


async def export_meetings(supabase: Client, fmt: str = "csv", filters: Optional[dict] = None) -> ExportFile:
    return await _export(supabase, "meetings", fmt, filters)
