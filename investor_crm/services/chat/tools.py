"""
Assistant Tools
Anthropic tool schemas and their executors over the investor pipeline

Read tools run allowlisted queries; write tools go through the same
services the HTTP API uses, so validation and activity logging match.
Every result is passed through sanitize_tool_output before the model sees it.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Tuple

from supabase import Client

from investor_crm.core.errors import NotFoundError, ValidationError
from investor_crm.models.schemas.activities import ActivityCreate, USER_ACTIVITY_TYPES
from investor_crm.models.schemas.contacts import ContactCreate
from investor_crm.models.schemas.investors import InvestorCreate
from investor_crm.models.schemas.meetings import MeetingCreate
from investor_crm.models.schemas.tasks import TaskCreate, TASK_PRIORITIES
from investor_crm.services.activities.service import log_activity
from investor_crm.services.chat.security import sanitize_tool_output
from investor_crm.services.contacts.service import create_contact
from investor_crm.services.investors.service import create_investor, update_investor_field
from investor_crm.services.meetings.service import create_meeting
from investor_crm.services.pipeline import STAGE_ORDER, compute_is_stalled
from investor_crm.services.tasks.service import create_task
from investor_crm.utils.sanitize import escape_like

logger = logging.getLogger(__name__)

QUERY_INTENTS = (
    "stalled_investors",
    "investors_by_stage",
    "high_value_pipeline",
    "recent_activity",
    "pipeline_summary",
    "upcoming_actions",
)
STRATEGY_REQUEST_TYPES = ("next_steps", "risk_assessment", "prioritization", "objection_handling")
READ_ONLY_TOOLS = frozenset({"query_pipeline", "get_investor_detail", "strategy_advisor"})

PIPELINE_LIMIT = 50
DEFAULT_MIN_VALUE = 1_000_000
DEFAULT_RECENT_DAYS = 7
DEFAULT_UPCOMING_DAYS = 7
DEFAULT_STALL_DAYS = 30
DETAIL_ACTIVITY_LIMIT = 10
STRATEGY_ACTIVITY_LIMIT = 5
MEETING_MATCH_LIMIT = 5

PIPELINE_COLUMNS = (
    "id, firm_name, stage, est_value, last_action_date, stage_entry_date, "
    "internal_conviction, next_action, next_action_date"
)

ANALYSIS_GUIDANCE = {
    "next_steps": (
        "Analyze current stage, recent activities, and strategy notes to recommend concrete next steps. "
        "Consider timeline, relationship momentum, and stage exit criteria."
    ),
    "risk_assessment": (
        "Evaluate key objections/risks, days since last action, conviction level, and stalled status. "
        "Identify red flags and mitigation strategies."
    ),
    "prioritization": (
        "Consider est_value, internal_conviction, internal_priority, stage proximity to close, and "
        "relationship momentum. Recommend priority level with rationale."
    ),
    "objection_handling": (
        "Analyze key_objection_risk field and strategy notes. Suggest approaches to address concerns "
        "and advance the relationship."
    ),
}


@dataclass
class ToolContext:
    supabase: Client
    user_id: str
    today: Optional[date] = None
    allowed_tools: Optional[FrozenSet[str]] = None

    def current_date(self) -> date:
        return self.today or date.today()


def _days_since(value: Optional[str], today: date) -> Optional[int]:
    try:
        return (today - date.fromisoformat(str(value)[:10])).days if value else None
    except ValueError:
        return None


def _is_stalled(row: dict, today: date, threshold_days: Optional[int] = None) -> bool:
    return compute_is_stalled(
        row.get("last_action_date"),
        row.get("stage"),
        threshold_days=threshold_days,
        stage_entry_date=row.get("stage_entry_date"),
        today=today,
    )


# ============================================================================
# READ TOOLS
# ============================================================================

async def query_pipeline(ctx: ToolContext, intent: str, filters: Optional[Dict[str, Any]] = None) -> dict:
    if intent not in QUERY_INTENTS:
        raise ValidationError(f"Unknown intent: {intent}")

    filters = filters or {}
    today = ctx.current_date()
    query = ctx.supabase.table("investors").select(PIPELINE_COLUMNS).is_("deleted_at", "null")

    if intent == "investors_by_stage" and filters.get("stage"):
        query = query.eq("stage", filters["stage"])
    elif intent == "high_value_pipeline":
        query = query.gte("est_value", filters.get("min_value") or DEFAULT_MIN_VALUE)
        if filters.get("max_value"):
            query = query.lte("est_value", filters["max_value"])
    elif intent == "recent_activity":
        since = today - timedelta(days=filters.get("timeframe_days") or DEFAULT_RECENT_DAYS)
        query = query.gte("last_action_date", since.isoformat())
    elif intent == "upcoming_actions":
        until = today + timedelta(days=filters.get("timeframe_days") or DEFAULT_UPCOMING_DAYS)
        query = query.not_.is_("next_action_date", "null").lte("next_action_date", until.isoformat())

    if filters.get("conviction"):
        query = query.eq("internal_conviction", filters["conviction"])

    rows = query.limit(PIPELINE_LIMIT).execute().data or []

    if intent == "pipeline_summary":
        by_stage: Dict[str, int] = {}
        for row in rows:
            by_stage[row["stage"]] = by_stage.get(row["stage"], 0) + 1
        return {
            "count": len(rows),
            "by_stage": by_stage,
            "summary": f"Pipeline has {len(rows)} active investors across {len(by_stage)} stages",
        }

    threshold = None
    if intent == "stalled_investors":
        threshold = filters.get("timeframe_days") or DEFAULT_STALL_DAYS
        rows = [row for row in rows if _is_stalled(row, today, threshold)]

    investors = sanitize_tool_output([
        {
            "id": row["id"],
            "firm_name": row["firm_name"],
            "stage": row["stage"],
            "est_value": row.get("est_value"),
            "days_since_action": _days_since(row.get("last_action_date"), today),
            "internal_conviction": row.get("internal_conviction"),
            "next_action": row.get("next_action"),
            "next_action_date": row.get("next_action_date"),
            "stalled": _is_stalled(row, today, threshold),
        }
        for row in rows
    ])

    summary = f'Found {len(investors)} investors matching "{intent}"'
    if filters.get("stage"):
        summary += f' in stage "{filters["stage"]}"'
    return {"count": len(investors), "investors": investors, "summary": summary}


def _find_investors(ctx: ToolContext, investor_id: Optional[str], firm_name: Optional[str]) -> List[dict]:
    query = ctx.supabase.table("investors").select("*").is_("deleted_at", "null")
    if investor_id:
        query = query.eq("id", investor_id)
    elif firm_name:
        query = query.ilike("firm_name", f"%{escape_like(firm_name)}%")
    else:
        raise ValidationError("Provide investor_id or firm_name")
    return query.limit(PIPELINE_LIMIT).execute().data or []


def _recent_activities(ctx: ToolContext, investor_id: str, limit: int) -> List[dict]:
    result = ctx.supabase.table("activities")\
        .select("activity_type, description, created_at")\
        .eq("investor_id", investor_id)\
        .order("created_at", desc=True)\
        .limit(limit)\
        .execute()
    return [
        {"type": row["activity_type"], "description": row["description"], "created_at": row["created_at"]}
        for row in result.data or []
    ]


async def get_investor_detail(
    ctx: ToolContext,
    investor_id: Optional[str] = None,
    firm_name: Optional[str] = None,
) -> dict:
    """Lookup by id, or by partial firm name (asks to narrow down on multiple hits)."""
    matches = _find_investors(ctx, investor_id, firm_name)
    label = investor_id or firm_name

    if not matches:
        return {"found": False, "matches": 0, "message": f'No investors found matching "{label}". Try a different search term.'}

    if len(matches) > 1:
        return {
            "found": True,
            "matches": len(matches),
            "message": f'Found {len(matches)} investors matching "{label}". Please be more specific.',
            "investors": [
                {"id": row["id"], "firm_name": row["firm_name"], "stage": row["stage"],
                 "relationship_owner": row.get("relationship_owner")}
                for row in matches
            ],
        }

    investor = matches[0]
    today = ctx.current_date()

    contacts = ctx.supabase.table("contacts")\
        .select("name, title, is_primary")\
        .eq("investor_id", investor["id"])\
        .is_("deleted_at", "null")\
        .order("is_primary", desc=True)\
        .execute()

    detail = {
        key: investor.get(key)
        for key in (
            "id", "firm_name", "relationship_owner", "stage", "est_value", "allocator_type",
            "internal_conviction", "internal_priority", "last_action_date", "next_action",
            "next_action_date", "current_strategy_notes", "current_strategy_date", "key_objection_risk",
        )
    }
    detail["days_in_stage"] = _days_since(investor.get("stage_entry_date"), today)
    detail["days_since_action"] = _days_since(investor.get("last_action_date"), today)
    detail["stalled"] = _is_stalled(investor, today)

    return sanitize_tool_output({
        "found": True,
        "matches": 1,
        "investor": detail,
        "contacts": contacts.data or [],
        "recent_activities": _recent_activities(ctx, investor["id"], DETAIL_ACTIVITY_LIMIT),
    })


async def strategy_advisor(ctx: ToolContext, investor_id: str, request_type: str) -> dict:
    """Context for the model to reason over; the tool itself makes no recommendation."""
    if request_type not in STRATEGY_REQUEST_TYPES:
        raise ValidationError(f"Unknown request type: {request_type}")

    matches = _find_investors(ctx, investor_id, None)
    if not matches:
        raise NotFoundError("Investor not found")

    investor = matches[0]
    today = ctx.current_date()

    return sanitize_tool_output({
        "request_type": request_type,
        "investor": {
            "firm_name": investor["firm_name"],
            "relationship_owner": investor.get("relationship_owner"),
            "stage": investor["stage"],
            "days_in_stage": _days_since(investor.get("stage_entry_date"), today),
            "stalled": _is_stalled(investor, today),
            "days_since_action": _days_since(investor.get("last_action_date"), today),
            "est_value": investor.get("est_value"),
            "allocator_type": investor.get("allocator_type"),
            "internal_conviction": investor.get("internal_conviction"),
            "internal_priority": investor.get("internal_priority"),
        },
        "strategy": {
            key: investor.get(key)
            for key in ("current_strategy_notes", "current_strategy_date", "last_strategy_notes",
                        "last_strategy_date", "key_objection_risk")
        },
        "actions": {
            "next_action": investor.get("next_action"),
            "next_action_date": investor.get("next_action_date"),
            "recent_activities": _recent_activities(ctx, investor_id, STRATEGY_ACTIVITY_LIMIT),
        },
        "analysis_guidance": ANALYSIS_GUIDANCE[request_type],
    })


# ============================================================================
# WRITE TOOLS
# ============================================================================

async def create_investor_tool(ctx: ToolContext, firm_name: str, stage: str, relationship_owner: str) -> dict:
    investor = await create_investor(
        ctx.supabase,
        InvestorCreate(firm_name=firm_name, stage=stage, relationship_owner=relationship_owner),
        ctx.user_id,
    )
    return sanitize_tool_output({"success": True, "investor": investor})


async def update_investor_tool(ctx: ToolContext, investor_id: str, field: str, value: Any) -> dict:
    if field == "stage":
        raise ValidationError("Stage changes must go through the stage transition checklist")
    investor = await update_investor_field(ctx.supabase, investor_id, field, value, ctx.user_id)
    return sanitize_tool_output({"success": True, "investor": investor})


async def log_activity_tool(ctx: ToolContext, investor_id: str, activity_type: str, description: str) -> dict:
    activity = await log_activity(
        ctx.supabase,
        ActivityCreate(investor_id=investor_id, activity_type=activity_type, description=description),
        ctx.user_id,
    )
    return sanitize_tool_output({"success": True, "activity": activity})


async def create_contact_tool(ctx: ToolContext, investor_id: str, name: str, title: Optional[str] = None,
                              email: Optional[str] = None, phone: Optional[str] = None) -> dict:
    contact = await create_contact(
        ctx.supabase, investor_id, ContactCreate(name=name, title=title, email=email, phone=phone), ctx.user_id,
    )
    return sanitize_tool_output({"success": True, "contact": contact})


async def create_task_tool(ctx: ToolContext, investor_id: str, title: str, due_date: Optional[str] = None,
                           priority: str = "medium", description: Optional[str] = None) -> dict:
    task = await create_task(
        ctx.supabase,
        TaskCreate(investor_id=investor_id, title=title, due_date=due_date, priority=priority,
                   description=description),
        ctx.user_id,
    )
    return sanitize_tool_output({"success": True, "task": task})


def _meeting_timestamp(meeting_date: str) -> Tuple[str, str]:
    """(stored timestamp, "Feb 21, 2026" label). Bare dates are taken as midnight UTC."""
    text = (meeting_date or "").strip()
    try:
        if "T" in text:
            day = datetime.fromisoformat(text.replace("Z", "+00:00")).date()
            stamp = text
        else:
            day = date.fromisoformat(text)
            stamp = f"{day.isoformat()}T00:00:00Z"
    except ValueError:
        raise ValidationError("meeting_date must be YYYY-MM-DD or an ISO 8601 timestamp")
    return stamp, f"{day:%b} {day.day}, {day.year}"


async def create_meeting_tool(ctx: ToolContext, firm_name: str, meeting_title: str, meeting_date: str,
                              duration_minutes: Optional[int] = None, notes: Optional[str] = None) -> dict:
    """Log a meeting by firm name and add it to the investor timeline."""
    matches = _find_investors(ctx, None, firm_name)
    if not matches:
        raise NotFoundError(f'No investor found matching "{firm_name}". Try a different search term.')
    if len(matches) > 1:
        return {
            "status": "clarification_needed",
            "message": f'Multiple investors match "{firm_name}". Please be more specific.',
            "matches": [row["firm_name"] for row in matches[:MEETING_MATCH_LIMIT]],
        }

    investor = matches[0]
    stamp, label = _meeting_timestamp(meeting_date)
    meeting = await create_meeting(
        ctx.supabase,
        MeetingCreate(investor_id=investor["id"], meeting_title=meeting_title, meeting_date=stamp,
                      duration_minutes=duration_minutes),
        ctx.user_id,
    )

    description = f"Meeting: {meeting_title} - {notes}" if notes else f"Meeting: {meeting_title}"
    await log_activity(
        ctx.supabase,
        ActivityCreate(investor_id=investor["id"], activity_type="meeting", description=description[:2000],
                       metadata={"source": "ai_bdr_agent", "meeting_id": meeting["id"]}),
        ctx.user_id,
    )

    return sanitize_tool_output({
        "status": "success",
        "message": f'Meeting logged with {investor["firm_name"]} on {label}: "{meeting_title}"',
        "meeting_id": meeting["id"],
        "firm_name": investor["firm_name"],
        "meeting_date": label,
        "meeting_title": meeting_title,
    })


# ============================================================================
# REGISTRY
# ============================================================================

ToolExecutor = Callable[..., Awaitable[dict]]

TOOL_EXECUTORS: Dict[str, ToolExecutor] = {
    "query_pipeline": query_pipeline,
    "get_investor_detail": get_investor_detail,
    "strategy_advisor": strategy_advisor,
    "create_investor": create_investor_tool,
    "update_investor": update_investor_tool,
    "log_activity": log_activity_tool,
    "create_contact": create_contact_tool,
    "create_task": create_task_tool,
    "create_meeting": create_meeting_tool,
}

TOOL_SCHEMAS: List[dict] = [
    {
        "name": "query_pipeline",
        "description": (
            "Query the investor pipeline using safe, predefined patterns. "
            "stalled_investors, investors_by_stage (with stage filter), high_value_pipeline (min_value), "
            "recent_activity (timeframe_days), pipeline_summary (counts by stage), "
            "upcoming_actions (next_action_date within 7 days)."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "intent": {"type": "string", "enum": list(QUERY_INTENTS)},
                "filters": {
                    "type": "object",
                    "properties": {
                        "stage": {"type": "string", "enum": STAGE_ORDER},
                        "min_value": {"type": "number"},
                        "max_value": {"type": "number"},
                        "timeframe_days": {"type": "integer"},
                        "conviction": {"type": "string"},
                    },
                },
            },
            "required": ["intent"],
        },
    },
    {
        "name": "get_investor_detail",
        "description": (
            "Fetch an investor with contacts (name/title only) and recent activities. "
            "Call this whenever the user mentions a firm name; partial names are matched."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "investor_id": {"type": "string", "description": "Investor UUID, if known"},
                "firm_name": {"type": "string", "description": "Full or partial firm name"},
            },
        },
    },
    {
        "name": "strategy_advisor",
        "description": (
            "Strategic context for one investor: next steps, risk assessment, prioritization or "
            "objection handling. Returns data; you provide the analysis."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "investor_id": {"type": "string"},
                "request_type": {"type": "string", "enum": list(STRATEGY_REQUEST_TYPES)},
            },
            "required": ["investor_id", "request_type"],
        },
    },
    {
        "name": "create_investor",
        "description": "Create a new investor record.",
        "input_schema": {
            "type": "object",
            "properties": {
                "firm_name": {"type": "string"},
                "stage": {"type": "string", "enum": STAGE_ORDER},
                "relationship_owner": {"type": "string"},
            },
            "required": ["firm_name", "stage", "relationship_owner"],
        },
    },
    {
        "name": "update_investor",
        "description": "Update a single field on an investor. Stage changes are not allowed here.",
        "input_schema": {
            "type": "object",
            "properties": {
                "investor_id": {"type": "string"},
                "field": {"type": "string"},
                "value": {"description": "New value; null clears the field"},
            },
            "required": ["investor_id", "field", "value"],
        },
    },
    {
        "name": "log_activity",
        "description": "Log a note, call, email or meeting against an investor.",
        "input_schema": {
            "type": "object",
            "properties": {
                "investor_id": {"type": "string"},
                "activity_type": {"type": "string", "enum": list(USER_ACTIVITY_TYPES)},
                "description": {"type": "string"},
            },
            "required": ["investor_id", "activity_type", "description"],
        },
    },
    {
        "name": "create_contact",
        "description": "Add a contact person to an investor.",
        "input_schema": {
            "type": "object",
            "properties": {
                "investor_id": {"type": "string"},
                "name": {"type": "string"},
                "title": {"type": "string"},
                "email": {"type": "string"},
                "phone": {"type": "string"},
            },
            "required": ["investor_id", "name"],
        },
    },
    {
        "name": "create_task",
        "description": "Create a follow-up task for an investor.",
        "input_schema": {
            "type": "object",
            "properties": {
                "investor_id": {"type": "string"},
                "title": {"type": "string"},
                "description": {"type": "string"},
                "due_date": {"type": "string", "description": "YYYY-MM-DD"},
                "priority": {"type": "string", "enum": list(TASK_PRIORITIES)},
            },
            "required": ["investor_id", "title"],
        },
    },
    {
        "name": "create_meeting",
        "description": (
            "Log a meeting with an investor, found by (partial) firm name. Runs immediately; meetings are "
            "append-only. Also adds a meeting activity to the investor timeline."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "firm_name": {"type": "string", "description": "Full or partial firm name"},
                "meeting_title": {"type": "string"},
                "meeting_date": {
                    "type": "string",
                    "description": "ISO 8601 timestamp (2026-02-21T14:00:00Z) or YYYY-MM-DD",
                },
                "duration_minutes": {"type": "integer", "minimum": 1},
                "notes": {"type": "string", "description": "Meeting notes or agenda"},
            },
            "required": ["firm_name", "meeting_title", "meeting_date"],
        },
    },
]


async def execute_tool(ctx: ToolContext, name: str, tool_input: Dict[str, Any]) -> dict:
    executor = TOOL_EXECUTORS.get(name)
    if executor is None:
        raise ValidationError(f"Unknown tool: {name}")
    if ctx.allowed_tools is not None and name not in ctx.allowed_tools:
        logger.warning(f"⚠️  Blocked assistant tool call outside allowlist: {name}")
        raise ValidationError(f"Tool not available in this channel: {name}")
    logger.info(f"🔧 Assistant tool call: {name}")
    return await executor(ctx, **tool_input)
