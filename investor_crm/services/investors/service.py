"""
Investor Service
CRUD for investor records with soft delete and optimistic concurrency

Each investor row carries an integer `version`. Writes that supply the
version the client last saw are applied with `version = :seen` and write
`version + 1`; a write that matches no row means someone else changed the
record first.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from supabase import Client

from investor_crm.core.errors import CONFLICT_MESSAGE, ConflictError, NotFoundError, ValidationError
from investor_crm.models.schemas.investors import EDITABLE_FIELDS, InvestorCreate, InvestorUpdate
from investor_crm.services.activities.service import record_activity, today_iso, utc_now_iso
from investor_crm.utils.cache import CacheKeys, cache
from investor_crm.utils.pagination import apply_cursor, clamp_limit, decode_cursor, paginate
from investor_crm.utils.sanitize import escape_like

logger = logging.getLogger(__name__)

MAX_BULK_INVESTORS = 500

SORTABLE_FIELDS = ("firm_name", "stage", "last_action_date", "created_at", "updated_at", "est_value")


def _invalidate(investor_id: Optional[str] = None) -> None:
    cache.delete(CacheKeys.investor_stats())
    cache.delete(CacheKeys.task_stats())
    if investor_id:
        cache.delete(CacheKeys.investor(investor_id))
        cache.delete(CacheKeys.activities(investor_id))


def _first_error(error: PydanticValidationError) -> str:
    issues = error.errors()
    return issues[0]["msg"] if issues else "Validation failed"


# ============================================================================
# CREATE / READ
# ============================================================================

async def create_investor(supabase: Client, data: InvestorCreate, user_id: str) -> dict:
    """Insert a new investor and log a creation note."""
    result = supabase.table("investors").insert({
        "firm_name": data.firm_name,
        "stage": data.stage,
        "relationship_owner": data.relationship_owner,
        "entry_date": today_iso(),
        "created_by": user_id,
    }).execute()

    if not result.data:
        raise ValidationError("Failed to create investor")

    investor = result.data[0]
    await record_activity(supabase, investor["id"], "note", "Investor record created", user_id)
    _invalidate()

    logger.info(f"✅ Created investor {investor['id']} ({data.firm_name})")
    return investor


async def fetch_investor_row(supabase: Client, investor_id: str, columns: str = "*") -> dict:
    """Non-deleted investor row or NotFoundError."""
    result = supabase.table("investors")\
        .select(columns)\
        .eq("id", investor_id)\
        .is_("deleted_at", "null")\
        .maybe_single()\
        .execute()

    if not result or not result.data:
        raise NotFoundError("Investor not found")
    return result.data


async def get_investor(supabase: Client, investor_id: str) -> dict:
    """Investor with its contacts (primary first, then creation order)."""
    key = CacheKeys.investor(investor_id)
    cached = cache.get(key)
    if cached is not None:
        return cached

    investor = await fetch_investor_row(supabase, investor_id)

    contacts = supabase.table("contacts")\
        .select("*")\
        .eq("investor_id", investor_id)\
        .is_("deleted_at", "null")\
        .order("is_primary", desc=True)\
        .order("created_at")\
        .execute()

    investor = {**investor, "contacts": contacts.data or []}
    cache.set(key, investor, ttl=60)
    return investor


async def list_investors(
    supabase: Client,
    stage: Optional[str] = None,
    relationship_owner: Optional[str] = None,
    allocator_type: Optional[str] = None,
    stalled: Optional[bool] = None,
    search: Optional[str] = None,
    sort_by: str = "updated_at",
    ascending: bool = False,
    limit: Optional[int] = None,
    cursor: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Filtered, cursor-paginated investor list.

    Returns {data, next_cursor, has_more}.
    """
    if sort_by not in SORTABLE_FIELDS:
        raise ValidationError(f"Cannot sort by {sort_by}")

    size = clamp_limit(limit)
    query = supabase.table("investors").select("*").is_("deleted_at", "null")

    if stage:
        query = query.eq("stage", stage)
    if relationship_owner:
        query = query.eq("relationship_owner", relationship_owner)
    if allocator_type:
        query = query.eq("allocator_type", allocator_type)
    if stalled is not None:
        query = query.eq("stalled", stalled)
    if search and search.strip():
        term = escape_like(search.strip())
        query = query.or_(f"firm_name.ilike.%{term}%,partner_source.ilike.%{term}%")

    query = apply_cursor(query, decode_cursor(cursor), sort_by, ascending)

    result = query\
        .order(sort_by, desc=not ascending)\
        .order("id", desc=not ascending)\
        .limit(size + 1)\
        .execute()

    return paginate(result.data or [], size, sort_key=sort_by)


async def get_investor_stats(supabase: Client) -> dict:
    """Counts by stage plus stalled count and total pipeline value (cached)."""
    key = CacheKeys.investor_stats()
    cached = cache.get(key)
    if cached is not None:
        return cached

    result = supabase.table("investors")\
        .select("stage, stalled, est_value")\
        .is_("deleted_at", "null")\
        .execute()

    rows = result.data or []
    by_stage: Dict[str, int] = {}
    for row in rows:
        by_stage[row["stage"]] = by_stage.get(row["stage"], 0) + 1

    stats = {
        "total": len(rows),
        "by_stage": by_stage,
        "stalled": sum(1 for row in rows if row.get("stalled")),
        "total_value": sum(float(row.get("est_value") or 0) for row in rows),
    }
    cache.set(key, stats)
    return stats


# ============================================================================
# UPDATE
# ============================================================================

def validate_investor_field(field: str, value: Any) -> Any:
    """Validate one editable field; returns the coerced value."""
    if field not in EDITABLE_FIELDS:
        raise ValidationError(f"Unknown field: {field}")
    try:
        model = InvestorUpdate.model_validate({field: value})
    except PydanticValidationError as e:
        raise ValidationError(_first_error(e))
    # Empty allocator type clears the field
    coerced = getattr(model, field)
    if field == "allocator_type" and coerced == "":
        return None
    return coerced


def _apply_update(supabase: Client, investor_id: str, changes: Dict[str, Any], version: Optional[int]) -> dict:
    payload = {**changes, "updated_at": utc_now_iso()}
    query = supabase.table("investors").update(
        {**payload, "version": version + 1} if version is not None else payload
    ).eq("id", investor_id).is_("deleted_at", "null")

    if version is not None:
        query = query.eq("version", version)

    result = query.execute()

    if not result.data:
        if version is not None:
            logger.warning(f"⚠️  Version conflict on investor {investor_id} (expected v{version})")
            raise ConflictError(CONFLICT_MESSAGE)
        raise NotFoundError("Investor not found")

    return result.data[0]


async def update_investor_field(
    supabase: Client,
    investor_id: str,
    field: str,
    value: Any,
    user_id: str,
    version: Optional[int] = None,
) -> dict:
    """
    Update a single investor field and log a field_update activity.

    When `version` is given the write is optimistic and raises ConflictError
    if the row moved on.
    """
    new_value = validate_investor_field(field, value)

    old_record = await fetch_investor_row(supabase, investor_id, columns=f"id, {field}")
    old_value = old_record.get(field)

    updated = _apply_update(supabase, investor_id, {field: new_value}, version)

    await record_activity(
        supabase,
        investor_id,
        "field_update",
        f"Updated {field}",
        user_id,
        metadata={"field": field, "old_value": old_value, "new_value": new_value},
    )
    _invalidate(investor_id)
    return updated


async def update_investor(
    supabase: Client,
    investor_id: str,
    changes: Dict[str, Any],
    user_id: str,
    version: Optional[int] = None,
) -> dict:
    """Multi-field update; one field_update activity per changed field."""
    if not changes:
        raise ValidationError("No changes provided")

    validated = {field: validate_investor_field(field, value) for field, value in changes.items()}

    columns = ", ".join(["id", *validated.keys()])
    old_record = await fetch_investor_row(supabase, investor_id, columns=columns)

    updated = _apply_update(supabase, investor_id, validated, version)

    for field, new_value in validated.items():
        old_value = old_record.get(field)
        if old_value == new_value:
            continue
        await record_activity(
            supabase,
            investor_id,
            "field_update",
            f"Updated {field}",
            user_id,
            metadata={"field": field, "old_value": old_value, "new_value": new_value},
        )

    _invalidate(investor_id)
    return updated


# ============================================================================
# SOFT DELETE / RESTORE
# ============================================================================

async def soft_delete_investor(supabase: Client, investor_id: str, user_id: str) -> None:
    now = utc_now_iso()
    result = supabase.table("investors")\
        .update({"deleted_at": now, "updated_at": now})\
        .eq("id", investor_id)\
        .is_("deleted_at", "null")\
        .execute()

    if not result.data:
        raise NotFoundError("Investor not found")

    await record_activity(supabase, investor_id, "note", "Investor soft-deleted", user_id)
    _invalidate(investor_id)
    logger.info(f"🗑️  Soft-deleted investor {investor_id}")


async def restore_investor(supabase_admin: Client, investor_id: str, user_id: str) -> None:
    """
    Clear deleted_at. Uses the service-role client: row level security hides
    deleted rows from the user client.
    """
    result = supabase_admin.table("investors")\
        .update({"deleted_at": None, "updated_at": utc_now_iso()})\
        .eq("id", investor_id)\
        .execute()

    if not result.data:
        raise NotFoundError("Investor not found")

    await record_activity(supabase_admin, investor_id, "note", "Investor restored", user_id)
    _invalidate(investor_id)
    logger.info(f"♻️  Restored investor {investor_id}")


def _check_bulk_ids(investor_ids: List[str]) -> None:
    if not investor_ids:
        raise ValidationError("No investors selected")
    if len(investor_ids) > MAX_BULK_INVESTORS:
        raise ValidationError(f"Cannot delete more than {MAX_BULK_INVESTORS} investors at once")


def _plural(count: int) -> str:
    return f"{count} investor{'' if count == 1 else 's'}"


async def bulk_delete_investors(supabase_admin: Client, investor_ids: List[str]) -> dict:
    _check_bulk_ids(investor_ids)

    now = utc_now_iso()
    supabase_admin.table("investors")\
        .update({"deleted_at": now, "updated_at": now})\
        .in_("id", investor_ids)\
        .is_("deleted_at", "null")\
        .execute()

    for investor_id in investor_ids:
        _invalidate(investor_id)

    logger.info(f"🗑️  Bulk soft-deleted {len(investor_ids)} investors")
    return {"success": True, "message": f"Successfully deleted {_plural(len(investor_ids))}"}


async def bulk_restore_investors(supabase_admin: Client, investor_ids: List[str]) -> dict:
    if not investor_ids:
        raise ValidationError("No investors selected")
    if len(investor_ids) > MAX_BULK_INVESTORS:
        raise ValidationError(f"Cannot restore more than {MAX_BULK_INVESTORS} investors at once")

    supabase_admin.table("investors")\
        .update({"deleted_at": None, "updated_at": utc_now_iso()})\
        .in_("id", investor_ids)\
        .execute()

    for investor_id in investor_ids:
        _invalidate(investor_id)

    return {"success": True, "message": f"Successfully restored {_plural(len(investor_ids))}"}
