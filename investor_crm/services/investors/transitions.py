"""
Stage Transitions
Moves an investor between pipeline stages, enforcing allowed transitions
and exit criteria.
"""
import logging
from typing import Any, Dict, Optional

from supabase import Client

from investor_crm.core.errors import NotFoundError, ValidationError
from investor_crm.services.activities.service import record_activity, today_iso, utc_now_iso
from investor_crm.services.pipeline.stages import get_exit_criteria, is_valid_stage, is_valid_transition
from investor_crm.utils.cache import CacheKeys, cache

logger = logging.getLogger(__name__)

MIN_OVERRIDE_REASON_LENGTH = 10


def _has_override(override_reason: Optional[str]) -> bool:
    return bool(override_reason) and len(override_reason.strip()) >= MIN_OVERRIDE_REASON_LENGTH


def validate_stage_transition(
    from_stage: str,
    to_stage: str,
    checklist_confirmed: bool = False,
    override_reason: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Decide a transition without touching the database.

    Returns {valid, error?, validation_required?, exit_criteria, from_stage, to_stage}.
    """
    criteria = [c.model_dump() for c in get_exit_criteria(from_stage)]
    decision = {
        "valid": True,
        "from_stage": from_stage,
        "to_stage": to_stage,
        "exit_criteria": criteria,
    }

    if from_stage == to_stage:
        return decision

    if not is_valid_stage(to_stage) or not is_valid_transition(from_stage, to_stage):
        decision["valid"] = False
        decision["error"] = f"Invalid stage transition from {from_stage} to {to_stage}"
        return decision

    if criteria and not checklist_confirmed and not _has_override(override_reason):
        decision["valid"] = False
        decision["error"] = "Exit criteria not met"
        decision["validation_required"] = True

    return decision


async def update_investor_stage(
    supabase: Client,
    investor_id: str,
    new_stage: str,
    user_id: str,
    checklist_confirmed: bool = False,
    override_reason: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Move an investor to `new_stage`.

    An override reason skips the exit-criteria checklist but never an
    invalid transition. Unmet criteria return success=False rather than
    raising so the client can show the checklist.
    """
    result = supabase.table("investors")\
        .select("id, stage")\
        .eq("id", investor_id)\
        .is_("deleted_at", "null")\
        .maybe_single()\
        .execute()

    if not result or not result.data:
        raise NotFoundError("Investor not found")

    current_stage = result.data["stage"]

    if current_stage == new_stage:
        return {"success": True, "from_stage": current_stage, "to_stage": new_stage}

    decision = validate_stage_transition(current_stage, new_stage, checklist_confirmed, override_reason)

    if not decision["valid"]:
        if not decision.get("validation_required"):
            raise ValidationError(decision["error"])
        return {
            "success": False,
            "error": decision["error"],
            "validation_required": True,
            "exit_criteria": decision["exit_criteria"],
            "from_stage": current_stage,
            "to_stage": new_stage,
        }

    overridden = _has_override(override_reason)

    supabase.table("investors")\
        .update({
            "stage": new_stage,
            "last_action_date": today_iso(),
            "updated_at": utc_now_iso(),
        })\
        .eq("id", investor_id)\
        .execute()

    metadata: Dict[str, Any] = {"from_stage": current_stage, "to_stage": new_stage}
    if overridden:
        metadata.update({"override_reason": override_reason.strip(), "overridden_by": user_id})
    else:
        metadata["checklist_confirmed"] = True

    description = f"Stage changed from {current_stage} to {new_stage}"
    if overridden:
        description += " (OVERRIDE)"

    await record_activity(supabase, investor_id, "stage_change", description, user_id, metadata=metadata)

    cache.delete(CacheKeys.investor(investor_id))
    cache.delete(CacheKeys.investor_stats())

    logger.info(f"📈 Investor {investor_id}: {current_stage} → {new_stage}{' (override)' if overridden else ''}")
    return {"success": True, "from_stage": current_stage, "to_stage": new_stage}
