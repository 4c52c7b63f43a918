"""
Investor Routes
Pipeline records: CRUD, inline edits, stage transitions, soft delete/restore
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from supabase import Client

from investor_crm.core.dependencies import get_supabase, get_supabase_admin
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_context, get_current_user_id, require_admin
from investor_crm.models.schemas.investors import (
    FieldUpdateRequest,
    InvestorCreate,
    InvestorIdsRequest,
    InvestorPatchRequest,
    StageChangeRequest,
    StageValidationRequest,
)
from investor_crm.services.audit import log_audit_event
from investor_crm.services.investors import (
    bulk_delete_investors,
    bulk_restore_investors,
    create_investor,
    get_investor,
    get_investor_stats,
    list_investors,
    restore_investor,
    soft_delete_investor,
    update_investor,
    update_investor_field,
    update_investor_stage,
    validate_stage_transition,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/investors", tags=["investors"])


@router.get("")
async def list_investors_endpoint(
    stage: Optional[str] = None,
    relationship_owner: Optional[str] = None,
    allocator_type: Optional[str] = None,
    stalled: Optional[bool] = None,
    search: Optional[str] = None,
    sort_by: str = "updated_at",
    ascending: bool = False,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    cursor: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    """Filtered investor list with cursor pagination ({data, next_cursor, has_more})."""
    try:
        return await list_investors(
            supabase,
            stage=stage,
            relationship_owner=relationship_owner,
            allocator_type=allocator_type,
            stalled=stalled,
            search=search,
            sort_by=sort_by,
            ascending=ascending,
            limit=limit,
            cursor=cursor,
        )
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to list investors: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch investors")


@router.get("/stats")
async def investor_stats_endpoint(
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_investor_stats(supabase)
    except Exception as e:
        logger.error(f"❌ Failed to compute investor stats: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch investor stats")


@router.post("", status_code=201)
async def create_investor_endpoint(
    data: InvestorCreate,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await create_investor(supabase, data, user_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to create investor: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create investor")


@router.post("/stage/validate")
async def validate_stage_endpoint(
    data: StageValidationRequest,
    user_id: str = Depends(get_current_user_id),
):
    """Dry-run a transition: returns validity and the exit criteria to confirm."""
    return validate_stage_transition(data.from_stage, data.to_stage)


@router.post("/bulk-delete")
async def bulk_delete_endpoint(
    data: InvestorIdsRequest,
    user: dict = Depends(get_current_user_context),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    try:
        result = await bulk_delete_investors(supabase_admin, data.investor_ids)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Bulk delete failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete investors")

    await log_audit_event(
        supabase_admin, "data", "bulk_delete", user=user,
        resource_type="investor", metadata={"investor_ids": data.investor_ids},
    )
    return result


@router.post("/bulk-restore")
async def bulk_restore_endpoint(
    data: InvestorIdsRequest,
    user: dict = Depends(require_admin),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    try:
        result = await bulk_restore_investors(supabase_admin, data.investor_ids)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Bulk restore failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to restore investors")

    await log_audit_event(
        supabase_admin, "data", "bulk_restore", user=user,
        resource_type="investor", metadata={"investor_ids": data.investor_ids},
    )
    return result


@router.get("/{investor_id}")
async def get_investor_endpoint(
    investor_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    """Investor with contacts (primary first)."""
    try:
        return await get_investor(supabase, investor_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to fetch investor {investor_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch investor")


@router.patch("/{investor_id}")
async def update_investor_endpoint(
    investor_id: str,
    data: InvestorPatchRequest,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await update_investor(supabase, investor_id, data.changes, user_id, version=data.version)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to update investor {investor_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update investor")


@router.patch("/{investor_id}/field")
async def update_investor_field_endpoint(
    investor_id: str,
    data: FieldUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    """Inline edit of a single field (409 when `version` is stale)."""
    try:
        return await update_investor_field(supabase, investor_id, data.field, data.value, user_id, version=data.version)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to update {data.field} on investor {investor_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update investor")


@router.post("/{investor_id}/stage")
async def change_stage_endpoint(
    investor_id: str,
    data: StageChangeRequest,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    """
    Move an investor to a new stage.

    Unmet exit criteria come back as 200 with success=false and
    validation_required=true so the client can show the checklist.
    """
    try:
        return await update_investor_stage(
            supabase,
            investor_id,
            data.new_stage,
            user_id,
            checklist_confirmed=data.checklist_confirmed,
            override_reason=data.override_reason,
        )
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Stage change failed for investor {investor_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update stage")


@router.delete("/{investor_id}")
async def delete_investor_endpoint(
    investor_id: str,
    user: dict = Depends(get_current_user_context),
    supabase: Client = Depends(get_supabase),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    try:
        await soft_delete_investor(supabase, investor_id, user["user_id"])
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to delete investor {investor_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete investor")

    await log_audit_event(supabase_admin, "data", "soft_delete", user=user,
                          resource_type="investor", resource_id=investor_id)
    return {"success": True}


@router.post("/{investor_id}/restore")
async def restore_investor_endpoint(
    investor_id: str,
    user: dict = Depends(require_admin),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    try:
        await restore_investor(supabase_admin, investor_id, user["user_id"])
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to restore investor {investor_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to restore investor")

    await log_audit_event(supabase_admin, "data", "restore", user=user,
                          resource_type="investor", resource_id=investor_id)
    return {"success": True}
