"""
Bulk Operation Routes
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from supabase import Client

from investor_crm.core.dependencies import get_supabase, get_supabase_admin
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_context
from investor_crm.models.schemas.bulk import BulkRequest
from investor_crm.services.audit import log_audit_event
from investor_crm.services.bulk import execute_bulk

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bulk", tags=["bulk"])


@router.post("")
async def bulk_endpoint(
    data: BulkRequest,
    user: dict = Depends(get_current_user_context),
    supabase: Client = Depends(get_supabase),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    """
    Apply one operation to many records.

    200 when every item succeeded, 207 when some or all failed.
    """
    # soft-deleted investors are hidden from the anon client
    client = supabase_admin if data.entity_type == "investors" else supabase

    try:
        result = await execute_bulk(
            client, data.entity_type, data.operation, data.item_ids, data.data, user["user_id"],
        )
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Bulk {data.operation} on {data.entity_type} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Bulk operation failed")

    await log_audit_event(
        supabase_admin,
        event_type="data",
        action=f"bulk_{data.operation}",
        user=user,
        resource_type=data.entity_type,
        metadata={"total": result.total, "successful": result.successful, "failed": result.failed},
    )

    return JSONResponse(
        status_code=200 if result.success else 207,
        content=result.model_dump(),
    )
