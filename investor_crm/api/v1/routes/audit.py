"""
Audit Log Routes
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from supabase import Client

from investor_crm.core.dependencies import get_supabase_admin
from investor_crm.core.security import require_admin
from investor_crm.services.audit import list_audit_logs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/logs")
async def list_audit_logs_endpoint(
    event_type: Optional[str] = None,
    limit: int = Query(100),
    user: dict = Depends(require_admin),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    try:
        return await list_audit_logs(supabase_admin, event_type=event_type, limit=limit)
    except Exception as e:
        logger.error(f"❌ Failed to list audit logs: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch audit logs")
