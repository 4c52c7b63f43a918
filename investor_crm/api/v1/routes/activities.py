"""
Activity Routes
Investor timeline entries
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from supabase import Client

from investor_crm.core.dependencies import get_supabase
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_id
from investor_crm.models.schemas.activities import ActivityCreate
from investor_crm.services.activities import get_recent_activities, list_activities, log_activity

logger = logging.getLogger(__name__)

router = APIRouter(tags=["activities"])


@router.get("/investors/{investor_id}/activities")
async def list_activities_endpoint(
    investor_id: str,
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await list_activities(supabase, investor_id, limit=limit)
    except Exception as e:
        logger.error(f"❌ Failed to list activities for investor {investor_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch activities")


@router.get("/activities/recent")
async def recent_activities_endpoint(
    limit: int = Query(20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_recent_activities(supabase, limit=limit)
    except Exception as e:
        logger.error(f"❌ Failed to fetch recent activities: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch activities")


@router.post("/activities", status_code=201)
async def log_activity_endpoint(
    data: ActivityCreate,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    """Log a note/call/email/meeting; optionally sets the investor's next action."""
    try:
        return await log_activity(supabase, data, user_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to log activity: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to log activity")
