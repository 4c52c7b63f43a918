"""
Network Routes
Warm-intro paths from team LinkedIn connections to investors
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from supabase import Client

from investor_crm.core.dependencies import get_supabase
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_id
from investor_crm.services.network import get_best_intro_path, get_network_graph, get_network_overview

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/network", tags=["network"])


@router.get("")
async def network_overview_endpoint(
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_network_overview(supabase)
    except Exception as e:
        logger.error(f"❌ Failed to build network overview: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch network")


@router.get("/{investor_id}")
async def network_graph_endpoint(
    investor_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_network_graph(supabase, investor_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to build network for investor {investor_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch network")


@router.get("/{investor_id}/best-path")
async def best_path_endpoint(
    investor_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        path = await get_best_intro_path(supabase, investor_id)
        return {"investor_id": investor_id, "path": path}
    except Exception as e:
        logger.error(f"❌ Failed to find intro path for investor {investor_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch intro path")
