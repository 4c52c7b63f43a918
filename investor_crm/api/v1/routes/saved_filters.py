"""
Saved Filter Routes
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from supabase import Client

from investor_crm.core.dependencies import get_supabase
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_id
from investor_crm.models.schemas.preferences import SavedFilterCreate, SavedFilterUpdate
from investor_crm.services.preferences import (
    create_saved_filter,
    delete_saved_filter,
    get_saved_filter,
    list_saved_filters,
    track_filter_usage,
    update_saved_filter,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/saved-filters", tags=["saved-filters"])


@router.get("")
async def list_saved_filters_endpoint(
    entity_type: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    """The caller's filters plus everyone's public ones."""
    try:
        return await list_saved_filters(supabase, user_id, entity_type)
    except Exception as e:
        logger.error(f"❌ Failed to list saved filters: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch saved filters")


@router.post("", status_code=201)
async def create_saved_filter_endpoint(
    data: SavedFilterCreate,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await create_saved_filter(supabase, user_id, data)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to create saved filter: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create saved filter")


@router.get("/{filter_id}")
async def get_saved_filter_endpoint(
    filter_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_saved_filter(supabase, user_id, filter_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to fetch saved filter {filter_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch saved filter")


@router.patch("/{filter_id}")
async def update_saved_filter_endpoint(
    filter_id: str,
    data: SavedFilterUpdate,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await update_saved_filter(supabase, user_id, filter_id, data)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to update saved filter {filter_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update saved filter")


@router.delete("/{filter_id}")
async def delete_saved_filter_endpoint(
    filter_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        await delete_saved_filter(supabase, user_id, filter_id)
        return {"success": True}
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to delete saved filter {filter_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete saved filter")


@router.post("/{filter_id}/use")
async def track_filter_usage_endpoint(
    filter_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        await track_filter_usage(supabase, user_id, filter_id)
        return {"success": True}
    except CRMError as e:
        raise http_error_from(e)
