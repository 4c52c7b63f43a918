"""
Preference Routes
Display/notification preferences and messaging channel settings
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from supabase import Client

from investor_crm.core.dependencies import get_supabase
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_id
from investor_crm.models.schemas.preferences import MessagingPreferencesUpdate, UserPreferencesUpdate
from investor_crm.services.preferences import (
    get_messaging_preferences,
    get_preferences,
    update_messaging_preferences,
    update_preferences,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/preferences", tags=["preferences"])


@router.get("")
async def get_preferences_endpoint(
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_preferences(supabase, user_id)
    except Exception as e:
        logger.error(f"❌ Failed to load preferences: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch preferences")


@router.patch("")
async def update_preferences_endpoint(
    data: UserPreferencesUpdate,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await update_preferences(supabase, user_id, data)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to update preferences: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update preferences")


@router.get("/messaging")
async def get_messaging_preferences_endpoint(
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_messaging_preferences(supabase, user_id)
    except Exception as e:
        logger.error(f"❌ Failed to load messaging preferences: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch messaging preferences")


@router.patch("/messaging")
async def update_messaging_preferences_endpoint(
    data: MessagingPreferencesUpdate,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await update_messaging_preferences(supabase, user_id, data)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to update messaging preferences: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update messaging preferences")
