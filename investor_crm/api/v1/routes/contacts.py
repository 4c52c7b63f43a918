"""
Contact Routes
People at an investor firm
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from supabase import Client

from investor_crm.core.dependencies import get_supabase
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_id
from investor_crm.models.schemas.contacts import ContactCreate, ContactUpdate
from investor_crm.services.contacts import (
    create_contact,
    delete_contact,
    list_contacts,
    set_primary_contact,
    update_contact,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["contacts"])


@router.get("/investors/{investor_id}/contacts")
async def list_contacts_endpoint(
    investor_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await list_contacts(supabase, investor_id)
    except Exception as e:
        logger.error(f"❌ Failed to list contacts for investor {investor_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch contacts")


@router.post("/investors/{investor_id}/contacts", status_code=201)
async def create_contact_endpoint(
    investor_id: str,
    data: ContactCreate,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await create_contact(supabase, investor_id, data, user_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to create contact: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create contact")


@router.patch("/contacts/{contact_id}")
async def update_contact_endpoint(
    contact_id: str,
    data: ContactUpdate,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await update_contact(supabase, contact_id, data)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to update contact {contact_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update contact")


@router.delete("/contacts/{contact_id}")
async def delete_contact_endpoint(
    contact_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        await delete_contact(supabase, contact_id)
        return {"success": True}
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to delete contact {contact_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete contact")


@router.post("/contacts/{contact_id}/primary")
async def set_primary_contact_endpoint(
    contact_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await set_primary_contact(supabase, contact_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to set primary contact {contact_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update contact")
