"""
Contact Service
People at each investor firm; at most one primary contact per investor
"""
import logging
from typing import List

from supabase import Client

from investor_crm.core.errors import NotFoundError, ValidationError
from investor_crm.models.schemas.contacts import ContactCreate, ContactUpdate
from investor_crm.services.activities.service import record_activity, utc_now_iso
from investor_crm.utils.cache import CacheKeys, cache

logger = logging.getLogger(__name__)


def _clear_primary(supabase: Client, investor_id: str, keep_id: str = None) -> None:
    query = supabase.table("contacts")\
        .update({"is_primary": False, "updated_at": utc_now_iso()})\
        .eq("investor_id", investor_id)\
        .eq("is_primary", True)
    if keep_id:
        query = query.neq("id", keep_id)
    query.execute()


async def _get_contact_row(supabase: Client, contact_id: str) -> dict:
    result = supabase.table("contacts")\
        .select("*")\
        .eq("id", contact_id)\
        .is_("deleted_at", "null")\
        .maybe_single()\
        .execute()

    if not result or not result.data:
        raise NotFoundError("Contact not found")
    return result.data


async def create_contact(supabase: Client, investor_id: str, data: ContactCreate, user_id: str) -> dict:
    investor = supabase.table("investors")\
        .select("id")\
        .eq("id", investor_id)\
        .is_("deleted_at", "null")\
        .maybe_single()\
        .execute()

    if not investor or not investor.data:
        raise NotFoundError("Investor not found")

    if data.is_primary:
        _clear_primary(supabase, investor_id)

    result = supabase.table("contacts").insert({
        **data.model_dump(),
        "investor_id": investor_id,
        "created_by": user_id,
    }).execute()

    if not result.data:
        raise ValidationError("Failed to create contact")

    contact = result.data[0]
    await record_activity(supabase, investor_id, "note", f"Added contact: {data.name}", user_id)
    cache.delete(CacheKeys.investor(investor_id))

    logger.info(f"👤 Added contact {contact['id']} to investor {investor_id}")
    return contact


async def list_contacts(supabase: Client, investor_id: str) -> List[dict]:
    result = supabase.table("contacts")\
        .select("*")\
        .eq("investor_id", investor_id)\
        .is_("deleted_at", "null")\
        .order("is_primary", desc=True)\
        .order("created_at")\
        .execute()
    return result.data or []


async def update_contact(supabase: Client, contact_id: str, data: ContactUpdate) -> dict:
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No changes provided")

    existing = await _get_contact_row(supabase, contact_id)

    if changes.get("is_primary"):
        _clear_primary(supabase, existing["investor_id"], keep_id=contact_id)

    result = supabase.table("contacts")\
        .update({**changes, "updated_at": utc_now_iso()})\
        .eq("id", contact_id)\
        .execute()

    cache.delete(CacheKeys.investor(existing["investor_id"]))
    return result.data[0] if result.data else {**existing, **changes}


async def delete_contact(supabase: Client, contact_id: str) -> None:
    existing = await _get_contact_row(supabase, contact_id)
    now = utc_now_iso()

    supabase.table("contacts")\
        .update({"deleted_at": now, "updated_at": now, "is_primary": False})\
        .eq("id", contact_id)\
        .execute()

    cache.delete(CacheKeys.investor(existing["investor_id"]))
    logger.info(f"🗑️  Soft-deleted contact {contact_id}")


async def set_primary_contact(supabase: Client, contact_id: str) -> dict:
    existing = await _get_contact_row(supabase, contact_id)
    _clear_primary(supabase, existing["investor_id"], keep_id=contact_id)

    result = supabase.table("contacts")\
        .update({"is_primary": True, "updated_at": utc_now_iso()})\
        .eq("id", contact_id)\
        .execute()

    cache.delete(CacheKeys.investor(existing["investor_id"]))
    return result.data[0] if result.data else {**existing, "is_primary": True}
