"""
Google Drive Links
Attach user-selected Drive files to investor records
"""
import logging
from typing import List

from supabase import Client

from investor_crm.core.errors import NotFoundError, ValidationError
from investor_crm.models.schemas.google import DriveLinkCreate
from investor_crm.services.activities.service import record_activity

logger = logging.getLogger(__name__)


async def link_drive_file(supabase: Client, data: DriveLinkCreate, user_id: str) -> dict:
    result = supabase.table("drive_links").insert({
        "investor_id": data.investor_id,
        "file_id": data.file_id,
        "file_name": data.file_name,
        "file_url": data.file_url,
        "mime_type": data.mime_type,
        "thumbnail_url": data.thumbnail_url,
        "linked_by": user_id,
    }).execute()

    if not result.data:
        raise ValidationError("Failed to link Drive file")

    await record_activity(
        supabase,
        data.investor_id,
        "note",
        f"Linked document: {data.file_name}",
        user_id,
        metadata={
            "type": "drive_link",
            "file_id": data.file_id,
            "file_url": data.file_url,
            "mime_type": data.mime_type,
        },
    )
    return result.data[0]


async def unlink_drive_file(supabase: Client, link_id: str) -> None:
    result = supabase.table("drive_links").delete().eq("id", link_id).execute()
    if not result.data:
        raise NotFoundError("Drive link not found")


async def get_drive_links(supabase: Client, investor_id: str) -> List[dict]:
    result = supabase.table("drive_links")\
        .select("*")\
        .eq("investor_id", investor_id)\
        .order("created_at", desc=True)\
        .execute()
    return result.data or []
