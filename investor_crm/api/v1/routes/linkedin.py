"""
LinkedIn Routes
CSV import, contact search and relationship detection
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from supabase import Client

from investor_crm.core.config import settings
from investor_crm.core.dependencies import get_supabase
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_id
from investor_crm.services.linkedin import (
    get_linkedin_stats,
    import_linkedin_csv,
    rerun_detection,
    search_linkedin_contacts,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/linkedin", tags=["linkedin"])


@router.post("/import")
async def import_linkedin_endpoint(
    file: UploadFile = File(...),
    team_member: str = Form(...),
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    """
    Import a LinkedIn Connections.csv export for one team member.

    Relationship detection runs inline unless DEFER_RELATIONSHIP_DETECTION
    is set, in which case it is queued for the worker.
    """
    try:
        content = await file.read()
        defer = settings.defer_relationship_detection

        result = await import_linkedin_csv(
            supabase, content, file.filename, team_member, user_id, detect=not defer,
        )

        if defer and result.success and result.contact_ids:
            from investor_crm.services.background.tasks import detect_relationships_task

            detect_relationships_task.send(result.contact_ids)
            logger.info(f"📨 Queued relationship detection for {len(result.contact_ids)} contacts")

        return result
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ LinkedIn import failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to import LinkedIn connections")


@router.get("/contacts")
async def search_linkedin_contacts_endpoint(
    q: Optional[str] = None,
    team_member: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await search_linkedin_contacts(supabase, query=q, team_member=team_member, limit=limit)
    except Exception as e:
        logger.error(f"❌ LinkedIn contact search failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to search contacts")


@router.get("/stats")
async def linkedin_stats_endpoint(
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_linkedin_stats(supabase)
    except Exception as e:
        logger.error(f"❌ LinkedIn stats failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch LinkedIn stats")


@router.post("/detect")
async def detect_relationships_endpoint(
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    """Re-score every imported contact against the current investor list."""
    try:
        if settings.defer_relationship_detection:
            from investor_crm.services.background.tasks import detect_relationships_task

            detect_relationships_task.send()
            return {"success": True, "queued": True}

        detected = await rerun_detection(supabase)
        return {"success": True, "relationships_detected": detected}
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Relationship detection failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to detect relationships")
