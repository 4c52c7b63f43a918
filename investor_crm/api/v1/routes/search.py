"""
Search Routes
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from supabase import Client

from investor_crm.core.dependencies import get_supabase
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_id
from investor_crm.services.search import global_search

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


@router.get("")
async def search_endpoint(
    q: str = Query(""),
    limit: int = Query(10),
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    """Search investors, contacts and LinkedIn connections."""
    try:
        return await global_search(supabase, q, limit=limit)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Search failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Search failed")
