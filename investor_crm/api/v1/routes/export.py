"""
Export Routes
CSV and Excel downloads
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from supabase import Client

from investor_crm.core.dependencies import get_supabase
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_id
from investor_crm.services.export import export_activities, export_investors, export_meetings, export_tasks

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/export", tags=["export"])

EXPORTERS = {
    "investors": export_investors,
    "tasks": export_tasks,
    "activities": export_activities,
    "meetings": export_meetings,
}

# query filters each table has a column for
EXPORT_FILTERS = {
    "investors": ("stage",),
    "tasks": ("status", "investor_id"),
    "activities": ("investor_id",),
    "meetings": ("status", "investor_id"),
}


@router.get("/{export_type}")
async def export_endpoint(
    export_type: str,
    format: str = Query("csv"),
    stage: Optional[str] = None,
    status: Optional[str] = None,
    investor_id: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    exporter = EXPORTERS.get(export_type)
    if exporter is None:
        raise HTTPException(status_code=404, detail=f"Unknown export type: {export_type}")

    requested = {"stage": stage, "status": status, "investor_id": investor_id}
    filters = {key: requested[key] for key in EXPORT_FILTERS[export_type]}

    try:
        content, filename, media_type = await exporter(supabase, format, filters)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Export of {export_type} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Export failed")

    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
