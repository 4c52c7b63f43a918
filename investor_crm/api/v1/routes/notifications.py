"""
Notification Routes
Scheduler-triggered task reminders over chat, WhatsApp and email
"""
import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException
from supabase import Client

from investor_crm.core.dependencies import get_http_client, get_supabase_admin
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import verify_cron_secret
from investor_crm.services.messaging import process_task_notifications
from investor_crm.services.notifications import process_email_notifications

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post("/process")
async def process_notifications_endpoint(
    authorized: bool = Depends(verify_cron_secret),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    """Send due-soon and overdue task reminders. Called by the scheduler."""
    try:
        result = await process_task_notifications(http_client, supabase_admin)
        return {"success": True, **result}
    except Exception as e:
        logger.error(f"❌ Task notification run failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to process notifications")


@router.post("/email/process")
async def process_email_notifications_endpoint(
    authorized: bool = Depends(verify_cron_secret),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    """Email task reminders, overdue alerts and digests. 502 when SMTP is not configured."""
    try:
        result = await process_email_notifications(supabase_admin)
        return {"success": True, **result}
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Email notification run failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to process email notifications")
