"""
Messaging Routes
Send messages and notifications to the caller's own channels
"""
import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException
from supabase import Client

from investor_crm.core.dependencies import get_http_client, get_supabase_admin
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_id
from investor_crm.models.schemas.messaging import SendMessageRequest, SendNotificationRequest, SendResult
from investor_crm.services.messaging import send_message_to_user, send_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messaging", tags=["messaging"])


@router.post("/send", response_model=SendResult)
async def send_message_endpoint(
    data: SendMessageRequest,
    user_id: str = Depends(get_current_user_id),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    try:
        return await send_message_to_user(
            http_client,
            supabase_admin,
            user_id,
            data.content,
            channel=data.channel,
            related_investor_id=data.related_investor_id,
            related_task_id=data.related_task_id,
        )
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to send message: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to send message")


@router.post("/notify", response_model=SendResult)
async def send_notification_endpoint(
    data: SendNotificationRequest,
    user_id: str = Depends(get_current_user_id),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    try:
        return await send_notification(http_client, supabase_admin, user_id, data.type, data.data, channel=data.channel)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to send notification: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to send notification")
