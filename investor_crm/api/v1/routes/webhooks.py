"""
Webhook Routes
Inbound Google Chat events and WhatsApp Cloud API messages
"""
import hmac
import logging
from typing import Optional

import httpx
from anthropic import AsyncAnthropic
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse
from supabase import Client

from investor_crm.core.config import settings
from investor_crm.core.dependencies import get_anthropic, get_http_client, get_supabase_admin
from investor_crm.services.messaging import handle_google_chat_event, handle_whatsapp_payload, verify_webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _google_chat_token_valid(token: Optional[str]) -> bool:
    expected = settings.google_chat_verification_token
    if not expected:
        if settings.is_production:
            logger.error("CRITICAL: GOOGLE_CHAT_VERIFICATION_TOKEN not configured in production!")
            return False
        logger.warning("DEV MODE: GOOGLE_CHAT_VERIFICATION_TOKEN not configured - check bypassed")
        return True
    return bool(token) and hmac.compare_digest(token, expected)


@router.post("/google-chat")
async def google_chat_webhook(
    payload: dict,
    supabase_admin: Client = Depends(get_supabase_admin),
    anthropic_client: Optional[AsyncAnthropic] = Depends(get_anthropic),
):
    """Google Chat app endpoint; the JSON response is posted back as the reply."""
    if not _google_chat_token_valid(payload.get("token")):
        logger.warning("🚫 Google Chat webhook with invalid token")
        raise HTTPException(status_code=401, detail="Invalid verification token")

    logger.info(f"📩 Google Chat event: {payload.get('type')}")
    return await handle_google_chat_event(supabase_admin, anthropic_client, payload)


@router.get("/whatsapp", response_class=PlainTextResponse)
async def whatsapp_verify(
    hub_mode: Optional[str] = Query(None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(None, alias="hub.challenge"),
):
    """Subscription handshake from Meta."""
    challenge = verify_webhook(hub_mode, hub_verify_token, hub_challenge)
    if challenge is None:
        logger.warning("🚫 WhatsApp webhook verification failed")
        raise HTTPException(status_code=403, detail="Verification failed")
    return challenge


@router.post("/whatsapp")
async def whatsapp_webhook(
    payload: dict,
    http_client: httpx.AsyncClient = Depends(get_http_client),
    supabase_admin: Client = Depends(get_supabase_admin),
    anthropic_client: Optional[AsyncAnthropic] = Depends(get_anthropic),
):
    # Meta expects a 200 for every delivery
    try:
        result = await handle_whatsapp_payload(http_client, supabase_admin, anthropic_client, payload)
    except Exception as e:
        logger.error(f"❌ WhatsApp webhook processing failed: {e}", exc_info=True)
        return {"status": "error"}
    return {"status": "ok", **result}
