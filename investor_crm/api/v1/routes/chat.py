"""
Chat Routes
AI BDR assistant with CRM tools
"""
import logging
from typing import Optional

from anthropic import AsyncAnthropic
from fastapi import APIRouter, Depends, HTTPException, Request
from supabase import Client

from investor_crm.core.config import settings
from investor_crm.core.dependencies import get_anthropic, get_supabase
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_context
from investor_crm.middleware.rate_limit import limiter
from investor_crm.models.schemas.chat import ChatRequest, ChatResponse
from investor_crm.services.chat import run_chat

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
@limiter.limit(settings.rate_limit_sensitive)
async def chat(
    request: Request,
    data: ChatRequest,
    user: dict = Depends(get_current_user_context),
    supabase: Client = Depends(get_supabase),
    anthropic_client: Optional[AsyncAnthropic] = Depends(get_anthropic),
):
    """
    Send the conversation so far; the assistant may query or update the
    pipeline through its tools before answering.

    Returns:
        ChatResponse: reply text plus the tool calls made
    """
    try:
        return await run_chat(anthropic_client, supabase, data.messages, user)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Chat request failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to process chat request")
