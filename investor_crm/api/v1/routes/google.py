"""
Google Workspace Routes
OAuth connect flow, Gmail, Calendar and Drive links
"""
import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from supabase import Client

from investor_crm.core.config import settings
from investor_crm.core.dependencies import get_http_client, get_supabase, get_supabase_admin
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_id
from investor_crm.middleware.rate_limit import limiter
from investor_crm.models.schemas.google import (
    DriveLinkCreate,
    EmailSearchRequest,
    LogEmailRequest,
    ScheduleMeetingRequest,
    SendEmailRequest,
)
from investor_crm.services.google import (
    exchange_code,
    get_calendar_events,
    get_drive_links,
    get_email_logs,
    get_google_auth_url,
    has_google_tokens,
    is_google_configured,
    link_drive_file,
    log_email_to_investor,
    parse_state,
    schedule_investor_meeting,
    search_emails,
    send_email,
    unlink_drive_file,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/google", tags=["google"])


def _frontend_redirect(path: str, **params) -> RedirectResponse:
    query = f"?{urlencode(params)}" if params else ""
    return RedirectResponse(url=f"{settings.app_url.rstrip('/')}{path}{query}", status_code=302)


# ============================================================================
# OAUTH
# ============================================================================

@router.get("/auth-url")
@limiter.limit(settings.rate_limit_auth)
async def google_auth_url(
    request: Request,
    redirect: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
):
    if not is_google_configured():
        raise HTTPException(status_code=400, detail="Google OAuth is not configured")
    return {"url": get_google_auth_url(user_id, redirect)}


@router.get("/oauth/callback")
@limiter.limit(settings.rate_limit_auth)
async def google_oauth_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    supabase_admin: Client = Depends(get_supabase_admin),
):
    """
    Google redirects the browser here after consent.

    The signed state identifies the user (the browser sends no bearer token)
    and carries the page to return to.
    """
    try:
        user_id, redirect = parse_state(state)
    except CRMError as e:
        raise http_error_from(e)

    if error or not code:
        logger.warning(f"⚠️  Google OAuth declined for user {user_id}: {error}")
        return _frontend_redirect(redirect, google="error", reason=error or "missing_code")

    try:
        await exchange_code(supabase_admin, user_id, code)
    except Exception as e:
        logger.error(f"❌ Google token exchange failed for user {user_id}: {e}", exc_info=True)
        return _frontend_redirect(redirect, google="error", reason="token_exchange_failed")

    return _frontend_redirect(redirect, google="connected")


@router.get("/status")
async def google_status(
    user_id: str = Depends(get_current_user_id),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    try:
        return {
            "configured": is_google_configured(),
            "connected": await has_google_tokens(supabase_admin, user_id),
        }
    except Exception as e:
        logger.error(f"❌ Failed to read Google status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to check Google connection")


# ============================================================================
# GMAIL
# ============================================================================

@router.post("/gmail/search")
async def gmail_search(
    data: EmailSearchRequest,
    user_id: str = Depends(get_current_user_id),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    try:
        return await search_emails(http_client, supabase_admin, user_id, data.query, data.max_results)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Gmail search failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to search emails")


@router.post("/gmail/send")
@limiter.limit(settings.rate_limit_sensitive)
async def gmail_send(
    request: Request,
    data: SendEmailRequest,
    user_id: str = Depends(get_current_user_id),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    supabase: Client = Depends(get_supabase),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    """Send a plain-text email from the caller's Gmail; 401 when Google must be reconnected."""
    try:
        return await send_email(http_client, supabase, supabase_admin, user_id, data)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Gmail send failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to send email")


@router.post("/gmail/log", status_code=201)
async def gmail_log(
    data: LogEmailRequest,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await log_email_to_investor(supabase, data, user_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to log email: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to log email")


@router.get("/gmail/logs/{investor_id}")
async def gmail_logs(
    investor_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_email_logs(supabase, investor_id, limit)
    except Exception as e:
        logger.error(f"❌ Failed to fetch email logs: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch email logs")


# ============================================================================
# CALENDAR
# ============================================================================

@router.post("/calendar/schedule", status_code=201)
async def calendar_schedule(
    data: ScheduleMeetingRequest,
    user_id: str = Depends(get_current_user_id),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    supabase: Client = Depends(get_supabase),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    try:
        return await schedule_investor_meeting(http_client, supabase, supabase_admin, user_id, data)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to schedule meeting: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to schedule meeting")


@router.get("/calendar/events/{investor_id}")
async def calendar_events(
    investor_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_calendar_events(supabase, investor_id)
    except Exception as e:
        logger.error(f"❌ Failed to fetch calendar events: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch calendar events")


# ============================================================================
# DRIVE
# ============================================================================

@router.post("/drive/links", status_code=201)
async def drive_link_create(
    data: DriveLinkCreate,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await link_drive_file(supabase, data, user_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to link Drive file: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to link file")


@router.get("/drive/links/{investor_id}")
async def drive_links(
    investor_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_drive_links(supabase, investor_id)
    except Exception as e:
        logger.error(f"❌ Failed to fetch Drive links: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch Drive links")


@router.delete("/drive/links/{link_id}")
async def drive_link_delete(
    link_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        await unlink_drive_file(supabase, link_id)
        return {"success": True}
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to unlink Drive file {link_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to unlink file")
