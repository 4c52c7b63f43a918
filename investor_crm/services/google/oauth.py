"""
Google OAuth
Authorization URL, code exchange and per-user token storage

The consent flow runs through google-auth-oauthlib's Flow and refreshes go
through google.oauth2 Credentials, which carry their own expiry skew. Both
libraries are synchronous, so their network calls run in a worker thread.
Tokens live in `google_oauth_tokens` (service-role access only).
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import httpx
import jwt
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import InvalidGrantError, OAuth2Error
from supabase import Client

from investor_crm.core.config import settings
from investor_crm.core.errors import ExternalServiceError, GoogleAuthRequiredError, ValidationError
from investor_crm.services.activities.service import utc_now_iso

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

GOOGLE_SCOPES = (
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.send",
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/chat.messages.create",
)

SCOPE_DESCRIPTIONS = {
    "https://www.googleapis.com/auth/drive.file": "Access files you select from Google Drive",
    "https://www.googleapis.com/auth/gmail.readonly": "View your Gmail messages and settings",
    "https://www.googleapis.com/auth/gmail.send": "Send email on your behalf",
    "https://www.googleapis.com/auth/calendar.events": "View and edit events on all your calendars",
    "https://www.googleapis.com/auth/chat.messages.create": "Send notifications to your Google Chat spaces",
}

DEFAULT_REDIRECT_PATH = "/investors"
STATE_TTL = timedelta(minutes=10)
STATE_ALGORITHM = "HS256"


def is_google_configured() -> bool:
    return bool(settings.google_client_id and settings.google_client_secret and settings.google_redirect_uri)


def _client_config() -> dict:
    return {
        "web": {
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "auth_uri": GOOGLE_AUTH_URL,
            "token_uri": GOOGLE_TOKEN_URL,
            "redirect_uris": [settings.google_redirect_uri],
        }
    }


def build_flow() -> Flow:
    """
    Web-server flow for the configured client.

    No PKCE verifier: the URL and the callback are served by different
    requests, and the signed state already binds the callback to the user.
    """
    if not is_google_configured():
        raise ExternalServiceError("Google OAuth is not configured")
    return Flow.from_client_config(
        _client_config(),
        scopes=list(GOOGLE_SCOPES),
        redirect_uri=settings.google_redirect_uri,
        autogenerate_code_verifier=False,
    )


def get_google_auth_url(user_id: str, redirect_url: Optional[str] = None) -> str:
    """Consent URL requesting offline access so Google returns a refresh token."""
    flow = build_flow()
    url, _ = flow.authorization_url(
        access_type="offline",
        prompt="consent",
        state=encode_state(user_id, redirect_url),
    )
    return url


def encode_state(user_id: str, redirect_url: Optional[str] = None) -> str:
    """
    OAuth state as a short-lived JWT signed with the client secret.

    The browser returns from Google without our bearer token, so the state
    is what ties the callback to the user who started the flow.
    """
    payload = {
        "sub": user_id,
        "redirectUrl": redirect_url,
        "exp": datetime.now(timezone.utc) + STATE_TTL,
    }
    return jwt.encode(payload, settings.google_client_secret, algorithm=STATE_ALGORITHM)


def parse_state(state: Optional[str]) -> Tuple[str, str]:
    """Returns (user_id, redirect path). Same-site paths only; defaults to the investor list."""
    if not state:
        raise ValidationError("Missing OAuth state")
    try:
        payload = jwt.decode(state, settings.google_client_secret, algorithms=[STATE_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.warning(f"⚠️  Invalid Google OAuth state: {e}")
        raise ValidationError("Invalid OAuth state")

    redirect = payload.get("redirectUrl")
    if not redirect or not str(redirect).startswith("/") or str(redirect).startswith("//"):
        redirect = DEFAULT_REDIRECT_PATH
    return payload["sub"], redirect


# ============================================================================
# TOKEN STORAGE
# ============================================================================

def _expiry_to_iso(expiry: Optional[datetime]) -> Optional[str]:
    # google-auth keeps expiry as naive UTC
    if expiry is None:
        return None
    return expiry.replace(tzinfo=timezone.utc).isoformat()


def _expiry_from_iso(token_expiry: Optional[str]) -> Optional[datetime]:
    if not token_expiry:
        return None
    expiry = datetime.fromisoformat(token_expiry.replace("Z", "+00:00"))
    if expiry.tzinfo is not None:
        expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)
    return expiry


async def exchange_code(supabase_admin: Client, user_id: str, code: str) -> None:
    """Exchange an authorization code and store the tokens for the user."""
    flow = build_flow()
    try:
        await asyncio.to_thread(flow.fetch_token, code=code)
    except InvalidGrantError:
        raise GoogleAuthRequiredError()
    except OAuth2Error as e:
        raise ExternalServiceError("Google token request failed", details=e.error)

    credentials = flow.credentials
    row = {
        "user_id": user_id,
        "access_token": credentials.token,
        "token_expiry": _expiry_to_iso(credentials.expiry),
        "scopes": list(credentials.scopes or GOOGLE_SCOPES),
        "updated_at": utc_now_iso(),
    }
    # Google omits the refresh token on re-consent for some accounts; keep the stored one
    if credentials.refresh_token:
        row["refresh_token"] = credentials.refresh_token

    supabase_admin.table("google_oauth_tokens").upsert(row, on_conflict="user_id").execute()
    logger.info(f"🔑 Stored Google tokens for user {user_id}")


def _load_tokens(supabase_admin: Client, user_id: str) -> dict:
    result = supabase_admin.table("google_oauth_tokens")\
        .select("refresh_token, access_token, token_expiry, scopes")\
        .eq("user_id", user_id)\
        .maybe_single()\
        .execute()

    if not result or not result.data or not result.data.get("refresh_token"):
        raise GoogleAuthRequiredError()
    return result.data


def load_credentials(supabase_admin: Client, user_id: str) -> Credentials:
    tokens = _load_tokens(supabase_admin, user_id)
    return Credentials(
        token=tokens.get("access_token"),
        refresh_token=tokens["refresh_token"],
        token_uri=GOOGLE_TOKEN_URL,
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        scopes=tokens.get("scopes") or list(GOOGLE_SCOPES),
        expiry=_expiry_from_iso(tokens.get("token_expiry")),
    )


async def get_access_token(supabase_admin: Client, user_id: str) -> str:
    """Valid access token for the user, refreshing and persisting when needed."""
    credentials = load_credentials(supabase_admin, user_id)
    if credentials.valid and credentials.expiry is not None:
        return credentials.token

    stored_refresh_token = credentials.refresh_token
    try:
        await asyncio.to_thread(credentials.refresh, Request())
    except RefreshError as e:
        logger.warning(f"⚠️  Google refresh rejected for user {user_id}: {e}")
        raise GoogleAuthRequiredError()
    except TransportError as e:
        raise ExternalServiceError("Google token request failed", details=str(e))

    update = {
        "access_token": credentials.token,
        "token_expiry": _expiry_to_iso(credentials.expiry),
        "updated_at": utc_now_iso(),
    }
    if credentials.refresh_token and credentials.refresh_token != stored_refresh_token:
        update["refresh_token"] = credentials.refresh_token

    supabase_admin.table("google_oauth_tokens").update(update).eq("user_id", user_id).execute()
    logger.debug(f"🔄 Refreshed Google access token for user {user_id}")
    return credentials.token


async def has_google_tokens(supabase_admin: Client, user_id: str) -> bool:
    result = supabase_admin.table("google_oauth_tokens")\
        .select("id")\
        .eq("user_id", user_id)\
        .maybe_single()\
        .execute()
    return bool(result and result.data)


async def google_request(
    http_client: httpx.AsyncClient,
    supabase_admin: Client,
    user_id: str,
    method: str,
    url: str,
    **kwargs,
) -> dict:
    """
    Authenticated Google API call. 401 means the grant was revoked.
    429/503 surface as httpx.HTTPStatusError so callers can retry them.
    """
    token = await get_access_token(supabase_admin, user_id)
    headers = {**kwargs.pop("headers", {}), "Authorization": f"Bearer {token}"}

    response = await http_client.request(method, url, headers=headers, **kwargs)

    if response.status_code == 401:
        raise GoogleAuthRequiredError()
    response.raise_for_status()
    return response.json() if response.content else {}
