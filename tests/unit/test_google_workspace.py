"""
Unit tests for Google OAuth, Gmail, Calendar and Drive integrations
"""
import base64
import json
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import httpx
import jwt
import pytest
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from oauthlib.oauth2.rfc6749.errors import InvalidGrantError

from investor_crm.core.config import settings
from investor_crm.core.errors import ExternalServiceError, GoogleAuthRequiredError, NotFoundError, ValidationError
from investor_crm.models.schemas.google import DriveLinkCreate, LogEmailRequest, ScheduleMeetingRequest, SendEmailRequest
from investor_crm.services.google import oauth
from investor_crm.services.google.calendar import build_event, schedule_investor_meeting
from investor_crm.services.google.drive import link_drive_file, unlink_drive_file
from investor_crm.services.google.gmail import (
    build_raw_message,
    log_email_to_investor,
    search_emails,
    send_email,
    to_gmail_message,
)
from investor_crm.services.google.oauth import (
    GOOGLE_SCOPES,
    encode_state,
    exchange_code,
    get_access_token,
    get_google_auth_url,
    google_request,
    parse_state,
)

CLIENT_SECRET = "test-client-secret-with-enough-length-for-hs256"
VALID_TOKENS = {"refresh_token": "r-1", "access_token": "a-1", "token_expiry": "2999-01-01T00:00:00+00:00"}


@pytest.fixture
def google_settings(monkeypatch):
    monkeypatch.setattr(settings, "google_client_id", "client-id")
    monkeypatch.setattr(settings, "google_client_secret", CLIENT_SECRET)
    monkeypatch.setattr(settings, "google_redirect_uri", "https://api.crm.test/api/v1/google/oauth/callback")


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ============================================================================
# OAUTH
# ============================================================================

def test_auth_url_requires_configuration(monkeypatch):
    monkeypatch.setattr(settings, "google_client_id", None)
    with pytest.raises(ExternalServiceError, match="not configured"):
        get_google_auth_url("user-1")


def test_auth_url(google_settings):
    url = urlparse(get_google_auth_url("user-1", "/investors/inv-1"))
    params = {key: values[0] for key, values in parse_qs(url.query).items()}

    assert url.netloc == "accounts.google.com"
    assert params["access_type"] == "offline"
    assert params["prompt"] == "consent"
    assert params["scope"].split(" ") == list(GOOGLE_SCOPES)
    assert parse_state(params["state"]) == ("user-1", "/investors/inv-1")


class TestParseState:

    def test_missing(self, google_settings):
        with pytest.raises(ValidationError, match="Missing OAuth state"):
            parse_state(None)

    @pytest.mark.parametrize("redirect", [None, "https://evil.example/phish", "//evil.example"])
    def test_unsafe_redirects_fall_back(self, google_settings, redirect):
        assert parse_state(encode_state("user-1", redirect)) == ("user-1", "/investors")

    def test_tampered_state(self, google_settings):
        forged = jwt.encode({"sub": "admin-1"}, "some-other-secret-that-is-long-enough", algorithm="HS256")
        with pytest.raises(ValidationError, match="Invalid OAuth state"):
            parse_state(forged)

    def test_expired_state(self, google_settings):
        expired = jwt.encode(
            {"sub": "user-1", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            CLIENT_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(ValidationError):
            parse_state(expired)


class FakeFlow:
    """Stands in for google_auth_oauthlib Flow after the code exchange."""

    def __init__(self, credentials=None, error=None):
        self.credentials = credentials
        self.error = error
        self.codes = []

    def fetch_token(self, code):
        self.codes.append(code)
        if self.error:
            raise self.error


@pytest.mark.asyncio
async def test_exchange_code_keeps_stored_refresh_token(google_settings, supabase, monkeypatch):
    expiry = datetime(2025, 7, 1, 12, 0)
    flow = FakeFlow(Credentials(token="a-2", refresh_token=None, expiry=expiry, scopes=list(GOOGLE_SCOPES)))
    monkeypatch.setattr(oauth, "build_flow", lambda: flow)

    await exchange_code(supabase, "user-1", "auth-code")

    assert flow.codes == ["auth-code"]
    query = supabase.queries_for("google_oauth_tokens")[0]
    (row,), kwargs = query.called("upsert")[0]
    assert kwargs == {"on_conflict": "user_id"}
    assert row["access_token"] == "a-2"
    assert "refresh_token" not in row
    assert row["token_expiry"] == "2025-07-01T12:00:00+00:00"


@pytest.mark.asyncio
async def test_exchange_code_stores_new_refresh_token(google_settings, supabase, monkeypatch):
    flow = FakeFlow(Credentials(token="a-2", refresh_token="r-2", expiry=datetime(2025, 7, 1)))
    monkeypatch.setattr(oauth, "build_flow", lambda: flow)

    await exchange_code(supabase, "user-1", "auth-code")

    row = supabase.queries_for("google_oauth_tokens")[0].called("upsert")[0][0][0]
    assert row["refresh_token"] == "r-2"


@pytest.mark.asyncio
async def test_exchange_code_invalid_grant(google_settings, supabase, monkeypatch):
    monkeypatch.setattr(oauth, "build_flow", lambda: FakeFlow(error=InvalidGrantError()))

    with pytest.raises(GoogleAuthRequiredError):
        await exchange_code(supabase, "user-1", "stale-code")
    assert supabase.queries_for("google_oauth_tokens") == []


def test_build_flow_uses_configured_client(google_settings):
    flow = oauth.build_flow()

    assert flow.client_config["client_id"] == "client-id"
    assert flow.redirect_uri == "https://api.crm.test/api/v1/google/oauth/callback"
    assert flow.code_verifier is None


@pytest.mark.asyncio
async def test_access_token_without_grant(google_settings, supabase):
    supabase.respond("google_oauth_tokens", {"refresh_token": None})
    with pytest.raises(GoogleAuthRequiredError):
        await get_access_token(supabase, "user-1")


@pytest.mark.asyncio
async def test_access_token_still_valid(google_settings, supabase, monkeypatch):
    monkeypatch.setattr(Credentials, "refresh", lambda self, request: pytest.fail("refreshed a valid token"))
    supabase.respond("google_oauth_tokens", VALID_TOKENS)

    assert await get_access_token(supabase, "user-1") == "a-1"


@pytest.mark.asyncio
async def test_access_token_refreshed_when_expiring(google_settings, supabase, monkeypatch):
    refreshed = []

    def refresh(self, request):
        refreshed.append(self.refresh_token)
        self.token = "a-new"
        self.expiry = datetime(2999, 1, 1)

    monkeypatch.setattr(Credentials, "refresh", refresh)
    soon = (datetime.now(timezone.utc) + timedelta(seconds=30)).isoformat()
    supabase.respond("google_oauth_tokens", {**VALID_TOKENS, "token_expiry": soon})

    token = await get_access_token(supabase, "user-1")

    assert token == "a-new"
    assert refreshed == ["r-1"]
    update = supabase.queries_for("google_oauth_tokens")[1].called("update")[0][0][0]
    assert update["access_token"] == "a-new"
    assert update["token_expiry"] == "2999-01-01T00:00:00+00:00"
    assert "refresh_token" not in update


@pytest.mark.asyncio
async def test_access_token_revoked_refresh(google_settings, supabase, monkeypatch):
    def refresh(self, request):
        raise RefreshError("invalid_grant: Token has been expired or revoked.")

    monkeypatch.setattr(Credentials, "refresh", refresh)
    supabase.respond("google_oauth_tokens", {**VALID_TOKENS, "token_expiry": None})

    with pytest.raises(GoogleAuthRequiredError):
        await get_access_token(supabase, "user-1")
    assert len(supabase.queries_for("google_oauth_tokens")) == 1


@pytest.mark.asyncio
async def test_google_request_revoked(google_settings, supabase):
    supabase.respond("google_oauth_tokens", VALID_TOKENS)
    async with mock_client(lambda request: httpx.Response(401)) as client:
        with pytest.raises(GoogleAuthRequiredError):
            await google_request(client, supabase, "user-1", "GET", "https://gmail.googleapis.com/x")


# ============================================================================
# GMAIL
# ============================================================================

def test_to_gmail_message():
    detail = {
        "id": "m1",
        "threadId": "t1",
        "snippet": "Thanks for the deck",
        "payload": {"headers": [
            {"name": "From", "value": "jo@acme.com"},
            {"name": "Subject", "value": "Re: Fund III"},
        ]},
    }
    assert to_gmail_message(detail) == {
        "message_id": "m1", "thread_id": "t1", "from": "jo@acme.com", "to": "",
        "subject": "Re: Fund III", "date": "", "snippet": "Thanks for the deck",
    }


@pytest.mark.asyncio
async def test_search_emails(google_settings, supabase):
    supabase.respond("google_oauth_tokens", VALID_TOKENS, VALID_TOKENS)
    requests = []

    def handler(request):
        requests.append(request)
        assert request.headers["Authorization"] == "Bearer a-1"
        if request.url.path.endswith("/messages"):
            return httpx.Response(200, json={"messages": [{"id": "m1"}]})
        return httpx.Response(200, json={"id": "m1", "payload": {"headers": [{"name": "Subject", "value": "Hi"}]}})

    async with mock_client(handler) as client:
        messages = await search_emails(client, supabase, "user-1", "from:acme.com", max_results=5)

    assert [m["subject"] for m in messages] == ["Hi"]
    assert requests[0].url.params["q"] == "from:acme.com"
    assert requests[1].url.params.get_list("metadataHeaders") == ["From", "To", "Subject", "Date"]


@pytest.mark.asyncio
async def test_log_email_adds_activity(supabase):
    supabase.respond("email_logs", [{"id": "log-1"}])

    await log_email_to_investor(supabase, LogEmailRequest(investor_id="inv-1", message_id="m1"), "user-1")

    activity = supabase.queries_for("activities")[0].called("insert")[0][0][0]
    assert activity["activity_type"] == "email"
    assert activity["description"] == "Email: (no subject)"


def test_build_raw_message_is_base64url_rfc2822():
    raw = build_raw_message("jo@acme.com", "Fund III deck", "Deck attached.")

    decoded = base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4)).decode()
    assert "=" not in raw
    assert "To: jo@acme.com" in decoded
    assert "Subject: Fund III deck" in decoded
    assert "Deck attached." in decoded


def test_build_raw_message_rejects_header_injection():
    with pytest.raises(ValidationError):
        build_raw_message("jo@acme.com", "Hi\nBcc: spy@evil.com", "body")


@pytest.mark.asyncio
async def test_send_email_logs_to_investor(google_settings, supabase):
    supabase.respond("google_oauth_tokens", VALID_TOKENS)
    supabase.respond("email_logs", [{"id": "log-1"}])
    sent = []

    def handler(request):
        sent.append(json.loads(request.content))
        assert request.method == "POST"
        assert request.url.path.endswith("/messages/send")
        return httpx.Response(200, json={"id": "m9", "threadId": "t9"})

    data = SendEmailRequest(to="jo@acme.com", subject="Follow up", body="Thanks for the call", investor_id="inv-1")
    async with mock_client(handler) as client:
        result = await send_email(client, supabase, supabase, "user-1", data)

    assert result == {"success": True, "message_id": "m9", "thread_id": "t9"}
    assert len(sent) == 1 and sent[0]["raw"]
    row = supabase.queries_for("email_logs")[0].called("insert")[0][0][0]
    assert row["message_id"] == "m9"
    assert row["to_address"] == "jo@acme.com"


@pytest.mark.asyncio
async def test_send_email_without_investor_is_not_logged(google_settings, supabase):
    supabase.respond("google_oauth_tokens", VALID_TOKENS)

    def handler(request):
        return httpx.Response(200, json={"id": "m9", "threadId": "t9"})

    data = SendEmailRequest(to="jo@acme.com", subject="Follow up", body="Thanks")
    async with mock_client(handler) as client:
        await send_email(client, supabase, supabase, "user-1", data)

    assert supabase.queries_for("email_logs") == []


# ============================================================================
# CALENDAR / DRIVE
# ============================================================================

MEETING_REQUEST = ScheduleMeetingRequest(
    investor_id="inv-1",
    summary="Fund III intro",
    start_time="2025-07-01T15:00:00",
    end_time="2025-07-01T15:30:00",
    attendees=["jo@acme.com"],
)


def test_build_event_defaults_timezone():
    event = build_event(MEETING_REQUEST)
    assert event["start"] == {"dateTime": "2025-07-01T15:00:00", "timeZone": settings.google_default_timezone}
    assert event["attendees"] == [{"email": "jo@acme.com"}]
    assert "description" not in event


@pytest.mark.asyncio
async def test_schedule_meeting(google_settings, supabase):
    supabase.respond("google_oauth_tokens", VALID_TOKENS)
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"id": "evt-1", "htmlLink": "https://calendar.google.com/evt-1"})

    async with mock_client(handler) as client:
        result = await schedule_investor_meeting(client, supabase, supabase, "user-1", MEETING_REQUEST)

    assert result == {"success": True, "event_id": "evt-1", "event_url": "https://calendar.google.com/evt-1"}
    assert bodies[0]["summary"] == "Fund III intro"
    stored = supabase.queries_for("calendar_events")[0].called("insert")[0][0][0]
    assert stored["event_id"] == "evt-1"
    activity = supabase.queries_for("activities")[0].called("insert")[0][0][0]
    assert activity["description"] == "Scheduled: Fund III intro"


@pytest.mark.asyncio
async def test_schedule_meeting_without_event_id(google_settings, supabase):
    supabase.respond("google_oauth_tokens", VALID_TOKENS)
    async with mock_client(lambda request: httpx.Response(200, json={})) as client:
        with pytest.raises(ExternalServiceError):
            await schedule_investor_meeting(client, supabase, supabase, "user-1", MEETING_REQUEST)
    assert supabase.queries_for("calendar_events") == []


@pytest.mark.asyncio
async def test_link_drive_file(supabase):
    supabase.respond("drive_links", [{"id": "link-1"}])
    data = DriveLinkCreate(
        investor_id="inv-1", file_id="f1", file_name="DDQ.pdf",
        file_url="https://drive.google.com/f1", mime_type="application/pdf",
    )

    link = await link_drive_file(supabase, data, "user-1")

    assert link == {"id": "link-1"}
    activity = supabase.queries_for("activities")[0].called("insert")[0][0][0]
    assert activity["description"] == "Linked document: DDQ.pdf"
    assert activity["metadata"]["type"] == "drive_link"


@pytest.mark.asyncio
async def test_unlink_missing_drive_file(supabase):
    supabase.respond("drive_links", [])
    with pytest.raises(NotFoundError):
        await unlink_drive_file(supabase, "link-404")
