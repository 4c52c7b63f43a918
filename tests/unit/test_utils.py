"""
Unit tests for rate limiting, CSRF tokens, caching, pagination, retry and
sanitization helpers
"""
import httpx
import pytest
from unittest.mock import AsyncMock, Mock

from fastapi import FastAPI
from fastapi.testclient import TestClient
from limits import parse

from investor_crm.middleware.rate_limit import RATE_LIMITS, RateLimitMiddleware, get_client_identifier, select_limit
from investor_crm.utils.cache import MemoryCache, cached
from investor_crm.utils.csrf import generate_csrf_token, is_safe_method, validate_csrf_token
from investor_crm.utils.pagination import (
    apply_cursor,
    clamp_limit,
    decode_cursor,
    encode_cursor,
    paginate,
)
from investor_crm.utils.retry import call_with_retry, is_retryable_error
from investor_crm.utils.sanitize import (
    escape_like,
    is_valid_email,
    is_valid_url,
    sanitize_html,
    sanitize_object,
    sanitize_text,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


# ============================================================================
# RATE LIMITING
# ============================================================================

class TestRateLimitMiddleware:

    @pytest.fixture
    def client(self, monkeypatch):
        monkeypatch.setitem(RATE_LIMITS, "API", parse("2/minute"))
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware)

        @app.get("/api/v1/ping")
        async def ping():
            return {"ok": True}

        @app.get("/health")
        async def health():
            return {"ok": True}

        return TestClient(app)

    def test_blocks_after_limit(self, client):
        first = client.get("/api/v1/ping")
        second = client.get("/api/v1/ping")
        third = client.get("/api/v1/ping")

        assert first.headers["X-RateLimit-Limit"] == "2"
        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert second.status_code == 200
        assert third.status_code == 429
        assert third.json()["error"] == "Too many requests"
        assert 0 <= int(third.headers["Retry-After"]) <= 60

    def test_clients_are_counted_separately(self, client):
        for _ in range(2):
            client.get("/api/v1/ping", headers={"x-forwarded-for": "1.1.1.1"})

        assert client.get("/api/v1/ping", headers={"x-forwarded-for": "2.2.2.2"}).status_code == 200

    def test_health_is_exempt(self, client):
        for _ in range(3):
            response = client.get("/health")
        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers


def test_select_limit_tiers():
    assert select_limit("/api/v1/auth/session") is RATE_LIMITS["SENSITIVE"]
    assert select_limit("/api/v1/admin/users") is RATE_LIMITS["SENSITIVE"]
    assert select_limit("/api/v1/investors/bulk-delete") is RATE_LIMITS["SENSITIVE"]
    assert select_limit("/api/v1/investors") is RATE_LIMITS["API"]


def _request(headers=None, host="10.0.0.1"):
    request = Mock()
    request.headers = headers or {}
    request.client = Mock(host=host)
    return request


def test_client_identifier_prefers_forwarded_for():
    assert get_client_identifier(_request({"x-forwarded-for": "1.2.3.4, 10.0.0.1"})) == "1.2.3.4"
    assert get_client_identifier(_request({"x-real-ip": "5.6.7.8"})) == "5.6.7.8"
    assert get_client_identifier(_request()) == "10.0.0.1"


# ============================================================================
# CSRF
# ============================================================================

def test_csrf_token_is_64_hex_chars():
    token = generate_csrf_token()
    assert len(token) == 64
    int(token, 16)
    assert token != generate_csrf_token()


def test_validate_csrf_token():
    token = generate_csrf_token()
    assert validate_csrf_token(token, token) is True
    assert validate_csrf_token(token, generate_csrf_token()) is False
    assert validate_csrf_token(None, token) is False
    assert validate_csrf_token(token, "") is False


def test_safe_methods():
    assert is_safe_method("get")
    assert not is_safe_method("POST")


# ============================================================================
# CACHE
# ============================================================================

class TestMemoryCache:

    def test_get_set_and_expiry(self):
        clock = FakeClock(0)
        store = MemoryCache(max_size=10, default_ttl=60, timer=clock)

        store.set("k", {"v": 1})
        assert store.get("k") == {"v": 1}

        clock.now = 61
        assert store.get("k") is None

    def test_per_entry_ttl(self):
        clock = FakeClock(0)
        store = MemoryCache(max_size=10, default_ttl=60, timer=clock)

        store.set("short", 1, ttl=5)
        store.set("long", 2)
        clock.now = 10

        assert store.get("short") is None
        assert store.get("long") == 2

    def test_evicts_oldest_when_full(self):
        clock = FakeClock(0)
        store = MemoryCache(max_size=2, default_ttl=60, timer=clock)
        for tick, key in enumerate("abc"):
            clock.now = tick
            store.set(key, tick)

        assert store.get("a") is None
        assert store.get("b") == 1
        assert store.get("c") == 2

    def test_invalidate_prefix(self):
        store = MemoryCache(timer=FakeClock(0))
        store.set("investor:1", 1)
        store.set("investor:2", 2)
        store.set("stats:tasks", 3)

        assert store.invalidate_prefix("investor:") == 2
        assert store.size() == 1

    def test_delete_and_clear(self):
        store = MemoryCache(timer=FakeClock(0))
        store.set("a", 1)
        assert store.delete("a") is True
        assert store.delete("a") is False
        store.set("b", 2)
        store.clear()
        assert store.size() == 0


def test_cached_decorator_sync():
    store = MemoryCache(timer=FakeClock(0))
    calls = Mock(side_effect=lambda x: x * 2)

    @cached(key=lambda x: f"double:{x}", store=store)
    def double(x):
        return calls(x)

    assert double(2) == 4
    assert double(2) == 4
    assert calls.call_count == 1


@pytest.mark.asyncio
async def test_cached_decorator_async_skips_none():
    store = MemoryCache(timer=FakeClock(0))
    loader = AsyncMock(return_value=None)

    @cached(key=lambda: "missing", store=store)
    async def load():
        return await loader()

    assert await load() is None
    assert await load() is None
    assert loader.await_count == 2


# ============================================================================
# PAGINATION
# ============================================================================

def test_clamp_limit():
    assert clamp_limit(None) == 50
    assert clamp_limit(5000) == 1000
    assert clamp_limit(-3) == 1


def test_cursor_round_trip_and_malformed():
    cursor = encode_cursor("inv-9", "2025-06-01")
    assert decode_cursor(cursor) == {"id": "inv-9", "sort_value": "2025-06-01"}
    assert decode_cursor("not-a-cursor!!") is None
    assert decode_cursor(None) is None


def test_paginate_uses_extra_row_as_has_more():
    rows = [{"id": str(i), "created_at": f"2025-01-0{i}"} for i in range(1, 4)]

    page = paginate(rows, limit=2)

    assert [r["id"] for r in page["data"]] == ["1", "2"]
    assert page["has_more"] is True
    assert decode_cursor(page["next_cursor"]) == {"id": "2", "sort_value": "2025-01-02"}


def test_paginate_last_page():
    page = paginate([{"id": "1"}], limit=2)
    assert page["has_more"] is False
    assert page["next_cursor"] is None


def test_apply_cursor_disambiguates_by_id():
    query = Mock()
    apply_cursor(query, {"id": "inv-2", "sort_value": "Acme"}, "firm_name", ascending=False)
    query.or_.assert_called_once_with('firm_name.lt."Acme",and(firm_name.eq."Acme",id.lt."inv-2")')


def test_apply_cursor_quotes_reserved_characters():
    query = Mock()
    cursor = decode_cursor(encode_cursor("id-9", 'Smith, Jones (LP) "Fund"'))

    apply_cursor(query, cursor, "firm_name", ascending=True)

    (expression,), _ = query.or_.call_args
    value = '"Smith, Jones (LP) \\"Fund\\""'
    assert expression == (
        f'firm_name.gt.{value},and(firm_name.eq.{value},id.gt."id-9"),firm_name.is.null'
    )


@pytest.mark.parametrize("ascending,expected", [
    (True, 'and(est_value.is.null,id.gt."inv-2")'),
    (False, 'and(est_value.is.null,id.lt."inv-2"),est_value.not.is.null'),
])
def test_apply_cursor_on_null_sort_value(ascending, expected):
    query = Mock()
    apply_cursor(query, {"id": "inv-2", "sort_value": None}, "est_value", ascending=ascending)
    query.or_.assert_called_once_with(expected)


# ============================================================================
# RETRY
# ============================================================================

def _status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://www.googleapis.com/gmail/v1/users/me/messages")
    return httpx.HTTPStatusError("error", request=request, response=httpx.Response(code, request=request))


def test_is_retryable_error():
    assert is_retryable_error(_status_error(429))
    assert is_retryable_error(_status_error(503))
    assert not is_retryable_error(_status_error(404))
    assert not is_retryable_error(ValueError("nope"))


@pytest.mark.asyncio
async def test_call_with_retry_does_not_retry_client_errors():
    fn = AsyncMock(side_effect=_status_error(400))

    with pytest.raises(httpx.HTTPStatusError):
        await call_with_retry(fn, max_retries=3)
    assert fn.await_count == 1


@pytest.mark.asyncio
async def test_call_with_retry_retries_rate_limits():
    fn = AsyncMock(side_effect=[_status_error(429), {"ok": True}])

    assert await call_with_retry(fn, "a", max_retries=1) == {"ok": True}
    assert fn.await_count == 2


# ============================================================================
# SANITIZATION
# ============================================================================

def test_sanitize_text_strips_markup_and_scripts():
    assert sanitize_text("<b>Hello</b> <script>alert(1)</script>world") == "Hello world"
    assert sanitize_text("") == ""


def test_sanitize_html_keeps_safe_tags():
    html = '<p onclick="x()">Hi <a href="javascript:alert(1)">link</a> <span>there</span></p>'
    cleaned = sanitize_html(html)

    assert cleaned == "<p>Hi <a>link</a> there</p>"


def test_sanitize_object_recurses():
    data = {"name": "<i>Acme</i>", "notes": "<b>bold</b>", "tags": ["<u>a</u>"], "count": 3}
    assert sanitize_object(data, allow_html=["notes"]) == {
        "name": "Acme",
        "notes": "<b>bold</b>",
        "tags": ["a"],
        "count": 3,
    }


def test_format_checks():
    assert is_valid_email("partner@fund.com")
    assert not is_valid_email("partner@fund")
    assert is_valid_url("https://www.linkedin.com/in/jane")
    assert not is_valid_url("")


def test_escape_like():
    assert escape_like("50%_off,(x)") == r"50\%\_off\,\(x\)"
