"""
HTTP layer tests: status codes and error mapping through the routers
"""
from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from investor_crm.api.v1.routes import (
    bulk_router,
    export_router,
    health_router,
    investors_router,
    notifications_router,
    webhooks_router,
)
from investor_crm.core.config import settings
from investor_crm.core.dependencies import get_http_client, get_supabase, get_supabase_admin
from investor_crm.core.errors import CONFLICT_MESSAGE
from investor_crm.core.security import get_current_user_context


@pytest.fixture
def app(supabase, user):
    app = FastAPI()
    app.include_router(health_router)
    for router in (investors_router, bulk_router, export_router, webhooks_router, notifications_router):
        app.include_router(router, prefix="/api/v1")

    app.dependency_overrides[get_supabase] = lambda: supabase
    app.dependency_overrides[get_supabase_admin] = lambda: supabase
    app.dependency_overrides[get_current_user_context] = lambda: user
    app.dependency_overrides[get_http_client] = lambda: None
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_readiness_reports_database_failure(client, supabase):
    supabase.respond("investors", RuntimeError("connection refused"))

    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["database"] == "unreachable"


# ============================================================================
# INVESTORS
# ============================================================================

def test_missing_investor_is_404(client, supabase):
    supabase.respond("investors", [])

    response = client.get("/api/v1/investors/inv-404")

    assert response.status_code == 404
    assert response.json()["detail"] == "Investor not found"


def test_stale_version_is_409(client, supabase):
    supabase.respond("investors", {"id": "inv-1", "next_action": "Send deck"}, [])

    response = client.patch(
        "/api/v1/investors/inv-1/field",
        json={"field": "next_action", "value": "Book call", "version": 2},
    )

    assert response.status_code == 409
    assert response.json()["detail"] == CONFLICT_MESSAGE


def test_unknown_field_is_400(client):
    response = client.patch("/api/v1/investors/inv-1/field", json={"field": "deleted_at", "value": None})

    assert response.status_code == 400


def test_stage_change_without_checklist_returns_criteria(client, supabase):
    supabase.respond("investors", {"id": "inv-1", "stage": "Materials Shared"})

    response = client.post("/api/v1/investors/inv-1/stage", json={"new_stage": "NDA / Data Room"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["validation_required"] is True


def test_restore_requires_admin(client):
    response = client.post("/api/v1/investors/inv-1/restore")

    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


def test_restore_as_admin(app, client, supabase, admin_user):
    app.dependency_overrides[get_current_user_context] = lambda: admin_user
    supabase.respond("investors", [{"id": "inv-1", "deleted_at": None}])

    response = client.post("/api/v1/investors/inv-1/restore")

    assert response.status_code == 200
    assert response.json() == {"success": True}


def test_role_comes_from_user_roles_table(app, client, supabase):
    app.dependency_overrides.pop(get_current_user_context)
    supabase.auth.get_user.return_value = SimpleNamespace(
        user=SimpleNamespace(id="user-12345678", email="bdr@example.com", app_metadata={}, user_metadata={}),
    )
    supabase.respond("user_roles", {"role": "admin"})
    supabase.respond("investors", [{"id": "inv-1", "deleted_at": None}])

    response = client.post("/api/v1/investors/inv-1/restore", headers={"Authorization": "Bearer opaque-token"})

    assert response.status_code == 200
    assert supabase.queries_for("user_roles")[0].called("eq") == [(("user_id", "user-12345678"), {})]


def test_role_claim_is_fallback_without_row(app, client, supabase):
    app.dependency_overrides.pop(get_current_user_context)
    supabase.auth.get_user.return_value = SimpleNamespace(
        user=SimpleNamespace(id="user-87654321", email="bdr@example.com", app_metadata={}, user_metadata={}),
    )
    supabase.respond("user_roles", [])

    response = client.post("/api/v1/investors/inv-1/restore", headers={"Authorization": "Bearer opaque-token"})

    assert response.status_code == 403


# ============================================================================
# BULK + EXPORT
# ============================================================================

def test_bulk_success_is_200(client):
    response = client.post(
        "/api/v1/bulk",
        json={"entity_type": "tasks", "operation": "delete", "item_ids": ["t1", "t2"]},
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Successfully deleted 2 tasks"


def test_bulk_invalid_data_is_207(client):
    response = client.post(
        "/api/v1/bulk",
        json={"entity_type": "tasks", "operation": "update_status", "item_ids": ["t1"], "data": {"status": "done"}},
    )

    assert response.status_code == 207
    body = response.json()
    assert body["success"] is False
    assert body["failed"] == 1


def test_bulk_without_items_is_400(client):
    response = client.post("/api/v1/bulk", json={"entity_type": "tasks", "operation": "delete", "item_ids": []})

    assert response.status_code == 400


def test_export_sets_attachment_header(client, supabase):
    supabase.respond("tasks", [{"title": "Follow up", "status": "pending", "investors": {"firm_name": "Acme"}}])

    response = client.get("/api/v1/export/tasks", params={"format": "csv", "status": "pending"})

    assert response.status_code == 200
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="tasks-')
    assert disposition.endswith('.csv"')
    assert "Follow up" in response.text


def test_unknown_export_type_is_404(client):
    assert client.get("/api/v1/export/users").status_code == 404


# ============================================================================
# WEBHOOKS + SCHEDULER
# ============================================================================

def test_whatsapp_verification_echoes_challenge(client, monkeypatch):
    monkeypatch.setattr(settings, "whatsapp_verify_token", "verify-me")

    ok = client.get(
        "/api/v1/webhooks/whatsapp",
        params={"hub.mode": "subscribe", "hub.verify_token": "verify-me", "hub.challenge": "1158201444"},
    )
    bad = client.get(
        "/api/v1/webhooks/whatsapp",
        params={"hub.mode": "subscribe", "hub.verify_token": "wrong", "hub.challenge": "1158201444"},
    )

    assert ok.status_code == 200
    assert ok.text == "1158201444"
    assert bad.status_code == 403


def test_notifications_reject_wrong_cron_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", "s3cret")

    response = client.post("/api/v1/notifications/process", headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401


def test_email_notifications_without_smtp_is_502(client, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", "s3cret")
    monkeypatch.setattr(settings, "smtp_host", None)

    response = client.post("/api/v1/notifications/email/process", headers={"Authorization": "Bearer s3cret"})

    assert response.status_code == 502
    assert response.json()["detail"] == "Email delivery is not configured"
