# tests/test_email_logs.py

"""
Tests for the email log / template read endpoints and health checks.
"""

from fastapi.testclient import TestClient
from unittest.mock import patch

from models.email import EmailLogEntry


def add_log(store, **fields):
    entry = EmailLogEntry(
        **{
            "user_id": "user-1",
            "email_type": "general",
            "to_addresses": ["a@b.com"],
            "subject": "Hi",
            "content": "<p>Hello <b>there</b></p>",
            **fields,
        }
    )
    return store.insert_log(entry)


def test_list_email_logs_returns_previews(client: TestClient, auth_headers, store):
    add_log(store)
    add_log(store, user_id="user-2")

    response = client.get("/email-logs", headers=auth_headers)

    assert response.status_code == 200
    logs = response.json()
    assert len(logs) == 1
    assert logs[0]["preview"] == "Hello there"
    assert "content" not in logs[0]


def test_list_email_logs_filters(client: TestClient, auth_headers, store):
    add_log(store, status="sent")
    add_log(store, status="failed", email_type="invoice", client_id="client-1")

    response = client.get(
        "/email-logs",
        params={"status": "failed", "email_type": "invoice"},
        headers=auth_headers,
    )

    logs = response.json()
    assert [log["status"] for log in logs] == ["failed"]
    assert logs[0]["client_id"] == "client-1"


def test_list_email_logs_rejects_unknown_status(client: TestClient, auth_headers):
    response = client.get("/email-logs", params={"status": "lost"}, headers=auth_headers)

    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["errors"][0]["field"] == "status"


def test_list_email_logs_requires_auth(client: TestClient):
    response = client.get("/email-logs")

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_get_email_log(client: TestClient, auth_headers, store):
    log = add_log(store)

    response = client.get(f"/email-logs/{log.id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["content"] == "<p>Hello <b>there</b></p>"


def test_get_email_log_of_other_user(client: TestClient, auth_headers, store):
    log = add_log(store, user_id="user-2")

    response = client.get(f"/email-logs/{log.id}", headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Email log not found"}


def test_list_email_templates(client: TestClient, auth_headers, store):
    store.add_template(id="t1", name="invoice", html_content="<p>i</p>", category="invoice")
    store.add_template(id="t2", name="general", html_content="<p>g</p>", category="communication")
    store.add_template(id="t3", name="old", html_content="<p>o</p>", category="invoice", is_active=False)

    all_templates = client.get("/email-templates", headers=auth_headers).json()
    invoice_templates = client.get(
        "/email-templates", params={"category": "invoice"}, headers=auth_headers
    ).json()

    assert {t["id"] for t in all_templates} == {"t1", "t2"}
    assert [t["id"] for t in invoice_templates] == ["t1"]


def test_health_app(client: TestClient):
    response = client.get("/health/app")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_health_email_reports_missing_config(app, client: TestClient):
    from core.config import Settings, get_settings

    app.dependency_overrides[get_settings] = lambda: Settings(
        SUPABASE_URL=None, SUPABASE_SERVICE_ROLE_KEY=None, RESEND_API_KEY=None
    )

    data = client.get("/health/email").json()

    assert data["status"] == "error"
    assert set(data["missing_config"]) == {
        "SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY", "RESEND_API_KEY"
    }


def test_health_email_checks_key(client: TestClient):
    with patch("routers.health.ResendTransport.validate_api_key", return_value=True):
        data = client.get("/health/email").json()

    assert data == {"service": "Email", "status": "ok", "resend_api_key_valid": True}


def test_health_db_without_client(client: TestClient):
    with patch("routers.health.get_supabase_client", return_value=None):
        data = client.get("/health/db").json()

    assert data["status"] == "error"
