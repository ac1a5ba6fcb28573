# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.

The record store and email transport are replaced with in-memory fakes
through FastAPI dependency overrides, so no test touches Supabase or Resend.
"""

import pytest
from fastapi.testclient import TestClient
from typing import Generator

from main import create_app
from core.config import Settings, get_settings
from core.errors import RecordStoreError
from core.rate_limiter import EmailRateLimiter, get_rate_limiter
from models.auth import CurrentUser
from models.email import EmailTemplate
from services.email_transport import SendResult, get_email_transport
from services.record_store import get_record_store


VALID_TOKEN = "valid-token"
USER_ID = "user-1"


class FakeRecordStore:
    """In-memory stand-in for services.record_store.RecordStore."""

    def __init__(self):
        self.users = {
            VALID_TOKEN: CurrentUser(id=USER_ID, email="attorney@firm.com", full_name="Jane Attorney"),
            "other-token": CurrentUser(id="user-2", email="other@firm.com"),
        }
        self.clients = {
            "client-1": {"id": "client-1", "user_id": USER_ID, "name": "Acme Corp", "email": "contact@acme.com"},
            "client-no-email": {"id": "client-no-email", "user_id": USER_ID, "name": "Quiet LLC", "email": None},
            "client-other": {"id": "client-other", "user_id": "user-2", "name": "Other Co", "email": "x@other.com"},
        }
        self.matters = {
            "matter-1": {"id": "matter-1", "client_id": "client-1", "title": "Acme v. Widgets"},
            "matter-other": {"id": "matter-other", "client_id": "client-other", "title": "Other Matter"},
        }
        self.templates = {}
        self.logs = {}
        self.activities = []
        self.fail_activity = False

    def add_template(self, **fields) -> EmailTemplate:
        template = EmailTemplate(**fields)
        self.templates[template.id] = template
        return template

    # Auth / ownership
    def authenticate(self, token):
        return self.users.get(token)

    def validate_client(self, client_id, user_id):
        client = self.clients.get(client_id)
        return bool(client and client["user_id"] == user_id)

    def validate_matter(self, matter_id, user_id, client_id=None):
        matter = self.matters.get(matter_id)
        if matter is None:
            return False
        if client_id is not None:
            return matter["client_id"] == client_id
        return self.validate_client(matter["client_id"], user_id)

    def get_client_info(self, client_id):
        client = self.clients.get(client_id)
        return {"name": client["name"], "email": client["email"]} if client else None

    def get_matter_info(self, matter_id):
        matter = self.matters.get(matter_id)
        return {"title": matter["title"], "client_id": matter["client_id"]} if matter else None

    # Templates
    def get_template(self, template_id):
        template = self.templates.get(template_id)
        return template if template and template.is_active else None

    def list_templates(self, category=None):
        return [
            t for t in self.templates.values()
            if t.is_active and (category is None or t.category == category)
        ]

    def get_templates_by_category(self, category):
        return self.list_templates(category)

    # Logs
    def insert_log(self, entry):
        log_id = f"log-{len(self.logs) + 1}"
        saved = entry.model_copy(update={"id": log_id})
        self.logs[log_id] = saved
        return saved

    def update_log_status(self, log_id, status, external_id=None, error_message=None, metadata=None):
        update = {"status": str(status)}
        if external_id is not None:
            update["external_id"] = external_id
        if error_message is not None:
            update["error_message"] = error_message
        if metadata is not None:
            update["metadata"] = metadata
        self.logs[log_id] = self.logs[log_id].model_copy(update=update)

    def get_email_log(self, log_id):
        return self.logs.get(log_id)

    def list_email_logs(self, user_id, status=None, email_type=None, client_id=None, limit=50, offset=0):
        logs = [
            log for log in self.logs.values()
            if log.user_id == user_id
            and (status is None or log.status == status)
            and (email_type is None or log.email_type == email_type)
            and (client_id is None or log.client_id == client_id)
        ]
        return logs[offset:offset + limit]

    # Activities
    def insert_activity(self, activity):
        if self.fail_activity:
            raise RecordStoreError("Failed to log communication activity", Exception("insert failed"))
        saved = activity.model_copy(update={"id": f"activity-{len(self.activities) + 1}"})
        self.activities.append(saved)
        return saved

    def only_log(self):
        assert len(self.logs) == 1
        return next(iter(self.logs.values()))


class FakeTransport:
    """Records messages instead of calling Resend; set `error` to fail sends."""

    provider = "resend"

    def __init__(self):
        self.sent = []
        self.error = None

    def send(self, message, from_header=None):
        if self.error is not None:
            raise self.error
        self.sent.append((message, from_header))
        return SendResult(id=f"re_{len(self.sent)}")


@pytest.fixture
def settings():
    return Settings(
        SUPABASE_URL="https://test.supabase.co",
        SUPABASE_SERVICE_ROLE_KEY="service-role-key",
        RESEND_API_KEY="re_test_key",
        FIRM_NAME="Test Law LLP",
        FIRM_ADDRESS="1 Main St",
        FIRM_PHONE="555-0100",
        FIRM_TIMEZONE="UTC",
    )


@pytest.fixture
def store():
    return FakeRecordStore()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def rate_limiter():
    return EmailRateLimiter(per_minute=3, per_hour=100, per_day=500)


@pytest.fixture(scope="function")
def app(settings, store, transport, rate_limiter):
    """Create a test FastAPI application with fake collaborators."""
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_email_transport] = lambda: transport
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    return app


@pytest.fixture(scope="function")
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {VALID_TOKEN}"}
