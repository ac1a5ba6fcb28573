# tests/test_record_store.py

"""
Tests for the Supabase record store adapter (Supabase client mocked).
"""

import pytest
from unittest.mock import Mock

from core.errors import RecordStoreError
from models.email import CommunicationActivity, CommunicationParticipant, EmailLogEntry
from models.enums import EmailStatus
from services.record_store import RecordStore


def make_query(data=None, error=None):
    """Chainable PostgREST query builder mock."""
    query = Mock()
    for name in ("select", "eq", "order", "range", "limit", "insert", "update", "maybe_single"):
        getattr(query, name).return_value = query
    if error is not None:
        query.execute.side_effect = error
    else:
        query.execute.return_value = Mock(data=data)
    return query


def make_store(query):
    client = Mock()
    client.table.return_value = query
    return RecordStore(client), client


def test_authenticate_success():
    client = Mock()
    client.auth.get_user.return_value = Mock(
        user=Mock(id="user-1", email="a@firm.com", user_metadata={"full_name": "Ann Lawyer"})
    )

    user = RecordStore(client).authenticate("token")

    assert user.id == "user-1"
    assert user.display_name == "Ann Lawyer"
    client.auth.get_user.assert_called_once_with("token")


def test_authenticate_rejected():
    client = Mock()
    client.auth.get_user.side_effect = Exception("invalid JWT")

    assert RecordStore(client).authenticate("bad") is None


def test_validate_client_scoped_to_user():
    query = make_query(data={"id": "client-1"})
    store, client = make_store(query)

    assert store.validate_client("client-1", "user-1") is True
    client.table.assert_called_with("clients")
    query.eq.assert_any_call("id", "client-1")
    query.eq.assert_any_call("user_id", "user-1")


def test_validate_client_not_found():
    store, _ = make_store(make_query(data=None))
    assert store.validate_client("client-1", "user-1") is False


def test_maybe_single_returning_none():
    query = make_query()
    query.execute.return_value = None
    store, _ = make_store(query)

    assert store.get_client_info("client-1") is None


def test_validate_matter_with_client():
    query = make_query(data={"id": "matter-1", "client_id": "client-1"})
    store, _ = make_store(query)

    assert store.validate_matter("matter-1", "user-1", client_id="client-1") is True
    query.eq.assert_any_call("client_id", "client-1")


def test_store_errors_are_wrapped():
    store, _ = make_store(make_query(error=Exception("connection refused")))

    with pytest.raises(RecordStoreError) as exc_info:
        store.get_template("tpl-1")

    assert exc_info.value.detail == "connection refused"


def test_get_template_filters_active():
    query = make_query(data={"id": "tpl-1", "name": "t", "html_content": "<p>x</p>", "category": "invoice"})
    store, _ = make_store(query)

    template = store.get_template("tpl-1")

    assert template.category == "invoice"
    query.eq.assert_any_call("is_active", True)


def test_insert_log():
    query = make_query(data=[{
        "id": "log-1",
        "user_id": "user-1",
        "email_type": "general",
        "to_addresses": ["a@b.com"],
        "subject": "Hi",
        "status": "pending",
    }])
    store, client = make_store(query)

    saved = store.insert_log(EmailLogEntry(
        user_id="user-1", email_type="general", to_addresses=["a@b.com"], subject="Hi"
    ))

    assert saved.id == "log-1"
    client.table.assert_called_with("email_logs")
    row = query.insert.call_args.args[0]
    assert row["status"] == "pending"
    assert "id" not in row
    assert "created_at" in row


def test_insert_log_without_row_fails():
    store, _ = make_store(make_query(data=[]))

    with pytest.raises(RecordStoreError):
        store.insert_log(EmailLogEntry(
            user_id="user-1", email_type="general", to_addresses=["a@b.com"], subject="Hi"
        ))


def test_update_log_status_sent():
    query = make_query(data=[{}])
    store, _ = make_store(query)

    store.update_log_status("log-1", EmailStatus.sent, external_id="re_1", metadata={"provider": "resend"})

    update = query.update.call_args.args[0]
    assert update["status"] == "sent"
    assert update["external_id"] == "re_1"
    assert update["metadata"] == {"provider": "resend"}
    assert "sent_at" in update
    query.eq.assert_called_with("id", "log-1")


def test_update_log_status_failed():
    query = make_query(data=[{}])
    store, _ = make_store(query)

    store.update_log_status("log-1", EmailStatus.failed, error_message="boom")

    update = query.update.call_args.args[0]
    assert update["status"] == "failed"
    assert update["error_message"] == "boom"
    assert "failed_at" in update
    assert "external_id" not in update


def test_get_email_logs_by_external_id():
    query = make_query(data=[{
        "id": "log-1",
        "user_id": "user-1",
        "email_type": "invoice",
        "to_addresses": ["a@b.com"],
        "subject": "Invoice INV-1",
        "status": "sent",
        "external_id": "re_1",
    }])
    store, client = make_store(query)

    logs = store.get_email_logs_by_external_id("re_1")

    assert [log.id for log in logs] == ["log-1"]
    assert logs[0].status == "sent"
    client.table.assert_called_with("email_logs")
    query.eq.assert_called_with("external_id", "re_1")


def test_get_email_logs_by_external_id_none_found():
    store, _ = make_store(make_query(data=None))

    assert store.get_email_logs_by_external_id("re_missing") == []


def test_list_email_logs_filters_and_pages():
    query = make_query(data=[])
    store, _ = make_store(query)

    store.list_email_logs("user-1", status="sent", limit=10, offset=20)

    query.eq.assert_any_call("user_id", "user-1")
    query.eq.assert_any_call("status", "sent")
    query.range.assert_called_with(20, 29)
    query.order.assert_called_with("created_at", desc=True)


def test_insert_activity_maps_to_lead_activities():
    query = make_query(data=[{"id": "act-1"}])
    store, client = make_store(query)
    activity = CommunicationActivity(
        client_id="client-1",
        subject="Invoice",
        summary="Invoice sent",
        date="2025-03-07",
        time="10:00:00",
        created_by="user-1",
        participants=[CommunicationParticipant(id="client-1", name="Acme", role="client")],
        metadata={"email_id": "log-1"},
    )

    saved = store.insert_activity(activity)

    assert saved.id == "act-1"
    client.table.assert_called_with("lead_activities")
    row = query.insert.call_args.args[0]
    assert row["lead_id"] == "client-1"
    assert row["status"] == "completed"
    assert row["description"] == "Invoice sent"
    assert row["metadata"]["email_id"] == "log-1"
    assert row["metadata"]["direction"] == "outbound"
    assert row["metadata"]["participants"][0]["role"] == "client"


def test_ping_reports_degraded():
    client = Mock()
    ok = make_query(data=[{"id": 1}])
    broken = make_query(error=Exception("relation does not exist"))
    client.table.side_effect = lambda name: broken if name == "lead_activities" else ok

    status = RecordStore(client).ping()

    assert status["status"] == "degraded"
    assert status["tables"]["email_logs"] == {"status": "ok", "rows_found": 1}
    assert status["tables"]["lead_activities"]["status"] == "error"
