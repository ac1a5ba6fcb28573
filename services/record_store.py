# services/record_store.py

"""
Supabase-backed record store for the email endpoints.

Wraps auth lookups, ownership checks and the reads/writes on
clients, matters, email_templates, email_logs and lead_activities.
Every database failure surfaces as RecordStoreError.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

from fastapi import Depends, HTTPException
from supabase import Client

from core.config import Settings
from core.config_validator import require_email_config
from core.errors import RecordStoreError
from core.logging_config import logger
from core.supabase_client import get_supabase_client
from models.auth import CurrentUser
from models.email import CommunicationActivity, EmailLogEntry, EmailTemplate
from models.enums import ActivityStatus, EmailStatus


EMAIL_LOGS = "email_logs"
EMAIL_TEMPLATES = "email_templates"
CLIENTS = "clients"
MATTERS = "matters"
ACTIVITIES = "lead_activities"

# Timestamp column stamped when a log row enters each status
STATUS_TIMESTAMPS = {
    EmailStatus.sent.value: "sent_at",
    EmailStatus.failed.value: "failed_at",
    EmailStatus.delivered.value: "delivered_at",
    EmailStatus.bounced.value: "bounced_at",
    EmailStatus.complained.value: "complained_at",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _single(result) -> Optional[Dict[str, Any]]:
    """maybe_single() returns None on some client versions, data=None on others."""
    if result is None:
        return None
    return result.data or None


class RecordStore:
    def __init__(self, client: Client):
        self.client = client

    # ============================================================
    # Auth
    # ============================================================
    def authenticate(self, token: str) -> Optional[CurrentUser]:
        """Resolve a Supabase access token to the calling user, or None."""
        try:
            auth_resp = self.client.auth.get_user(token)
        except Exception as e:
            logger.info(f"Token rejected by Supabase auth: {e}")
            return None

        if not auth_resp or not auth_resp.user:
            return None

        auth_user = auth_resp.user
        metadata = auth_user.user_metadata or {}

        return CurrentUser(
            id=auth_user.id,
            email=auth_user.email or "",
            full_name=metadata.get("full_name"),
        )

    # ============================================================
    # Ownership checks
    # ============================================================
    def validate_client(self, client_id: str, user_id: str) -> bool:
        try:
            result = (
                self.client.table(CLIENTS)
                .select("id")
                .eq("id", client_id)
                .eq("user_id", user_id)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            raise RecordStoreError("Failed to validate client", e)

        return _single(result) is not None

    def validate_matter(self, matter_id: str, user_id: str, client_id: Optional[str] = None) -> bool:
        """
        A matter is accessible when it belongs to the given client, which the
        caller has already checked against ``user_id``.
        """
        try:
            query = self.client.table(MATTERS).select("id, client_id").eq("id", matter_id)
            if client_id:
                query = query.eq("client_id", client_id)
            result = query.maybe_single().execute()
        except Exception as e:
            raise RecordStoreError("Failed to validate matter", e)

        matter = _single(result)
        if matter is None:
            return False

        if client_id is None:
            return self.validate_client(matter["client_id"], user_id)
        return True

    # ============================================================
    # Client / matter display data
    # ============================================================
    def get_client_info(self, client_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = (
                self.client.table(CLIENTS)
                .select("name, email")
                .eq("id", client_id)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            raise RecordStoreError("Failed to fetch client info", e)

        return _single(result)

    def get_matter_info(self, matter_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = (
                self.client.table(MATTERS)
                .select("title, client_id")
                .eq("id", matter_id)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            raise RecordStoreError("Failed to fetch matter info", e)

        return _single(result)

    # ============================================================
    # Templates (active only)
    # ============================================================
    def get_template(self, template_id: str) -> Optional[EmailTemplate]:
        try:
            result = (
                self.client.table(EMAIL_TEMPLATES)
                .select("*")
                .eq("id", template_id)
                .eq("is_active", True)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            raise RecordStoreError("Failed to fetch email template", e)

        row = _single(result)
        return EmailTemplate(**row) if row else None

    def list_templates(self, category: Optional[str] = None) -> List[EmailTemplate]:
        query = self.client.table(EMAIL_TEMPLATES).select("*").eq("is_active", True)
        if category:
            query = query.eq("category", category)

        try:
            result = query.order("name").execute()
        except Exception as e:
            raise RecordStoreError("Failed to fetch email templates", e)

        return [EmailTemplate(**row) for row in (result.data or [])]

    def get_templates_by_category(self, category: str) -> List[EmailTemplate]:
        return self.list_templates(category)

    # ============================================================
    # Email logs
    # ============================================================
    def insert_log(self, entry: EmailLogEntry) -> EmailLogEntry:
        now = _now()
        row = entry.model_dump(mode="json", exclude_none=True, exclude={"id", "preview"})
        row["created_at"] = now
        row["updated_at"] = now

        try:
            result = self.client.table(EMAIL_LOGS).insert(row).execute()
        except Exception as e:
            raise RecordStoreError("Failed to log email", e)

        if not result.data:
            raise RecordStoreError("Failed to log email", Exception("no row returned"))

        return EmailLogEntry(**result.data[0])

    def update_log_status(
        self,
        log_id: str,
        status: EmailStatus,
        external_id: Optional[str] = None,
        error_message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        status_value = str(status)
        now = _now()
        update_data: Dict[str, Any] = {"status": status_value, "updated_at": now}

        timestamp_column = STATUS_TIMESTAMPS.get(status_value)
        if timestamp_column:
            update_data[timestamp_column] = now

        if external_id is not None:
            update_data["external_id"] = external_id
        if error_message is not None:
            update_data["error_message"] = error_message
        if metadata is not None:
            update_data["metadata"] = metadata

        try:
            self.client.table(EMAIL_LOGS).update(update_data).eq("id", log_id).execute()
        except Exception as e:
            raise RecordStoreError("Failed to update email status", e)

    def get_email_log(self, log_id: str) -> Optional[EmailLogEntry]:
        try:
            result = (
                self.client.table(EMAIL_LOGS)
                .select("*")
                .eq("id", log_id)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            raise RecordStoreError("Failed to fetch email log", e)

        row = _single(result)
        return EmailLogEntry(**row) if row else None

    def get_email_logs_by_external_id(self, external_id: str) -> List[EmailLogEntry]:
        try:
            result = (
                self.client.table(EMAIL_LOGS)
                .select("*")
                .eq("external_id", external_id)
                .execute()
            )
        except Exception as e:
            raise RecordStoreError("Failed to fetch email logs", e)

        return [EmailLogEntry(**row) for row in (result.data or [])]

    def list_email_logs(
        self,
        user_id: str,
        status: Optional[str] = None,
        email_type: Optional[str] = None,
        client_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[EmailLogEntry]:
        query = self.client.table(EMAIL_LOGS).select("*").eq("user_id", user_id)

        if status:
            query = query.eq("status", status)
        if email_type:
            query = query.eq("email_type", email_type)
        if client_id:
            query = query.eq("client_id", client_id)

        query = query.order("created_at", desc=True).range(offset, offset + limit - 1)

        try:
            result = query.execute()
        except Exception as e:
            raise RecordStoreError("Failed to list email logs", e)

        return [EmailLogEntry(**row) for row in (result.data or [])]

    # ============================================================
    # Communication activity (stored in lead_activities)
    # ============================================================
    def insert_activity(self, activity: CommunicationActivity) -> CommunicationActivity:
        data = activity.model_dump(mode="json")
        row = {
            "lead_id": activity.client_id,
            "activity_type": activity.activity_type,
            "title": activity.subject,
            "description": activity.content or activity.summary,
            "status": "completed" if data["status"] == ActivityStatus.sent.value else "pending",
            "priority": activity.priority,
            "created_by": activity.created_by,
            "metadata": {
                **activity.metadata,
                "direction": data["direction"],
                "participants": data["participants"],
                "billable": activity.billable,
                "billable_hours": activity.billable_hours,
                "hourly_rate": activity.hourly_rate,
                "tags": activity.tags,
                "attachments": data["attachments"],
                "follow_up_required": activity.follow_up_required,
                "follow_up_date": activity.follow_up_date,
                "follow_up_notes": activity.follow_up_notes,
                "reminder_date": activity.reminder_date,
                "matter_id": activity.matter_id,
                "summary": activity.summary,
                "date": activity.date,
                "time": activity.time,
                "duration": activity.duration,
            },
        }

        try:
            result = self.client.table(ACTIVITIES).insert(row).execute()
        except Exception as e:
            raise RecordStoreError("Failed to log communication activity", e)

        if not result.data:
            raise RecordStoreError(
                "Failed to log communication activity", Exception("no row returned")
            )

        return activity.model_copy(update={"id": result.data[0].get("id")})

    # ============================================================
    # Health
    # ============================================================
    def ping(self) -> Dict[str, Any]:
        """Query each table once; used by /health/db."""
        results = {}
        for table in (EMAIL_LOGS, EMAIL_TEMPLATES, CLIENTS, MATTERS, ACTIVITIES):
            try:
                res = self.client.table(table).select("id").limit(1).execute()
                results[table] = {"status": "ok", "rows_found": len(res.data or [])}
            except Exception as err:
                results[table] = {"status": "error", "detail": str(err)}

        status = "ok" if all(r["status"] == "ok" for r in results.values()) else "degraded"
        return {"service": "Supabase", "status": status, "tables": results}


# ============================================================
# FastAPI dependency
# ============================================================
def get_record_store(settings: Settings = Depends(require_email_config)) -> RecordStore:
    client = get_supabase_client(settings)
    if client is None:
        raise HTTPException(500, "Server configuration error")
    return RecordStore(client)
