# routers/email_logs.py

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional

from core.logging_config import logger
from core.templates import generate_preview
from dependencies.auth import get_current_user
from models.auth import CurrentUser
from models.email import EmailLogEntry, EmailTemplate
from models.enums import EmailStatus, EmailType, TemplateCategory
from services.record_store import RecordStore, get_record_store

router = APIRouter(
    tags=["Email Logs"],
)


# -----------------------------------------------------
# GET /email-logs
# Caller's own send attempts, newest first
# -----------------------------------------------------
@router.get(
    "/email-logs",
    summary="List email logs",
    response_model=List[EmailLogEntry],
    response_model_exclude_none=True,
)
def list_email_logs(
    status: Optional[EmailStatus] = None,
    email_type: Optional[EmailType] = None,
    client_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: CurrentUser = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store),
):
    logs = store.list_email_logs(
        current_user.id,
        status=status.value if status else None,
        email_type=email_type.value if email_type else None,
        client_id=client_id,
        limit=limit,
        offset=offset,
    )

    # Full bodies are only returned by the single-log endpoint
    return [
        log.model_copy(update={"preview": generate_preview(log.content), "content": None})
        for log in logs
    ]


# -----------------------------------------------------
# GET /email-logs/{log_id}
# -----------------------------------------------------
@router.get(
    "/email-logs/{log_id}",
    summary="Get one email log",
    response_model=EmailLogEntry,
    response_model_exclude_none=True,
)
def get_email_log(
    log_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store),
):
    log = store.get_email_log(log_id)

    # Someone else's log looks the same as a missing one
    if log is None or log.user_id != current_user.id:
        logger.warning(f"Email log {log_id} not found for user {current_user.id}")
        raise HTTPException(404, "Email log not found")

    return log


# -----------------------------------------------------
# GET /email-templates
# Active stored templates, optionally one category
# -----------------------------------------------------
@router.get(
    "/email-templates",
    summary="List active email templates",
    response_model=List[EmailTemplate],
)
def list_email_templates(
    category: Optional[TemplateCategory] = None,
    current_user: CurrentUser = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store),
):
    return store.list_templates(category.value if category else None)
