# core/validators.py

"""
Field-level validation and sanitizing for inbound send requests.

Validators never raise: they return a list of EmailValidationError and the
caller decides what to do with a non-empty list (the send endpoints answer
400). Sanitizers are pure and total.
"""

import math
import re
from datetime import datetime
from typing import Iterable, List, Optional

from pydantic import ValidationError

from models.email import (
    EmailSendRequest,
    InvoiceEmailRequest,
    ClientCommunicationRequest,
    EmailValidationError,
)
from models.enums import EmailPriority, CommunicationType, ActivityType


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MAX_SUBJECT_LENGTH = 255
MAX_ATTACHMENTS = 20
MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024
MAX_TOTAL_ATTACHMENT_BYTES = 25 * 1024 * 1024

REQUIRED_FIELD = "REQUIRED_FIELD"
INVALID_EMAIL = "INVALID_EMAIL"
INVALID_VALUE = "INVALID_VALUE"
INVALID_DATE = "INVALID_DATE"
MAX_LENGTH_EXCEEDED = "MAX_LENGTH_EXCEEDED"
SIZE_LIMIT_EXCEEDED = "SIZE_LIMIT_EXCEEDED"
COUNT_LIMIT_EXCEEDED = "COUNT_LIMIT_EXCEEDED"


def _error(field: str, message: str, code: str) -> EmailValidationError:
    return EmailValidationError(field=field, message=message, code=code)


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


# -----------------------------------------------------
# Primitive checks
# -----------------------------------------------------
def validate_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def validate_email_array(emails: Iterable[str]) -> List[str]:
    """Return the addresses that are well-formed (after trimming)."""
    return [
        email for email in emails
        if email and email.strip() and validate_email(email.strip())
    ]


def is_valid_iso_date(value: str) -> bool:
    try:
        datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        return True
    except (ValueError, AttributeError):
        return False


def parse_iso_date(value: str) -> datetime:
    return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))


# -----------------------------------------------------
# Model parsing errors → same error shape
# -----------------------------------------------------
def errors_from_validation_error(exc: ValidationError) -> List[EmailValidationError]:
    """Map pydantic type errors (e.g. amount_due: "abc") onto field errors."""
    errors = []
    for err in exc.errors():
        parts = []
        for loc in err.get("loc", ()):
            if isinstance(loc, int) and parts:
                parts[-1] = f"{parts[-1]}[{loc}]"
            else:
                parts.append(str(loc))
        field = ".".join(parts) or "body"
        errors.append(_error(field, err.get("msg", "Invalid value"), INVALID_VALUE))
    return errors


# -----------------------------------------------------
# Base request
# -----------------------------------------------------
def _validate_attachments(request: EmailSendRequest) -> List[EmailValidationError]:
    errors = []
    attachments = request.attachments or []
    total_size = 0.0

    for i, attachment in enumerate(attachments):
        if _blank(attachment.filename):
            errors.append(_error(
                f"attachments[{i}].filename", "Attachment filename is required", REQUIRED_FIELD
            ))
        if _blank(attachment.content):
            errors.append(_error(
                f"attachments[{i}].content", "Attachment content is required", REQUIRED_FIELD
            ))
        if _blank(attachment.content_type):
            errors.append(_error(
                f"attachments[{i}].contentType", "Attachment content type is required", REQUIRED_FIELD
            ))

        size = attachment.estimated_size()
        if size > MAX_ATTACHMENT_BYTES:
            errors.append(_error(
                f"attachments[{i}].size", "Attachment size cannot exceed 10MB", SIZE_LIMIT_EXCEEDED
            ))
        total_size += size

    if len(attachments) > MAX_ATTACHMENTS:
        errors.append(_error(
            "attachments", f"Cannot have more than {MAX_ATTACHMENTS} attachments", COUNT_LIMIT_EXCEEDED
        ))

    if total_size > MAX_TOTAL_ATTACHMENT_BYTES:
        errors.append(_error(
            "attachments", "Total attachment size cannot exceed 25MB", SIZE_LIMIT_EXCEEDED
        ))

    return errors


def validate_email_request(
    request: EmailSendRequest,
    require_recipients: bool = True,
    require_subject: bool = True,
    require_content: bool = True,
) -> List[EmailValidationError]:
    """
    Validate the fields shared by every send endpoint.

    Args:
        request: Parsed request body
        require_recipients: False when a stored client email can fill `to`
        require_subject: False when a default subject is generated later
        require_content: False when a built-in template supplies the body

    Returns:
        List of errors; empty means valid
    """
    errors: List[EmailValidationError] = []

    # Recipients
    if not request.to:
        if require_recipients:
            errors.append(_error(
                "to", "At least one recipient email address is required", REQUIRED_FIELD
            ))
    else:
        valid_to = validate_email_array(request.to)
        if not valid_to:
            errors.append(_error(
                "to", "At least one valid recipient email address is required", INVALID_EMAIL
            ))
        elif len(valid_to) != len(request.to):
            errors.append(_error(
                "to", "Some recipient email addresses are invalid", INVALID_EMAIL
            ))

    # Subject (a stored template can supply it)
    if _blank(request.subject):
        if require_subject and not request.template_id:
            errors.append(_error("subject", "Email subject is required", REQUIRED_FIELD))
    elif len(request.subject) > MAX_SUBJECT_LENGTH:
        errors.append(_error(
            "subject",
            f"Email subject must be {MAX_SUBJECT_LENGTH} characters or less",
            MAX_LENGTH_EXCEEDED,
        ))

    # Content
    if require_content and not request.html and not request.text and not request.template_id:
        errors.append(_error(
            "content", "Email must have HTML content, text content, or template ID", REQUIRED_FIELD
        ))

    # Copies
    for field in ("cc", "bcc"):
        addresses = getattr(request, field) or []
        if addresses and len(validate_email_array(addresses)) != len(addresses):
            errors.append(_error(
                field, f"Some {field.upper()} email addresses are invalid", INVALID_EMAIL
            ))

    if request.reply_to and not validate_email(request.reply_to.strip()):
        errors.append(_error("reply_to", "Reply-to email address is invalid", INVALID_EMAIL))

    if request.from_address and not validate_email(request.from_address.strip()):
        errors.append(_error("from", "From email address is invalid", INVALID_EMAIL))

    if request.priority and request.priority not in EmailPriority.list():
        errors.append(_error("priority", "Priority must be low, normal, or high", INVALID_VALUE))

    errors.extend(_validate_attachments(request))

    return errors


# -----------------------------------------------------
# Invoice request
# -----------------------------------------------------
def validate_invoice_email_request(request: InvoiceEmailRequest) -> List[EmailValidationError]:
    # `to` falls back to the client's stored email; subject and body have built-in defaults
    errors = validate_email_request(
        request, require_recipients=False, require_subject=False, require_content=False
    )

    if _blank(request.invoice_id):
        errors.append(_error("invoice_id", "Invoice ID is required", REQUIRED_FIELD))

    if _blank(request.client_id):
        errors.append(_error("client_id", "Client ID is required", REQUIRED_FIELD))

    if _blank(request.invoice_number):
        errors.append(_error("invoice_number", "Invoice number is required", REQUIRED_FIELD))

    if request.amount_due is None:
        errors.append(_error("amount_due", "Amount due is required", REQUIRED_FIELD))
    elif not math.isfinite(request.amount_due) or request.amount_due < 0:
        errors.append(_error(
            "amount_due", "Amount due must be a non-negative number", INVALID_VALUE
        ))

    if _blank(request.due_date):
        errors.append(_error("due_date", "Due date is required", REQUIRED_FIELD))
    elif not is_valid_iso_date(request.due_date):
        errors.append(_error(
            "due_date", "Due date must be a valid ISO date string", INVALID_DATE
        ))

    return errors


# -----------------------------------------------------
# Client communication request
# -----------------------------------------------------
def validate_client_communication_request(
    request: ClientCommunicationRequest,
) -> List[EmailValidationError]:
    errors = validate_email_request(request, require_recipients=False, require_subject=False)

    if _blank(request.client_id):
        errors.append(_error("client_id", "Client ID is required", REQUIRED_FIELD))

    communication_types = CommunicationType.list()
    if request.communication_type not in communication_types:
        errors.append(_error(
            "communication_type",
            "Communication type must be one of: " + ", ".join(communication_types),
            INVALID_VALUE,
        ))

    activity_types = ActivityType.list()
    if request.activity_type and request.activity_type not in activity_types:
        errors.append(_error(
            "activity_type",
            "Activity type must be one of: " + ", ".join(activity_types),
            INVALID_VALUE,
        ))

    if request.billable_hours is not None and (
        not math.isfinite(request.billable_hours) or request.billable_hours < 0
    ):
        errors.append(_error(
            "billable_hours", "Billable hours must be a non-negative number", INVALID_VALUE
        ))

    if request.follow_up_date and not is_valid_iso_date(request.follow_up_date):
        errors.append(_error(
            "follow_up_date", "Follow-up date must be a valid ISO date string", INVALID_DATE
        ))

    return errors


# -----------------------------------------------------
# Sanitizing
# -----------------------------------------------------
def sanitize_input(value: str) -> str:
    return re.sub(r"[<>]", "", value.strip())


def _normalize_address(value: Optional[str]) -> Optional[str]:
    return value.strip().lower() if value is not None else None


def _normalize_addresses(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return None
    return [v.strip().lower() for v in values]


def sanitize_email_request(request: EmailSendRequest) -> EmailSendRequest:
    """Return a copy with normalized addresses and stripped free text."""
    return request.model_copy(update={
        "to": _normalize_addresses(request.to) or [],
        "cc": _normalize_addresses(request.cc),
        "bcc": _normalize_addresses(request.bcc),
        "reply_to": _normalize_address(request.reply_to),
        "from_address": _normalize_address(request.from_address),
        "subject": sanitize_input(request.subject) if request.subject is not None else None,
        "tags": [sanitize_input(tag) for tag in request.tags] if request.tags is not None else None,
    })
