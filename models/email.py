# models/email.py

from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.enums import EmailStatus, EmailType, ActivityDirection, ActivityStatus, ParticipantRole


# ============================================================
# Inbound send requests
# ============================================================
# Fields are deliberately permissive (Optional, no enum types):
# business rules live in core.validators so that every problem is
# reported in one error list instead of failing on the first.

class EmailAttachment(BaseModel):
    """Base64 attachment as posted by the web client."""
    model_config = ConfigDict(populate_by_name=True)

    filename: Optional[str] = None
    content: Optional[str] = None  # base64
    content_type: Optional[str] = Field(None, alias="contentType")
    size: Optional[int] = Field(None, ge=0)  # bytes, when the client knows it

    def estimated_size(self) -> float:
        """Larger of the declared size and the decoded size of the base64 payload."""
        return max(self.size or 0, len(self.content or "") * 0.75)


class EmailSendRequest(BaseModel):
    """Request body for POST /send-email."""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    to: List[str] = Field(default_factory=list)
    cc: Optional[List[str]] = None
    bcc: Optional[List[str]] = None
    subject: Optional[str] = None
    html: Optional[str] = None
    text: Optional[str] = None
    template_id: Optional[str] = None
    template_variables: Dict[str, Any] = Field(default_factory=dict)
    attachments: Optional[List[EmailAttachment]] = None
    reply_to: Optional[str] = None
    from_address: Optional[str] = Field(None, alias="from")
    priority: Optional[str] = None
    tags: Optional[List[str]] = None
    headers: Optional[Dict[str, str]] = None

    @field_validator("to", mode="before")
    @classmethod
    def wrap_single_recipient(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("cc", "bcc", mode="before")
    @classmethod
    def wrap_single_copy(cls, v):
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("template_variables", mode="before")
    @classmethod
    def default_variables(cls, v):
        return v if v is not None else {}


class InvoiceEmailRequest(EmailSendRequest):
    """Request body for POST /send-invoice-email."""
    invoice_id: Optional[str] = None
    client_id: Optional[str] = None
    matter_id: Optional[str] = None
    invoice_number: Optional[str] = None
    amount_due: Optional[float] = None
    due_date: Optional[str] = None
    invoice_pdf_url: Optional[str] = None


class ClientCommunicationRequest(EmailSendRequest):
    """Request body for POST /send-client-communication."""
    client_id: Optional[str] = None
    matter_id: Optional[str] = None
    communication_type: Optional[str] = None
    activity_type: Optional[str] = None
    billable: Optional[bool] = None
    billable_hours: Optional[float] = None
    follow_up_required: Optional[bool] = None
    follow_up_date: Optional[str] = None


# ============================================================
# Validation / response shapes
# ============================================================
class EmailValidationError(BaseModel):
    field: str
    message: str
    code: str


class RateLimitInfo(BaseModel):
    remaining: int
    reset_at: datetime


class EmailResponse(BaseModel):
    success: bool
    email_id: Optional[str] = None
    external_id: Optional[str] = None
    message: Optional[str] = None
    activity_id: Optional[str] = None
    rate_limit: Optional[RateLimitInfo] = None


# ============================================================
# Fully resolved message handed to the transport
# ============================================================
class OutboundEmail(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    to: List[str]
    cc: Optional[List[str]] = None
    bcc: Optional[List[str]] = None
    subject: str
    html: Optional[str] = None
    text: Optional[str] = None
    attachments: Optional[List[EmailAttachment]] = None
    reply_to: Optional[str] = None
    from_address: Optional[str] = None
    priority: str = "normal"
    tags: List[str] = Field(default_factory=list)
    headers: Optional[Dict[str, str]] = None


# ============================================================
# Persisted records
# ============================================================
class EmailLogEntry(BaseModel):
    """Row of the email_logs table: one send attempt and its outcome."""
    model_config = {"from_attributes": True, "use_enum_values": True}

    id: Optional[str] = None
    user_id: str
    client_id: Optional[str] = None
    matter_id: Optional[str] = None
    email_type: EmailType
    to_addresses: List[str]
    cc_addresses: Optional[List[str]] = None
    bcc_addresses: Optional[List[str]] = None
    subject: str
    content: Optional[str] = None
    template_id: Optional[str] = None
    template_variables: Optional[Dict[str, Any]] = None
    status: EmailStatus = EmailStatus.pending
    external_id: Optional[str] = None
    error_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    bounced_at: Optional[datetime] = None
    complained_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Enriched field (list endpoint only)
    preview: Optional[str] = None


class CommunicationParticipant(BaseModel):
    model_config = {"use_enum_values": True}

    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: ParticipantRole
    organization: Optional[str] = None


class CommunicationAttachment(BaseModel):
    id: str
    name: str
    type: str
    size: int = 0
    url: str = ""


class CommunicationActivity(BaseModel):
    """Timeline/billing record derived from a successful client-facing send."""
    model_config = {"use_enum_values": True}

    id: Optional[str] = None
    client_id: str
    matter_id: Optional[str] = None
    activity_type: str = "email"
    direction: ActivityDirection = ActivityDirection.outbound
    subject: str
    content: Optional[str] = None
    summary: Optional[str] = None
    participants: List[CommunicationParticipant] = Field(default_factory=list)
    date: str
    time: str
    duration: Optional[str] = None
    billable: bool = False
    billable_hours: Optional[float] = None
    hourly_rate: Optional[float] = None
    status: ActivityStatus = ActivityStatus.sent
    priority: str = "normal"
    tags: List[str] = Field(default_factory=list)
    attachments: List[CommunicationAttachment] = Field(default_factory=list)
    follow_up_required: bool = False
    follow_up_date: Optional[str] = None
    follow_up_notes: Optional[str] = None
    reminder_date: Optional[str] = None
    created_by: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class EmailTemplate(BaseModel):
    """Row of the email_templates table (read-only here)."""
    id: str
    name: str = ""
    subject: Optional[str] = None
    html_content: str = ""
    text_content: Optional[str] = None
    variables: Optional[List[str]] = None
    category: str
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
