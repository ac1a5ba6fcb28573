# services/email_dispatch.py

"""
Send pipelines behind POST /send-email, /send-invoice-email and
/send-client-communication.

Every variant runs the same sequence:

    authenticate → (rate limit) → validate → (ownership) → sanitize →
    render → write `pending` log → send → mark `sent` / `failed` →
    (activity record)

The pending log row is written before the provider is called, so an
attempt is always recorded even if the send fails. Nothing is retried.

The activity record written after invoice / client-communication sends is
a best-effort side effect: if it fails the error is logged and the
request still succeeds with the log row left `sent`.
"""

from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar
from datetime import datetime, timedelta
from uuid import uuid4

import pytz
from pydantic import BaseModel, ValidationError

from core.config import Settings
from core.errors import EmailApiError
from core.logging_config import logger
from core.rate_limiter import EmailRateLimiter
from core.templates import render_template, validate_email_content
from core.validators import (
    errors_from_validation_error,
    parse_iso_date,
    sanitize_email_request,
    validate_client_communication_request,
    validate_email,
    validate_email_request,
    validate_invoice_email_request,
)
from models.auth import CurrentUser
from models.email import (
    ClientCommunicationRequest,
    CommunicationActivity,
    CommunicationAttachment,
    CommunicationParticipant,
    EmailLogEntry,
    EmailResponse,
    EmailSendRequest,
    EmailTemplate,
    EmailValidationError,
    InvoiceEmailRequest,
    OutboundEmail,
    RateLimitInfo,
)
from models.enums import EmailPriority, EmailStatus, EmailType, ParticipantRole, TemplateCategory
from models.template_variables import (
    GeneralEmailVariables,
    InvoiceTemplateVariables,
    communication_variables_for,
)
from services.email_transport import ResendTransport, SendResult
from services.record_store import RecordStore
from services.template_catalog import (
    COMMUNICATION_PRIORITY,
    INVOICE_SUBJECT,
    INVOICE_TEMPLATE,
    get_communication_template,
)


RequestT = TypeVar("RequestT", bound=BaseModel)

INVOICE_FOLLOW_UP_DAYS = 7
DEFAULT_COMMUNICATION_CONTENT = "Please see the details above."


def display_date(dt: datetime) -> str:
    """US-style short date, e.g. 3/7/2025."""
    return f"{dt.month}/{dt.day}/{dt.year}"


def display_time(dt: datetime) -> str:
    return dt.strftime("%H:%M:%S")


def _attachment_summary(request: EmailSendRequest) -> Dict[str, Any]:
    attachments = request.attachments or []
    return {
        "has_attachments": bool(attachments),
        "attachment_count": len(attachments),
    }


class EmailDispatcher:
    """
    One dispatcher per request; collaborators are passed in so the
    pipeline runs without environment access in tests.
    """

    def __init__(
        self,
        settings: Settings,
        store: RecordStore,
        transport: ResendTransport,
        rate_limiter: Optional[EmailRateLimiter] = None,
    ):
        self.settings = settings
        self.store = store
        self.transport = transport
        self.rate_limiter = rate_limiter

    # ============================================================
    # Shared steps
    # ============================================================
    def _now(self) -> datetime:
        try:
            tz = pytz.timezone(self.settings.FIRM_TIMEZONE)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Unknown FIRM_TIMEZONE {self.settings.FIRM_TIMEZONE!r}, using UTC")
            tz = pytz.UTC
        return datetime.now(tz)

    def _authenticate(self, token: str) -> CurrentUser:
        user = self.store.authenticate(token)
        if user is None:
            raise EmailApiError(401, "Invalid or expired authentication token")
        return user

    def _parse(self, model: Type[RequestT], payload: Dict[str, Any]) -> RequestT:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            self._reject(errors_from_validation_error(e))

    def _reject(self, errors: List[EmailValidationError]):
        logger.warning(f"Validation errors: {[e.model_dump() for e in errors]}")
        raise EmailApiError(
            400, "Validation failed", errors=[e.model_dump() for e in errors]
        )

    def _require_valid(self, errors: List[EmailValidationError]):
        if errors:
            self._reject(errors)

    def _require_content(self, html: Optional[str], text: Optional[str]):
        error = validate_email_content(html, text)
        if error:
            raise EmailApiError(400, error)

    def _load_client_context(
        self, user: CurrentUser, client_id: str, matter_id: Optional[str]
    ) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
        """Ownership checks, then the display data for merge fields."""
        if not self.store.validate_client(client_id, user.id):
            raise EmailApiError(404, "Client not found or access denied")

        if matter_id and not self.store.validate_matter(matter_id, user.id, client_id):
            raise EmailApiError(404, "Matter not found or access denied")

        client_info = self.store.get_client_info(client_id)
        if not client_info:
            raise EmailApiError(404, "Client information not found")

        matter_info = self.store.get_matter_info(matter_id) if matter_id else None
        return client_info, matter_info

    def _default_recipient(self, request: RequestT, client_info: Dict[str, Any]) -> RequestT:
        """Send to the client's stored address when the caller gave none."""
        if request.to:
            return request

        client_email = (client_info.get("email") or "").strip()
        if not client_email:
            raise EmailApiError(
                400,
                "No recipient email address found. "
                "Please provide email address or update client record.",
            )
        if not validate_email(client_email):
            raise EmailApiError(400, "Client record has an invalid email address")

        return request.model_copy(update={"to": [client_email]})

    def _stored_template(self, category: TemplateCategory, name: str) -> Optional[EmailTemplate]:
        for template in self.store.get_templates_by_category(category.value):
            if template.name == name:
                return template
        return None

    def _deliver(
        self,
        entry: EmailLogEntry,
        message: OutboundEmail,
        failure_message: str,
        from_header: Optional[str] = None,
    ) -> Tuple[EmailLogEntry, SendResult]:
        """
        Write the pending log row, call the provider, record the outcome.
        On provider failure the row is marked failed and a 500 carrying the
        log id is raised.
        """
        logger.info(f"Creating {entry.email_type} email log entry...")
        log = self.store.insert_log(entry)

        try:
            result = self.transport.send(message, from_header=from_header)
        except Exception as e:
            error_message = str(e) or e.__class__.__name__
            logger.error(f"Error sending {entry.email_type} email {log.id}: {error_message}")
            self.store.update_log_status(
                log.id,
                EmailStatus.failed,
                error_message=error_message,
                metadata=entry.metadata,
            )
            raise EmailApiError(500, failure_message, email_id=log.id, error=error_message)

        self.store.update_log_status(
            log.id,
            EmailStatus.sent,
            external_id=result.id,
            metadata={**entry.metadata, "provider": self.transport.provider},
        )
        logger.info(f"Email {log.id} sent successfully: {result.id}")
        return log, result

    def _record_activity(self, log: EmailLogEntry, activity: CommunicationActivity) -> Optional[str]:
        try:
            saved = self.store.insert_activity(activity)
        except Exception:
            logger.error(
                f"Email {log.id} was sent but its communication activity could not be logged",
                exc_info=True,
            )
            return None
        return saved.id

    def _participants(
        self, user: CurrentUser, client_id: str, client_info: Dict[str, Any], to: List[str]
    ) -> List[CommunicationParticipant]:
        return [
            CommunicationParticipant(
                id=user.id,
                name=user.display_name,
                email=user.email,
                role=ParticipantRole.attorney,
            ),
            CommunicationParticipant(
                id=client_id,
                name=client_info.get("name") or "",
                email=client_info.get("email") or to[0],
                role=ParticipantRole.client,
            ),
        ]

    def _activity_attachments(self, request: EmailSendRequest) -> List[CommunicationAttachment]:
        return [
            CommunicationAttachment(
                id=f"att_{uuid4().hex}",
                name=att.filename or "",
                type=att.content_type or "",
                size=att.size or 0,
            )
            for att in (request.attachments or [])
        ]

    # ============================================================
    # POST /send-email
    # ============================================================
    def send_general(self, token: str, payload: Dict[str, Any]) -> EmailResponse:
        user = self._authenticate(token)
        logger.info(f"Processing email request for user: {user.id}")

        if self.rate_limiter is None:
            return self._send_general(user, payload, None)

        status, ticket = self.rate_limiter.reserve(user.id)
        if not status.allowed:
            logger.warning(f"Email rate limit exceeded for user {user.id}")
            raise EmailApiError(
                429,
                "Rate limit exceeded. Please try again later.",
                rate_limit={"remaining": 0, "reset_at": status.reset_at.isoformat()},
            )

        # Only a send that goes out keeps its slot
        try:
            return self._send_general(
                user, payload, RateLimitInfo(remaining=status.remaining, reset_at=status.reset_at)
            )
        except Exception:
            self.rate_limiter.release(user.id, ticket)
            raise

    def _send_general(
        self, user: CurrentUser, payload: Dict[str, Any], rate_limit: Optional[RateLimitInfo]
    ) -> EmailResponse:
        request = self._parse(EmailSendRequest, payload)
        self._require_valid(validate_email_request(request))
        clean = sanitize_email_request(request)

        html, text, subject = clean.html, clean.text, clean.subject
        variables = None

        if clean.template_id:
            logger.info(f"Fetching template: {clean.template_id}")
            template = self.store.get_template(clean.template_id)
            if template is None:
                raise EmailApiError(404, "Email template not found or inactive")

            now = self._now()
            variables = GeneralEmailVariables.build(
                {
                    "sender_email": user.email,
                    "firm_name": self.settings.FIRM_NAME,
                    "date": display_date(now),
                    "time": display_time(now),
                },
                clean.template_variables,
            ).as_mapping()

            html = render_template(template.html_content, variables)
            text = render_template(template.text_content, variables) if template.text_content else None
            if not subject and template.subject:
                subject = render_template(template.subject, variables)

        if not subject:
            self._reject([EmailValidationError(
                field="subject", message="Email subject is required", code="REQUIRED_FIELD"
            )])

        self._require_content(html, text)

        priority = clean.priority or EmailPriority.normal.value
        tags = clean.tags or []

        entry = EmailLogEntry(
            user_id=user.id,
            email_type=EmailType.general,
            to_addresses=clean.to,
            cc_addresses=clean.cc,
            bcc_addresses=clean.bcc,
            subject=subject,
            content=html or text,
            template_id=clean.template_id,
            template_variables=variables,
            metadata={
                "priority": priority,
                "tags": tags,
                **_attachment_summary(clean),
                "from_override": clean.from_address,
                "reply_to": clean.reply_to,
                "headers": clean.headers,
            },
        )

        message = OutboundEmail(
            to=clean.to,
            cc=clean.cc,
            bcc=clean.bcc,
            subject=subject,
            html=html,
            text=text,
            attachments=clean.attachments,
            reply_to=clean.reply_to,
            from_address=clean.from_address,
            priority=priority,
            tags=tags,
            headers=clean.headers,
        )

        log, result = self._deliver(entry, message, "Failed to send email")

        return EmailResponse(
            success=True,
            email_id=log.id,
            external_id=result.id,
            message="Email sent successfully",
            rate_limit=rate_limit,
        )

    # ============================================================
    # POST /send-invoice-email
    # ============================================================
    def _invoice_templates(
        self, request: InvoiceEmailRequest
    ) -> Tuple[str, Optional[str], Optional[str]]:
        """(html, text, subject) templates for an invoice email."""
        if request.template_id:
            logger.info(f"Fetching invoice template: {request.template_id}")
            template = self.store.get_template(request.template_id)
            if template and template.category == TemplateCategory.invoice.value:
                return template.html_content, template.text_content, template.subject
            logger.warning(f"Invoice template {request.template_id} not found, using default template")

        if request.html:
            return request.html, request.text, None

        stored = self._stored_template(TemplateCategory.invoice, "invoice")
        if stored:
            return stored.html_content, stored.text_content or request.text, stored.subject

        return INVOICE_TEMPLATE, request.text, None

    def send_invoice(self, token: str, payload: Dict[str, Any]) -> EmailResponse:
        user = self._authenticate(token)
        logger.info(f"Processing invoice email request for user: {user.id}")

        request = self._parse(InvoiceEmailRequest, payload)
        self._require_valid(validate_invoice_email_request(request))

        client_info, matter_info = self._load_client_context(user, request.client_id, request.matter_id)
        request = self._default_recipient(request, client_info)
        clean = sanitize_email_request(request)

        now = self._now()
        due_display = display_date(parse_iso_date(request.due_date))

        variables = InvoiceTemplateVariables.build(
            {
                "client_name": client_info.get("name"),
                "invoice_number": request.invoice_number,
                "invoice_id": request.invoice_id,
                "amount_due": f"{request.amount_due:.2f}",
                "due_date": due_display,
                "invoice_date": display_date(now),
                "currency_symbol": self.settings.CURRENCY_SYMBOL,
                "matter_title": (matter_info or {}).get("title"),
                "invoice_pdf_url": request.invoice_pdf_url,
                "firm_name": self.settings.FIRM_NAME,
                "firm_address": self.settings.FIRM_ADDRESS,
                "firm_phone": self.settings.FIRM_PHONE,
                "firm_email": self.settings.firm_email,
            },
            request.template_variables,
        ).as_mapping()

        html_template, text_template, subject_template = self._invoice_templates(clean)
        html = render_template(html_template, variables)
        text = render_template(text_template, variables) if text_template else None

        subject = clean.subject
        if not subject and subject_template:
            subject = render_template(subject_template, variables)
        if not subject:
            subject = render_template(INVOICE_SUBJECT, variables)

        self._require_content(html, text)

        priority = clean.priority or EmailPriority.high.value
        tags = [*(clean.tags or []), "invoice", "billing"]

        entry = EmailLogEntry(
            user_id=user.id,
            client_id=request.client_id,
            matter_id=request.matter_id,
            email_type=EmailType.invoice,
            to_addresses=clean.to,
            cc_addresses=clean.cc,
            bcc_addresses=clean.bcc,
            subject=subject,
            content=html or text,
            template_id=request.template_id,
            template_variables=variables,
            metadata={
                "invoice_id": request.invoice_id,
                "invoice_number": request.invoice_number,
                "amount_due": request.amount_due,
                "due_date": request.due_date,
                "has_pdf_attachment": bool(request.invoice_pdf_url),
                "priority": priority,
                "tags": tags,
                **_attachment_summary(clean),
            },
        )

        message = OutboundEmail(
            to=clean.to,
            cc=clean.cc,
            bcc=clean.bcc,
            subject=subject,
            html=html,
            text=text,
            attachments=clean.attachments,
            reply_to=clean.reply_to,
            from_address=clean.from_address,
            priority=priority,
            tags=tags,
            headers=clean.headers,
        )

        log, result = self._deliver(
            entry,
            message,
            "Failed to send invoice email",
            from_header=f"{self.settings.BILLING_FROM_NAME} <{self.settings.BILLING_FROM_EMAIL}>",
        )

        activity = CommunicationActivity(
            client_id=request.client_id,
            matter_id=request.matter_id,
            activity_type="email",
            subject=subject,
            content=html,
            summary=(
                f"Invoice {request.invoice_number} sent to client - "
                f"Amount due: {self.settings.CURRENCY_SYMBOL}{request.amount_due:.2f}"
            ),
            participants=self._participants(user, request.client_id, client_info, clean.to),
            date=now.date().isoformat(),
            time=display_time(now),
            billable=False,
            priority=EmailPriority.high.value,
            tags=["invoice", "billing", "email"],
            attachments=self._activity_attachments(clean),
            follow_up_required=True,
            follow_up_date=(now + timedelta(days=INVOICE_FOLLOW_UP_DAYS)).isoformat(),
            follow_up_notes="Follow up on invoice payment if not received",
            created_by=user.id,
            metadata={
                "email_id": log.id,
                "external_id": result.id,
                "invoice_id": request.invoice_id,
                "invoice_number": request.invoice_number,
                "amount_due": request.amount_due,
                "due_date": request.due_date,
                "source": "email_function",
            },
        )
        activity_id = self._record_activity(log, activity)

        return EmailResponse(
            success=True,
            email_id=log.id,
            external_id=result.id,
            message=(
                f"Invoice {request.invoice_number} email sent successfully "
                f"to {client_info.get('name')}"
            ),
            activity_id=activity_id,
        )

    # ============================================================
    # POST /send-client-communication
    # ============================================================
    def _communication_templates(
        self, request: ClientCommunicationRequest
    ) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        """(html, text, subject) templates for a client communication."""
        html, text, subject = request.html, request.text, request.subject

        if request.template_id:
            logger.info(f"Fetching communication template: {request.template_id}")
            template = self.store.get_template(request.template_id)
            if template and template.category == TemplateCategory.communication.value:
                return template.html_content, template.text_content, subject or template.subject
            logger.warning(
                f"Communication template {request.template_id} not found, using default template"
            )

        if html:
            return html, text, subject

        stored = self._stored_template(TemplateCategory.communication, request.communication_type)
        if stored:
            return stored.html_content, stored.text_content or text, subject or stored.subject

        default = get_communication_template(request.communication_type)
        return default.html, text, subject or default.subject

    def send_client_communication(self, token: str, payload: Dict[str, Any]) -> EmailResponse:
        user = self._authenticate(token)
        logger.info(f"Processing client communication request for user: {user.id}")

        request = self._parse(ClientCommunicationRequest, payload)
        self._require_valid(validate_client_communication_request(request))

        client_info, matter_info = self._load_client_context(user, request.client_id, request.matter_id)
        request = self._default_recipient(request, client_info)
        clean = sanitize_email_request(request)

        communication_type = request.communication_type
        matter_title = (matter_info or {}).get("title") or ""
        now = self._now()

        variables = communication_variables_for(communication_type).build(
            {
                "client_name": client_info.get("name"),
                "attorney_name": user.display_name,
                "firm_name": self.settings.FIRM_NAME,
                "matter_title": matter_title,
                "content": request.html or request.text or DEFAULT_COMMUNICATION_CONTENT,
                "communication_type": communication_type,
                "date": display_date(now),
                "time": display_time(now),
                "subject": clean.subject,
            },
            request.template_variables,
        ).as_mapping()

        html_template, text_template, subject_template = self._communication_templates(clean)
        html = render_template(html_template, variables) if html_template else None
        text = render_template(text_template, variables) if text_template else None

        subject = render_template(subject_template, variables).strip() if subject_template else ""
        if not subject:
            subject = clean.subject or f"Communication: {matter_title or 'General'}"

        self._require_content(html, text)

        priority = clean.priority or COMMUNICATION_PRIORITY.get(
            communication_type, EmailPriority.normal.value
        )
        tags = [*(clean.tags or []), "communication", communication_type]
        activity_type = request.activity_type or "email"
        billable = bool(request.billable)
        billable_hours = request.billable_hours or 0
        follow_up_required = bool(request.follow_up_required)

        entry = EmailLogEntry(
            user_id=user.id,
            client_id=request.client_id,
            matter_id=request.matter_id,
            email_type=EmailType.communication,
            to_addresses=clean.to,
            cc_addresses=clean.cc,
            bcc_addresses=clean.bcc,
            subject=subject,
            content=html or text,
            template_id=request.template_id,
            template_variables=variables,
            metadata={
                "communication_type": communication_type,
                "activity_type": activity_type,
                "billable": billable,
                "billable_hours": billable_hours,
                "follow_up_required": follow_up_required,
                "follow_up_date": request.follow_up_date,
                "priority": priority,
                "tags": tags,
                **_attachment_summary(clean),
            },
        )

        message = OutboundEmail(
            to=clean.to,
            cc=clean.cc,
            bcc=clean.bcc,
            subject=subject,
            html=html,
            text=text,
            attachments=clean.attachments,
            reply_to=clean.reply_to,
            from_address=clean.from_address,
            priority=priority,
            tags=tags,
            headers=clean.headers,
        )

        log, result = self._deliver(entry, message, "Failed to send client communication email")

        label = communication_type.replace("_", " ")

        activity = CommunicationActivity(
            client_id=request.client_id,
            matter_id=request.matter_id,
            activity_type=activity_type,
            subject=subject,
            content=html,
            summary=f"{label} communication sent to client",
            participants=self._participants(user, request.client_id, client_info, clean.to),
            date=now.date().isoformat(),
            time=display_time(now),
            billable=billable,
            billable_hours=billable_hours,
            hourly_rate=self.settings.DEFAULT_HOURLY_RATE if billable else None,
            priority=priority,
            tags=["communication", communication_type, "email"],
            attachments=self._activity_attachments(clean),
            follow_up_required=follow_up_required,
            follow_up_date=request.follow_up_date,
            follow_up_notes="Follow up on client response" if follow_up_required else None,
            created_by=user.id,
            metadata={
                "email_id": log.id,
                "external_id": result.id,
                "communication_type": communication_type,
                "source": "communication_function",
            },
        )
        activity_id = self._record_activity(log, activity)

        return EmailResponse(
            success=True,
            email_id=log.id,
            external_id=result.id,
            message=f"{label} communication sent successfully to {client_info.get('name')}",
            activity_id=activity_id,
        )
