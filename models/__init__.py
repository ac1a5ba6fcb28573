# -------------------------
# Request / Response Models
# -------------------------
from .email import (
    EmailAttachment,
    EmailSendRequest,
    InvoiceEmailRequest,
    ClientCommunicationRequest,
    EmailValidationError,
    EmailResponse,
    RateLimitInfo,
)

# -------------------------
# Persisted Records
# -------------------------
from .email import (
    EmailLogEntry,
    CommunicationActivity,
    CommunicationParticipant,
    CommunicationAttachment,
    EmailTemplate,
)

# -------------------------
# Enums
# -------------------------
from .enums import (
    EmailType,
    EmailStatus,
    EmailPriority,
    CommunicationType,
    ActivityType,
    TemplateCategory,
)

# -------------------------
# Auth Models
# -------------------------
from .auth import CurrentUser

__all__ = [
    # requests / responses
    "EmailAttachment",
    "EmailSendRequest",
    "InvoiceEmailRequest",
    "ClientCommunicationRequest",
    "EmailValidationError",
    "EmailResponse",
    "RateLimitInfo",

    # records
    "EmailLogEntry",
    "CommunicationActivity",
    "CommunicationParticipant",
    "CommunicationAttachment",
    "EmailTemplate",

    # enums
    "EmailType",
    "EmailStatus",
    "EmailPriority",
    "CommunicationType",
    "ActivityType",
    "TemplateCategory",

    # auth
    "CurrentUser",
]
