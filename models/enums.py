from enum import Enum


class BaseStrEnum(str, Enum):
    """
    Base enum that serializes cleanly to a string
    and provides a .list() method for validation messages.
    """

    def __str__(self):
        return str(self.value)

    @classmethod
    def list(cls):
        return [item.value for item in cls]


# -----------------------------------------------------
# EMAIL TYPE
# -----------------------------------------------------
class EmailType(BaseStrEnum):
    """Which pipeline produced an email log row."""

    general = "general"
    invoice = "invoice"
    communication = "communication"
    notification = "notification"
    marketing = "marketing"


# -----------------------------------------------------
# EMAIL STATUS
# -----------------------------------------------------
class EmailStatus(BaseStrEnum):
    """
    Lifecycle of an email log row.

    pending → sent | failed is driven by the send endpoints.
    sent → delivered | bounced | complained is reserved for provider webhooks.
    """

    pending = "pending"
    sent = "sent"
    delivered = "delivered"
    bounced = "bounced"
    failed = "failed"
    complained = "complained"


# -----------------------------------------------------
# PRIORITY
# -----------------------------------------------------
class EmailPriority(BaseStrEnum):
    low = "low"
    normal = "normal"
    high = "high"


# -----------------------------------------------------
# CLIENT COMMUNICATION TYPE
# -----------------------------------------------------
class CommunicationType(BaseStrEnum):
    """Selects the built-in template and default priority."""

    status_update = "status_update"
    meeting_confirmation = "meeting_confirmation"
    document_request = "document_request"
    general = "general"
    billing = "billing"


# -----------------------------------------------------
# ACTIVITY TYPE
# -----------------------------------------------------
class ActivityType(BaseStrEnum):
    email = "email"
    phone = "phone"
    meeting = "meeting"
    letter = "letter"
    fax = "fax"
    sms = "sms"


class ActivityDirection(BaseStrEnum):
    inbound = "inbound"
    outbound = "outbound"


class ActivityStatus(BaseStrEnum):
    draft = "draft"
    sent = "sent"
    received = "received"
    completed = "completed"
    cancelled = "cancelled"


class ParticipantRole(BaseStrEnum):
    client = "client"
    attorney = "attorney"
    staff = "staff"
    opposing_counsel = "opposing_counsel"
    third_party = "third_party"


# -----------------------------------------------------
# TEMPLATE CATEGORY
# -----------------------------------------------------
class TemplateCategory(BaseStrEnum):
    invoice = "invoice"
    communication = "communication"
    notification = "notification"
    marketing = "marketing"
    system = "system"
