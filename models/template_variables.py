# models/template_variables.py

"""
Typed merge-field sets for the built-in email templates.

Each invoice / communication sub-type declares the variables its template
uses. Caller-supplied ``template_variables`` override declared fields by
name; any other keys are kept in ``extra`` and merged last, so custom
stored templates can reference fields the built-ins do not know about.
"""

from typing import Any, Dict, Type
from pydantic import BaseModel, Field

from models.enums import CommunicationType


class TemplateVariables(BaseModel):
    extra: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def build(cls, defaults: Dict[str, Any], overrides: Dict[str, Any] = None):
        """Combine computed defaults with caller overrides (overrides win)."""
        declared = {}
        extra = {}
        for key, value in {**defaults, **(overrides or {})}.items():
            if key in cls.model_fields and key != "extra":
                declared[key] = "" if value is None else str(value)
            else:
                extra[key] = value
        return cls(**declared, extra=extra)

    def as_mapping(self) -> Dict[str, Any]:
        mapping = self.model_dump(exclude={"extra"})
        mapping.update(self.extra)
        return mapping


class GeneralEmailVariables(TemplateVariables):
    sender_email: str = ""
    firm_name: str = ""
    date: str = ""
    time: str = ""


class InvoiceTemplateVariables(TemplateVariables):
    client_name: str = ""
    invoice_number: str = ""
    invoice_id: str = ""
    amount_due: str = ""
    due_date: str = ""
    invoice_date: str = ""
    currency_symbol: str = "$"
    matter_title: str = ""
    invoice_pdf_url: str = ""
    firm_name: str = ""
    firm_address: str = ""
    firm_phone: str = ""
    firm_email: str = ""


class CommunicationTemplateVariables(TemplateVariables):
    client_name: str = ""
    attorney_name: str = ""
    firm_name: str = ""
    matter_title: str = ""
    content: str = ""
    communication_type: str = ""
    date: str = ""
    time: str = ""


class StatusUpdateVariables(CommunicationTemplateVariables):
    pass


class MeetingConfirmationVariables(CommunicationTemplateVariables):
    meeting_date: str = ""
    meeting_time: str = ""
    meeting_location: str = ""
    agenda: str = ""


class DocumentRequestVariables(CommunicationTemplateVariables):
    pass


class GeneralCommunicationVariables(CommunicationTemplateVariables):
    subject: str = ""


class BillingCommunicationVariables(CommunicationTemplateVariables):
    pass


COMMUNICATION_VARIABLES: Dict[str, Type[CommunicationTemplateVariables]] = {
    CommunicationType.status_update.value: StatusUpdateVariables,
    CommunicationType.meeting_confirmation.value: MeetingConfirmationVariables,
    CommunicationType.document_request.value: DocumentRequestVariables,
    CommunicationType.general.value: GeneralCommunicationVariables,
    CommunicationType.billing.value: BillingCommunicationVariables,
}


def communication_variables_for(communication_type: str) -> Type[CommunicationTemplateVariables]:
    return COMMUNICATION_VARIABLES.get(communication_type, CommunicationTemplateVariables)
