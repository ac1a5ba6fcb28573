# services/template_catalog.py

"""
Built-in templates used when no stored template applies.

Stored templates (email_templates table) always take precedence; these are
the fallbacks for invoices and the five client communication types.
"""

from typing import Dict, NamedTuple

from models.enums import CommunicationType, EmailPriority


class DefaultTemplate(NamedTuple):
    subject: str
    html: str


_BASE_STYLE = """
        body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
        .container { max-width: 600px; margin: 0 auto; padding: 20px; }
        .content { background: #fff; padding: 20px; margin-bottom: 20px; }
        .footer { margin-top: 30px; padding-top: 20px; border-top: 1px solid #dee2e6; font-size: 14px; color: #6c757d; }"""


def _page(title: str, header_background: str, extra_style: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{title}</title>
    <style>{_BASE_STYLE}
        .header {{ background: {header_background}; padding: 20px; border-radius: 8px; margin-bottom: 20px; }}{extra_style}
    </style>
</head>
<body>
    <div class="container">
{body}
    </div>
</body>
</html>
"""


def _signature(closing: str) -> str:
    return f"""        <div class="footer">
            <p>{closing}</p>
            <p><strong>{{{{attorney_name}}}}</strong><br>{{{{firm_name}}}}</p>
        </div>"""


_CONTENT_BLOCK = """        <div class="content">
            {{content}}
        </div>"""


# ============================================================
# Invoice
# ============================================================
INVOICE_SUBJECT = "Invoice {{invoice_number}} - Payment Due {{due_date}}"

INVOICE_TEMPLATE = _page(
    "Invoice {{invoice_number}}",
    "#f8f9fa",
    """
        .invoice-details { background: #fff; border: 1px solid #dee2e6; border-radius: 8px; padding: 20px; margin-bottom: 20px; }
        .amount { font-size: 24px; font-weight: bold; color: #28a745; }
        .button { display: inline-block; background: #007bff; color: white; padding: 12px 24px; text-decoration: none; border-radius: 4px; margin: 10px 0; }""",
    """        <div class="header">
            <h1>Invoice {{invoice_number}}</h1>
            <p>Dear {{client_name}},</p>
            <p>Please find your invoice details below. Payment is due by {{due_date}}.</p>
        </div>

        <div class="invoice-details">
            <h3>Invoice Summary</h3>
            <p><strong>Invoice Number:</strong> {{invoice_number}}</p>
            <p><strong>Invoice Date:</strong> {{invoice_date}}</p>
            <p><strong>Due Date:</strong> {{due_date}}</p>
            {{#matter_title}}
            <p><strong>Matter:</strong> {{matter_title}}</p>
            {{/matter_title}}

            <div style="margin: 20px 0;">
                <p><strong>Amount Due:</strong> <span class="amount">{{currency_symbol}}{{amount_due}}</span></p>
            </div>

            {{#invoice_pdf_url}}<p><a href="{{invoice_pdf_url}}" class="button">Download Invoice PDF</a></p>{{/invoice_pdf_url}}
        </div>

        <div>
            <h3>Payment Instructions</h3>
            <p>Please remit payment by {{due_date}} using one of the following methods:</p>
            <ul>
                <li>Online payment portal</li>
                <li>Check payable to: {{firm_name}}</li>
                <li>Wire transfer (details available on request)</li>
            </ul>
        </div>

        <div class="footer">
            <p>If you have any questions about this invoice, please don't hesitate to contact us.</p>
            <p>Thank you for your business.</p>
            <p><strong>{{firm_name}}</strong><br>
            {{#firm_address}}{{firm_address}}<br>{{/firm_address}}
            {{#firm_phone}}{{firm_phone}} | {{/firm_phone}}{{firm_email}}</p>
        </div>""",
)


# ============================================================
# Client communications
# ============================================================
COMMUNICATION_TEMPLATES: Dict[str, DefaultTemplate] = {
    CommunicationType.status_update.value: DefaultTemplate(
        subject="Status Update: {{matter_title}}",
        html=_page(
            "Status Update",
            "#f8f9fa",
            "",
            """        <div class="header">
            <h2>Status Update: {{matter_title}}</h2>
            <p>Dear {{client_name}},</p>
        </div>
""" + _CONTENT_BLOCK + "\n" + _signature(
                "If you have any questions, please don't hesitate to contact us."
            ),
        ),
    ),
    CommunicationType.meeting_confirmation.value: DefaultTemplate(
        subject="Meeting Confirmation: {{meeting_date}}",
        html=_page(
            "Meeting Confirmation",
            "#e7f3ff",
            """
        .meeting-details { background: #f8f9fa; border: 1px solid #dee2e6; border-radius: 8px; padding: 20px; margin: 20px 0; }""",
            """        <div class="header">
            <h2>Meeting Confirmation</h2>
            <p>Dear {{client_name}},</p>
            <p>This confirms our upcoming meeting scheduled for:</p>
        </div>
        <div class="meeting-details">
            <p><strong>Date:</strong> {{meeting_date}}</p>
            <p><strong>Time:</strong> {{meeting_time}}</p>
            <p><strong>Location/Platform:</strong> {{meeting_location}}</p>
            {{#matter_title}}<p><strong>Matter:</strong> {{matter_title}}</p>{{/matter_title}}
            {{#agenda}}<p><strong>Agenda:</strong> {{agenda}}</p>{{/agenda}}
        </div>
""" + _CONTENT_BLOCK + "\n" + _signature(
                "Please let us know if you need to reschedule or have any questions."
            ),
        ),
    ),
    CommunicationType.document_request.value: DefaultTemplate(
        subject="Document Request: {{matter_title}}",
        html=_page(
            "Document Request",
            "#fff3cd",
            "",
            """        <div class="header">
            <h2>Document Request</h2>
            <p>Dear {{client_name}},</p>
            <p>We need some additional documents for {{matter_title}}.</p>
        </div>
""" + _CONTENT_BLOCK + "\n" + _signature(
                "Please provide these documents at your earliest convenience. "
                "If you have any questions about what's needed, please contact us."
            ),
        ),
    ),
    CommunicationType.general.value: DefaultTemplate(
        subject="{{subject}}",
        html=_page(
            "{{subject}}",
            "#eef1f5",
            "",
            """        <div class="header">
            <p>Dear {{client_name}},</p>
        </div>
""" + _CONTENT_BLOCK + "\n" + _signature(
                "Please don't hesitate to contact us if you have any questions."
            ),
        ),
    ),
    CommunicationType.billing.value: DefaultTemplate(
        subject="Billing Communication: {{matter_title}}",
        html=_page(
            "Billing Communication",
            "#d1ecf1",
            "",
            """        <div class="header">
            <h2>Billing Communication</h2>
            <p>Dear {{client_name}},</p>
        </div>
""" + _CONTENT_BLOCK + "\n" + _signature(
                "If you have any billing questions, please contact our accounting department."
            ),
        ),
    ),
}


# Default priority when the caller does not set one
COMMUNICATION_PRIORITY: Dict[str, str] = {
    CommunicationType.status_update.value: EmailPriority.normal.value,
    CommunicationType.meeting_confirmation.value: EmailPriority.high.value,
    CommunicationType.document_request.value: EmailPriority.high.value,
    CommunicationType.general.value: EmailPriority.normal.value,
    CommunicationType.billing.value: EmailPriority.high.value,
}


def get_communication_template(communication_type: str) -> DefaultTemplate:
    return COMMUNICATION_TEMPLATES.get(
        communication_type, COMMUNICATION_TEMPLATES[CommunicationType.general.value]
    )
