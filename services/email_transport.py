# services/email_transport.py

import re
import requests
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Depends

from core.config import Settings
from core.config_validator import require_email_config
from core.errors import EmailTransportError
from core.logging_config import logger
from models.email import OutboundEmail


PRIORITY_HEADERS = {
    "high": {"X-Priority": "1", "X-MSMail-Priority": "High", "Importance": "high"},
    "low": {"X-Priority": "5", "X-MSMail-Priority": "Low", "Importance": "low"},
}


@dataclass
class SendResult:
    id: str
    message: str = "Email sent successfully"


class ResendTransport:
    """Sends fully-resolved messages through the Resend REST API."""

    provider = "resend"

    def __init__(
        self,
        api_key: str,
        from_email: str,
        from_name: str,
        api_url: str = "https://api.resend.com",
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResendTransport":
        return cls(
            api_key=settings.RESEND_API_KEY,
            from_email=settings.FROM_EMAIL,
            from_name=settings.FROM_NAME,
            api_url=settings.RESEND_API_URL,
            timeout=settings.RESEND_TIMEOUT_SECONDS,
        )

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    # -----------------------------------------------------
    # Payload
    # -----------------------------------------------------
    def build_payload(self, message: OutboundEmail, from_header: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "from": message.from_address or from_header or f"{self.from_name} <{self.from_email}>",
            "to": message.to,
            "subject": message.subject,
        }

        if message.html:
            payload["html"] = message.html
        if message.text:
            payload["text"] = message.text
        if message.reply_to:
            payload["reply_to"] = message.reply_to
        if message.cc:
            payload["cc"] = message.cc
        if message.bcc:
            payload["bcc"] = message.bcc

        headers = dict(message.headers or {})
        headers.update(PRIORITY_HEADERS.get(message.priority, {}))
        if headers:
            payload["headers"] = headers

        if message.attachments:
            payload["attachments"] = [
                {
                    "filename": att.filename,
                    "content": att.content,
                    "content_type": att.content_type,
                }
                for att in message.attachments
            ]

        if message.tags:
            # Resend tag names only allow ASCII letters, digits, _ and -
            payload["tags"] = [
                {"name": re.sub(r"[^A-Za-z0-9_-]", "_", tag), "value": "true"}
                for tag in message.tags
            ]

        return payload

    # -----------------------------------------------------
    # Send
    # -----------------------------------------------------
    def send(self, message: OutboundEmail, from_header: Optional[str] = None) -> SendResult:
        """
        Send one message.

        Args:
            message: Fully rendered message
            from_header: Sender used when the message has no explicit `from`

        Raises:
            EmailTransportError: provider rejection, network failure or
            a response without an email id
        """
        payload = self.build_payload(message, from_header)

        logger.info(
            f"Sending email via Resend to {len(message.to)} recipient(s), "
            f"subject={message.subject!r}, attachments={len(message.attachments or [])}"
        )

        try:
            response = self.session.post(
                f"{self.api_url}/emails",
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Resend request failed: {e}")
            raise EmailTransportError(f"Failed to reach Resend: {e}")

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.error(f"Resend API error {response.status_code}: {detail}")
            raise EmailTransportError(
                f"Failed to send email via Resend: {detail}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict) or not data.get("id"):
            logger.error("Resend API returned no data or ID")
            raise EmailTransportError("Failed to send email: No response data from Resend")

        logger.info(f"Email sent successfully via Resend: {data['id']}")
        return SendResult(id=data["id"])

    def validate_api_key(self) -> bool:
        """Listing domains is the cheapest authenticated Resend call."""
        try:
            response = self.session.get(
                f"{self.api_url}/domains",
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Could not reach Resend: {e}")
            return False

        if response.status_code >= 400:
            logger.warning(f"Invalid Resend API key (status {response.status_code})")
            return False
        return True


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    if isinstance(body, dict):
        return body.get("message") or body.get("error") or str(body)
    return str(body)


# ============================================================
# FastAPI dependency
# ============================================================
def get_email_transport(settings: Settings = Depends(require_email_config)) -> ResendTransport:
    return ResendTransport.from_settings(settings)
