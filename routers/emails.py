# routers/emails.py

import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from core.config import Settings
from core.config_validator import require_email_config
from core.errors import EmailApiError
from core.rate_limiter import EmailRateLimiter, get_rate_limiter
from dependencies.auth import extract_bearer_token
from models.email import EmailResponse
from services.email_dispatch import EmailDispatcher
from services.email_transport import ResendTransport, get_email_transport
from services.record_store import RecordStore, get_record_store

router = APIRouter(
    tags=["Email"],
)


async def read_json_body(request: Request) -> Dict[str, Any]:
    """
    The body is read by hand (not declared as a pydantic parameter) so that
    a malformed payload answers 400 with our error shape instead of 422.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise EmailApiError(400, "Invalid JSON in request body")

    if not isinstance(payload, dict):
        raise EmailApiError(400, "Request body must be a JSON object")
    return payload


def get_dispatcher(
    settings: Settings = Depends(require_email_config),
    store: RecordStore = Depends(get_record_store),
    transport: ResendTransport = Depends(get_email_transport),
) -> EmailDispatcher:
    return EmailDispatcher(settings, store, transport)


def get_rate_limited_dispatcher(
    dispatcher: EmailDispatcher = Depends(get_dispatcher),
    rate_limiter: EmailRateLimiter = Depends(get_rate_limiter),
) -> EmailDispatcher:
    dispatcher.rate_limiter = rate_limiter
    return dispatcher


# -----------------------------------------------------
# POST /send-email
# Generic email; the only rate-limited endpoint
# -----------------------------------------------------
@router.post(
    "/send-email",
    summary="Send an email",
    response_model=EmailResponse,
    response_model_exclude_none=True,
)
async def send_email(
    request: Request,
    dispatcher: EmailDispatcher = Depends(get_rate_limited_dispatcher),
):
    payload = await read_json_body(request)
    token = extract_bearer_token(request)

    return await run_in_threadpool(dispatcher.send_general, token, payload)


# -----------------------------------------------------
# POST /send-invoice-email
# -----------------------------------------------------
@router.post(
    "/send-invoice-email",
    summary="Email an invoice to a client",
    response_model=EmailResponse,
    response_model_exclude_none=True,
)
async def send_invoice_email(
    request: Request,
    dispatcher: EmailDispatcher = Depends(get_dispatcher),
):
    """
    Sends from the billing address. When `to` is omitted the client's
    stored email is used. A follow-up activity is logged for the client.
    """
    payload = await read_json_body(request)
    token = extract_bearer_token(request)

    return await run_in_threadpool(dispatcher.send_invoice, token, payload)


# -----------------------------------------------------
# POST /send-client-communication
# -----------------------------------------------------
@router.post(
    "/send-client-communication",
    summary="Send a templated client communication",
    response_model=EmailResponse,
    response_model_exclude_none=True,
)
async def send_client_communication(
    request: Request,
    dispatcher: EmailDispatcher = Depends(get_dispatcher),
):
    payload = await read_json_body(request)
    token = extract_bearer_token(request)

    return await run_in_threadpool(dispatcher.send_client_communication, token, payload)
