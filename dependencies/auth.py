from typing import Optional
from fastapi import Depends, Request

from core.errors import EmailApiError
from models.auth import CurrentUser
from services.record_store import RecordStore, get_record_store


BEARER_PREFIX = "Bearer "


# ============================================================
# Bearer token extraction
# ============================================================
def extract_bearer_token(request: Request) -> str:
    """
    Read `Authorization: Bearer <token>`.
    Raises 401 when the header is missing or not a bearer token.
    """
    auth_header: Optional[str] = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        raise EmailApiError(401, "Missing or invalid authorization header")

    token = auth_header[len(BEARER_PREFIX):].strip()
    if not token:
        raise EmailApiError(401, "Missing or invalid authorization header")
    return token


# ============================================================
# AUTH (Supabase: validates the access token)
# ============================================================
def authenticate_request(request: Request, store: RecordStore) -> CurrentUser:
    token = extract_bearer_token(request)

    user = store.authenticate(token)
    if user is None:
        raise EmailApiError(401, "Invalid or expired authentication token")
    return user


def get_current_user(
    request: Request,
    store: RecordStore = Depends(get_record_store),
) -> CurrentUser:
    """Dependency form, for read endpoints that need no body parsing first."""
    return authenticate_request(request, store)
