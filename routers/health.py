# routers/health.py

from fastapi import APIRouter, Depends

from core.config import Settings, get_settings
from core.config_validator import validate_required_config
from core.supabase_client import get_supabase_client
from services.email_transport import ResendTransport
from services.record_store import RecordStore

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# -----------------------------------------------------
# GET /health/db
# Checks Supabase connection + table queries
# No auth required
# -----------------------------------------------------
@router.get("/db", summary="Supabase / DB health check")
def health_db(settings: Settings = Depends(get_settings)):
    """
    Verifies Supabase connectivity.
    - Checks if URL + key are configured
    - Queries each table the email endpoints touch
    - Returns row-count + error details per table

    Safe for external health monitors (no auth required).
    """
    client = get_supabase_client(settings)
    if client is None:
        return {
            "service": "Supabase",
            "status": "error",
            "error": "Supabase client not configured",
        }

    try:
        status = RecordStore(client).ping()
        return {
            "service": "Supabase",
            "status": status.get("status", "unknown"),
            "details": status,
        }

    except Exception as e:
        return {
            "service": "Supabase",
            "status": "error",
            "error": str(e),
        }


# -----------------------------------------------------
# GET /health/email
# Required config present + Resend key accepted
# -----------------------------------------------------
@router.get("/email", summary="Email configuration health check")
def health_email(settings: Settings = Depends(get_settings)):
    """
    Reports which required settings are missing and whether Resend
    accepts the API key. Never returns secret values.
    """
    missing = validate_required_config(settings)
    if missing:
        return {
            "service": "Email",
            "status": "error",
            "missing_config": missing,
        }

    key_valid = ResendTransport.from_settings(settings).validate_api_key()
    return {
        "service": "Email",
        "status": "ok" if key_valid else "error",
        "resend_api_key_valid": key_valid,
    }


# -----------------------------------------------------
# GET /health/app
# Simple API health check for Render
# -----------------------------------------------------
@router.get("/app", summary="App health check")
async def health_app():
    """
    Lightweight health check for Render or uptime monitors.
    """
    return {
        "service": "Ross AI Email API",
        "status": "ok",
    }
