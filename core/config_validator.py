# core/config_validator.py

from typing import List
from fastapi import Depends
from core.config import Settings, get_settings
from core.errors import EmailApiError
from core.logging_config import logger


def validate_required_config(settings: Settings) -> List[str]:
    """
    Validate that all variables needed to send email are set.
    Returns list of missing required variables.
    """
    missing = []

    if not settings.SUPABASE_URL:
        missing.append("SUPABASE_URL")
    if not settings.SUPABASE_SERVICE_ROLE_KEY:
        missing.append("SUPABASE_SERVICE_ROLE_KEY")
    if not settings.RESEND_API_KEY:
        missing.append("RESEND_API_KEY")

    return missing


def validate_optional_config(settings: Settings) -> List[str]:
    """
    Validate optional but recommended configuration.
    Returns list of missing optional variables (warnings only).
    """
    warnings = []

    if not settings.FIRM_ADDRESS:
        warnings.append("FIRM_ADDRESS (shown in invoice footers)")
    if not settings.FIRM_PHONE:
        warnings.append("FIRM_PHONE (shown in invoice footers)")

    return warnings


def validate_config_on_startup(settings: Settings):
    """
    Log configuration problems at startup.

    Missing required values are not fatal here: each send request
    re-checks them and answers 500 until they are provided.
    """
    missing_required = validate_required_config(settings)
    missing_optional = validate_optional_config(settings)

    if missing_required:
        logger.error(
            f"Missing required environment variables: {', '.join(missing_required)}"
        )

    for warning in missing_optional:
        logger.warning(f"Optional configuration missing: {warning}")

    if not missing_required:
        logger.info("Configuration validation passed")


def require_email_config(settings: Settings = Depends(get_settings)) -> Settings:
    """
    FastAPI dependency for the send endpoints.
    Which variable is missing is logged, never returned to the caller.
    """
    missing = validate_required_config(settings)
    if missing:
        logger.error(f"Missing required environment variables: {', '.join(missing)}")
        raise EmailApiError(500, "Server configuration error")
    return settings
