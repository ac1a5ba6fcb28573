from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "Ross AI Email API"
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # -------------------------------------------------
    # CORS
    # -------------------------------------------------
    BACKEND_CORS_ORIGINS: List[str] = [
        "https://rossai.app",
        "https://www.rossai.app",
    ]

    # -------------------------------------------------
    # Supabase (record store & auth)
    # -------------------------------------------------
    SUPABASE_URL: Optional[str] = Field(None, env="SUPABASE_URL")
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = Field(None, env="SUPABASE_SERVICE_ROLE_KEY")

    # -------------------------------------------------
    # Resend (email transport)
    # -------------------------------------------------
    RESEND_API_KEY: Optional[str] = Field(None, env="RESEND_API_KEY")
    RESEND_API_URL: str = "https://api.resend.com"
    RESEND_TIMEOUT_SECONDS: int = 30

    FROM_EMAIL: str = "noreply@rossai.app"
    FROM_NAME: str = "Ross AI"

    # Invoices go out from the billing mailbox
    BILLING_FROM_EMAIL: str = "billing@rossai.app"
    BILLING_FROM_NAME: str = "Ross AI Billing"

    # -------------------------------------------------
    # Firm details (template merge fields)
    # -------------------------------------------------
    FIRM_NAME: str = "Ross AI Legal Services"
    FIRM_ADDRESS: str = ""
    FIRM_PHONE: str = ""
    FIRM_EMAIL: Optional[str] = Field(None, env="FIRM_EMAIL")
    FIRM_TIMEZONE: str = Field("UTC", description="pytz zone used for dates shown in emails")
    CURRENCY_SYMBOL: str = "$"

    # Rate applied to billable client communications
    DEFAULT_HOURLY_RATE: float = 350.0

    # -------------------------------------------------
    # Send rate limits (per user, per worker process)
    # -------------------------------------------------
    EMAIL_RATE_LIMIT_ENABLED: bool = True
    EMAIL_RATE_LIMIT_PER_MINUTE: int = Field(10, description="Sends allowed per user per minute")
    EMAIL_RATE_LIMIT_PER_HOUR: int = Field(100, description="Sends allowed per user per hour")
    EMAIL_RATE_LIMIT_PER_DAY: int = Field(500, description="Sends allowed per user per day")

    # -------------------------------------------------
    # Model Config
    # -------------------------------------------------
    class Config:
        case_sensitive = True

    @property
    def firm_email(self) -> str:
        return self.FIRM_EMAIL or self.BILLING_FROM_EMAIL


def get_settings() -> Settings:
    """
    FastAPI dependency. Settings are read from the environment on every
    request so a rotated key never needs a restart.
    """
    return Settings()


# Process-level settings for app construction (CORS, title)
settings = Settings()
