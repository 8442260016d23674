"""
Print shop application settings.

Extends the base settings with print-shop-specific configuration.
"""

from typing import Optional
from common.config import BaseAppSettings


class Settings(BaseAppSettings):
    """Print-shop-specific settings."""

    # ==========================================================================
    # Pricing
    # ==========================================================================
    DESIGN_HOURLY_RATE: float = 25.0
    DEFAULT_MARGIN_PERCENT: float = 30.0

    # ==========================================================================
    # Organization maintenance
    # ==========================================================================
    # Documents removed per delete_many round when an organization is deleted
    DELETE_BATCH_SIZE: int = 500

    # ==========================================================================
    # Live subscriptions
    # ==========================================================================
    SUBSCRIPTION_RETRY_SECONDS: float = 2.0
    SUBSCRIPTION_MAX_RETRY_SECONDS: float = 30.0

    # ==========================================================================
    # Email Settings (invitation mail delivery)
    # ==========================================================================
    EMAIL_MODE: str = "console"  # console, smtp, resend
    RESEND_API_KEY: Optional[str] = None
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 465
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: str = "noreply@printshop.local"
    SMTP_FROM_NAME: str = "3D Print Manager"

    # ==========================================================================
    # Frontend URL (for email links)
    # ==========================================================================
    APP_URL: str = "http://localhost:5173"


# Global settings instance
settings = Settings()
