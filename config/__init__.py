"""
Configuration module - Fixed, environment-independent constants.
"""

from config.email_config import (
    RESEND_API_URL,
    MAIL_COLLECTION,
    MAIL_MAX_ATTEMPTS,
    MAIL_DISPATCH_BATCH_SIZE,
    EMAIL_DEFAULTS,
)

__all__ = [
    "RESEND_API_URL",
    "MAIL_COLLECTION",
    "MAIL_MAX_ATTEMPTS",
    "MAIL_DISPATCH_BATCH_SIZE",
    "EMAIL_DEFAULTS",
]
