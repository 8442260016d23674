"""Email services."""

from printshop.services.email.email_service import EmailService
from printshop.services.email.mail_queue import MailQueue

__all__ = ["EmailService", "MailQueue"]
