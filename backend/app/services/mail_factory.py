"""
Mail Service Factory

Picks the outbound mail provider from MAIL_PROVIDER ("log" or "http")
"""
import logging

from app.config import settings
from .mail_base import MailService
from .mail_http import HttpMailService
from .mail_log import log_mail_service

logger = logging.getLogger(__name__)


def get_mail_service() -> MailService:
    """
    Get mail service

    Returns:
    - MailService: configured provider

    Note:
    - MAIL_PROVIDER=http needs MAIL_API_KEY in .env
    """
    provider = (settings.mail_provider or "log").lower()
    if provider == "log":
        return log_mail_service
    if provider == "http":
        service = HttpMailService()
        if not service.is_available():
            raise RuntimeError("HTTP mail provider not available. Please configure MAIL_API_KEY in .env")
        return service
    raise ValueError(f"Unknown MAIL_PROVIDER: {settings.mail_provider}")
