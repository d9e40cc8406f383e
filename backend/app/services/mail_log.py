"""
Log-only mail provider

Development default: writes the recipient and subject to the log instead of
sending anything. The body (which carries the code) is only logged at DEBUG.
"""
import logging

from .mail_base import MailMessage, MailService

logger = logging.getLogger(__name__)


class LogMailService(MailService):
    """Mail provider that only logs"""

    async def send(self, message: MailMessage) -> None:
        logger.info("[mail] to=%s template=%s subject=%s", message.to, message.template, message.subject)
        logger.debug("[mail] body:\n%s", message.text)

    def is_available(self) -> bool:
        return True

    @property
    def name(self) -> str:
        return "Log Mail"


log_mail_service = LogMailService()
