"""
HTTP mail API provider

Posts rendered messages to a transactional mail API (Resend-compatible JSON:
from / to / subject / text, bearer API key).
"""
import logging
from typing import Optional

import httpx

from app.config import settings
from .mail_base import MailDeliveryError, MailMessage, MailService

logger = logging.getLogger(__name__)


class HttpMailService(MailService):
    """
    Transactional mail over HTTP

    Configuration source: app.config.settings
    - mail_api_url: endpoint accepting the JSON message
    - mail_api_key: bearer token
    - mail_from: sender address
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url or settings.mail_api_url
        self.api_key = api_key if api_key is not None else settings.mail_api_key
        self.sender = sender or settings.mail_from
        self.timeout = timeout
        self._transport = transport

    def is_available(self) -> bool:
        return bool(self.api_key and self.api_url)

    @property
    def name(self) -> str:
        return "HTTP Mail API"

    async def send(self, message: MailMessage) -> None:
        if not self.is_available():
            raise MailDeliveryError("MAIL_API_KEY is missing")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "content-type": "application/json",
        }
        payload = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "text": message.text,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.api_url, headers=headers, json=payload)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise MailDeliveryError(f"mail API answered {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise MailDeliveryError(f"mail API unreachable: {e}") from e

        logger.info("[mail] sent template=%s to=%s", message.template, message.to)
