"""
Mail Service Abstract Interface

Provides a unified interface for outbound mail providers (log-only for
development / HTTP mail API for production). Callers only hand over a
recipient, a template identity and a small key-value payload.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict


# template id -> (subject, plain-text body)
TEMPLATES: Dict[str, tuple] = {
    "account_reactivation": (
        "Reactivate Your Eventara Account",
        "Hello,\n\n"
        "We received a request to reactivate your Eventara account.\n\n"
        "Your reactivation code is: {code}\n\n"
        "This code expires on {expires_at}.\n\n"
        "If you did not request this, you can ignore this email.\n",
    ),
    "password_reset": (
        "Reset Your Eventara Password",
        "Hello,\n\n"
        "We received a request to reset the password of your Eventara account.\n\n"
        "Your password reset code is: {code}\n\n"
        "This code expires on {expires_at}.\n\n"
        "If you did not request this, your password stays unchanged.\n",
    ),
}


class MailDeliveryError(RuntimeError):
    """Provider refused or failed to accept the message"""


@dataclass
class MailMessage:
    """A rendered message ready for a provider"""
    to: str
    template: str
    subject: str
    text: str
    context: Dict[str, str] = field(default_factory=dict)

    def __repr__(self):
        # Never print the body: it contains one-time codes
        return f"MailMessage(to='{self.to}', template='{self.template}')"


def render(to: str, template: str, context: Dict[str, str]) -> MailMessage:
    """
    Build a MailMessage from a registered template

    Raises:
    - KeyError: unknown template id
    """
    subject, body = TEMPLATES[template]
    return MailMessage(to=to, template=template, subject=subject, text=body.format(**context), context=dict(context))


class MailService(ABC):
    """Mail Service Abstract Base Class"""

    @abstractmethod
    async def send(self, message: MailMessage) -> None:
        """
        Deliver one message

        Raises:
        - MailDeliveryError: delivery failed
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is configured"""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name"""
        pass

    async def send_template(self, to: str, template: str, context: Dict[str, str]) -> None:
        await self.send(render(to, template, context))
