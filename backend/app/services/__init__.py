"""
Services Module

Account lifecycle and access control:
- Permissions: role -> permission lookup table
- Verification: reactivation / password reset codes
- Sessions: login, logout and token resolution
- Account state: every account state transition
- Gate: admits or rejects a resolved identity
- Inactivity: the daily dormancy sweep
- Mail: outbound notification providers
"""

# Mail service
from .mail_base import (
    MailDeliveryError,
    MailMessage,
    MailService,
)
from .mail_factory import get_mail_service

# Core services
from .permissions import PermissionRegistry, registry
from .verification import CodeStatus, IssuedCode, VerificationCodeEngine
from .sessions import Identity, LoginResult, SessionManager
from .account_state import AccountStateMachine, confirmation_phrase
from .gate import Actor, admit, check_permission
from .inactivity import InactivityStats, InactivitySweep, SweepReport

__all__ = [
    "MailDeliveryError",
    "MailMessage",
    "MailService",
    "get_mail_service",
    "PermissionRegistry",
    "registry",
    "CodeStatus",
    "IssuedCode",
    "VerificationCodeEngine",
    "Identity",
    "LoginResult",
    "SessionManager",
    "AccountStateMachine",
    "confirmation_phrase",
    "Actor",
    "admit",
    "check_permission",
    "InactivityStats",
    "InactivitySweep",
    "SweepReport",
]
