# app/api/v1/deps.py
from typing import Optional

from fastapi import Depends, Header, Request, Response

from app.config import settings
from app.core.clock import Clock, system_clock
from app.core.errors import ServiceError
from app.models import Account, AuthProvider
from app.schemas.auth import UserOut
from app.services.account_state import AccountStateMachine
from app.services.gate import Actor, admit, check_permission
from app.services.inactivity import InactivitySweep
from app.services.mail_base import MailService
from app.services.mail_factory import get_mail_service
from app.services.permissions import registry
from app.services.sessions import Identity, SessionManager
from app.services.verification import VerificationCodeEngine


# ---------- service providers (overridden in tests) ----------
def get_clock() -> Clock:
    return system_clock


def get_mailer() -> MailService:
    return get_mail_service()


def get_session_manager(clock: Clock = Depends(get_clock)) -> SessionManager:
    return SessionManager(clock=clock)


def get_code_engine(
    mailer: MailService = Depends(get_mailer),
    clock: Clock = Depends(get_clock),
) -> VerificationCodeEngine:
    return VerificationCodeEngine(mailer=mailer, clock=clock)


def get_state_machine(
    codes: VerificationCodeEngine = Depends(get_code_engine),
    sessions: SessionManager = Depends(get_session_manager),
) -> AccountStateMachine:
    return AccountStateMachine(codes=codes, sessions=sessions)


def get_inactivity_sweep(
    sessions: SessionManager = Depends(get_session_manager),
    clock: Clock = Depends(get_clock),
) -> InactivitySweep:
    return InactivitySweep(sessions=sessions, clock=clock)


# ---------- identity ----------
def get_session_token(
    request: Request,
    authorization: str | None = Header(default=None),
) -> Optional[str]:
    """
    Extract the session token from the request.

    1. Authorization: Bearer xxx - preferred method
    2. HttpOnly session cookie - browser fallback
    """
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        if token:
            return token
    return request.cookies.get(settings.session_cookie_name)


async def get_identity(
    token: Optional[str] = Depends(get_session_token),
    sessions: SessionManager = Depends(get_session_manager),
) -> Optional[Identity]:
    """Resolve the token and slide the session's expiry."""
    return await sessions.resolve(token)


async def probe_identity(
    token: Optional[str] = Depends(get_session_token),
    sessions: SessionManager = Depends(get_session_manager),
) -> Optional[Identity]:
    """Like get_identity, but leaves the session row untouched."""
    return await sessions.resolve(token, touch=False)


async def require_active_actor(identity: Optional[Identity] = Depends(get_identity)) -> Actor:
    """
    FastAPI dependency running the authorization gate.

    Raises:
        AuthenticationError (401): no live session
        SuspendedError (403): account suspended (checked before `active`)
        InactiveError (403): account inactive, body carries needs_reactivation
    """
    result = await admit(identity, registry)
    if isinstance(result, ServiceError):
        raise result
    return result


def require_permission(*tokens: str):
    """
    Dependency factory: the gate plus "holds at least one of `tokens`".

    Usage:
        @router.get("/admin/users")
        async def list_users(actor: Actor = Depends(require_permission("manage_users"))):
            ...
    """
    async def _checker(actor: Actor = Depends(require_active_actor)) -> Actor:
        problem = check_permission(actor, *tokens)
        if problem:
            raise problem
        return actor

    return _checker


# ---------- response helpers ----------
def set_session_cookie(response: Response, token: str, remember: bool) -> None:
    max_age = settings.session_remember_days * 24 * 3600 if remember else None
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=max_age,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(settings.session_cookie_name)


async def present_user(account: Account) -> UserOut:
    """User view shared by auth, reactivation and admin responses."""
    await account.fetch_related("role")
    permissions = await registry.permissions_for(account)
    return UserOut(
        id=account.id,
        email=account.email,
        role=account.role.name if account.role else None,
        permissions=sorted(permissions),
        active=account.active,
        suspended=account.suspended,
        auth_provider=AuthProvider(account.auth_provider).value,
        password_set_by_user=account.password_set_by_user,
        last_login=account.last_login,
        created_at=account.created_at,
    )
