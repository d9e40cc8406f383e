"""
Session / identity manager.

Turns credentials into a server-side session and a signed token, and turns a
presented token back into the acting account. Nothing here keeps a global
"current user": the resolved Identity is handed to whoever asked for it.
"""
import datetime as dt
import logging
from dataclasses import dataclass
from typing import Optional, Union

import jwt
from tortoise.exceptions import IntegrityError

from app.config import settings
from app.core.clock import Clock, as_utc, system_clock
from app.core.errors import (
    InactiveError,
    InvalidCredentialsError,
    ServiceError,
    SuspendedError,
    ValidationError,
)
from app.core.security import (
    create_session_token,
    decode_session_token,
    hash_password,
    verify_password,
)
from app.models import Account, AuthProvider, Role, Session
from .password_policy import check_new_password

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "user"

# Compared against when the email is unknown, so both failure paths cost one argon2 verify
_dummy_hash: Optional[str] = None


def _dummy_password_hash() -> str:
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password("not-a-real-password")
    return _dummy_hash


@dataclass
class Identity:
    """The resolved actor of one request."""
    session: Session
    account: Optional[Account]

    @property
    def authenticated(self) -> bool:
        return self.account is not None


@dataclass
class LoginResult:
    account: Account
    session: Session
    token: str


class SessionManager:
    def __init__(self, clock: Clock = system_clock):
        self.clock = clock

    # ---------- helpers ----------
    def _lifetime(self, remember: bool) -> dt.timedelta:
        if remember:
            return dt.timedelta(days=settings.session_remember_days)
        return dt.timedelta(minutes=settings.session_ttl_minutes)

    def _token_ceiling(self, now: dt.datetime) -> dt.datetime:
        return now + dt.timedelta(days=settings.session_remember_days)

    async def find_account(self, email: str) -> Optional[Account]:
        return await Account.get_or_none(email=Account.normalize_email(email))

    # ---------- registration ----------
    async def register(
        self, email: str, password: str, password_confirmation: Optional[str] = None
    ) -> Union[Account, ServiceError]:
        problem = check_new_password(password, password_confirmation)
        if problem:
            return problem

        normalized = Account.normalize_email(email)
        if await Account.filter(email=normalized).exists():
            return ValidationError.field("email", "The email address is already registered.")

        role = await Role.get_or_none(name=DEFAULT_ROLE)
        try:
            account = await Account.create(
                email=normalized,
                password_hash=hash_password(password),
                active=True,
                suspended=False,
                auth_provider=AuthProvider.PASSWORD,
                password_set_by_user=True,
                role=role,
            )
        except IntegrityError:
            return ValidationError.field("email", "The email address is already registered.")

        logger.info("New account registered account_id=%s email=%s", account.id, account.email)
        return account

    async def provision_oauth_account(self, email: str) -> Account:
        """
        Find or create the account for a verified OAuth email.

        New accounts have no password and stay PasswordPending until the user
        sets one through the initial-password flow.
        """
        normalized = Account.normalize_email(email)
        account = await Account.get_or_none(email=normalized)
        if account:
            return account
        role = await Role.get_or_none(name=DEFAULT_ROLE)
        account = await Account.create(
            email=normalized,
            password_hash=None,
            auth_provider=AuthProvider.OAUTH,
            password_set_by_user=False,
            role=role,
        )
        logger.info("OAuth account provisioned account_id=%s email=%s", account.id, account.email)
        return account

    # ---------- login / logout ----------
    async def login(
        self, email: str, password: str, remember: bool = False, user_agent: Optional[str] = None
    ) -> Union[LoginResult, ServiceError]:
        account = await self.find_account(email)
        if account is None:
            verify_password(password, _dummy_password_hash())
            logger.warning("Failed login attempt email=%s", Account.normalize_email(email))
            return InvalidCredentialsError()
        if not verify_password(password, account.password_hash):
            logger.warning("Failed login attempt email=%s", account.email)
            return InvalidCredentialsError()

        if account.suspended:
            logger.warning("Suspended account attempted login account_id=%s", account.id)
            return SuspendedError("Your account has been suspended. Please contact support.")
        if not account.active:
            logger.warning("Inactive account attempted login account_id=%s", account.id)
            return InactiveError(
                "Your account is inactive. Please reactivate your account to continue.",
                needs_reactivation=True,
                redirect_url="/reactivate",
                email=account.email,
            )

        session, token = await self.start_session(account, remember=remember, user_agent=user_agent)
        logger.info("Successful login account_id=%s", account.id)
        return LoginResult(account=account, session=session, token=token)

    async def start_session(
        self, account: Account, remember: bool = False, user_agent: Optional[str] = None
    ) -> tuple[Session, str]:
        now = self.clock.now()
        session = await Session.create(
            account=account,
            remember=remember,
            payload={},
            user_agent=(user_agent or "")[:255] or None,
            last_activity=now,
            expires_at=now + self._lifetime(remember),
        )
        account.last_login = now
        await account.save(update_fields=["last_login"])
        token = create_session_token(str(session.id), account.id, self._token_ceiling(now))
        return session, token

    async def logout(self, token: Optional[str]) -> None:
        """Destroy the session behind `token`. Unknown or dead tokens are fine."""
        session_id = self._session_id(token)
        if session_id is None:
            return
        session = await Session.get_or_none(id=session_id)
        if session is None:
            return
        logger.info("Logout account_id=%s", session.account_id)
        await session.delete()

    async def end_all_sessions(self, account: Account) -> int:
        return await Session.filter(account_id=account.id).delete()

    async def purge_expired(self) -> int:
        return await Session.filter(expires_at__lte=self.clock.now()).delete()

    # ---------- resolution ----------
    def _session_id(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        try:
            payload = decode_session_token(token)
        except jwt.InvalidTokenError:
            return None
        return payload.get("sid")

    async def resolve(self, token: Optional[str], touch: bool = True) -> Optional[Identity]:
        """
        Map a token to its live session and account.

        touch=False is the read-only probe: expiry is checked but neither
        extended nor cleaned up.
        """
        session_id = self._session_id(token)
        if session_id is None:
            return None
        session = await Session.get_or_none(id=session_id).prefetch_related("account")
        if session is None:
            return None

        now = self.clock.now()
        if as_utc(session.expires_at) <= now:
            if touch:
                await session.delete()
            return None

        if touch:
            session.last_activity = now
            fields = ["last_activity"]
            if not session.remember:
                session.expires_at = now + self._lifetime(False)
                fields.append("expires_at")
            await session.save(update_fields=fields)

        return Identity(session=session, account=session.account)
