"""
Verification code engine.

Issues and validates short-lived, single-use codes for an (account, purpose)
pair, independently of what the purpose does with a successful validation.

Rules:
- at most one live code per (account, purpose); issuing supersedes the old one
- a daily cap on issuance per (account, purpose), superseded codes included
- verification order: missing -> expired -> ceiling reached -> count attempt -> compare
- expired codes are rejected without spending an attempt
- the attempt counter and consumption are conditional UPDATEs, so parallel
  verify calls can never push a code past its ceiling or consume it twice
"""
import datetime as dt
import logging
from dataclasses import dataclass
from typing import Optional, Union

from tortoise.exceptions import IntegrityError
from tortoise.expressions import F
from tortoise.transactions import in_transaction

from app.config import settings
from app.core.clock import Clock, as_utc, system_clock
from app.core.errors import (
    AttemptsExceededError,
    CodeNotFoundError,
    ExpiredError,
    InvalidCodeError,
    RateLimitError,
    ServiceError,
)
from app.core.security import code_matches, generate_code, hash_code
from app.models import Account, CodePurpose, VerificationCode
from .mail_base import MailService

logger = logging.getLogger(__name__)

MAIL_TEMPLATES = {
    CodePurpose.REACTIVATION: "account_reactivation",
    CodePurpose.PASSWORD_RESET: "password_reset",
}


def format_expiry(value: dt.datetime) -> str:
    """Human-readable expiry for emails, e.g. "Oct 18, 2026 at 02:30 PM UTC"."""
    return as_utc(value).strftime("%b %d, %Y at %I:%M %p UTC")


@dataclass
class IssuedCode:
    code: str
    expires_at: dt.datetime
    remaining_issues: int  # issuances left today for this (account, purpose)
    delivered: bool  # False when the mail provider failed; the code is still valid
    record: VerificationCode


@dataclass
class CodeStatus:
    issued_today: int
    remaining_issues: int
    has_active_code: bool
    remaining_attempts: int


class VerificationCodeEngine:
    def __init__(
        self,
        mailer: MailService,
        clock: Clock = system_clock,
        ttl_minutes: Optional[int] = None,
        length: Optional[int] = None,
        max_attempts: Optional[int] = None,
        daily_limit: Optional[int] = None,
    ):
        self.mailer = mailer
        self.clock = clock
        self.ttl = dt.timedelta(minutes=ttl_minutes or settings.code_ttl_minutes)
        self.length = length or settings.code_length
        self.max_attempts = max_attempts or settings.code_max_attempts
        self.daily_limit = daily_limit or settings.code_daily_issue_limit

    async def issued_today(self, account: Account, purpose: CodePurpose, using_db=None) -> int:
        return await VerificationCode.filter(
            account_id=account.id,
            purpose=purpose,
            created_at__gte=self.clock.start_of_day(),
        ).using_db(using_db).count()

    async def active_code(self, account: Account, purpose: CodePurpose) -> Optional[VerificationCode]:
        """The live code for the pair, expired or not."""
        return await VerificationCode.get_or_none(active_key=VerificationCode.slot_key(account.id, purpose))

    async def status(self, account: Account, purpose: CodePurpose) -> CodeStatus:
        issued = await self.issued_today(account, purpose)
        code = await self.active_code(account, purpose)
        live = code is not None and not code.is_expired(self.clock.now())
        return CodeStatus(
            issued_today=issued,
            remaining_issues=max(0, self.daily_limit - issued),
            has_active_code=live,
            remaining_attempts=code.remaining_attempts if live else 0,
        )

    async def issue(self, account: Account, purpose: CodePurpose) -> Union[IssuedCode, ServiceError]:
        now = self.clock.now()
        code = generate_code(self.length)
        slot = VerificationCode.slot_key(account.id, purpose)
        try:
            async with in_transaction() as conn:
                # Issuance for one account runs under its row lock; the cap is counted inside it
                await Account.filter(id=account.id).select_for_update().using_db(conn).first()
                issued = await self.issued_today(account, purpose, using_db=conn)
                if issued >= self.daily_limit:
                    logger.warning("Code issuance rate limited account_id=%s purpose=%s", account.id, purpose.value)
                    return RateLimitError(
                        "Too many code requests today. Please try again tomorrow.",
                        remaining_attempts=0,
                    )

                await VerificationCode.filter(active_key=slot).using_db(conn).update(
                    active_key=None, superseded_at=now
                )
                record = await VerificationCode.create(
                    account_id=account.id,
                    purpose=purpose,
                    code_hash=hash_code(code),
                    active_key=slot,
                    attempts=0,
                    max_attempts=self.max_attempts,
                    created_at=now,
                    expires_at=now + self.ttl,
                    using_db=conn,
                )
        except IntegrityError:
            # Another request issued a code for the same pair at the same moment
            logger.warning("Concurrent code issuance account_id=%s purpose=%s", account.id, purpose.value)
            return RateLimitError("A code was just sent. Please check your email.", status_code=409, reason="conflict")

        logger.info(
            "Verification code issued account_id=%s purpose=%s expires_at=%s",
            account.id, purpose.value, record.expires_at.isoformat(),
        )

        delivered = await self._notify(account, purpose, code, record.expires_at)
        return IssuedCode(
            code=code,
            expires_at=record.expires_at,
            remaining_issues=max(0, self.daily_limit - issued - 1),
            delivered=delivered,
            record=record,
        )

    async def _notify(self, account: Account, purpose: CodePurpose, code: str, expires_at: dt.datetime) -> bool:
        try:
            await self.mailer.send_template(
                account.email,
                MAIL_TEMPLATES[purpose],
                {"code": code, "expires_at": format_expiry(expires_at)},
            )
        except Exception as e:
            # Issuance stands; the caller is told the message did not go out
            logger.error(
                "Failed to send %s email account_id=%s provider=%s error=%s",
                purpose.value, account.id, self.mailer.name, e,
            )
            return False
        return True

    async def verify(
        self, account: Account, purpose: CodePurpose, submitted: str
    ) -> Union[VerificationCode, ServiceError]:
        """
        Check `submitted` against the live code and consume it on match.

        Returns the consumed VerificationCode, or one of:
        CodeNotFoundError, ExpiredError, AttemptsExceededError,
        InvalidCodeError (with remaining_attempts).
        """
        slot = VerificationCode.slot_key(account.id, purpose)
        record = await VerificationCode.get_or_none(active_key=slot)
        if record is None:
            return CodeNotFoundError()

        now = self.clock.now()
        if record.is_expired(now):
            return ExpiredError()

        # Count the attempt only while under the ceiling; 0 rows means the
        # ceiling was reached (or the code was consumed) by someone else.
        counted = await VerificationCode.filter(
            id=record.id, active_key=slot, attempts__lt=record.max_attempts
        ).update(attempts=F("attempts") + 1)
        if not counted:
            await record.refresh_from_db(fields=["active_key", "attempts"])
            if record.active_key is None:
                return CodeNotFoundError()
            logger.warning("Code attempts exceeded account_id=%s purpose=%s", account.id, purpose.value)
            return AttemptsExceededError()

        await record.refresh_from_db(fields=["attempts"])

        if not code_matches(submitted, record.code_hash):
            logger.warning(
                "Invalid %s code attempt account_id=%s attempts=%d/%d",
                purpose.value, account.id, record.attempts, record.max_attempts,
            )
            return InvalidCodeError(remaining_attempts=record.remaining_attempts)

        consumed = await VerificationCode.filter(id=record.id, active_key=slot).update(
            active_key=None, consumed_at=now
        )
        if not consumed:
            return CodeNotFoundError()

        record.active_key = None
        record.consumed_at = now
        logger.info("Verification code consumed account_id=%s purpose=%s", account.id, purpose.value)
        return record
