"""
Account state machine.

States (see Account.state): Active, Inactive, Suspended (overlay flag, wins
over everything), PasswordPending (OAuth account without a self-set password).

Transitions:
- Active -> Inactive: self-service deactivation (typed confirmation phrase),
  administrator deactivation, or the dormancy sweep
- Inactive -> Active: only by consuming a reactivation code
- suspend / unsuspend: administrator only; `active` is left untouched
- PasswordPending -> password set: once, never again for the account

Every operation returns the updated Account or a ServiceError.
"""
import logging
from typing import Optional, Union

from app.core.errors import (
    NotFoundError,
    ServiceError,
    StateError,
    SuspendedError,
    ValidationError,
)
from app.core.security import hash_password, verify_password
from app.models import Account, CodePurpose, Role
from .password_policy import check_new_password
from .sessions import SessionManager
from .verification import IssuedCode, VerificationCodeEngine

logger = logging.getLogger(__name__)


def confirmation_phrase(action: str, account: Account) -> str:
    """`deactivate-bob` / `delete-bob` for bob@example.com"""
    return f"{action}-{account.local_part}"


class AccountStateMachine:
    def __init__(self, codes: VerificationCodeEngine, sessions: SessionManager):
        self.codes = codes
        self.sessions = sessions
        self.clock = codes.clock

    async def _find(self, email: str) -> Union[Account, NotFoundError]:
        account = await self.sessions.find_account(email)
        if account is None:
            return NotFoundError("User not found.")
        return account

    def _check_confirmation(self, action: str, account: Account, confirmation: str) -> Optional[ValidationError]:
        if confirmation != confirmation_phrase(action, account):
            return ValidationError.field("confirmation", "Confirmation text does not match.")
        return None

    # ---------- self-service ----------
    async def deactivate_self(self, account: Account, confirmation: str) -> Union[Account, ServiceError]:
        if not account.active:
            return StateError("Your account is already inactive.")
        problem = self._check_confirmation("deactivate", account, confirmation)
        if problem:
            return problem

        account.active = False
        await account.save(update_fields=["active", "updated_at"])
        await self.sessions.end_all_sessions(account)
        logger.info("Account deactivated by owner account_id=%s", account.id)
        return account

    async def delete_self(self, account: Account, confirmation: str) -> Union[Account, ServiceError]:
        problem = self._check_confirmation("delete", account, confirmation)
        if problem:
            return problem

        logger.info("Account deletion initiated account_id=%s email=%s", account.id, account.email)
        await self.sessions.end_all_sessions(account)
        await account.delete()
        return account

    async def set_initial_password(
        self, account: Account, password: str, confirmation: Optional[str] = None
    ) -> Union[Account, ServiceError]:
        if account.password_set_by_user:
            return StateError(
                "You have already set your password. Use the change password feature instead.",
                reason="password_already_set",
            )
        problem = check_new_password(password, confirmation)
        if problem:
            return problem

        account.password_hash = hash_password(password)
        account.password_set_by_user = True
        await account.save(update_fields=["password_hash", "password_set_by_user", "updated_at"])
        logger.info("Initial password set account_id=%s", account.id)
        return account

    async def change_password(
        self, account: Account, current: str, new: str, confirmation: Optional[str] = None
    ) -> Union[Account, ServiceError]:
        if not verify_password(current, account.password_hash):
            return ValidationError.field("current_password", "The current password is incorrect.")
        if current == new:
            return ValidationError.field("password", "New password must be different from your current password.")
        problem = check_new_password(new, confirmation)
        if problem:
            return problem

        account.password_hash = hash_password(new)
        await account.save(update_fields=["password_hash", "updated_at"])
        logger.info("Password changed account_id=%s", account.id)
        return account

    # ---------- reactivation ----------
    async def _reactivation_target(self, email: str) -> Union[Account, ServiceError]:
        account = await self._find(email)
        if isinstance(account, ServiceError):
            return account
        if account.suspended:
            return SuspendedError("Your account is suspended. Please contact support.")
        if account.active:
            return StateError("Your account is already active.", reason="already_active")
        return account

    async def send_reactivation_code(self, email: str) -> Union[tuple[Account, IssuedCode], ServiceError]:
        account = await self._reactivation_target(email)
        if isinstance(account, ServiceError):
            return account
        issued = await self.codes.issue(account, CodePurpose.REACTIVATION)
        if isinstance(issued, ServiceError):
            return issued
        return account, issued

    async def reactivate(self, email: str, code: str) -> Union[Account, ServiceError]:
        account = await self._reactivation_target(email)
        if isinstance(account, ServiceError):
            return account
        result = await self.codes.verify(account, CodePurpose.REACTIVATION, code)
        if isinstance(result, ServiceError):
            return result

        account.active = True
        await account.save(update_fields=["active", "updated_at"])
        logger.info("Account reactivated account_id=%s", account.id)
        return account

    # ---------- password reset ----------
    async def send_password_reset_code(self, email: str) -> Union[tuple[Account, IssuedCode], ServiceError]:
        account = await self._find(email)
        if isinstance(account, ServiceError):
            return account
        issued = await self.codes.issue(account, CodePurpose.PASSWORD_RESET)
        if isinstance(issued, ServiceError):
            return issued
        return account, issued

    async def reset_password(
        self, email: str, code: str, password: str, confirmation: Optional[str] = None
    ) -> Union[Account, ServiceError]:
        problem = check_new_password(password, confirmation)
        if problem:
            return problem
        account = await self._find(email)
        if isinstance(account, ServiceError):
            return account
        result = await self.codes.verify(account, CodePurpose.PASSWORD_RESET, code)
        if isinstance(result, ServiceError):
            return result

        account.password_hash = hash_password(password)
        account.password_set_by_user = True
        await account.save(update_fields=["password_hash", "password_set_by_user", "updated_at"])
        ended = await self.sessions.end_all_sessions(account)
        logger.info("Password reset account_id=%s sessions_ended=%d", account.id, ended)
        return account

    # ---------- administrator ----------
    async def suspend(
        self, account: Account, actor: Account, reason: Optional[str] = None
    ) -> Union[Account, ServiceError]:
        if account.id == actor.id:
            return StateError("You cannot suspend your own account.")
        if account.suspended:
            return StateError("User account is already suspended.", reason="already_suspended")

        account.suspended = True
        await account.save(update_fields=["suspended", "updated_at"])
        await self.sessions.end_all_sessions(account)
        logger.warning(
            "Account suspended account_id=%s by=%s reason=%s", account.id, actor.id, reason
        )
        return account

    async def unsuspend(self, account: Account, actor: Account) -> Union[Account, ServiceError]:
        if not account.suspended:
            return StateError("User account is not suspended.", reason="not_suspended")

        account.suspended = False
        await account.save(update_fields=["suspended", "updated_at"])
        logger.info("Account unsuspended account_id=%s by=%s active=%s", account.id, actor.id, account.active)
        return account

    async def deactivate(self, account: Account, actor: Account) -> Union[Account, ServiceError]:
        if account.id == actor.id:
            return StateError("Use the account settings to deactivate your own account.")
        if not account.active:
            return StateError("User account is already inactive.", reason="already_inactive")

        account.active = False
        await account.save(update_fields=["active", "updated_at"])
        await self.sessions.end_all_sessions(account)
        logger.info("Account deactivated by admin account_id=%s by=%s", account.id, actor.id)
        return account

    async def change_role(self, account: Account, role_name: str, actor: Account) -> Union[Account, ServiceError]:
        role = await Role.get_or_none(name=role_name)
        if role is None:
            return ValidationError.field("role", f"Unknown role: {role_name}")
        if account.id == actor.id and role.id != account.role_id:
            return StateError("You cannot change your own role.")
        if account.role_id is not None and account.role_id != role.id:
            current = await Role.get(id=account.role_id)
            if current.name == "admin" and await Account.filter(role_id=current.id).count() <= 1:
                return StateError("Cannot demote the last admin.", reason="last_admin")

        account.role = role
        await account.save(update_fields=["role_id", "updated_at"])
        logger.info("Role changed account_id=%s role=%s by=%s", account.id, role.name, actor.id)
        return account
