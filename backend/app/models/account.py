# app/models/account.py
"""
Database model for accounts.
The identity anchor of the system: credentials, account-state flags and the
role reference used for authorization.
"""
from enum import Enum

from tortoise import fields, models


class AuthProvider(str, Enum):
    PASSWORD = "password"
    OAUTH = "oauth"


class AccountState(str, Enum):
    """
    Derived account state. `suspended` is an overlay flag and wins over
    everything else; PasswordPending only applies to active accounts.
    """
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    PASSWORD_PENDING = "password_pending"


class Account(models.Model):
    """
    Account database model.

    Relationships:
    - Belongs to a Role (many-to-one, nullable until a role is assigned)
    - Has many VerificationCodes (via related_name="verification_codes")
    - Has many Sessions (via related_name="sessions")

    Security:
    - Email is stored lower-cased, so uniqueness is case-insensitive
    - Password is stored as an argon2 hash; OAuth accounts may have none
    """
    id = fields.IntField(pk=True)
    email = fields.CharField(max_length=255, unique=True, index=True)
    password_hash = fields.CharField(max_length=255, null=True)
    active = fields.BooleanField(default=True)
    suspended = fields.BooleanField(default=False)
    auth_provider = fields.CharEnumField(AuthProvider, max_length=16, default=AuthProvider.PASSWORD)
    password_set_by_user = fields.BooleanField(default=True)
    role = fields.ForeignKeyField(
        "models.Role", related_name="accounts", null=True, on_delete=fields.SET_NULL
    )
    last_login = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "accounts"

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()

    @property
    def local_part(self) -> str:
        return self.email.split("@", 1)[0]

    @property
    def state(self) -> AccountState:
        if self.suspended:
            return AccountState.SUSPENDED
        if not self.active:
            return AccountState.INACTIVE
        if not self.password_set_by_user:
            return AccountState.PASSWORD_PENDING
        return AccountState.ACTIVE

    @property
    def needs_initial_password(self) -> bool:
        return not self.password_set_by_user

    def __str__(self) -> str:
        return self.email
