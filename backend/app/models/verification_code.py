# app/models/verification_code.py
import datetime as dt
from enum import Enum

from tortoise import fields, models

from app.core.clock import as_utc


class CodePurpose(str, Enum):
    REACTIVATION = "reactivation"
    PASSWORD_RESET = "password_reset"


class VerificationCode(models.Model):
    """
    Ephemeral, purpose-scoped secret.
    - code_hash: sha256(exact code) 64-character hex, the plain code is never stored
    - active_key: "<account_id>:<purpose>" while this is the live code for the pair,
      NULL once consumed or superseded. UNIQUE, so the database refuses a second
      live code for the same pair.
    - attempts / max_attempts: verification ceiling for this code
    - superseded rows are kept: they still count toward the daily issuance cap
    """
    id = fields.IntField(pk=True)
    account: fields.ForeignKeyRelation["Account"] = fields.ForeignKeyField(  # noqa: F821
        "models.Account", related_name="verification_codes", on_delete=fields.CASCADE
    )
    purpose = fields.CharEnumField(CodePurpose, max_length=32)
    code_hash = fields.CharField(max_length=64)
    active_key = fields.CharField(max_length=64, null=True, unique=True)

    attempts = fields.IntField(default=0)
    max_attempts = fields.IntField(default=5)

    created_at = fields.DatetimeField()
    expires_at = fields.DatetimeField()
    consumed_at = fields.DatetimeField(null=True)
    superseded_at = fields.DatetimeField(null=True)

    class Meta:
        table = "verification_codes"

    @staticmethod
    def slot_key(account_id: int, purpose: CodePurpose) -> str:
        return f"{account_id}:{purpose.value}"

    @property
    def remaining_attempts(self) -> int:
        return max(0, self.max_attempts - self.attempts)

    def is_expired(self, now: dt.datetime) -> bool:
        return as_utc(self.expires_at) <= now

