# app/models/session.py
"""
Database model for server-side sessions.
The signed token handed to the client only carries the session id; the row
decides whether the session is still alive.
"""
import uuid

from tortoise import fields, models


class Session(models.Model):
    """
    Session database model.

    - account: NULL for anonymous sessions, and set to NULL when the owning
      account is deleted
    - remember: remembered sessions keep a fixed expiry, others slide on use
    - payload: small JSON blob for client state (e.g. intended redirect)
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    account = fields.ForeignKeyField(
        "models.Account", related_name="sessions", null=True, on_delete=fields.SET_NULL
    )
    remember = fields.BooleanField(default=False)
    payload = fields.JSONField(default=dict)
    user_agent = fields.CharField(max_length=255, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    last_activity = fields.DatetimeField()
    expires_at = fields.DatetimeField(index=True)

    class Meta:
        table = "sessions"
