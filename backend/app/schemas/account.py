# app/schemas/account.py
"""Pydantic schemas for self-service account endpoints."""
from pydantic import BaseModel


class ConfirmationRequest(BaseModel):
    """
    Typed confirmation phrase for destructive self-service actions:
    "deactivate-<local part of email>" or "delete-<local part of email>".
    """
    confirmation: str
