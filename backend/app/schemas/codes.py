# app/schemas/codes.py
"""
Pydantic schemas for the verification code flows (reactivation and password reset).
"""
from pydantic import BaseModel, EmailStr, Field

from app.config import settings


class EmailRequest(BaseModel):
    """Request model for send-code and check-status endpoints."""
    email: EmailStr


class VerifyCodeRequest(BaseModel):
    email: EmailStr
    code: str = Field(min_length=settings.code_length, max_length=settings.code_length)


class ResetPasswordRequest(BaseModel):
    """
    Request model for consuming a password reset code.
    The new password is checked before the code, so a typo in the
    password does not spend one of the code's attempts.
    """
    email: EmailStr
    code: str = Field(min_length=settings.code_length, max_length=settings.code_length)
    password: str
    password_confirmation: str
