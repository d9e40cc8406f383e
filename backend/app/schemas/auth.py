# app/schemas/auth.py
"""
Pydantic schemas for authentication endpoints.
Defines request/response models for login, registration and password changes.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr


class LoginRequest(BaseModel):
    """
    Request model for user login endpoint.
    Contains credentials for authentication.
    """
    email: EmailStr  # Matched case-insensitively
    password: str  # Plain text, verified against the stored argon2 hash
    remember: bool = False  # Long-lived session instead of a sliding one


class RegisterRequest(BaseModel):
    """Request model for account registration."""
    email: EmailStr
    password: str
    password_confirmation: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    password: str
    password_confirmation: str


class SetInitialPasswordRequest(BaseModel):
    """First password of an OAuth-provisioned account."""
    password: str
    password_confirmation: str


class UserOut(BaseModel):
    """
    User information model returned in authentication responses.
    Contains account state and permissions, never credentials.
    """
    id: int
    email: str
    role: Optional[str] = None  # Role name, None until a role is assigned
    permissions: List[str] = []  # Explicit grants of the role, sorted
    active: bool
    suspended: bool
    auth_provider: str  # "password" or "oauth"
    password_set_by_user: bool
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
