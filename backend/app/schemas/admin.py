# app/schemas/admin.py
"""
Pydantic schemas for admin user management endpoints.
Defines request/response models for listing accounts and account state changes.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .auth import UserOut


# ========== Common return model ==========
class AdminUserOut(UserOut):
    """
    User model for admin endpoints.
    Adds the derived account state on top of the regular user view.
    """
    state: Literal["active", "inactive", "suspended", "password_pending"]


class AdminUserListOut(BaseModel):
    """
    Response model for paginated user list endpoint.
    Returns a list of users with pagination metadata.
    """
    items: List[AdminUserOut]  # List of user objects
    offset: int  # Pagination offset (number of items skipped)
    limit: int  # Maximum number of items per page
    total: int  # Total number of users matching the query


class AdminUserDetailOut(BaseModel):
    """Response model for single user endpoints (detail and every state change)."""
    success: bool = True
    message: Optional[str] = None
    user: AdminUserOut


class AdminStatsOut(BaseModel):
    total_accounts: int
    active_accounts: int
    inactive_accounts: int
    suspended_accounts: int
    pending_inactivation: int  # Active accounts the next sweep would deactivate
    dormancy_days: int
    threshold: datetime  # Last login before this instant counts as dormant
    by_role: dict[str, int]


# ========== Input model ==========
class SuspendRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)  # Written to the log only


class RoleUpdateRequest(BaseModel):
    role: str = Field(min_length=1, max_length=32)  # Role name, e.g. "volunteer"
