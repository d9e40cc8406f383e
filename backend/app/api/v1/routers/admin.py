# app/api/v1/routers/admin.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from tortoise.expressions import Q

from app.api.v1.deps import (
    get_inactivity_sweep,
    get_state_machine,
    present_user,
    require_permission,
)
from app.core.errors import NotFoundError, ServiceError, error_response
from app.models import Account, Role
from app.schemas.admin import (
    AdminStatsOut,
    AdminUserDetailOut,
    AdminUserListOut,
    AdminUserOut,
    RoleUpdateRequest,
    SuspendRequest,
)
from app.services.account_state import AccountStateMachine
from app.services.gate import Actor
from app.services.inactivity import InactivitySweep

router = APIRouter(prefix="/admin", tags=["admin"])

# Reading the user list is open to any admin; changing accounts needs manage_users
can_view_users = require_permission("manage_users", "admin_access")
can_manage_users = require_permission("manage_users")

STATUS_FILTERS = {
    "active": Q(active=True, suspended=False),
    "inactive": Q(active=False, suspended=False),
    "suspended": Q(suspended=True),
    "password_pending": Q(active=True, suspended=False, password_set_by_user=False),
}


# ==============================================================================
# I. User Management Interface
#     Prefix: /api/v1/admin/users
# ==============================================================================
async def _admin_view(account: Account) -> AdminUserOut:
    """
    Convert an Account into the admin view (user view plus derived state).
    """
    user = await present_user(account)
    return AdminUserOut(**user.model_dump(), state=account.state.value)


async def _get_account(user_id: int) -> Optional[Account]:
    return await Account.get_or_none(id=user_id)


@router.get("/users", response_model=AdminUserListOut)
async def list_users(
    q: str | None = Query(default=None, description="Fuzzy search by email"),
    status: str | None = Query(default=None, pattern="^(active|inactive|suspended|password_pending)$"),
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(can_view_users),
):
    """
    Get paginated list of accounts (admin only).

    Results are ordered by creation date (newest first).

    Args:
        q: Optional search query for fuzzy matching email
        status: Optional account state filter
        offset: Number of items to skip (for pagination)
        limit: Maximum number of items to return (1-100)
    """
    qs = Account.all().order_by("-created_at", "-id")
    if q:
        qs = qs.filter(email__icontains=q)
    if status:
        qs = qs.filter(STATUS_FILTERS[status])

    total = await qs.count()
    rows = await qs.offset(offset).limit(limit)
    items = [await _admin_view(a) for a in rows]
    return {"items": items, "offset": offset, "limit": limit, "total": total}


@router.get("/users/stats", response_model=AdminStatsOut)
async def user_stats(
    actor: Actor = Depends(can_view_users),
    sweep: InactivitySweep = Depends(get_inactivity_sweep),
):
    """
    Account counts by state and role, plus what the next dormancy sweep would do.
    """
    stats = await sweep.stats()
    by_role = {}
    for role in await Role.all().order_by("id"):
        by_role[role.name] = await Account.filter(role_id=role.id).count()
    return {
        "total_accounts": stats.total_accounts,
        "active_accounts": stats.active_accounts,
        "inactive_accounts": stats.inactive_accounts,
        "suspended_accounts": stats.suspended_accounts,
        "pending_inactivation": stats.pending_inactivation,
        "dormancy_days": stats.dormancy_days,
        "threshold": stats.threshold,
        "by_role": by_role,
    }


@router.get("/users/{user_id}", response_model=AdminUserDetailOut)
async def get_user_detail(user_id: int, actor: Actor = Depends(can_view_users)):
    """
    Get the status of a specific account (admin only).

    Raises:
        404 not_found: no such account
    """
    account = await _get_account(user_id)
    if account is None:
        return error_response(NotFoundError("User not found."))
    return {"user": await _admin_view(account)}


@router.post("/users/{user_id}/suspend", response_model=AdminUserDetailOut)
async def suspend_user(
    user_id: int,
    body: SuspendRequest | None = None,
    actor: Actor = Depends(can_manage_users),
    machine: AccountStateMachine = Depends(get_state_machine),
):
    """
    Suspend an account. Its sessions end immediately and every later request
    is refused with 403 suspended, whatever its `active` flag says.
    """
    account = await _get_account(user_id)
    if account is None:
        return error_response(NotFoundError("User not found."))

    result = await machine.suspend(account, actor.account, reason=body.reason if body else None)
    if isinstance(result, ServiceError):
        return error_response(result)
    return {"message": "User suspended successfully.", "user": await _admin_view(result)}


@router.post("/users/{user_id}/unsuspend", response_model=AdminUserDetailOut)
async def unsuspend_user(
    user_id: int,
    actor: Actor = Depends(can_manage_users),
    machine: AccountStateMachine = Depends(get_state_machine),
):
    """
    Lift a suspension. `active` keeps the value it had, so an account that was
    inactive before stays inactive and must still reactivate.
    """
    account = await _get_account(user_id)
    if account is None:
        return error_response(NotFoundError("User not found."))

    result = await machine.unsuspend(account, actor.account)
    if isinstance(result, ServiceError):
        return error_response(result)
    return {"message": "User unsuspended successfully.", "user": await _admin_view(result)}


@router.post("/users/{user_id}/deactivate", response_model=AdminUserDetailOut)
async def deactivate_user(
    user_id: int,
    actor: Actor = Depends(can_manage_users),
    machine: AccountStateMachine = Depends(get_state_machine),
):
    account = await _get_account(user_id)
    if account is None:
        return error_response(NotFoundError("User not found."))

    result = await machine.deactivate(account, actor.account)
    if isinstance(result, ServiceError):
        return error_response(result)
    return {"message": "User deactivated successfully.", "user": await _admin_view(result)}


@router.put("/users/{user_id}/role", response_model=AdminUserDetailOut)
async def update_role(
    user_id: int,
    body: RoleUpdateRequest,
    actor: Actor = Depends(can_manage_users),
    machine: AccountStateMachine = Depends(get_state_machine),
):
    """
    Assign a different role.

    Failure responses:
        - 422 validation: unknown role name (field "role")
        - 400 invalid_state: changing your own role
        - 400 last_admin: demoting the only admin
    """
    account = await _get_account(user_id)
    if account is None:
        return error_response(NotFoundError("User not found."))

    result = await machine.change_role(account, body.role, actor.account)
    if isinstance(result, ServiceError):
        return error_response(result)
    return {"message": "User role updated successfully.", "user": await _admin_view(result)}
