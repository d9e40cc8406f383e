# app/api/v1/routers/auth.py
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status

from app.api.v1.deps import (
    clear_session_cookie,
    get_session_manager,
    get_session_token,
    get_state_machine,
    present_user,
    probe_identity,
    require_active_actor,
    require_permission,
    set_session_cookie,
)
from app.core.errors import ServiceError, error_response
from app.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    SetInitialPasswordRequest,
)
from app.services.account_state import AccountStateMachine
from app.services.gate import Actor
from app.services.sessions import Identity, SessionManager

router = APIRouter(prefix="/auth", tags=["auth"])

DASHBOARD_URL = "/dashboard"
SET_PASSWORD_URL = "/set-password"


def _landing_url(account) -> str:
    """OAuth accounts without a password of their own are sent to set one first."""
    return SET_PASSWORD_URL if account.needs_initial_password else DASHBOARD_URL


@router.post("/login")
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    sessions: SessionManager = Depends(get_session_manager),
):
    """
    Authenticate an account and open a session.

    The session token is returned in the body (for Bearer clients) and set as
    an HttpOnly cookie (for the browser).

    Returns:
        dict: success, user (see UserOut), token, redirect_url

    Failure responses:
        - 401 invalid_credentials: unknown email or wrong password (never says which)
        - 403 suspended: account suspended
        - 403 inactive: credentials are right but the account is inactive;
          body carries needs_reactivation=true and redirect_url="/reactivate",
          and no session is created
        - 422 validation: malformed body
    """
    result = await sessions.login(
        payload.email,
        payload.password,
        remember=payload.remember,
        user_agent=request.headers.get("user-agent"),
    )
    if isinstance(result, ServiceError):
        return error_response(result)

    set_session_cookie(response, result.token, payload.remember)
    return {
        "success": True,
        "message": "Login successful.",
        "user": await present_user(result.account),
        "token": result.token,
        "redirect_url": _landing_url(result.account),
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    sessions: SessionManager = Depends(get_session_manager),
):
    """
    Create a password account with the default "user" role and log it in.

    Failure responses:
        - 422 validation: duplicate email (field "email"), short password or
          mismatched confirmation (field "password")
    """
    account = await sessions.register(payload.email, payload.password, payload.password_confirmation)
    if isinstance(account, ServiceError):
        return error_response(account)

    _, token = await sessions.start_session(account, user_agent=request.headers.get("user-agent"))
    set_session_cookie(response, token, remember=False)
    return {
        "success": True,
        "message": "Registration successful.",
        "user": await present_user(account),
        "token": token,
        "redirect_url": DASHBOARD_URL,
    }


@router.post("/logout")
async def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    sessions: SessionManager = Depends(get_session_manager),
):
    """
    Destroy the current session server-side and clear the cookie.
    Always succeeds, also without a session or when called twice.
    """
    await sessions.logout(token)
    clear_session_cookie(response)
    return {"success": True, "message": "Logged out successfully."}


@router.get("/check")
async def check(identity: Optional[Identity] = Depends(probe_identity)):
    """
    Non-mutating session probe used by the client to rehydrate on load.
    The user view carries the active/suspended flags so the client can route.
    """
    if identity is None or not identity.authenticated:
        return {"authenticated": False}
    return {"authenticated": True, "user": await present_user(identity.account)}


@router.post("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    actor: Actor = Depends(require_permission("change_password")),
    machine: AccountStateMachine = Depends(get_state_machine),
):
    """
    Change the caller's password (current password required, new one must differ).

    Failure responses:
        - 422 validation: wrong current password (field "current_password"),
          or new password problems (field "password")
    """
    result = await machine.change_password(
        actor.account, payload.current_password, payload.password, payload.password_confirmation
    )
    if isinstance(result, ServiceError):
        return error_response(result)
    return {"success": True, "message": "Password changed successfully."}


@router.post("/set-initial-password")
async def set_initial_password(
    payload: SetInitialPasswordRequest,
    actor: Actor = Depends(require_active_actor),
    machine: AccountStateMachine = Depends(get_state_machine),
):
    """
    One-time password setup for OAuth-provisioned accounts.

    Failure responses:
        - 400 password_already_set: the account already chose a password
        - 422 validation: password too short or confirmation mismatch
    """
    result = await machine.set_initial_password(actor.account, payload.password, payload.password_confirmation)
    if isinstance(result, ServiceError):
        return error_response(result)
    return {
        "success": True,
        "message": "Password set successfully.",
        "user": await present_user(result),
        "redirect_url": DASHBOARD_URL,
    }
