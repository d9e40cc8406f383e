# app/api/v1/routers/reactivation.py
from fastapi import APIRouter, Depends, Request, Response

from app.api.v1.deps import (
    get_code_engine,
    get_session_manager,
    get_state_machine,
    present_user,
    set_session_cookie,
)
from app.core.errors import NotFoundError, ServiceError, error_response
from app.models import CodePurpose
from app.schemas.codes import EmailRequest, VerifyCodeRequest
from app.services.account_state import AccountStateMachine
from app.services.sessions import SessionManager
from app.services.verification import VerificationCodeEngine, format_expiry

router = APIRouter(prefix="/reactivation", tags=["reactivation"])


@router.post("/send-code")
async def send_code(
    payload: EmailRequest,
    machine: AccountStateMachine = Depends(get_state_machine),
):
    """
    Email a reactivation code to an inactive account.

    Returns:
        dict: success, message, expires_at, remaining_attempts (code requests
        left today), email_sent (false when the mail provider failed; the
        code is valid anyway)

    Failure responses:
        - 404 not_found: no account with this email
        - 400 already_active / 403 suspended: nothing to reactivate
        - 400 rate_limited: daily request limit reached
    """
    result = await machine.send_reactivation_code(payload.email)
    if isinstance(result, ServiceError):
        return error_response(result)

    _, issued = result
    message = "Reactivation code sent to your email address."
    if not issued.delivered:
        message = "A reactivation code was created but the email could not be sent. Please try again shortly."
    return {
        "success": True,
        "message": message,
        "expires_at": issued.expires_at.isoformat(),
        "expires_at_human": format_expiry(issued.expires_at),
        "remaining_attempts": issued.remaining_issues,
        "email_sent": issued.delivered,
    }


@router.post("/verify-code")
async def verify_code(
    payload: VerifyCodeRequest,
    request: Request,
    response: Response,
    machine: AccountStateMachine = Depends(get_state_machine),
    sessions: SessionManager = Depends(get_session_manager),
):
    """
    Consume a reactivation code, reactivate the account and log it in.

    Failure responses (all 400 unless noted):
        - code_not_found: no live code (never sent, consumed or replaced)
        - expired: the code's lifetime has passed
        - attempts_exceeded: too many wrong guesses, request a new code
        - invalid_code: wrong code, body carries remaining_attempts
        - 404 not_found / already_active / 403 suspended
        - 422 validation: malformed email or code
    """
    account = await machine.reactivate(payload.email, payload.code)
    if isinstance(account, ServiceError):
        return error_response(account)

    _, token = await sessions.start_session(account, user_agent=request.headers.get("user-agent"))
    set_session_cookie(response, token, remember=False)
    return {
        "success": True,
        "message": "Your account has been reactivated successfully.",
        "user": await present_user(account),
        "token": token,
        "redirect_url": "/dashboard",
    }


@router.post("/check-status")
async def check_status(
    payload: EmailRequest,
    sessions: SessionManager = Depends(get_session_manager),
    codes: VerificationCodeEngine = Depends(get_code_engine),
):
    """Whether the account can use the reactivation flow, and how many code requests are left today."""
    account = await sessions.find_account(payload.email)
    if account is None:
        return error_response(NotFoundError("User not found."))

    code_status = await codes.status(account, CodePurpose.REACTIVATION)
    return {
        "success": True,
        "user_status": {
            "active": account.active,
            "suspended": account.suspended,
            "can_reactivate": not account.active and not account.suspended,
            "remaining_attempts": code_status.remaining_issues,
        },
    }
