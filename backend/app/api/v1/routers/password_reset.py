# app/api/v1/routers/password_reset.py
from fastapi import APIRouter, Depends, status

from app.api.v1.deps import get_code_engine, get_session_manager, get_state_machine
from app.core.errors import NotFoundError, ServiceError, ValidationError, error_response
from app.models import CodePurpose
from app.schemas.codes import EmailRequest, ResetPasswordRequest
from app.services.account_state import AccountStateMachine
from app.services.sessions import SessionManager
from app.services.verification import VerificationCodeEngine, format_expiry

router = APIRouter(prefix="/password-reset", tags=["password-reset"])


@router.post("/send-code")
async def send_code(
    payload: EmailRequest,
    machine: AccountStateMachine = Depends(get_state_machine),
):
    """
    Email a password reset code.

    Failure responses:
        - 404 not_found: no account with this email
        - 400 rate_limited: daily request limit reached
    """
    result = await machine.send_password_reset_code(payload.email)
    if isinstance(result, ServiceError):
        return error_response(result)

    _, issued = result
    message = "Password reset code sent to your email address."
    if not issued.delivered:
        message = "A reset code was created but the email could not be sent. Please try again shortly."
    return {
        "success": True,
        "message": message,
        "expires_at": issued.expires_at.isoformat(),
        "expires_at_human": format_expiry(issued.expires_at),
        "remaining_attempts": issued.remaining_issues,
        "email_sent": issued.delivered,
    }


@router.post("/reset-password")
async def reset_password(
    payload: ResetPasswordRequest,
    machine: AccountStateMachine = Depends(get_state_machine),
):
    """
    Consume a reset code and store the new password.

    Every existing session of the account is ended; the client logs in again
    with the new password. All failures answer 422 with a machine-readable
    `reason` (validation, code_not_found, expired, attempts_exceeded,
    invalid_code with remaining_attempts, not_found).
    """
    result = await machine.reset_password(
        payload.email, payload.code, payload.password, payload.password_confirmation
    )
    if isinstance(result, ServiceError):
        if not isinstance(result, ValidationError):
            result = result.with_status(status.HTTP_422_UNPROCESSABLE_ENTITY)
        return error_response(result)
    return {
        "success": True,
        "message": "Your password has been reset successfully. Please log in with your new password.",
        "redirect_url": "/login",
    }


@router.post("/check-status")
async def check_status(
    payload: EmailRequest,
    sessions: SessionManager = Depends(get_session_manager),
    codes: VerificationCodeEngine = Depends(get_code_engine),
):
    """How many reset code requests the account has left today."""
    account = await sessions.find_account(payload.email)
    if account is None:
        return error_response(NotFoundError("User not found."))

    code_status = await codes.status(account, CodePurpose.PASSWORD_RESET)
    return {
        "success": True,
        "remaining_attempts": code_status.remaining_issues,
        "has_active_code": code_status.has_active_code,
    }
