# app/api/v1/routers/account.py
from fastapi import APIRouter, Depends, Response

from app.api.v1.deps import clear_session_cookie, get_state_machine, require_active_actor
from app.core.errors import ServiceError, error_response
from app.schemas.account import ConfirmationRequest
from app.services.account_state import AccountStateMachine
from app.services.gate import Actor

router = APIRouter(prefix="/user", tags=["user"])


@router.post("/deactivate")
async def deactivate(
    payload: ConfirmationRequest,
    response: Response,
    actor: Actor = Depends(require_active_actor),
    machine: AccountStateMachine = Depends(get_state_machine),
):
    """
    Self-service deactivation.

    The caller must type "deactivate-<local part of their email>". On success
    every session of the account ends; the account comes back only through
    the reactivation flow.

    Failure responses:
        - 422 validation: confirmation phrase does not match (field "confirmation")
    """
    result = await machine.deactivate_self(actor.account, payload.confirmation)
    if isinstance(result, ServiceError):
        return error_response(result)

    clear_session_cookie(response)
    return {
        "success": True,
        "message": "Your account has been deactivated. You can reactivate it at any time.",
        "redirect_url": "/",
    }


@router.delete("/delete")
async def delete_account(
    payload: ConfirmationRequest,
    response: Response,
    actor: Actor = Depends(require_active_actor),
    machine: AccountStateMachine = Depends(get_state_machine),
):
    """
    Permanently delete the caller's account ("delete-<local part>" confirmation).
    Verification codes go with it; sessions are destroyed first.
    """
    result = await machine.delete_self(actor.account, payload.confirmation)
    if isinstance(result, ServiceError):
        return error_response(result)

    clear_session_cookie(response)
    return {
        "success": True,
        "message": "Your account has been permanently deleted.",
        "redirect_url": "/",
    }
