# app/core/errors.py
"""
Business error taxonomy.

Services return these objects as part of their result (``Account | ServiceError``)
instead of raising them; request dependencies such as the authorization gate
raise them, and a single exception handler renders either path into the same
JSON body:

    {"success": false, "message": ..., "reason": ..., "errors"?: {...}, ...metadata}
"""
from typing import Any

from fastapi.responses import JSONResponse


class ServiceError(Exception):
    status_code: int = 400
    reason: str = "error"
    default_message: str = "Request failed."

    def __init__(
        self,
        message: str | None = None,
        *,
        reason: str | None = None,
        errors: dict[str, list[str]] | None = None,
        status_code: int | None = None,
        **meta: Any,
    ):
        self.message = message or self.default_message
        if reason is not None:
            self.reason = reason
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors
        self.meta = meta
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"success": False, "message": self.message, "reason": self.reason}
        if self.errors:
            body["errors"] = self.errors
        body.update(self.meta)
        return body

    def with_status(self, status_code: int) -> "ServiceError":
        """Same error, rendered with a different HTTP status for one endpoint."""
        self.status_code = status_code
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}(reason={self.reason!r}, message={self.message!r})"


class ValidationError(ServiceError):
    status_code = 422
    reason = "validation"
    default_message = "Validation failed"

    @classmethod
    def field(cls, name: str, message: str) -> "ValidationError":
        return cls(errors={name: [message]})


class AuthenticationError(ServiceError):
    status_code = 401
    reason = "unauthenticated"
    default_message = "Unauthenticated."


class InvalidCredentialsError(AuthenticationError):
    reason = "invalid_credentials"
    default_message = "Invalid credentials."


class AuthorizationError(ServiceError):
    status_code = 403
    reason = "forbidden"
    default_message = "You do not have permission to perform this action."


class SuspendedError(AuthorizationError):
    reason = "suspended"
    default_message = "Your account has been suspended."

    def __init__(self, message: str | None = None, **kwargs: Any):
        kwargs.setdefault("suspended", True)
        super().__init__(message, **kwargs)


class InactiveError(AuthorizationError):
    reason = "inactive"
    default_message = "Your account is inactive. Please reactivate to continue."

    def __init__(self, message: str | None = None, **kwargs: Any):
        kwargs.setdefault("active", False)
        super().__init__(message, **kwargs)


class NotFoundError(ServiceError):
    status_code = 404
    reason = "not_found"
    default_message = "Not found."


class StateError(ServiceError):
    """Transition requested from a state that does not allow it."""
    status_code = 400
    reason = "invalid_state"
    default_message = "This action is not allowed in the account's current state."


class RateLimitError(ServiceError):
    status_code = 400
    reason = "rate_limited"
    default_message = "Too many requests. Please try again later."


class CodeNotFoundError(NotFoundError):
    status_code = 400
    reason = "code_not_found"
    default_message = "Invalid or expired code. Please request a new one."


class ExpiredError(ServiceError):
    reason = "expired"
    default_message = "This code has expired. Please request a new one."


class AttemptsExceededError(ServiceError):
    reason = "attempts_exceeded"
    default_message = "Too many incorrect attempts. Please request a new code."

    def __init__(self, message: str | None = None, **kwargs: Any):
        kwargs.setdefault("remaining_attempts", 0)
        super().__init__(message, **kwargs)


class InvalidCodeError(ServiceError):
    reason = "invalid_code"
    default_message = "Invalid code."


def error_response(error: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_dict())
