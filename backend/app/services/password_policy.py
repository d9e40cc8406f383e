"""Rules every user-chosen password must satisfy."""
from typing import Optional

from app.config import settings
from app.core.errors import ValidationError


def check_new_password(
    password: str,
    confirmation: Optional[str] = None,
    field: str = "password",
) -> Optional[ValidationError]:
    """Return a ValidationError describing what is wrong, or None."""
    problems = []
    if len(password or "") < settings.password_min_length:
        problems.append(f"Password must be at least {settings.password_min_length} characters long.")
    if confirmation is not None and confirmation != password:
        problems.append("Password confirmation does not match.")
    if problems:
        return ValidationError(errors={field: problems})
    return None
