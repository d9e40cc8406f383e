"""
Authorization gate.

Runs after identity resolution and before any business logic:
1. no identity            -> AuthenticationError (401)
2. suspended              -> SuspendedError (403), whatever `active` says
3. inactive               -> InactiveError (403), client routes to reactivation
4. otherwise admit, carrying the role's permission set

Permission checks are a separate step so each operation names the
tokens it needs.
"""
from dataclasses import dataclass
from typing import FrozenSet, Optional, Union

from app.core.errors import (
    AuthenticationError,
    AuthorizationError,
    InactiveError,
    ServiceError,
    SuspendedError,
)
from app.models import Account, Session
from .permissions import PermissionRegistry, registry as default_registry
from .sessions import Identity


@dataclass(frozen=True)
class Actor:
    """An admitted caller: who they are and what they may do."""
    account: Account
    session: Session
    permissions: FrozenSet[str]

    def can(self, token: str) -> bool:
        return token in self.permissions


async def admit(
    identity: Optional[Identity], registry: PermissionRegistry = default_registry
) -> Union[Actor, ServiceError]:
    if identity is None or not identity.authenticated:
        return AuthenticationError()

    account = identity.account
    if account.suspended:
        return SuspendedError("Your account has been suspended. Please contact support.")
    if not account.active:
        return InactiveError(
            "Your account is inactive. Please reactivate your account to continue.",
            needs_reactivation=True,
            redirect_url="/reactivate",
        )

    permissions = await registry.permissions_for(account)
    return Actor(account=account, session=identity.session, permissions=permissions)


def check_permission(actor: Actor, *tokens: str) -> Optional[AuthorizationError]:
    """None when the actor holds any one of `tokens`."""
    if any(actor.can(token) for token in tokens):
        return None
    return AuthorizationError(required=list(tokens))
