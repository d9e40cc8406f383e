"""
Role/permission registry.

Loads the explicit role -> permission rows once into a lookup table and answers
membership questions from it. There is no inheritance and no inference from
role names: a role has a permission only if a RolePermission row says so.
"""
import logging
from typing import Dict, FrozenSet, Optional

from app.models import Account, RolePermission

logger = logging.getLogger(__name__)


class PermissionRegistry:
    """Role id -> frozenset of permission tokens, loaded lazily and cached."""

    def __init__(self):
        self._table: Optional[Dict[int, FrozenSet[str]]] = None

    async def load(self) -> Dict[int, FrozenSet[str]]:
        if self._table is None:
            grouped: Dict[int, set] = {}
            rows = await RolePermission.all().prefetch_related("permission")
            for row in rows:
                grouped.setdefault(row.role_id, set()).add(row.permission.name)
            self._table = {role_id: frozenset(perms) for role_id, perms in grouped.items()}
            logger.info("Permission registry loaded: %d roles", len(self._table))
        return self._table

    def invalidate(self) -> None:
        """Forget the cached table (after seeding or editing role grants)."""
        self._table = None

    async def permissions_for_role(self, role_id: Optional[int]) -> FrozenSet[str]:
        if role_id is None:
            return frozenset()
        table = await self.load()
        return table.get(role_id, frozenset())

    async def permissions_for(self, account: Account) -> FrozenSet[str]:
        return await self.permissions_for_role(account.role_id)

    async def has_permission(self, account: Account, token: str) -> bool:
        """True iff `token` is an explicit grant of the account's role."""
        return token in await self.permissions_for(account)


registry = PermissionRegistry()
