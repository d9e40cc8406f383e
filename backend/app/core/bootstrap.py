# app/core/bootstrap.py
"""
Bootstrap module for application initialization.
Seeds the role/permission catalog and creates the default admin account on first startup.
"""
import os
import logging

from tortoise.transactions import in_transaction

from app.core.security import hash_password
from app.models import Account, AuthProvider, Permission, Role, RolePermission
from app.services.permissions import registry

logger = logging.getLogger("uvicorn.error")

PERMISSIONS = [
    # Profile
    "view_profile",
    "edit_profile",
    "change_password",
    # Events
    "view_events",
    "create_events",
    "edit_events",
    "delete_events",
    # Venues
    "view_venues",
    "create_venues",
    "edit_venues",
    "delete_venues",
    "rate_venues",
    # Volunteers
    "apply_volunteer",
    "is_volunteer",
    "view_volunteer_applications",
    "approve_volunteer_applications",
    "manage_volunteers",
    "manage_availability",
    # Administration
    "admin_access",
    "manage_users",
    "manage_roles",
    "manage_permissions",
    "view_logs",
    "system_settings",
]

_USER_PERMISSIONS = [
    "view_profile",
    "edit_profile",
    "change_password",
    "view_events",
    "create_venues",
    "edit_venues",
    "view_venues",
    "rate_venues",
    "apply_volunteer",
]

# Every grant is listed explicitly; roles never inherit from each other
ROLE_PERMISSIONS: dict[str, list[str]] = {
    "user": _USER_PERMISSIONS,
    "volunteer": _USER_PERMISSIONS + [
        "is_volunteer",
        "view_volunteer_applications",
        "manage_availability",
    ],
    "admin": [
        "view_profile",
        "edit_profile",
        "change_password",
        "view_events",
        "view_venues",
        "rate_venues",
        "admin_access",
        "manage_users",
        "manage_roles",
        "manage_permissions",
        "create_events",
        "edit_events",
        "delete_events",
        "create_venues",
        "edit_venues",
        "delete_venues",
        "view_volunteer_applications",
        "approve_volunteer_applications",
        "manage_volunteers",
        "view_logs",
        "system_settings",
    ],
}


async def seed_roles_and_permissions() -> None:
    """
    Create missing roles, permissions and role/permission rows.
    Safe to run on every startup: existing rows are left alone.
    """
    created = 0
    async with in_transaction() as conn:
        permissions = {}
        for name in PERMISSIONS:
            permissions[name], was_created = await Permission.get_or_create(name=name, using_db=conn)
            created += was_created

        for role_name, grants in ROLE_PERMISSIONS.items():
            role, was_created = await Role.get_or_create(name=role_name, using_db=conn)
            created += was_created
            for perm_name in grants:
                _, was_created = await RolePermission.get_or_create(
                    role=role, permission=permissions[perm_name], using_db=conn
                )
                created += was_created

    # Drop whatever the registry cached before the catalog existed
    registry.invalidate()
    if created:
        logger.info("[bootstrap] Seeded role/permission catalog -> %d new rows", created)


async def ensure_default_admin() -> None:
    """
    If no admin exists in the database, create a default admin based on environment variables.
    Only takes effect under the following conditions:
      - Currently no account with role "admin"
      - And ADMIN_PASSWORD is set (to avoid using default weak password)
    Environment variables:
      ADMIN_EMAIL    (default: "admin@example.com")
      ADMIN_PASSWORD (required, otherwise won't create)
    """
    admin_role = await Role.get_or_none(name="admin")
    if admin_role is None:
        logger.warning("[bootstrap] Role 'admin' missing -> seed the catalog before creating the admin.")
        return

    if await Account.filter(role=admin_role).exists():
        return

    admin_password = os.getenv("ADMIN_PASSWORD")
    if not admin_password:
        logger.warning("[bootstrap] No admin present, but ADMIN_PASSWORD not set -> skip creating default admin.")
        return

    admin_email = Account.normalize_email(os.getenv("ADMIN_EMAIL", "admin@example.com"))

    # An ordinary account may already use the address; promote it instead of colliding
    account = await Account.get_or_none(email=admin_email)
    if account:
        account.role = admin_role
        await account.save(update_fields=["role_id", "updated_at"])
        logger.warning("[bootstrap] Promoted existing account to admin -> email=%s id=%s", account.email, account.id)
        return

    account = await Account.create(
        email=admin_email,
        password_hash=hash_password(admin_password),
        auth_provider=AuthProvider.PASSWORD,
        password_set_by_user=True,
        role=admin_role,
    )
    logger.warning("[bootstrap] Created default admin -> email=%s id=%s", account.email, account.id)
