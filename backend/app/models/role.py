# app/models/role.py
"""
Database models for roles and permissions.
A Role is a named permission bundle; membership is an explicit
many-to-many table so every effective permission is its own row.
"""
from tortoise import fields, models


class Permission(models.Model):
    """Capability token, e.g. "admin_access". Immutable catalog, seeded once."""
    id = fields.IntField(pk=True)
    name = fields.CharField(max_length=64, unique=True, index=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "permissions"

    def __str__(self) -> str:
        return self.name


class Role(models.Model):
    """
    Role database model ("user", "volunteer", "admin").

    Relationships:
    - Has many Accounts (via Account.role)
    - Has many RolePermission rows (via related_name="grants")
    """
    id = fields.IntField(pk=True)
    name = fields.CharField(max_length=32, unique=True, index=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "roles"

    def __str__(self) -> str:
        return self.name


class RolePermission(models.Model):
    """Bridge row granting one permission to one role."""
    id = fields.IntField(pk=True)
    role = fields.ForeignKeyField("models.Role", related_name="grants", on_delete=fields.CASCADE)
    permission = fields.ForeignKeyField("models.Permission", related_name="grants", on_delete=fields.CASCADE)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "role_permissions"
        unique_together = (("role", "permission"),)
