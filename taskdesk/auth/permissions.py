"""
Roles and the permissions they grant.

This defines WHAT users can do, not HOW we check it.
The actual checking happens in policies.py and access.py.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from taskdesk.core.models import Role


class Permission(str, Enum):
    """
    Fine-grained capabilities.

    A user's permissions are derived from their role and never stored.
    """

    READ_OWN_TASKS = "read:own-tasks"
    READ_ALL_TASKS = "read:all-tasks"
    CREATE_TASKS = "create:tasks"
    UPDATE_ALL_TASKS = "update:all-tasks"
    DELETE_ALL_TASKS = "delete:all-tasks"
    MANAGE_USERS = "manage:users"


# =============================================================================
# Role Mapping
# =============================================================================


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.USER: frozenset({
        Permission.READ_OWN_TASKS,
        Permission.CREATE_TASKS,
    }),
    Role.MANAGER: frozenset({
        Permission.READ_ALL_TASKS,
        Permission.CREATE_TASKS,
        Permission.UPDATE_ALL_TASKS,
    }),
    Role.ADMIN: frozenset({
        Permission.READ_ALL_TASKS,
        Permission.CREATE_TASKS,
        Permission.UPDATE_ALL_TASKS,
        Permission.DELETE_ALL_TASKS,
        Permission.MANAGE_USERS,
    }),
}


@lru_cache
def permissions_for(role: Role | str | None) -> frozenset[str]:
    """
    Permission strings granted by a role.

    Unknown roles get nothing.
    """
    try:
        resolved = Role(role)
    except ValueError:
        return frozenset()
    return frozenset(p.value for p in ROLE_PERMISSIONS[resolved])


def has_permission(role: Role | str | None, permission: Permission | str) -> bool:
    """Check if a role grants a specific permission."""
    if isinstance(permission, Permission):
        permission = permission.value
    return permission in permissions_for(role)
