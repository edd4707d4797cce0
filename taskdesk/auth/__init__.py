"""
Authorization system.

Design principles:
1. Permissions are a pure function of role
2. Gates are independent predicates, composed explicitly per route
3. The resolved user travels as an explicit, immutable AuthContext
4. Task access decisions are pure functions of role and ownership
"""

from taskdesk.auth.context import AuthContext
from taskdesk.auth.permissions import (
    Permission,
    ROLE_PERMISSIONS,
    has_permission,
    permissions_for,
)
from taskdesk.auth.policies import (
    Gate,
    admin_only,
    authenticate,
    authorize,
    check_gates,
    manager_or_admin,
    require_authenticated,
    require_permission,
    require_role,
)
from taskdesk.auth.access import (
    can_delete,
    can_read,
    can_update,
    visibility_filter,
)
from taskdesk.auth.verifier import (
    IdentityVerifier,
    JWTIdentityVerifier,
    RevocationRegistry,
    VerifiedIdentity,
    issue_token,
)
from taskdesk.auth.guard import AuthorizationGuard

__all__ = [
    # Context
    "AuthContext",
    # Permissions
    "Permission",
    "ROLE_PERMISSIONS",
    "has_permission",
    "permissions_for",
    # Gates
    "Gate",
    "admin_only",
    "authenticate",
    "authorize",
    "check_gates",
    "manager_or_admin",
    "require_authenticated",
    "require_permission",
    "require_role",
    # Task access
    "can_delete",
    "can_read",
    "can_update",
    "visibility_filter",
    # Identity
    "IdentityVerifier",
    "JWTIdentityVerifier",
    "RevocationRegistry",
    "VerifiedIdentity",
    "issue_token",
    # Guard
    "AuthorizationGuard",
]
