"""
Auth context - the "who can do what" for each request.

This is the immutable value the guard produces and every downstream
check receives explicitly. Nothing is attached to shared request state.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from taskdesk.auth.permissions import Permission, permissions_for
from taskdesk.core.models import Role, User


@dataclass(frozen=True)
class AuthContext:
    """
    Authorization context for a request.

    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(authorize(require_role(Role.ADMIN)))):
            print(f"User {ctx.identity} is {ctx.role.value}")
            if ctx.can("update:all-tasks"):
                # do something
    """

    identity: str
    email: str
    display_name: str
    role: Role
    user: User = field(repr=False, compare=False)
    permissions: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def for_user(cls, user: User) -> AuthContext:
        """Build the context for a resolved user."""
        return cls(
            identity=user.identity,
            email=user.email,
            display_name=user.display_name,
            role=user.role,
            user=user,
            permissions=permissions_for(user.role),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_manager(self) -> bool:
        return self.role == Role.MANAGER

    def can(self, permission: Permission | str) -> bool:
        """Check if this context holds a permission."""
        if isinstance(permission, Permission):
            permission = permission.value
        return permission in self.permissions

    def has_role(self, *roles: Role | str) -> bool:
        return self.role in roles
