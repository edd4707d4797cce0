"""
Gates - the clean interface for route authorization.

A gate is a plain predicate over an AuthContext that raises a classified
error when it does not hold. Gates are independent; routes compose them
explicitly:

    ctx: AuthContext = Depends(authorize(require_role(Role.ADMIN)))
    ctx: AuthContext = Depends(authorize(require_permission("create:tasks")))

`authorize()` first runs the Authorization Guard (token → active user),
then each gate in order, stopping at the first failure.
"""

from __future__ import annotations

from typing import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from taskdesk.auth.context import AuthContext
from taskdesk.auth.permissions import Permission
from taskdesk.core.errors import Forbidden, Unauthenticated
from taskdesk.core.models import Role
from taskdesk.integrations.sentry import set_user


Gate = Callable[[AuthContext | None], None]


# =============================================================================
# Gates
# =============================================================================


def _bound(ctx: AuthContext | None) -> AuthContext:
    if ctx is None:
        raise Unauthenticated("Authentication required.", reason="missing")
    return ctx


def require_authenticated() -> Gate:
    """Only require a bound user."""
    def gate(ctx: AuthContext | None) -> None:
        _bound(ctx)
    return gate


def require_role(*roles: Role | str) -> Gate:
    """Permit only if the bound user's role is one of `roles`."""
    allowed = [r.value if isinstance(r, Role) else str(r) for r in roles]

    def gate(ctx: AuthContext | None) -> None:
        ctx = _bound(ctx)
        if ctx.role.value not in allowed:
            raise Forbidden(
                f"Access denied. Required role: {' or '.join(allowed)}. "
                f"Your role: {ctx.role.value}",
                reason="role",
            )

    return gate


def require_permission(permission: Permission | str) -> Gate:
    """Permit only if the bound user's permission set contains `permission`."""
    required = permission.value if isinstance(permission, Permission) else permission

    def gate(ctx: AuthContext | None) -> None:
        ctx = _bound(ctx)
        if not ctx.can(required):
            raise Forbidden(
                f"Access denied. Required permission: {required}",
                reason="permission",
            )

    return gate


def check_gates(ctx: AuthContext | None, *gates: Gate) -> AuthContext:
    """Run gates in order; the first failure propagates."""
    for gate in gates:
        gate(ctx)
    return _bound(ctx)


admin_only = require_role(Role.ADMIN)
manager_or_admin = require_role(Role.MANAGER, Role.ADMIN)


# =============================================================================
# FastAPI dependencies
# =============================================================================


# Doesn't fail on a missing header; the guard classifies that itself
optional_bearer = HTTPBearer(auto_error=False)


async def authenticate(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
) -> AuthContext:
    """Resolve the bearer credential to an active user's context."""
    guard = request.app.state.guard
    token = credentials.credentials if credentials else None
    ctx = await guard.authenticate(token)
    set_user(ctx.identity, ctx.role.value)
    return ctx


def authorize(*gates: Gate) -> Callable:
    """
    Build a dependency that authenticates, then runs `gates`.

    Usage:
        @app.get("/users")
        async def list_users(ctx: AuthContext = Depends(authorize(admin_only))):
            ...
    """

    async def dependency(ctx: AuthContext = Depends(authenticate)) -> AuthContext:
        return check_gates(ctx, *gates)

    return dependency
