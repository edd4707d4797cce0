"""
Resource access policy for tasks and administrative user operations.

The `can_*` functions are pure decisions over (role, requester identity,
creator, assignee). The `ensure_*` helpers apply them to an AuthContext
and raise `Forbidden` on denial.

Managers may update any task but may not delete one they did not create.
"""

from __future__ import annotations

from typing import Any

from taskdesk.auth.context import AuthContext
from taskdesk.core.errors import Forbidden
from taskdesk.core.models import Role, Task


_SEE_ALL = frozenset({Role.ADMIN.value, Role.MANAGER.value})


def _role_value(role: Role | str) -> str:
    return role.value if isinstance(role, Role) else str(role)


# =============================================================================
# Decisions
# =============================================================================


def sees_all_tasks(role: Role | str) -> bool:
    return _role_value(role) in _SEE_ALL


def visibility_filter(role: Role | str, identity: str) -> dict[str, Any]:
    """Store filter restricting a listing to the tasks `identity` may see."""
    if sees_all_tasks(role):
        return {}
    return {"$or": [{"created_by": identity}, {"assigned_to": identity}]}


def can_read(role: Role | str, identity: str, creator: str, assignee: str) -> bool:
    return sees_all_tasks(role) or identity in (creator, assignee)


def can_update(role: Role | str, identity: str, creator: str, assignee: str) -> bool:
    return sees_all_tasks(role) or identity == creator


def can_delete(role: Role | str, identity: str, creator: str, assignee: str) -> bool:
    return _role_value(role) == Role.ADMIN.value or identity == creator


# =============================================================================
# Enforcement
# =============================================================================


def ensure_can_read(ctx: AuthContext, task: Task) -> None:
    if not can_read(ctx.role, ctx.identity, task.created_by, task.assigned_to):
        raise Forbidden("Access denied. You can only view your own tasks.")


def ensure_can_update(ctx: AuthContext, task: Task) -> None:
    if not can_update(ctx.role, ctx.identity, task.created_by, task.assigned_to):
        raise Forbidden("Access denied. You can only update tasks you created.")


def ensure_can_delete(ctx: AuthContext, task: Task) -> None:
    if not can_delete(ctx.role, ctx.identity, task.created_by, task.assigned_to):
        raise Forbidden("Access denied. Only admins or task creators can delete tasks.")


def ensure_not_self(ctx: AuthContext, target_identity: str, action: str) -> None:
    """Administrators can never apply user-management actions to themselves."""
    if target_identity == ctx.identity:
        raise Forbidden(f"Cannot {action} your own account", reason="self-modification")
