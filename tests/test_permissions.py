"""
Tests for permission derivation and the role/permission gates.
"""

import pytest

from taskdesk.auth.context import AuthContext
from taskdesk.auth.permissions import Permission, has_permission, permissions_for
from taskdesk.auth.policies import (
    admin_only,
    check_gates,
    manager_or_admin,
    require_authenticated,
    require_permission,
    require_role,
)
from taskdesk.core.errors import Forbidden, Unauthenticated
from taskdesk.core.models import Role, User


def ctx_for(role: Role) -> AuthContext:
    return AuthContext.for_user(User(
        identity=f"{role.value}-1",
        email=f"{role.value}@example.com",
        display_name=role.value.title(),
        role=role,
    ))


# =============================================================================
# Permission derivation
# =============================================================================


class TestPermissionsFor:
    def test_user(self):
        assert permissions_for(Role.USER) == {"read:own-tasks", "create:tasks"}

    def test_manager(self):
        assert permissions_for(Role.MANAGER) == {
            "read:all-tasks",
            "create:tasks",
            "update:all-tasks",
        }

    def test_admin(self):
        assert permissions_for(Role.ADMIN) == {
            "read:all-tasks",
            "create:tasks",
            "update:all-tasks",
            "delete:all-tasks",
            "manage:users",
        }

    def test_accepts_plain_strings(self):
        assert permissions_for("manager") == permissions_for(Role.MANAGER)

    @pytest.mark.parametrize("role", ["", "root", "ADMIN", "superuser", None])
    def test_unknown_roles_get_nothing(self, role):
        assert permissions_for(role) == frozenset()

    def test_result_is_immutable(self):
        with pytest.raises(AttributeError):
            permissions_for(Role.USER).add("manage:users")

    def test_has_permission(self):
        assert has_permission(Role.ADMIN, Permission.MANAGE_USERS)
        assert not has_permission(Role.MANAGER, "delete:all-tasks")
        assert not has_permission("ghost", Permission.CREATE_TASKS)


class TestAuthContext:
    def test_context_carries_derived_permissions(self):
        ctx = ctx_for(Role.MANAGER)
        assert ctx.permissions == permissions_for(Role.MANAGER)
        assert ctx.can(Permission.UPDATE_ALL_TASKS)
        assert not ctx.can("manage:users")

    def test_role_helpers(self):
        admin = ctx_for(Role.ADMIN)
        assert admin.is_admin and not admin.is_manager
        assert ctx_for(Role.MANAGER).has_role(Role.MANAGER, Role.ADMIN)
        assert not ctx_for(Role.USER).has_role("manager", "admin")

    def test_context_is_frozen(self):
        ctx = ctx_for(Role.USER)
        with pytest.raises(AttributeError):
            ctx.role = Role.ADMIN


# =============================================================================
# Gates
# =============================================================================


class TestRoleGate:
    def test_allows_member_roles(self):
        gate = require_role(Role.MANAGER, Role.ADMIN)
        gate(ctx_for(Role.MANAGER))
        gate(ctx_for(Role.ADMIN))

    def test_rejects_other_roles(self):
        with pytest.raises(Forbidden) as exc:
            admin_only(ctx_for(Role.MANAGER))
        assert exc.value.reason == "role"
        assert "Required role: admin" in exc.value.message

    def test_missing_context_is_unauthenticated(self):
        with pytest.raises(Unauthenticated):
            manager_or_admin(None)


class TestPermissionGate:
    def test_allows_held_permission(self):
        require_permission("create:tasks")(ctx_for(Role.USER))

    def test_rejects_missing_permission(self):
        with pytest.raises(Forbidden) as exc:
            require_permission(Permission.MANAGE_USERS)(ctx_for(Role.MANAGER))
        assert exc.value.reason == "permission"

    def test_missing_context_is_unauthenticated(self):
        with pytest.raises(Unauthenticated):
            require_permission("create:tasks")(None)


class TestCheckGates:
    def test_returns_context_when_all_pass(self):
        ctx = ctx_for(Role.ADMIN)
        assert check_gates(ctx, admin_only, require_permission("manage:users")) is ctx

    def test_stops_at_first_failure(self):
        calls = []

        def spy(ctx):
            calls.append(ctx)

        with pytest.raises(Forbidden) as exc:
            check_gates(ctx_for(Role.USER), admin_only, spy)
        assert exc.value.reason == "role"
        assert calls == []

    def test_no_gates_still_requires_context(self):
        with pytest.raises(Unauthenticated):
            check_gates(None)
        with pytest.raises(Unauthenticated):
            check_gates(None, require_authenticated())
