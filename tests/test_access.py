"""
Tests for the task access policy.

The decisions are pure, so they are checked exhaustively over every role
and every ownership relation between requester and task.
"""

import itertools

import pytest

from taskdesk.auth.access import (
    can_delete,
    can_read,
    can_update,
    ensure_not_self,
    visibility_filter,
)
from taskdesk.auth.context import AuthContext
from taskdesk.core.errors import Forbidden
from taskdesk.core.models import Role, User
from taskdesk.storage.local import matches


ROLES = ["user", "manager", "admin", "unknown"]

# (creator, assignee) from the point of view of requester "me"
OWNERSHIP = [
    ("me", "me"),
    ("me", "other"),
    ("other", "me"),
    ("other", "other"),
]


CASES = list(itertools.product(ROLES, OWNERSHIP))


class TestDecisions:
    @pytest.mark.parametrize("role,owners", CASES)
    def test_read(self, role, owners):
        creator, assignee = owners
        expected = role in ("admin", "manager") or "me" in (creator, assignee)
        assert can_read(role, "me", creator, assignee) is expected

    @pytest.mark.parametrize("role,owners", CASES)
    def test_update(self, role, owners):
        creator, assignee = owners
        expected = role in ("admin", "manager") or creator == "me"
        assert can_update(role, "me", creator, assignee) is expected

    @pytest.mark.parametrize("role,owners", CASES)
    def test_delete(self, role, owners):
        creator, assignee = owners
        expected = role == "admin" or creator == "me"
        assert can_delete(role, "me", creator, assignee) is expected

    def test_manager_can_update_but_not_delete_others_tasks(self):
        assert can_update(Role.MANAGER, "m", "u1", "u1")
        assert not can_delete(Role.MANAGER, "m", "u1", "u1")

    def test_assignee_can_read_but_not_update(self):
        assert can_read(Role.USER, "me", "other", "me")
        assert not can_update(Role.USER, "me", "other", "me")


class TestVisibilityFilter:
    @pytest.mark.parametrize("role", [Role.ADMIN, Role.MANAGER])
    def test_privileged_roles_see_everything(self, role):
        assert visibility_filter(role, "me") == {}

    @pytest.mark.parametrize("role,owners", CASES)
    def test_filter_agrees_with_read_decision(self, role, owners):
        creator, assignee = owners
        doc = {"created_by": creator, "assigned_to": assignee}
        assert matches(doc, visibility_filter(role, "me")) is can_read(role, "me", creator, assignee)


class TestSelfProtection:
    def _admin(self):
        return AuthContext.for_user(User(
            identity="admin-1",
            email="admin@example.com",
            display_name="Admin",
            role=Role.ADMIN,
        ))

    def test_rejects_self(self):
        with pytest.raises(Forbidden) as exc:
            ensure_not_self(self._admin(), "admin-1", "delete")
        assert exc.value.reason == "self-modification"
        assert exc.value.message == "Cannot delete your own account"

    def test_allows_others(self):
        ensure_not_self(self._admin(), "someone-else", "delete")
