"""
Request/response bodies for the HTTP API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from taskdesk.auth.permissions import permissions_for
from taskdesk.core.models import CamelModel, Pagination, Role, Task, User, UserProfile
from taskdesk.services.tasks import TaskStats


# =============================================================================
# Users
# =============================================================================


class UserResponse(CamelModel):
    """User data returned to clients, with the derived permission set."""

    identity: str
    email: str
    display_name: str
    role: Role
    is_active: bool
    last_login: datetime
    profile: UserProfile | None = None
    created_at: datetime
    updated_at: datetime
    permissions: list[str]

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls(
            **user.model_dump(),
            permissions=sorted(permissions_for(user.role)),
        )


class UserEnvelope(CamelModel):
    user: UserResponse


class UserMessage(CamelModel):
    message: str
    user: UserResponse


class UserList(CamelModel):
    users: list[UserResponse]
    pagination: Pagination


class ProfileUpdate(CamelModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=50)
    profile: UserProfile | None = None


class RoleUpdate(CamelModel):
    # Left untyped: self-targeting is refused before the value is checked
    role: Any = None


# =============================================================================
# Tasks
# =============================================================================


class TaskEnvelope(CamelModel):
    task: Task


class TaskMessage(CamelModel):
    message: str
    task: Task


class TaskList(CamelModel):
    tasks: list[Task]
    pagination: Pagination


class TaskStatsEnvelope(CamelModel):
    stats: TaskStats


# =============================================================================
# Misc
# =============================================================================


class Message(CamelModel):
    message: str
