"""
Core module - data models, error taxonomy and shared utilities.

This module contains:
- models: Users, Tasks and their enums
- errors: Classified failures surfaced to callers
- utils: Shared utility functions
"""

from taskdesk.core.models import (
    Pagination,
    Role,
    Task,
    TaskPriority,
    TaskStatus,
    User,
    UserProfile,
)
from taskdesk.core.errors import (
    Conflict,
    Forbidden,
    Internal,
    InvalidInput,
    InvalidReference,
    NotFound,
    TaskdeskError,
    Unauthenticated,
)
from taskdesk.core.utils import generate_id, utc_now

__all__ = [
    # Models
    "Pagination",
    "Role",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "User",
    "UserProfile",
    # Errors
    "Conflict",
    "Forbidden",
    "Internal",
    "InvalidInput",
    "InvalidReference",
    "NotFound",
    "TaskdeskError",
    "Unauthenticated",
    # Utils
    "generate_id",
    "utc_now",
]
