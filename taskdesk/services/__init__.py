"""
Directory services.

Services own reads and writes of one kind of record and enforce the
access rules that go with it.
"""

from taskdesk.services.users import RecentUser, UserDirectory, UserStats
from taskdesk.services.tasks import (
    TaskCreate,
    TaskDirectory,
    TaskQuery,
    TaskStats,
    TaskUpdate,
)

__all__ = [
    "RecentUser",
    "UserDirectory",
    "UserStats",
    "TaskCreate",
    "TaskDirectory",
    "TaskQuery",
    "TaskStats",
    "TaskUpdate",
]
