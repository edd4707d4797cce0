"""
Request-scoped access to the services created at startup.
"""

from __future__ import annotations

from fastapi import Request

from taskdesk.services.tasks import TaskDirectory
from taskdesk.services.users import UserDirectory


def get_users(request: Request) -> UserDirectory:
    return request.app.state.users


def get_tasks(request: Request) -> TaskDirectory:
    return request.app.state.tasks
