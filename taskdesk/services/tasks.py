"""
Task Directory.

CRUD over task records with every read and write scoped by the
resource access policy. Listing and statistics push the visibility
filter down to the document store; a caller's own filters and search
are AND-ed with it, so they can narrow but never widen what is visible.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from taskdesk.auth import access
from taskdesk.auth.context import AuthContext
from taskdesk.core.errors import InvalidReference, NotFound
from taskdesk.core.models import CamelModel, Pagination, Task, TaskPriority, TaskStatus
from taskdesk.core.utils import page_offset, utc_now
from taskdesk.services.base import build
from taskdesk.services.users import UserDirectory
from taskdesk.storage.base import ASCENDING, DESCENDING, Collections, MetadataStorage

logger = logging.getLogger(__name__)


SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "dueDate": "due_date",
    "priority": "priority",
    "title": "title",
    "status": "status",
}


# =============================================================================
# Inputs / Outputs
# =============================================================================


class TaskCreate(CamelModel):
    title: str = Field(max_length=100)
    description: str = Field(max_length=1000)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    assigned_to: str | None = None
    tags: list[str] = Field(default_factory=list)


class TaskUpdate(CamelModel):
    """Writable task fields. The creator is not among them."""

    title: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    assigned_to: str | None = None
    tags: list[str] | None = None
    is_archived: bool | None = None


class TaskQuery(CamelModel):
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assigned_to: str | None = None
    search: str | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort_by: Literal["createdAt", "updatedAt", "dueDate", "priority", "title", "status"] = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"


class TaskStats(CamelModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    high_priority: int = 0
    overdue: int = 0


# =============================================================================
# Directory
# =============================================================================


class TaskDirectory:
    """All reads and writes of Task records go through here."""

    def __init__(self, storage: MetadataStorage, users: UserDirectory):
        self.storage = storage
        self.users = users

    async def create(self, ctx: AuthContext, data: TaskCreate) -> Task:
        assignee = data.assigned_to or ctx.identity
        if assignee != ctx.identity:
            await self._ensure_assignee_exists(assignee)

        task = build(Task, {
            "title": data.title,
            "description": data.description,
            "status": data.status or TaskStatus.PENDING,
            "priority": data.priority or TaskPriority.MEDIUM,
            "due_date": data.due_date,
            "created_by": ctx.identity,
            "assigned_to": assignee,
            "tags": data.tags,
        })

        await self._save(task)
        logger.info(f"{ctx.identity} created task {task.id}")
        return task

    async def list_tasks(self, ctx: AuthContext, query: TaskQuery) -> tuple[list[Task], Pagination]:
        filters = self._scope(ctx)

        if query.status:
            filters["status"] = query.status
        if query.priority:
            filters["priority"] = query.priority
        if query.assigned_to:
            filters["assigned_to"] = query.assigned_to
        if query.search:
            pattern = {"$regex": re.escape(query.search), "$options": "i"}
            filters.setdefault("$and", []).append({
                "$or": [{"title": pattern}, {"description": pattern}, {"tags": pattern}],
            })

        direction = DESCENDING if query.sort_order == "desc" else ASCENDING
        docs = await self.storage.query(
            Collections.TASKS,
            filters,
            limit=query.limit,
            offset=page_offset(query.page, query.limit),
            sort=[(SORT_FIELDS[query.sort_by], direction)],
        )
        total = await self.storage.count(Collections.TASKS, filters)

        tasks = [Task.model_validate(d) for d in docs]
        return tasks, Pagination.build(query.page, query.limit, total, len(tasks))

    async def get(self, ctx: AuthContext, task_id: str) -> Task:
        task = await self._require(task_id)
        access.ensure_can_read(ctx, task)
        return task

    async def update(self, ctx: AuthContext, task_id: str, data: TaskUpdate) -> Task:
        task = await self._require(task_id)
        access.ensure_can_update(ctx, task)

        updates = data.model_dump(exclude_unset=True)
        if "assigned_to" in updates and updates["assigned_to"] != task.assigned_to:
            await self._ensure_assignee_exists(updates["assigned_to"])

        # Revalidate the whole record so partial updates keep the invariants
        task = build(Task, {
            **task.model_dump(),
            **updates,
            "id": task.id,
            "created_by": task.created_by,
            "updated_at": utc_now(),
        })

        await self._save(task)
        logger.info(f"{ctx.identity} updated task {task.id}: {sorted(updates)}")
        return task

    async def delete(self, ctx: AuthContext, task_id: str) -> None:
        task = await self._require(task_id)
        access.ensure_can_delete(ctx, task)

        await self.storage.delete(Collections.TASKS, task.id)
        logger.info(f"{ctx.identity} deleted task {task.id}")

    async def stats(self, ctx: AuthContext) -> TaskStats:
        scope = self._scope(ctx)

        async def count(extra: dict[str, Any] | None = None) -> int:
            return await self.storage.count(Collections.TASKS, {**scope, **(extra or {})})

        return TaskStats(
            total=await count(),
            pending=await count({"status": TaskStatus.PENDING}),
            in_progress=await count({"status": TaskStatus.IN_PROGRESS}),
            completed=await count({"status": TaskStatus.COMPLETED}),
            high_priority=await count({"priority": TaskPriority.HIGH}),
            overdue=await count({
                "due_date": {"$ne": None, "$lt": utc_now()},
                "status": {"$ne": TaskStatus.COMPLETED},
            }),
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _scope(self, ctx: AuthContext) -> dict[str, Any]:
        """Non-archived tasks visible to the caller."""
        return {"is_archived": False, **access.visibility_filter(ctx.role, ctx.identity)}

    async def _require(self, task_id: str) -> Task:
        doc = await self.storage.get(Collections.TASKS, task_id)
        if doc is None:
            raise NotFound("Task not found")
        return Task.model_validate(doc)

    async def _ensure_assignee_exists(self, identity: str | None) -> None:
        if not identity or not await self.users.exists(identity):
            raise InvalidReference("Assigned user not found")

    async def _save(self, task: Task) -> None:
        await self.storage.save(Collections.TASKS, task.id, task.model_dump())
