# =============================================================================
# Task Routes
# =============================================================================
#
# Endpoints (all authenticated; visibility per the task access policy):
#   POST   /tasks        - Create (requires create:tasks)
#   GET    /tasks        - List visible tasks (filters, search, pagination)
#   GET    /tasks/stats  - Counts over visible tasks
#   GET    /tasks/{id}   - Read one
#   PUT    /tasks/{id}   - Update (creator, manager or admin)
#   DELETE /tasks/{id}   - Delete (creator or admin)
#
# =============================================================================

from typing import Literal

from fastapi import APIRouter, Depends, Query

from taskdesk.api.dependencies import get_tasks
from taskdesk.api.schemas import Message, TaskEnvelope, TaskList, TaskMessage, TaskStatsEnvelope
from taskdesk.auth.context import AuthContext
from taskdesk.auth.permissions import Permission
from taskdesk.auth.policies import authenticate, authorize, require_permission
from taskdesk.config import get_settings
from taskdesk.core.models import TaskPriority, TaskStatus
from taskdesk.services.tasks import TaskCreate, TaskDirectory, TaskQuery, TaskUpdate

router = APIRouter(prefix="/tasks", tags=["tasks"])
settings = get_settings()


@router.post("", response_model=TaskMessage, status_code=201)
async def create_task(
    data: TaskCreate,
    ctx: AuthContext = Depends(authorize(require_permission(Permission.CREATE_TASKS))),
    tasks: TaskDirectory = Depends(get_tasks),
):
    """Create a task. The assignee defaults to the creator."""
    task = await tasks.create(ctx, data)
    return TaskMessage(message="Task created successfully", task=task)


@router.get("", response_model=TaskList)
async def list_tasks(
    status: TaskStatus | None = None,
    priority: TaskPriority | None = None,
    assigned_to: str | None = Query(default=None, alias="assignedTo"),
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    sort_by: Literal["createdAt", "updatedAt", "dueDate", "priority", "title", "status"] = Query(
        default="createdAt", alias="sortBy"
    ),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    ctx: AuthContext = Depends(authenticate),
    tasks: TaskDirectory = Depends(get_tasks),
):
    """List the caller's visible, non-archived tasks."""
    query = TaskQuery(
        status=status,
        priority=priority,
        assigned_to=assigned_to,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    found, pagination = await tasks.list_tasks(ctx, query)
    return TaskList(tasks=found, pagination=pagination)


@router.get("/stats", response_model=TaskStatsEnvelope)
async def get_task_stats(
    ctx: AuthContext = Depends(authenticate),
    tasks: TaskDirectory = Depends(get_tasks),
):
    """Status, priority and overdue counts over the caller's visible tasks."""
    return TaskStatsEnvelope(stats=await tasks.stats(ctx))


@router.get("/{task_id}", response_model=TaskEnvelope)
async def get_task(
    task_id: str,
    ctx: AuthContext = Depends(authenticate),
    tasks: TaskDirectory = Depends(get_tasks),
):
    return TaskEnvelope(task=await tasks.get(ctx, task_id))


@router.put("/{task_id}", response_model=TaskMessage)
async def update_task(
    task_id: str,
    data: TaskUpdate,
    ctx: AuthContext = Depends(authenticate),
    tasks: TaskDirectory = Depends(get_tasks),
):
    task = await tasks.update(ctx, task_id, data)
    return TaskMessage(message="Task updated successfully", task=task)


@router.delete("/{task_id}", response_model=Message)
async def delete_task(
    task_id: str,
    ctx: AuthContext = Depends(authenticate),
    tasks: TaskDirectory = Depends(get_tasks),
):
    await tasks.delete(ctx, task_id)
    return Message(message="Task deleted successfully")
