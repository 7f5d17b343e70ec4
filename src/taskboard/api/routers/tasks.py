from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ..auth import get_current_user, get_repos
from ..models import TaskPriority, TaskStatus, UserEntity
from ..repositories import DEFAULT_SORT, Repositories
from ..schemas import (
    DragResult,
    ReorderData,
    ReorderEnvelope,
    TaskCreate,
    TaskEnvelope,
    TaskListEnvelope,
    TaskOut,
    TaskUpdate,
)
from ..services import TaskService
from ..utils import item_envelope, list_envelope

router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"],
    dependencies=[Depends(get_current_user)],
)

_NOT_FOUND = {404: {"description": "Task not found"}}


def _get_service(repos: Repositories = Depends(get_repos)) -> TaskService:
    """
    Dependency wrapper for the task service to keep signatures clean.
    """
    return TaskService(repos.tasks)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=TaskListEnvelope,
    summary="List Tasks",
    description=(
        "List the authenticated user's tasks.\n\n"
        "Query parameters:\n"
        "- status: todo, in-progress or completed\n"
        "- priority: low, medium or high\n"
        "- sort: field name with optional leading '-' for descending; one of "
        "createdAt, updatedAt, dueDate, title, priority, status, position (default -createdAt)"
    ),
    responses={400: {"description": "Invalid query parameters"}},
)
def list_tasks(
    status_filter: Optional[TaskStatus] = Query(None, alias="status", description="Filter by status column"),
    priority: Optional[TaskPriority] = Query(None, description="Filter by priority"),
    sort: Optional[str] = Query(DEFAULT_SORT, description="Sort key, '-' prefix for descending"),
    user: UserEntity = Depends(get_current_user),
    service: TaskService = Depends(_get_service),
) -> TaskListEnvelope:
    tasks = service.list_tasks(
        user["id"],
        status=status_filter.value if status_filter else None,
        priority=priority.value if priority else None,
        sort=sort,
    )
    return TaskListEnvelope(**list_envelope([TaskOut(**t) for t in tasks]))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a task at the end of its status column; the position is assigned server-side.",
    responses={400: {"description": "Validation error"}},
)
def create_task(
    payload: TaskCreate,
    user: UserEntity = Depends(get_current_user),
    service: TaskService = Depends(_get_service),
) -> TaskEnvelope:
    created = service.create_task(payload, user["id"])
    return TaskEnvelope(**item_envelope(TaskOut(**created)))  # type: ignore[arg-type]


# Declared before /{task_id} so that "reorder" is not parsed as an id.
# PUBLIC_INTERFACE
@router.put(
    "/reorder",
    response_model=ReorderEnvelope,
    summary="Reorder Tasks",
    description=(
        "Move a task to another slot, within its column or across columns. Source and destination "
        "columns are renumbered 0..n-1. Returns all tasks sorted by position plus the moved task."
    ),
    responses=_NOT_FOUND,
)
def reorder_tasks(
    payload: DragResult,
    user: UserEntity = Depends(get_current_user),
    service: TaskService = Depends(_get_service),
) -> ReorderEnvelope:
    updated, moved = service.reorder_tasks(user["id"], payload)
    return ReorderEnvelope(
        data=ReorderData(updated=[TaskOut(**t) for t in updated], task=TaskOut(**moved))  # type: ignore[arg-type]
    )


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskEnvelope,
    summary="Get Task",
    responses=_NOT_FOUND,
)
def get_task(
    task_id: int,
    user: UserEntity = Depends(get_current_user),
    service: TaskService = Depends(_get_service),
) -> TaskEnvelope:
    """
    Retrieve a single task owned by the caller.
    """
    task = service.get_task(task_id, user["id"])
    return TaskEnvelope(**item_envelope(TaskOut(**task)))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskEnvelope,
    summary="Update Task",
    description="Update any subset of title, description, priority, status, dueDate and position.",
    responses=_NOT_FOUND,
)
@router.patch(
    "/{task_id}",
    response_model=TaskEnvelope,
    summary="Update Task (PATCH)",
    responses=_NOT_FOUND,
)
def update_task(
    task_id: int,
    payload: TaskUpdate,
    user: UserEntity = Depends(get_current_user),
    service: TaskService = Depends(_get_service),
) -> TaskEnvelope:
    updated = service.update_task(task_id, user["id"], payload)
    return TaskEnvelope(**item_envelope(TaskOut(**updated)))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete Task",
    responses={204: {"description": "Task deleted"}, **_NOT_FOUND},
)
def delete_task(
    task_id: int,
    user: UserEntity = Depends(get_current_user),
    service: TaskService = Depends(_get_service),
) -> Response:
    """
    Delete a task. Returns 204 on success, 404 if not found.
    """
    service.delete_task(task_id, user["id"])
    return Response(status_code=status.HTTP_204_NO_CONTENT)
