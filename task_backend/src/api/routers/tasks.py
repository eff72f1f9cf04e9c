from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query, status

from ..errors import NotFoundError
from ..models import TaskEntity
from ..repositories import Repository, get_repository
from ..schemas import ErrorResponse, TaskOut
from ..validation import (
    parse_list_query,
    validate_create,
    validate_id,
    validate_patch,
    validate_replace,
)

router = APIRouter(
    prefix="/api/v1/tasks",
    tags=["tasks"],
)

_VALIDATION_ERROR = {400: {"model": ErrorResponse, "description": "Validation error"}}
_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Task not found"}}


def _task_id(task_id: str = Path(..., description="Task identifier (UUID v4 or v5)")) -> UUID:
    """
    Dependency validating the path id before any handler logic runs.
    """
    return validate_id(task_id)


def _found(item: Optional[TaskEntity]) -> TaskOut:
    if item is None:
        raise NotFoundError("Task")
    return TaskOut(**item)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TaskOut],
    summary="List Tasks",
    description=(
        "List tasks with optional filters and pagination.\n\n"
        "Query parameters:\n"
        "- page: page number, starting at 1 (default 1)\n"
        "- limit: page size, 1..100 (default 10)\n"
        "- completed: 'true' or 'false' to filter by completion status\n"
        "- sortBy: one of created_at, updated_at, title (default created_at)\n"
        "- sortOrder: asc or desc (default desc)\n\n"
        "Invalid values fall back to their defaults instead of failing."
    ),
    responses={200: {"description": "List retrieved successfully"}},
)
def list_tasks(
    page: Optional[str] = Query(None, description="Page number (>= 1)"),
    limit: Optional[str] = Query(None, description="Maximum number of items to return (1..100)"),
    completed: Optional[str] = Query(None, description="Filter by completion status"),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="created_at, updated_at or title"),
    sort_order: Optional[str] = Query(None, alias="sortOrder", description="asc or desc"),
    repo: Repository = Depends(get_repository),
) -> List[TaskOut]:
    """
    List tasks with pagination, filtering and sorting.
    """
    query = parse_list_query(page, limit, completed, sort_by, sort_order)
    return [TaskOut(**it) for it in repo.list(query)]


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    description="Get a single Task by ID.",
    responses={200: {"description": "Task found"}, **_VALIDATION_ERROR, **_NOT_FOUND},
)
def get_task(task_id: UUID = Depends(_task_id), repo: Repository = Depends(get_repository)) -> TaskOut:
    """
    Retrieve a single Task by its ID.
    """
    return _found(repo.get(task_id))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a new Task and return the stored resource, including server-generated fields.",
    responses={201: {"description": "Task created successfully"}, **_VALIDATION_ERROR},
)
def create_task(
    payload: Any = Body(None, examples=[{"title": "Buy groceries"}]),
    repo: Repository = Depends(get_repository),
) -> TaskOut:
    """
    Create a new Task.
    """
    created = repo.create(validate_create(payload))
    return TaskOut(**created)


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskOut,
    summary="Replace Task",
    description="Replace the title and completion status of an existing Task. Both fields are required.",
    responses={200: {"description": "Task updated"}, **_VALIDATION_ERROR, **_NOT_FOUND},
)
def replace_task(
    task_id: UUID = Depends(_task_id),
    payload: Any = Body(None, examples=[{"title": "Buy groceries", "completed": True}]),
    repo: Repository = Depends(get_repository),
) -> TaskOut:
    """
    Full update of a Task.
    """
    return _found(repo.replace(task_id, validate_replace(payload)))


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}/completed",
    response_model=TaskOut,
    summary="Set or Toggle Completion",
    description=(
        "Set the completion status of a Task. When 'completed' is omitted (or the body is empty) "
        "the current status is flipped."
    ),
    responses={200: {"description": "Task updated"}, **_VALIDATION_ERROR, **_NOT_FOUND},
)
def patch_task_completed(
    task_id: UUID = Depends(_task_id),
    payload: Any = Body(None, examples=[{"completed": True}, {}]),
    repo: Repository = Depends(get_repository),
) -> TaskOut:
    """
    Set or toggle the completed flag of a Task.
    """
    patch = validate_patch(payload)
    return _found(repo.patch_completed(task_id, patch.completed))


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Task",
    description="Delete a Task by ID.",
    responses={204: {"description": "Task deleted"}, **_VALIDATION_ERROR, **_NOT_FOUND},
)
def delete_task(task_id: UUID = Depends(_task_id), repo: Repository = Depends(get_repository)) -> None:
    """
    Delete a Task. Returns 204 on success, 404 if not found.
    """
    if not repo.delete(task_id):
        raise NotFoundError("Task")
    return None
