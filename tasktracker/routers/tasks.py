# PURPOSE: owner-scoped task CRUD (protected by the bearer-token gateway)

from typing import Any, List

from fastapi import APIRouter, Depends, status

from ..api.deps import get_task_service, parse_task_filters, read_task_body
from ..auth import get_current_user_id
from ..models import MessageResponse, Task, TaskFilters
from ..services import TaskService

router = APIRouter(prefix="/tasks", tags=["tasks"])

_TASK_EXAMPLE = {
    "title": "Plan trip",
    "description": "book flights",
    "status": "Pending",
    "priority": "High",
    "due_date": "2025-12-31",
}

# The body is read by a dependency (after auth), so document it by hand
_TASK_BODY_DOC = {
    "requestBody": {
        "required": True,
        "content": {"application/json": {"schema": {"type": "object"}, "example": _TASK_EXAMPLE}},
    }
}


@router.get("", response_model=List[Task])
def list_tasks(
    filters: TaskFilters = Depends(parse_task_filters),
    user_id: int = Depends(get_current_user_id),
    tasks: TaskService = Depends(get_task_service),
):
    return tasks.list_tasks(user_id, filters)


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED, openapi_extra=_TASK_BODY_DOC)
def create_task(
    payload: Any = Depends(read_task_body),
    user_id: int = Depends(get_current_user_id),
    tasks: TaskService = Depends(get_task_service),
):
    return tasks.create_task(user_id, payload)


@router.put("/{task_id}", response_model=Task, openapi_extra=_TASK_BODY_DOC)
def update_task(
    task_id: int,
    payload: Any = Depends(read_task_body),
    user_id: int = Depends(get_current_user_id),
    tasks: TaskService = Depends(get_task_service),
):
    return tasks.update_task(user_id, task_id, payload)


@router.delete("/{task_id}", response_model=MessageResponse)
def delete_task(
    task_id: int,
    user_id: int = Depends(get_current_user_id),
    tasks: TaskService = Depends(get_task_service),
):
    tasks.delete_task(user_id, task_id)
    return MessageResponse(message="Task deleted successfully")
