from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends

from ..errors import ValidationFailed
from ..schemas import (
    ChangesOut,
    CreatedOut,
    DisplayNameUpdate,
    ProfileOut,
    SuccessOut,
    TaskCreate,
    TaskOut,
    TaskToggle,
)
from ..service import TaskService, get_task_service

router = APIRouter(
    prefix="/api",
    tags=["tasks"],
)


# PUBLIC_INTERFACE
@router.get(
    "/tasks",
    response_model=List[TaskOut],
    summary="List Tasks",
    description=(
        "List every task with its owner's display name. The caller's own tasks come first, "
        "each group ordered by last update, most recent first."
    ),
)
def list_tasks(service: TaskService = Depends(get_task_service)) -> List[TaskOut]:
    return [TaskOut.from_entity(t) for t in service.list_for_viewer()]


# PUBLIC_INTERFACE
@router.post(
    "/tasks",
    response_model=CreatedOut,
    summary="Add Task",
    description="Create a task owned by the caller. Blank text creates nothing and returns a null id.",
)
def add_task(payload: TaskCreate, service: TaskService = Depends(get_task_service)) -> CreatedOut:
    try:
        task_id = service.add_task(payload.text)
    except ValidationFailed:
        return CreatedOut(id=None)
    return CreatedOut(id=task_id)


# PUBLIC_INTERFACE
@router.put(
    "/tasks/{task_id}",
    response_model=ChangesOut,
    summary="Toggle Task",
    description=(
        "Set the completion status of one of the caller's tasks, or flip it when 'completed' is omitted. "
        "Returns changes=0 when the task does not exist or is owned by someone else."
    ),
)
def toggle_task(
    task_id: int,
    payload: Optional[TaskToggle] = None,
    service: TaskService = Depends(get_task_service),
) -> ChangesOut:
    return ChangesOut(changes=service.toggle_task(task_id, payload.completed if payload else None))


# PUBLIC_INTERFACE
@router.delete(
    "/tasks/{task_id}",
    response_model=ChangesOut,
    summary="Delete Task",
    description="Delete one of the caller's tasks. Returns changes=0 when not found or not owned.",
)
def delete_task(task_id: int, service: TaskService = Depends(get_task_service)) -> ChangesOut:
    return ChangesOut(changes=service.delete_task(task_id))


# PUBLIC_INTERFACE
@router.post(
    "/update-name",
    response_model=SuccessOut,
    summary="Set Display Name",
    description="Set the caller's display name. A blank name changes nothing and returns success=false.",
)
def update_name(payload: DisplayNameUpdate, service: TaskService = Depends(get_task_service)) -> SuccessOut:
    try:
        service.set_display_name(payload.displayName)
    except ValidationFailed:
        return SuccessOut(success=False)
    return SuccessOut(success=True)


# PUBLIC_INTERFACE
@router.get(
    "/user",
    response_model=ProfileOut,
    summary="Get Profile",
    description="Return the caller's identity and display name (the identity itself when unset).",
)
def get_user(service: TaskService = Depends(get_task_service)) -> ProfileOut:
    return ProfileOut.from_entity(service.get_viewer_profile())
