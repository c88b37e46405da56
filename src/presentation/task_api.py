"""Task API - CRUD, search and filter endpoints for tasks."""

from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from Data.database import get_db
from Data.models import User, TaskStatus, TaskPriority
from services import auth_service, task_service
from services.realtime import PushDispatcher
from .realtime_api import get_dispatcher

router = APIRouter()


def _check_description(value: str | None) -> str | None:
    if value and len(value) < 5:
        raise ValueError("Description must be at least 5 characters")
    return value


class TaskCreate(BaseModel):
    title: str = Field(min_length=3, max_length=255)
    description: str | None = None
    status: TaskStatus = TaskStatus.todo
    priority: TaskPriority = TaskPriority.medium
    due_date: datetime | None = None
    assignee_id: int | None = None

    @field_validator("description")
    @classmethod
    def check_description(cls, value: str | None) -> str | None:
        return _check_description(value)


class TaskUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=3, max_length=255)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    assignee_id: int | None = None

    @field_validator("description")
    @classmethod
    def check_description(cls, value: str | None) -> str | None:
        return _check_description(value)


@router.post("/", status_code=201)
async def create_task(
    body: TaskCreate,
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
    dispatcher: PushDispatcher = Depends(get_dispatcher),
):
    """Create a new task, notifying the assignee."""
    try:
        result = task_service.create_task(
            db,
            user.id,
            title=body.title,
            description=body.description,
            status=body.status,
            priority=body.priority,
            due_date=body.due_date,
            assignee_id=body.assignee_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    dispatcher.dispatch_all(result.notifications)
    return result.task


@router.get("/")
async def list_tasks(
    status: TaskStatus | None = Query(None),
    priority: TaskPriority | None = Query(None),
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
):
    """List all tasks, optionally filtered by status or priority."""
    return task_service.list_tasks(db, status=status, priority=priority)


@router.get("/me")
async def my_tasks(
    type: str = Query("all", pattern="^(assigned|created|all)$"),
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
):
    """Tasks assigned to or created by the current user."""
    return task_service.list_tasks_for_user(db, user.id, scope=type)


@router.get("/status/{status}")
async def tasks_by_status(
    status: TaskStatus,
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
):
    """All tasks in a given status."""
    return task_service.list_tasks_by_status(db, status)


@router.get("/overdue")
async def overdue_tasks(
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
):
    """The current user's unfinished tasks that were due before today."""
    return task_service.list_overdue_tasks(db, user.id)


@router.get("/search")
async def search_tasks(
    q: str = Query(""),
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
):
    """Search the current user's tasks by title or description."""
    try:
        return task_service.search_tasks(db, user.id, q)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/filter")
async def filter_tasks(
    status: str | None = Query(None),
    priority: str | None = Query(None),
    due_date: str | None = Query(None),
    assignee_id: int | None = Query(None),
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
):
    """Filter the current user's tasks."""
    try:
        return task_service.filter_tasks(
            db,
            user.id,
            status=status,
            priority=priority,
            due_date=due_date,
            assignee_id=assignee_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{task_id}")
async def get_task(
    task_id: int,
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
):
    """Get a single task."""
    task = task_service.get_task(db, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.patch("/{task_id}")
async def update_task(
    task_id: int,
    body: TaskUpdate,
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
    dispatcher: PushDispatcher = Depends(get_dispatcher),
):
    """Update a task. Only the fields sent are changed."""
    try:
        result = task_service.update_task(
            db, task_id, user.id, body.model_dump(exclude_unset=True)
        )
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not result:
        raise HTTPException(status_code=404, detail="Task not found")
    dispatcher.dispatch_all(result.notifications)
    return result.task


@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a task."""
    try:
        deleted = task_service.delete_task(db, task_id, user.id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"status": "Task deleted"}
