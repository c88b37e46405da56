"""
Task service - CRUD operations, search and filters for tasks.

Create and update also record the notifications their side effects call
for (see services.task_events). The caller gets the stored notifications
back and decides how to push them; pushing is never done here.
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from Data.models import Task, TaskStatus, TaskPriority
from services import notification_service, user_service
from services.task_events import (
    NotificationEvent,
    TaskSnapshot,
    events_for_create,
    events_for_update,
)

logger = logging.getLogger(__name__)

ASSIGNMENT_SCOPES = ("assigned", "created", "all")
_UPDATABLE_FIELDS = (
    "title", "description", "status", "priority", "due_date", "assignee_id",
)


@dataclass
class TaskMutation:
    """A committed task plus the notifications recorded for it."""

    task: dict
    notifications: list = field(default_factory=list)


# --------------------------------------------------------------------------- #
# Mutations
# --------------------------------------------------------------------------- #

def create_task(
    db: Session,
    creator_id: int,
    title: str,
    description: str | None = None,
    status: str = "todo",
    priority: str = "medium",
    due_date: datetime | None = None,
    assignee_id: int | None = None,
) -> TaskMutation:
    """Create a new task; raises ValueError for an unknown assignee."""
    if assignee_id is not None and not user_service.user_exists(db, assignee_id):
        raise ValueError("Assignee not found")
    task = Task(
        creator_id=creator_id,
        assignee_id=assignee_id,
        title=title,
        description=description,
        status=TaskStatus(status),
        priority=TaskPriority(priority),
        due_date=_as_naive_utc(due_date),
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info("User %s created task %s", creator_id, task.id)

    events = events_for_create(TaskSnapshot.of(task), creator_id)
    return TaskMutation(task=task_to_dict(task),
                        notifications=_record_notifications(db, events))


def update_task(
    db: Session,
    task_id: int,
    actor_id: int,
    changes: dict,
) -> TaskMutation | None:
    """
    Apply the given field changes to a task.

    Only keys present in ``changes`` are touched, so ``assignee_id: None``
    unassigns the task. Returns None when the task does not exist and
    raises PermissionError unless the actor is the creator or assignee.
    """
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        return None
    if actor_id not in (task.creator_id, task.assignee_id):
        raise PermissionError("You don't have permission to update this task")

    unknown = set(changes) - set(_UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown task fields: {', '.join(sorted(unknown))}")
    if "title" in changes and changes["title"] is None:
        raise ValueError("Title cannot be empty")
    if changes.get("assignee_id") is not None and not user_service.user_exists(
        db, changes["assignee_id"]
    ):
        raise ValueError("Assignee not found")

    before = TaskSnapshot.of(task)
    if "title" in changes:
        task.title = changes["title"]
    if "description" in changes:
        task.description = changes["description"]
    if changes.get("status") is not None:
        task.status = TaskStatus(changes["status"])
    if changes.get("priority") is not None:
        task.priority = TaskPriority(changes["priority"])
    if "due_date" in changes:
        task.due_date = _as_naive_utc(changes["due_date"])
    if "assignee_id" in changes:
        task.assignee_id = changes["assignee_id"]
    task.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(task)
    logger.info("User %s updated task %s", actor_id, task.id)

    events = events_for_update(before, TaskSnapshot.of(task), actor_id)
    return TaskMutation(task=task_to_dict(task),
                        notifications=_record_notifications(db, events))


def delete_task(db: Session, task_id: int, actor_id: int) -> bool:
    """Delete a task and its notifications. Only the creator may delete."""
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        return False
    if task.creator_id != actor_id:
        raise PermissionError("You don't have permission to delete this task")
    db.delete(task)
    db.commit()
    logger.info("User %s deleted task %s", actor_id, task_id)
    return True


def _record_notifications(db: Session, events: list[NotificationEvent]) -> list:
    # The task is already committed; a failed notification must not undo it.
    stored = []
    for event in events:
        try:
            stored.append(
                notification_service.create_notification(
                    db, event.recipient_id, event.task_id, event.message
                )
            )
        except SQLAlchemyError:
            db.rollback()
            logger.exception(
                "Failed to store notification for user %s on task %s",
                event.recipient_id,
                event.task_id,
            )
    return stored


# --------------------------------------------------------------------------- #
# Queries
# --------------------------------------------------------------------------- #

def list_tasks(
    db: Session,
    status: str | None = None,
    priority: str | None = None,
) -> list:
    """List all tasks, optionally filtered by status/priority."""
    query = db.query(Task)
    if status:
        query = query.filter(Task.status == TaskStatus(status))
    if priority:
        query = query.filter(Task.priority == TaskPriority(priority))
    return _to_dicts(query)


def get_task(db: Session, task_id: int) -> dict | None:
    """Get a single task."""
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        return None
    return task_to_dict(task)


def list_tasks_for_user(db: Session, user_id: int, scope: str = "all") -> list:
    """Tasks assigned to, created by, or involving a user."""
    if scope not in ASSIGNMENT_SCOPES:
        raise ValueError(f"Invalid scope: {scope}")
    if scope == "assigned":
        condition = Task.assignee_id == user_id
    elif scope == "created":
        condition = Task.creator_id == user_id
    else:
        condition = _involves(user_id)
    return _to_dicts(db.query(Task).filter(condition))


def list_tasks_by_status(db: Session, status: str) -> list:
    return _to_dicts(db.query(Task).filter(Task.status == TaskStatus(status)))


def list_overdue_tasks(db: Session, user_id: int) -> list:
    """Unfinished tasks of a user that were due before today."""
    query = db.query(Task).filter(
        _involves(user_id),
        Task.due_date < start_of_today(),
        Task.status != TaskStatus.completed,
    )
    return _to_dicts(query)


def search_tasks(db: Session, user_id: int, text: str) -> list:
    """Substring match on title or description among the user's tasks."""
    if not text or not text.strip():
        raise ValueError("Search query is required")
    pattern = f"%{text.strip()}%"
    query = db.query(Task).filter(
        _involves(user_id),
        or_(Task.title.ilike(pattern), Task.description.ilike(pattern)),
    )
    return _to_dicts(query)


def filter_tasks(
    db: Session,
    user_id: int,
    status: str | None = None,
    priority: str | None = None,
    due_date: str | None = None,
    assignee_id: int | None = None,
) -> list:
    """
    Filter the user's tasks. ``"all"`` for status/priority means no
    filter; ``due_date`` is one of
    today, this_week, this_month or overdue.
    """
    query = db.query(Task).filter(_involves(user_id))
    if status and status != "all":
        query = query.filter(Task.status == TaskStatus(status))
    if priority and priority != "all":
        query = query.filter(Task.priority == TaskPriority(priority))
    if due_date:
        query = query.filter(*_due_date_conditions(due_date))
    if assignee_id is not None:
        query = query.filter(Task.assignee_id == assignee_id)
    return _to_dicts(query)


def start_of_today(now: datetime | None = None) -> datetime:
    """Midnight UTC of the current day, as a naive datetime."""
    now = _as_naive_utc(now) if now else _as_naive_utc(datetime.now(timezone.utc))
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _due_date_conditions(window: str, now: datetime | None = None) -> list:
    today = start_of_today(now)
    if window == "overdue":
        return [Task.due_date < today, Task.status != TaskStatus.completed]
    if window == "today":
        end = today + timedelta(days=1)
    elif window == "this_week":
        end = today + timedelta(days=7)
    elif window == "this_month":
        end = _add_month(today)
    else:
        raise ValueError(f"Invalid due date filter: {window}")
    return [Task.due_date >= today, Task.due_date < end]


def _add_month(day: datetime) -> datetime:
    year, month = (day.year + 1, 1) if day.month == 12 else (day.year, day.month + 1)
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def _involves(user_id: int):
    return or_(Task.creator_id == user_id, Task.assignee_id == user_id)


def _as_naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _to_dicts(query) -> list:
    tasks = query.order_by(Task.created_at.desc(), Task.id.desc()).all()
    return [task_to_dict(t) for t in tasks]


def task_to_dict(task: Task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status.value if task.status else "todo",
        "priority": task.priority.value if task.priority else "medium",
        "due_date": task.due_date.isoformat() if task.due_date else None,
        "creator_id": task.creator_id,
        "assignee_id": task.assignee_id,
        "creator": user_service.user_to_summary(task.creator),
        "assignee": user_service.user_to_summary(task.assignee),
        "created_at": task.created_at.isoformat() if task.created_at else None,
        "updated_at": task.updated_at.isoformat() if task.updated_at else None,
    }
