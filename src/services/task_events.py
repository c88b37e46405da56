"""
Task side-effect rules - which notifications a task mutation raises.

Pure functions over snapshots, so they can be evaluated without a
database session. Deleting a task never raises an event.
"""

from dataclasses import dataclass

from Data.models import Task, TaskStatus


@dataclass(frozen=True)
class TaskSnapshot:
    id: int
    title: str
    status: TaskStatus
    creator_id: int
    assignee_id: int | None

    @classmethod
    def of(cls, task: Task) -> "TaskSnapshot":
        return cls(
            id=task.id,
            title=task.title,
            status=TaskStatus(task.status),
            creator_id=task.creator_id,
            assignee_id=task.assignee_id,
        )


@dataclass(frozen=True)
class NotificationEvent:
    recipient_id: int
    task_id: int
    message: str


def events_for_create(task: TaskSnapshot, actor_id: int) -> list[NotificationEvent]:
    """A new task with someone else as assignee notifies that assignee."""
    if task.assignee_id is None or task.assignee_id == actor_id:
        return []
    return [
        NotificationEvent(
            recipient_id=task.assignee_id,
            task_id=task.id,
            message=f"You have been assigned a new task: {task.title}",
        )
    ]


def events_for_update(
    before: TaskSnapshot,
    after: TaskSnapshot,
    actor_id: int,
) -> list[NotificationEvent]:
    """
    Evaluate both update rules independently; each fires at most once.

    - reassignment to a new, non-null assignee other than the actor
      notifies the new assignee
    - a transition into completed by anyone but the creator notifies
      the creator
    """
    events = []

    if (
        after.assignee_id is not None
        and after.assignee_id != before.assignee_id
        and after.assignee_id != actor_id
    ):
        events.append(
            NotificationEvent(
                recipient_id=after.assignee_id,
                task_id=before.id,
                message=f"You have been assigned a task: {before.title}",
            )
        )

    if (
        after.status == TaskStatus.completed
        and before.status != TaskStatus.completed
        and before.creator_id != actor_id
    ):
        events.append(
            NotificationEvent(
                recipient_id=before.creator_id,
                task_id=before.id,
                message=f'Task "{before.title}" has been marked as completed',
            )
        )

    return events
