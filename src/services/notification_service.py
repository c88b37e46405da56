"""
Notification service - create, list, mark-read and explicit send.

Rows are only ever created here; afterwards the only change is the
read flag going from False to True.
"""

import logging

from sqlalchemy.orm import Session

from Data.models import Notification, Task
from services import user_service

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    user_id: int,
    task_id: int,
    message: str,
) -> dict:
    """Create a notification for a user about a task."""
    notif = Notification(
        user_id=user_id,
        task_id=task_id,
        message=message,
    )
    db.add(notif)
    db.commit()
    db.refresh(notif)
    logger.debug("Stored notification %s for user %s", notif.id, user_id)
    return notif_to_dict(notif)


def send_notification(
    db: Session,
    sender_id: int,
    user_id: int,
    task_id: int,
    message: str,
) -> dict:
    """
    Explicitly send a notification to another user.

    Raises LookupError when the recipient or task does not exist and
    ValueError when the recipient is the sender.
    """
    if user_id == sender_id:
        raise ValueError("Cannot send a notification to yourself")
    if not user_service.user_exists(db, user_id):
        raise LookupError("Recipient not found")
    if db.query(Task.id).filter(Task.id == task_id).first() is None:
        raise LookupError("Task not found")
    return create_notification(db, user_id, task_id, message)


def list_notifications(
    db: Session, user_id: int, unread_only: bool = False
) -> list:
    """List notifications for a user, newest first."""
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)  # noqa: E712
    notifs = query.order_by(Notification.created_at.desc(),
                            Notification.id.desc()).all()
    return [notif_to_dict(n) for n in notifs]


def unread_count(db: Session, user_id: int) -> int:
    """Return the number of unread notifications."""
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
        .count()
    )


def mark_read(db: Session, notification_id: int, user_id: int) -> dict | None:
    """Mark a single notification as read. Repeated calls are no-ops."""
    notif = (
        db.query(Notification)
        .filter(Notification.id == notification_id,
                Notification.user_id == user_id)
        .first()
    )
    if not notif:
        return None
    if not notif.is_read:
        notif.is_read = True
        db.commit()
        db.refresh(notif)
    return notif_to_dict(notif)


def mark_all_read(db: Session, user_id: int) -> int:
    """Mark all notifications as read. Returns count updated."""
    count = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
        .update({"is_read": True})
    )
    db.commit()
    return count


def notif_to_dict(notif: Notification) -> dict:
    return {
        "id": notif.id,
        "user_id": notif.user_id,
        "task_id": notif.task_id,
        "message": notif.message,
        "is_read": notif.is_read,
        "created_at": notif.created_at.isoformat()
        if notif.created_at else None,
    }
