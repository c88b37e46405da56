"""Notification API - endpoints for reading and sending notifications."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from Data.database import get_db
from Data.models import User
from services import auth_service, notification_service
from services.realtime import PushDispatcher
from .realtime_api import get_dispatcher

router = APIRouter()


class NotificationSend(BaseModel):
    user_id: int
    task_id: int
    message: str = Field(min_length=1)


@router.get("/")
async def list_notifications(
    unread_only: bool = False,
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
):
    """List notifications for the current user."""
    return notification_service.list_notifications(db, user.id, unread_only=unread_only)


@router.get("/unread-count")
async def unread_count(
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
):
    """Get the number of unread notifications."""
    return {"count": notification_service.unread_count(db, user.id)}


@router.patch("/read-all")
async def mark_all_read(
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
):
    """Mark all notifications as read."""
    count = notification_service.mark_all_read(db, user.id)
    return {"status": "All marked as read", "count": count}


@router.patch("/{notification_id}/read")
async def mark_read(
    notification_id: int,
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
):
    """Mark a notification as read."""
    notif = notification_service.mark_read(db, notification_id, user.id)
    if not notif:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notif


@router.post("/send", status_code=201)
async def send_notification(
    body: NotificationSend,
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
    dispatcher: PushDispatcher = Depends(get_dispatcher),
):
    """Store a notification for another user and push it if they are online."""
    try:
        notif = notification_service.send_notification(
            db, user.id, body.user_id, body.task_id, body.message
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    dispatcher.dispatch(notif)
    return notif
