"""User API - the team directory used when assigning tasks."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from Data.database import get_db
from Data.models import User
from services import auth_service, user_service

router = APIRouter()


@router.get("/")
async def list_users(
    user: User = Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
):
    """List all users."""
    return user_service.list_users(db)
