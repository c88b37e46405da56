"""Auth API - login and signup endpoints."""

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from Data.database import get_db
from Data.models import User
from services import auth_service, user_service

router = APIRouter()


class SignupRequest(BaseModel):
    username: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=6)
    name: str = Field(min_length=2, max_length=255)


class LoginRequest(BaseModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest, db: Session = Depends(get_db)):
    """Register a new user account."""
    return auth_service.signup(db, body.username, body.password, body.name)


@router.post("/login")
async def login(body: LoginRequest, db: Session = Depends(get_db)):
    """Login and receive a JWT token."""
    return auth_service.login(db, body.username, body.password)


@router.get("/me")
async def me(user: User = Depends(auth_service.get_current_user)):
    """Return the authenticated user."""
    return user_service.user_to_summary(user)
