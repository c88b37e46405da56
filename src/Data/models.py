"""
SQLAlchemy models for TeamTrack.
"""

from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    ForeignKey,
    Integer,
    Boolean,
    Enum,
)
from sqlalchemy.orm import relationship
import enum

from Data.database import Base, utcnow


# --------------------------------------------------------------------------- #
# Enums
# --------------------------------------------------------------------------- #

class TaskStatus(str, enum.Enum):
    todo = "todo"
    in_progress = "in_progress"
    in_review = "in_review"
    completed = "completed"


class TaskPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


# --------------------------------------------------------------------------- #
# Models
# --------------------------------------------------------------------------- #

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Users are never deleted, so these relationships carry no cascade.
    created_tasks = relationship(
        "Task", back_populates="creator", foreign_keys="Task.creator_id"
    )
    assigned_tasks = relationship(
        "Task", back_populates="assignee", foreign_keys="Task.assignee_id"
    )
    notifications = relationship("Notification", back_populates="user")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        Enum(TaskStatus), default=TaskStatus.todo, nullable=False, index=True
    )
    priority = Column(
        Enum(TaskPriority), default=TaskPriority.medium, nullable=False
    )
    due_date = Column(DateTime, nullable=True)
    creator_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"),
                        nullable=False, index=True)
    assignee_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"),
                         nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow,
                        nullable=False)

    creator = relationship("User", back_populates="created_tasks",
                           foreign_keys=[creator_id])
    assignee = relationship("User", back_populates="assigned_tasks",
                            foreign_keys=[assignee_id])
    notifications = relationship(
        "Notification", back_populates="task", cascade="all, delete-orphan"
    )


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"),
                     nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"),
                     nullable=False, index=True)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="notifications")
    task = relationship("Task", back_populates="notifications")
