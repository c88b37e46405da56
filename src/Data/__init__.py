"""
Data layer - database engine, models, and session utilities.
"""

from Data.database import engine, SessionLocal, Base, get_db, init_db, utcnow  # noqa: F401
from Data.models import (  # noqa: F401
    User,
    Task,
    Notification,
    TaskStatus,
    TaskPriority,
)
