"""
User service - directory lookups used for task assignment.
"""

from sqlalchemy.orm import Session

from Data.models import User


def list_users(db: Session) -> list:
    """List every user, ordered by display name."""
    users = db.query(User).order_by(User.name.asc(), User.id.asc()).all()
    return [user_to_summary(u) for u in users]


def get_user(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def user_exists(db: Session, user_id: int) -> bool:
    return db.query(User.id).filter(User.id == user_id).first() is not None


def user_to_summary(user: User | None) -> dict | None:
    if user is None:
        return None
    return {"id": user.id, "username": user.username, "name": user.name}
