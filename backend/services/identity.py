# backend/services/identity.py
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from models.users import User
from schemas.user import UserProfileOut
from utils.errors import NotFound

logger = logging.getLogger(__name__)

def upsert_user(db: Session, *, user_id: str, email: str, full_name: Optional[str], role: Optional[str] = None) -> User:
    """Creates or refreshes the local copy of an identity-provider user.

    Replays of the same webhook are harmless: the row is updated in place.
    The role is only set on creation; promotions happen locally.
    """
    try:
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            user = User(id=user_id, email=email, full_name=full_name, role=role or "user", is_verified=True)
            db.add(user)
        else:
            user.email = email
            user.full_name = full_name
            user.deleted_at = None
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    return user

def delete_user(db: Session, user_id: str) -> bool:
    """Soft-deletes the user so their orders keep a valid owner."""
    try:
        rows = db.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).update(
            {User.deleted_at: datetime.now(timezone.utc)}, synchronize_session=False
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return rows > 0

def get_profile(db: Session, user_id: str) -> UserProfileOut:
    user = db.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first()
    if not user:
        raise NotFound("User not found")
    return UserProfileOut.model_validate(user)
