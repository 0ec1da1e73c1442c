"""Repository for User database operations."""

import logging
from typing import Optional
from sqlalchemy.orm import Session

from noticedesk.models.user import User
from noticedesk.database.models import UserDB

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        """Get user by numeric ID."""
        user_db = self.db.query(UserDB).filter(UserDB.user_id == user_id).first()
        return user_db.to_pydantic() if user_db else None
