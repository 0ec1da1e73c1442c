"""Repository layer for inactivity notices."""

import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc

from noticedesk.models.notice import Notice
from noticedesk.database.models import NoticeDB

logger = logging.getLogger(__name__)


class NoticeRepository:
    """Repository for Notice database operations.

    Every lookup is scoped by `(workspace_id, notice_id)`.
    """

    def __init__(self, db: Session):
        self.db = db

    def _get_db(self, workspace_id: int, notice_id: str) -> Optional[NoticeDB]:
        return self.db.query(NoticeDB).filter(
            NoticeDB.id == notice_id,
            NoticeDB.workspace_id == workspace_id,
        ).first()

    def create(self, notice: Notice) -> Notice:
        """Create a new notice."""
        try:
            notice_db = NoticeDB.from_pydantic(notice)
            self.db.add(notice_db)
            self.db.commit()
            self.db.refresh(notice_db)
            logger.debug(f"Created notice {notice.id} for user {notice.user_id} in workspace {notice.workspace_id}")
            return notice_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create notice {notice.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, workspace_id: int, notice_id: str) -> Optional[Notice]:
        """Get notice by ID within a workspace."""
        notice_db = self._get_db(workspace_id, notice_id)
        return notice_db.to_pydantic() if notice_db else None

    def list_for_workspace(
        self,
        workspace_id: int,
        user_id: Optional[int] = None,
        reviewed: Optional[bool] = None,
    ) -> List[Notice]:
        """List notices in a workspace (newest first), optionally for one member or review state."""
        query = self.db.query(NoticeDB).filter(NoticeDB.workspace_id == workspace_id)
        if user_id is not None:
            query = query.filter(NoticeDB.user_id == user_id)
        if reviewed is not None:
            query = query.filter(NoticeDB.reviewed == reviewed)
        return [n.to_pydantic() for n in query.order_by(desc(NoticeDB.created_at)).all()]

    def set_review(
        self,
        workspace_id: int,
        notice_id: str,
        approved: bool,
        review_comment: Optional[str],
    ) -> Notice:
        """Mark a notice reviewed with the given outcome.

        No current-state guard: an approved notice can be denied and vice versa.

        Raises:
            ValueError: If the notice does not exist in the workspace
        """
        notice_db = self._get_db(workspace_id, notice_id)
        if not notice_db:
            raise ValueError(f"Notice {notice_id} not found")

        notice_db.reviewed = True
        notice_db.approved = approved
        notice_db.review_comment = review_comment

        try:
            self.db.commit()
            self.db.refresh(notice_db)
            logger.debug(f"Reviewed notice {notice_id}: approved={approved}")
            return notice_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to review notice {notice_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, workspace_id: int, notice_id: str) -> bool:
        """Permanently delete a notice. Returns False if it did not exist."""
        notice_db = self._get_db(workspace_id, notice_id)
        if not notice_db:
            return False

        try:
            self.db.delete(notice_db)
            self.db.commit()
            logger.debug(f"Deleted notice {notice_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete notice {notice_id}: {type(e).__name__}: {str(e)}")
            raise
