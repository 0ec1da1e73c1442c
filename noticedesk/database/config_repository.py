"""Repository for generic per-workspace key/value configuration."""

import logging
from typing import Any, Optional
from sqlalchemy.orm import Session

from noticedesk.database.models import WorkspaceConfigDB

logger = logging.getLogger(__name__)


class ConfigRepository:
    """Get/set JSON config values keyed by (workspace, key)."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, workspace_id: int, key: str) -> Optional[Any]:
        """Return the stored value, or None if unset."""
        row = self.db.query(WorkspaceConfigDB).filter(
            WorkspaceConfigDB.workspace_id == workspace_id,
            WorkspaceConfigDB.key == key,
        ).first()
        return row.value if row else None

    def set(self, workspace_id: int, key: str, value: Any) -> None:
        """Create or replace a config value (upsert)."""
        row = self.db.query(WorkspaceConfigDB).filter(
            WorkspaceConfigDB.workspace_id == workspace_id,
            WorkspaceConfigDB.key == key,
        ).first()
        try:
            if row:
                row.value = value
            else:
                self.db.add(WorkspaceConfigDB(workspace_id=workspace_id, key=key, value=value))
            self.db.commit()
            logger.debug(f"Stored config {key} for workspace {workspace_id}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to store config {key} for workspace {workspace_id}: {type(e).__name__}: {str(e)}")
            raise
