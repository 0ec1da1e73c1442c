"""Repository for the append-only audit ledger."""

import logging
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import desc

from noticedesk.models.audit_entry import AuditEntry
from noticedesk.database.models import AuditEntryDB

logger = logging.getLogger(__name__)


class AuditRepository:
    """Insert and read audit entries. There is no update or delete."""

    def __init__(self, db: Session):
        self.db = db

    def chain_head(self, workspace_id: int) -> Tuple[int, Optional[str]]:
        """Return (next position, hash of the latest entry) for a workspace chain."""
        last = (
            self.db.query(AuditEntryDB.position, AuditEntryDB.entry_hash)
            .filter(AuditEntryDB.workspace_id == workspace_id)
            .order_by(desc(AuditEntryDB.position))
            .first()
        )
        if last is None:
            return 0, None
        return last[0] + 1, last[1]

    def append(self, entry: AuditEntry, position: int) -> AuditEntry:
        """Insert an entry at the given chain position."""
        try:
            entry_db = AuditEntryDB.from_pydantic(entry, position)
            self.db.add(entry_db)
            self.db.commit()
            self.db.refresh(entry_db)
            logger.debug(f"Appended audit entry {entry.id} ({entry.action}) at position {position}")
            return entry_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to append audit entry {entry.id}: {type(e).__name__}: {str(e)}")
            raise

    def list_for_workspace(
        self,
        workspace_id: int,
        target_ref: Optional[str] = None,
        limit: Optional[int] = None,
        oldest_first: bool = False,
    ) -> List[AuditEntry]:
        """List entries for a workspace, newest first unless `oldest_first`."""
        query = self.db.query(AuditEntryDB).filter(AuditEntryDB.workspace_id == workspace_id)
        if target_ref is not None:
            query = query.filter(AuditEntryDB.target_ref == target_ref)
        order = AuditEntryDB.position if oldest_first else desc(AuditEntryDB.position)
        query = query.order_by(order)
        if limit is not None:
            query = query.limit(limit)
        return [e.to_pydantic() for e in query.all()]
