"""Best-effort, hash-chained audit ledger.

`record()` is called after the primary mutation has been committed. A failed
write is logged and swallowed: it never reaches the caller and never undoes
the mutation.

Every entry stores the hash of the previous entry in its workspace, so
editing or removing a row breaks `verify_chain()` from that point on.
"""

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.exc import IntegrityError

from noticedesk.database.audit_repository import AuditRepository
from noticedesk.models.audit_entry import AuditAction, AuditEntry

logger = logging.getLogger(__name__)

# Attempts at claiming the next chain position before giving up
APPEND_ATTEMPTS = 3


def compute_entry_hash(entry: AuditEntry) -> str:
    """SHA-256 over the canonical JSON form of an entry and its predecessor hash."""
    canonical = json.dumps(
        {
            "id": entry.id,
            "workspace_id": entry.workspace_id,
            "actor_id": entry.actor_id,
            "action": getattr(entry.action, "value", entry.action),
            "target_ref": entry.target_ref,
            "before": entry.before,
            "after": entry.after,
            "details": entry.details,
            "timestamp": entry.timestamp.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "previous_hash": entry.previous_hash,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class ChainVerification:
    """Result of re-hashing a workspace's audit chain."""
    valid: bool
    checked: int
    broken_entry_id: Optional[str] = None
    reason: Optional[str] = None


class AuditLog:
    """Append-only audit trail scoped by workspace."""

    def __init__(self, repository: AuditRepository):
        self.repository = repository

    def record(
        self,
        workspace_id: int,
        actor_id: Optional[int],
        action: Union[AuditAction, str],
        target_ref: str,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditEntry]:
        """Append one entry. Returns None (after logging) if the write fails.

        Concurrent writers in one workspace can read the same chain head. The
        loser of the unique position insert re-reads the head and re-hashes.
        """
        entry_id = str(uuid.uuid4())
        timestamp = datetime.utcnow()
        try:
            for attempt in range(1, APPEND_ATTEMPTS + 1):
                position, previous_hash = self.repository.chain_head(workspace_id)
                entry = AuditEntry(
                    id=entry_id,
                    workspace_id=workspace_id,
                    actor_id=actor_id,
                    action=action,
                    target_ref=target_ref,
                    before=before,
                    after=after,
                    details=details or {},
                    timestamp=timestamp,
                    previous_hash=previous_hash,
                )
                entry.entry_hash = compute_entry_hash(entry)
                try:
                    return self.repository.append(entry, position)
                except IntegrityError:
                    if attempt == APPEND_ATTEMPTS:
                        raise
                    logger.warning(
                        f"Audit chain position {position} taken in workspace {workspace_id}, retrying"
                    )
        except Exception:
            logger.exception(
                f"Audit write failed: workspace={workspace_id} actor={actor_id} "
                f"action={getattr(action, 'value', action)} target={target_ref}"
            )
            return None

    def entries(
        self,
        workspace_id: int,
        target_ref: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[AuditEntry]:
        """Entries for a workspace, newest first."""
        return self.repository.list_for_workspace(workspace_id, target_ref=target_ref, limit=limit)

    def verify_chain(self, workspace_id: int) -> ChainVerification:
        """Re-hash every entry in order and check each link to its predecessor."""
        entries = self.repository.list_for_workspace(workspace_id, oldest_first=True)
        previous_hash: Optional[str] = None
        for checked, entry in enumerate(entries):
            if entry.previous_hash != previous_hash:
                return ChainVerification(False, checked, entry.id, "previous_hash does not match preceding entry")
            if entry.entry_hash != compute_entry_hash(entry):
                return ChainVerification(False, checked, entry.id, "entry_hash does not match entry contents")
            previous_hash = entry.entry_hash
        return ChainVerification(True, len(entries))
