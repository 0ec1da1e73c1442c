"""AuditEntry data model for noticedesk."""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class AuditAction(str, Enum):
    """Audit action taxonomy."""
    NOTICE_CREATE = "notice.create"
    NOTICE_RECORD = "notice.record"
    NOTICE_APPROVE = "notice.approve"
    NOTICE_DENY = "notice.deny"
    NOTICE_CANCEL = "notice.cancel"
    TRACKING_SETTINGS_UPDATE = "settings.activity.tracking.update"
    WEBHOOK_SETTINGS_UPDATE = "settings.general.inactivity.update"


class AuditEntry(BaseModel):
    """Append-only record of a state change inside a workspace."""

    id: str = Field(..., description="Unique audit entry identifier")
    workspace_id: int = Field(..., description="Workspace the change happened in")
    actor_id: Optional[int] = Field(None, description="Acting user (null for system actions)")
    action: AuditAction = Field(..., description="What happened")
    target_ref: str = Field(..., description="Stable reference to the affected entity, e.g. notice:<id>")
    before: Optional[Dict[str, Any]] = Field(None, description="Snapshot before the change")
    after: Optional[Dict[str, Any]] = Field(None, description="Snapshot after the change")
    details: Dict[str, Any] = Field(default_factory=dict, description="Additional entry details")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Entry timestamp")
    previous_hash: Optional[str] = Field(None, description="entry_hash of the previous entry in the workspace chain")
    entry_hash: Optional[str] = Field(None, description="sha256 of this entry's canonical form")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
