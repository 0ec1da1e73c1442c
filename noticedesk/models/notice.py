"""InactivityNotice data model for noticedesk."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class ReviewStatus(str, Enum):
    """Review action requested by a reviewer."""
    APPROVE = "approve"
    DENY = "deny"
    CANCEL = "cancel"


class NoticeState(str, Enum):
    """Lifecycle state derived from the reviewed/approved flags."""
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class Notice(BaseModel):
    """A claimed or recorded period of member inactivity."""

    id: str = Field(..., description="Unique notice identifier (UUID v4)")
    workspace_id: int = Field(..., description="Owning workspace (group) id")
    user_id: int = Field(..., description="Member the notice is about")
    start_time: datetime = Field(..., description="Start of the inactivity period (UTC)")
    end_time: datetime = Field(..., description="End of the inactivity period (UTC)")
    reason: str = Field(..., description="Free-text reason given for the inactivity")
    reviewed: bool = Field(False, description="Whether a reviewer has acted on the notice")
    approved: bool = Field(False, description="Review outcome; meaningful only when reviewed")
    review_comment: Optional[str] = Field(None, description="Optional reviewer comment")
    created_at: datetime = Field(..., description="Notice creation timestamp")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @property
    def state(self) -> NoticeState:
        if not self.reviewed:
            return NoticeState.PENDING
        return NoticeState.APPROVED if self.approved else NoticeState.DENIED

    def snapshot(self) -> Dict[str, Any]:
        """JSON-safe copy of the notice for audit before/after fields.

        The member id is rendered as a string so 64-bit ids survive JSON
        consumers that only have double precision numbers.
        """
        data = self.model_dump(mode="json")
        data["user_id"] = str(self.user_id)
        return data
