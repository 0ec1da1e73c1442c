"""Request/response models for the notice API.

Request bodies are accepted loosely (any JSON value per field) so the
workflow can apply its own presence and type rules and answer 400 instead
of FastAPI's 422. Responses use camelCase keys.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from noticedesk.models.audit_entry import AuditEntry
from noticedesk.models.notice import Notice


class SubmitNoticeRequest(BaseModel):
    """Request model for a member's own notice."""
    start_time: Any = Field(None, alias="startTime", description="Epoch milliseconds")
    end_time: Any = Field(None, alias="endTime", description="Epoch milliseconds")
    reason: Any = Field(None, description="Reason for the inactivity")


class RecordNoticeRequest(SubmitNoticeRequest):
    """Request model for an admin-recorded notice."""
    user_id: Any = Field(None, alias="userId", description="Member the notice is recorded for")


class ReviewNoticeRequest(BaseModel):
    """Request model for approve/deny/cancel."""
    id: Any = Field(None, description="Notice id")
    status: Any = Field(None, description="approve, deny or cancel")
    review_comment: Any = Field(None, alias="reviewComment", description="Optional reviewer comment")


class TrackingSettingsRequest(BaseModel):
    week_starts_on: Any = Field(None, alias="weekStartsOn")
    tracked_roles: Any = Field(None, alias="trackedRoles")


class WebhookSettingsRequest(BaseModel):
    webhook_enabled: Any = Field(None, alias="webhookEnabled")
    webhook_url: Any = Field(None, alias="webhookUrl")


class NoticeOut(BaseModel):
    """Notice as returned to clients; the member id is a string."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    workspace_id: int
    user_id: str
    start_time: datetime
    end_time: datetime
    reason: str
    reviewed: bool
    approved: bool
    review_comment: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_notice(cls, notice: Notice) -> "NoticeOut":
        return cls(**{**notice.model_dump(), "user_id": str(notice.user_id)})


class NoticeResponse(BaseModel):
    success: bool = True
    notice: NoticeOut


class RecordNoticeResponse(NoticeResponse):
    message: str = "Notice created successfully"


class NoticeListResponse(BaseModel):
    success: bool = True
    notices: List[NoticeOut]
    count: int


class SuccessResponse(BaseModel):
    success: bool = True


class TrackingSettingsResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    week_starts_on: str
    tracked_roles: Dict[str, bool]


class WebhookSettingsResponse(BaseModel):
    success: bool = True
    value: Dict[str, Any]


class AuditEntryOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    workspace_id: int
    actor_id: Optional[str] = None
    action: str
    target_ref: str
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    previous_hash: Optional[str] = None
    entry_hash: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: AuditEntry) -> "AuditEntryOut":
        data = entry.model_dump()
        data["actor_id"] = str(entry.actor_id) if entry.actor_id is not None else None
        return cls(**data)


class AuditChainOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    valid: bool
    checked: int
    broken_entry_id: Optional[str] = None
    reason: Optional[str] = None


class AuditListResponse(BaseModel):
    success: bool = True
    entries: List[AuditEntryOut]
    chain: Optional[AuditChainOut] = None
