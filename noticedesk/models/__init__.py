"""Data models for noticedesk."""

from noticedesk.models.notice import Notice, NoticeState, ReviewStatus
from noticedesk.models.audit_entry import AuditEntry, AuditAction
from noticedesk.models.permissions import Capability, AllCapabilities, ExplicitCapabilities
from noticedesk.models.settings import WebhookConfig, ActivityTrackingConfig
from noticedesk.models.user import User
from noticedesk.models.workspace import Workspace, Role

__all__ = [
    "Notice",
    "NoticeState",
    "ReviewStatus",
    "AuditEntry",
    "AuditAction",
    "Capability",
    "AllCapabilities",
    "ExplicitCapabilities",
    "WebhookConfig",
    "ActivityTrackingConfig",
    "User",
    "Workspace",
    "Role",
]
