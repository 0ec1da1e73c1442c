"""Notice workflow engine for noticedesk."""

from noticedesk.engine.errors import (
    NoticeError,
    Unauthenticated,
    Forbidden,
    InvalidInput,
    InvalidRange,
    NotFound,
    Internal,
)
from noticedesk.engine.permissions import PermissionGate
from noticedesk.engine.audit_log import AuditLog, ChainVerification, compute_entry_hash
from noticedesk.engine.workflow import NoticeWorkflow
from noticedesk.engine.settings import NoticeSettings

__all__ = [
    "NoticeError",
    "Unauthenticated",
    "Forbidden",
    "InvalidInput",
    "InvalidRange",
    "NotFound",
    "Internal",
    "PermissionGate",
    "AuditLog",
    "ChainVerification",
    "compute_entry_hash",
    "NoticeWorkflow",
    "NoticeSettings",
]
