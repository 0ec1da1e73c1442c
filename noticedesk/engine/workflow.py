"""Notice workflow: submission, admin record, and review.

Each operation runs in a fixed order:

1. permission check
2. input validation
3. store mutation (the source of truth, committed first)
4. audit entry (best-effort)
5. webhook dispatch (best-effort)

Failures in steps 1-3 raise a `NoticeError` before anything else happens.
Steps 4 and 5 never raise and never undo step 3.
"""

import logging
import math
from typing import Any, List, Optional

from noticedesk.database.notice_repository import NoticeRepository
from noticedesk.engine.audit_log import AuditLog
from noticedesk.engine.errors import (
    Forbidden,
    Internal,
    InvalidInput,
    InvalidRange,
    NotFound,
    Unauthenticated,
)
from noticedesk.engine.permissions import PermissionGate
from noticedesk.integrations.webhook import NoticeEvent, WebhookDispatcher
from noticedesk.models.audit_entry import AuditAction
from noticedesk.models.notice import Notice, ReviewStatus
from noticedesk.models.notice_factory import create_notice_base, epoch_millis_to_datetime
from noticedesk.models.permissions import Capability

logger = logging.getLogger(__name__)

# Ids are stored as signed 64-bit integers
MAX_USER_ID = 2 ** 63 - 1

_REVIEW_ACTIONS = {
    ReviewStatus.APPROVE: AuditAction.NOTICE_APPROVE,
    ReviewStatus.DENY: AuditAction.NOTICE_DENY,
    ReviewStatus.CANCEL: AuditAction.NOTICE_CANCEL,
}


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a timestamp
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _require_actor(actor_id: Optional[int]) -> int:
    if actor_id is None:
        raise Unauthenticated("Not logged in")
    return actor_id


def _require_reason(reason: Any) -> str:
    if not isinstance(reason, str) or not reason.strip():
        raise InvalidInput("Missing data")
    return reason


def _parse_period(start_time: Any, end_time: Any):
    if start_time is None or end_time is None:
        raise InvalidInput("Missing data")
    if not _is_number(start_time) or not _is_number(end_time):
        raise InvalidInput("Invalid type(s)")
    try:
        return epoch_millis_to_datetime(start_time), epoch_millis_to_datetime(end_time)
    except ValueError as e:
        raise InvalidInput(str(e)) from e


def _parse_user_id(user_id: Any) -> int:
    """Accept an integer id or its decimal string form (64-bit ids often arrive as strings)."""
    if isinstance(user_id, bool):
        raise InvalidInput("Invalid userId")
    if isinstance(user_id, int):
        parsed = user_id
    elif isinstance(user_id, str) and user_id.strip().isdecimal():
        parsed = int(user_id.strip())
    else:
        raise InvalidInput("Invalid userId")
    if parsed <= 0 or parsed > MAX_USER_ID:
        raise InvalidInput("Invalid userId")
    return parsed


class NoticeWorkflow:
    """Orchestrates notice state changes across store, audit log and webhook."""

    def __init__(
        self,
        notices: NoticeRepository,
        gate: PermissionGate,
        audit: AuditLog,
        dispatcher: WebhookDispatcher,
    ):
        self.notices = notices
        self.gate = gate
        self.audit = audit
        self.dispatcher = dispatcher

    def _create(self, notice: Notice) -> Notice:
        try:
            return self.notices.create(notice)
        except Exception as e:
            raise Internal("Something went wrong") from e

    def _get(self, workspace_id: int, notice_id: str) -> Optional[Notice]:
        try:
            return self.notices.get(workspace_id, notice_id)
        except Exception as e:
            raise Internal("Internal server error") from e

    def _list(self, workspace_id: int, **filters) -> List[Notice]:
        try:
            return self.notices.list_for_workspace(workspace_id, **filters)
        except Exception as e:
            raise Internal("Internal server error") from e

    def submit(
        self,
        workspace_id: int,
        actor_id: Optional[int],
        start_time: Any,
        end_time: Any,
        reason: Any,
    ) -> Notice:
        """Member submits a pending notice for themself.

        The period is not checked for start < end here; only admin record
        enforces ordering.
        """
        actor_id = _require_actor(actor_id)
        self.gate.require_member(actor_id, workspace_id)

        if start_time is None or end_time is None or reason is None:
            raise InvalidInput("Missing data")
        start, end = _parse_period(start_time, end_time)
        reason = _require_reason(reason)

        notice = self._create(create_notice_base(workspace_id, actor_id, start, end, reason))
        logger.info(f"Notice {notice.id} submitted by {actor_id} in workspace {workspace_id}")

        self.audit.record(
            workspace_id, actor_id, AuditAction.NOTICE_CREATE, f"notice:{notice.id}",
            before=None, after=notice.snapshot(),
        )
        self.dispatcher.dispatch(NoticeEvent.SUBMITTED, notice)
        return notice

    def record(
        self,
        workspace_id: int,
        actor_id: Optional[int],
        user_id: Any,
        start_time: Any,
        end_time: Any,
        reason: Any,
    ) -> Notice:
        """Privileged actor records an already-approved notice for a member."""
        actor_id = _require_actor(actor_id)
        self.gate.require(actor_id, workspace_id, Capability.MANAGE_MEMBERS)

        if user_id is None or start_time is None or end_time is None or reason is None:
            raise InvalidInput("Missing required fields: userId, startTime, endTime, reason")
        target_id = _parse_user_id(user_id)
        start, end = _parse_period(start_time, end_time)
        reason = _require_reason(reason).strip()
        if start >= end:
            raise InvalidRange("End time must be after start time")

        if not self.gate.is_member(target_id, workspace_id):
            raise NotFound("User not found in workspace")

        notice = self._create(
            create_notice_base(workspace_id, target_id, start, end, reason, reviewed=True, approved=True)
        )
        logger.info(f"Notice {notice.id} recorded for {target_id} by {actor_id} in workspace {workspace_id}")

        self.audit.record(
            workspace_id, actor_id, AuditAction.NOTICE_RECORD, f"notice:{notice.id}",
            before=None, after=notice.snapshot(), details={"recorded_by": str(actor_id)},
        )
        self.dispatcher.dispatch(NoticeEvent.RECORDED, notice, actor_id=actor_id)
        return notice

    def review(
        self,
        workspace_id: int,
        actor_id: Optional[int],
        notice_id: Any,
        status: Any,
        review_comment: Any = None,
    ) -> None:
        """Approve, deny, or cancel a notice.

        No current-state guard is applied: reviewed notices can be reviewed
        again, and concurrent reviews are last-write-wins.
        """
        actor_id = _require_actor(actor_id)
        self.gate.require(actor_id, workspace_id, Capability.MANAGE_ACTIVITY)

        try:
            action = ReviewStatus(status)
        except ValueError:
            raise InvalidInput("Invalid status") from None
        if not isinstance(notice_id, str) or not notice_id:
            raise InvalidInput("Invalid id")
        if review_comment is not None and not isinstance(review_comment, str):
            raise InvalidInput("Invalid reviewComment")
        comment = review_comment or None

        before = self._get(workspace_id, notice_id)
        if before is None:
            raise NotFound("Notice not found")

        after: Optional[Notice] = None
        try:
            if action == ReviewStatus.CANCEL:
                if not self.notices.delete(workspace_id, notice_id):
                    raise NotFound("Notice not found")
            else:
                after = self.notices.set_review(
                    workspace_id, notice_id, approved=action == ReviewStatus.APPROVE, review_comment=comment,
                )
        except NotFound:
            raise
        except ValueError as e:
            # Deleted by a concurrent request between read and write
            raise NotFound("Notice not found") from e
        except Exception as e:
            raise Internal("Internal server error") from e

        logger.info(f"Notice {notice_id} {action.value} by {actor_id} in workspace {workspace_id}")

        self.audit.record(
            workspace_id, actor_id, _REVIEW_ACTIONS[action], f"notice:{notice_id}",
            before=before.snapshot(),
            after=after.snapshot() if after else None,
            details={"reviewer": str(actor_id)},
        )

        if after is not None:
            event = NoticeEvent.APPROVED if action == ReviewStatus.APPROVE else NoticeEvent.DENIED
            self.dispatcher.dispatch(event, after, actor_id=actor_id, review_comment=comment)

    def get_notice(self, workspace_id: int, actor_id: Optional[int], notice_id: str) -> Notice:
        """Read one notice: its own member or a reviewer may see it."""
        actor_id = _require_actor(actor_id)
        self.gate.require_member(actor_id, workspace_id)
        notice = self._get(workspace_id, notice_id)
        if notice is None:
            raise NotFound("Notice not found")
        if notice.user_id != actor_id and not self.gate.has(actor_id, workspace_id, Capability.MANAGE_ACTIVITY):
            raise Forbidden("Insufficient permissions")
        return notice

    def list_notices(
        self,
        workspace_id: int,
        actor_id: Optional[int],
        pending: Optional[bool] = None,
    ) -> List[Notice]:
        """Reviewers see the whole workspace; other members see only their own notices."""
        actor_id = _require_actor(actor_id)
        self.gate.require_member(actor_id, workspace_id)
        reviewed = None if pending is None else not pending
        if self.gate.has(actor_id, workspace_id, Capability.MANAGE_ACTIVITY):
            return self._list(workspace_id, reviewed=reviewed)
        return self._list(workspace_id, user_id=actor_id, reviewed=reviewed)
