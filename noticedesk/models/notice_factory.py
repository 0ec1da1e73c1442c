"""Notice creation factory for noticedesk.

Both creation paths (member submission and admin record) go through here so
ids and timestamps are assigned the same way.
"""

import uuid
from datetime import datetime, timezone
from typing import Union

from noticedesk.models.notice import Notice


def epoch_millis_to_datetime(value: Union[int, float]) -> datetime:
    """Convert epoch milliseconds to a naive UTC datetime.

    Raises:
        ValueError: If the value is outside the representable date range
    """
    try:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)
    except (OverflowError, OSError) as e:
        raise ValueError(f"Timestamp out of range: {value}") from e


def create_notice_base(
    workspace_id: int,
    user_id: int,
    start_time: datetime,
    end_time: datetime,
    reason: str,
    reviewed: bool = False,
    approved: bool = False,
) -> Notice:
    """Create a notice with a fresh id and creation timestamp.

    Args:
        workspace_id: Owning workspace id
        user_id: Member the notice is about
        start_time: Start of the inactivity period (UTC)
        end_time: End of the inactivity period (UTC)
        reason: Reason text as it should be stored
        reviewed: True for admin-recorded notices
        approved: True for admin-recorded notices

    Returns:
        Notice object ready to be persisted
    """
    return Notice(
        id=str(uuid.uuid4()),
        workspace_id=workspace_id,
        user_id=user_id,
        start_time=start_time,
        end_time=end_time,
        reason=reason,
        reviewed=reviewed,
        approved=approved,
        review_comment=None,
        created_at=datetime.utcnow(),
    )
