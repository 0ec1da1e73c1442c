"""Best-effort webhook relay for notice events.

The payload is a Discord-style embed: a title, a color, a list of
(name, value) fields, the member's avatar and the workspace branding.
`WebhookDispatcher.dispatch` makes exactly one POST attempt and never raises:
config reads, identity lookups, payload building and transport errors are all
caught and logged here, so the orchestrating workflow is unaffected by the
outcome.
"""

import os
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import requests
from dotenv import load_dotenv

from noticedesk.database.config_repository import ConfigRepository
from noticedesk.database.workspace_repository import WorkspaceRepository
from noticedesk.integrations.identity import DisplayIdentity, IdentityResolver
from noticedesk.models.constants import (
    COLOR_FAILURE,
    COLOR_NEUTRAL,
    COLOR_SUCCESS,
    DEFAULT_WORKSPACE_NAME,
    MAX_FIELD_LENGTH,
    NO_REASON_FALLBACK,
    NO_REVIEW_COMMENT_FALLBACK,
    UNKNOWN_REVIEWER_NAME,
    UNKNOWN_USER_NAME,
)
from noticedesk.models.notice import Notice
from noticedesk.models.settings import WEBHOOK_CONFIG_KEY, WebhookConfig
from noticedesk.models.workspace import Workspace

load_dotenv()

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT_SEC = float(os.getenv("WEBHOOK_TIMEOUT_SEC", "10"))


class NoticeEvent(str, Enum):
    """Notice events relayed to the webhook."""
    SUBMITTED = "submitted"
    RECORDED = "recorded"
    APPROVED = "approved"
    DENIED = "denied"


_TITLES = {
    NoticeEvent.SUBMITTED: "📋 New Inactivity Notice",
    NoticeEvent.RECORDED: "✅ Inactivity Notice Approved",
    NoticeEvent.APPROVED: "✅ Inactivity Notice Approved",
    NoticeEvent.DENIED: "❌ Inactivity Notice Denied",
}

_COLORS = {
    NoticeEvent.SUBMITTED: COLOR_NEUTRAL,
    NoticeEvent.RECORDED: COLOR_SUCCESS,
    NoticeEvent.APPROVED: COLOR_SUCCESS,
    NoticeEvent.DENIED: COLOR_FAILURE,
}


def sanitize_text(value: Optional[str], max_length: int = MAX_FIELD_LENGTH, fallback: str = NO_REASON_FALLBACK) -> str:
    """Cap free text at `max_length`; blank or missing text becomes `fallback`."""
    text = "" if value is None else str(value)
    if not text.strip():
        return fallback
    return text[:max_length]


def format_long_date(value: datetime) -> str:
    """Format as a long-form calendar date, e.g. 'January 5, 2024'."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def _field(name: str, value: str, inline: bool = True) -> Dict[str, Any]:
    return {"name": name, "value": value, "inline": inline}


def build_payload(
    event: NoticeEvent,
    notice: Notice,
    member: DisplayIdentity,
    actor: Optional[DisplayIdentity] = None,
    workspace: Optional[Workspace] = None,
    review_comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Build the webhook document for a notice event."""
    username = member.username or UNKNOWN_USER_NAME
    actor_name = (actor.username if actor else None) or UNKNOWN_REVIEWER_NAME
    start_date = format_long_date(notice.start_time)
    end_date = format_long_date(notice.end_time)
    reason = sanitize_text(notice.reason)

    fields: List[Dict[str, Any]] = [
        _field("User", username),
        _field("User ID", str(notice.user_id)),
    ]
    if event == NoticeEvent.SUBMITTED:
        description = f"**{username}** has submitted an inactivity request."
        fields += [
            _field("Start Date", start_date),
            _field("End Date", end_date),
            _field("Reason", reason, inline=False),
        ]
    elif event == NoticeEvent.RECORDED:
        description = (
            f"**{username}**'s inactivity was recorded and approved by **{actor_name}** (admin action)."
        )
        fields += [
            _field("Recorded By", actor_name),
            _field("Start Date", start_date),
            _field("End Date", end_date),
            _field("Reason", reason, inline=False),
        ]
    else:
        verb = "approved" if event == NoticeEvent.APPROVED else "denied"
        description = f"**{username}**'s inactivity request has been {verb} by **{actor_name}**."
        fields += [
            _field("Reviewed By", actor_name),
            _field("Start Date", start_date),
            _field("End Date", end_date),
            _field("Original Reason", reason, inline=False),
        ]
        # Only present when the reviewer supplied a comment
        if review_comment:
            fields.append(
                _field(
                    "Review Comment",
                    sanitize_text(review_comment, fallback=NO_REVIEW_COMMENT_FALLBACK),
                    inline=False,
                )
            )

    footer: Dict[str, Any] = {"text": (workspace.group_name if workspace else None) or DEFAULT_WORKSPACE_NAME}
    if workspace and workspace.group_logo:
        footer["icon_url"] = workspace.group_logo

    embed: Dict[str, Any] = {
        "title": _TITLES[event],
        "description": description,
        "color": _COLORS[event],
        "fields": fields,
        "footer": footer,
        "timestamp": (now or datetime.utcnow()).isoformat(timespec="milliseconds") + "Z",
    }
    if member.picture:
        embed["thumbnail"] = {"url": member.picture}
    return {"embeds": [embed]}


class WebhookDispatcher:
    """Deliver notice events to a workspace's configured webhook."""

    def __init__(
        self,
        configs: ConfigRepository,
        workspaces: WorkspaceRepository,
        identities: IdentityResolver,
        post: Optional[Callable[..., Any]] = None,
        timeout: Optional[float] = None,
    ):
        self.configs = configs
        self.workspaces = workspaces
        self.identities = identities
        self.post = post or requests.post
        self.timeout = timeout if timeout is not None else WEBHOOK_TIMEOUT_SEC

    def config_for(self, workspace_id: int) -> WebhookConfig:
        return WebhookConfig.from_stored(self.configs.get(workspace_id, WEBHOOK_CONFIG_KEY))

    def dispatch(
        self,
        event: NoticeEvent,
        notice: Notice,
        actor_id: Optional[int] = None,
        review_comment: Optional[str] = None,
    ) -> bool:
        """Send one event. Returns True only on a 2xx response; never raises."""
        try:
            config = self.config_for(notice.workspace_id)
            if not config.active:
                return False

            member = self.identities.resolve(notice.user_id)
            actor = self.identities.resolve(actor_id) if actor_id is not None else None
            workspace = self.workspaces.get(notice.workspace_id)
            payload = build_payload(event, notice, member, actor, workspace, review_comment)

            logger.info(f"[webhook] notice {event.value} -> workspace {notice.workspace_id}")
            response = self.post(config.url, json=payload, timeout=self.timeout)
            status = getattr(response, "status_code", None)
            if status is None or not 200 <= status < 300:
                logger.error(
                    f"[webhook:error] notice {notice.id} {event.value}: "
                    f"status={status} body={getattr(response, 'text', '')!r}"
                )
                return False
            return True
        except requests.RequestException as e:
            response = getattr(e, "response", None)
            logger.error(
                f"[webhook:error] notice {notice.id} {event.value}: {type(e).__name__}: {e} "
                f"status={getattr(response, 'status_code', None)} body={getattr(response, 'text', None)!r}"
            )
            return False
        except Exception:
            logger.exception(f"Failed to send webhook for notice {notice.id} ({event.value})")
            return False
