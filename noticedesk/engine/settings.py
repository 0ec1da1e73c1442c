"""Notice-related workspace settings: activity tracking and webhook relay.

Both live in the generic per-workspace config store. Reads return defaults
when nothing is stored; every update writes one audit entry.
"""

import logging
from typing import Any, Dict, Optional

from noticedesk.database.config_repository import ConfigRepository
from noticedesk.engine.audit_log import AuditLog
from noticedesk.engine.errors import Internal, InvalidInput, Unauthenticated
from noticedesk.engine.permissions import PermissionGate
from noticedesk.models.audit_entry import AuditAction
from noticedesk.models.permissions import Capability
from noticedesk.models.settings import (
    TRACKING_CONFIG_KEY,
    WEBHOOK_CONFIG_KEY,
    ActivityTrackingConfig,
    WebhookConfig,
    WeekStart,
)

logger = logging.getLogger(__name__)


class NoticeSettings:
    """Read and update per-workspace notice settings."""

    def __init__(self, configs: ConfigRepository, gate: PermissionGate, audit: AuditLog):
        self.configs = configs
        self.gate = gate
        self.audit = audit

    def _store(self, workspace_id: int, key: str, value: Dict[str, Any]) -> None:
        try:
            self.configs.set(workspace_id, key, value)
        except Exception as e:
            raise Internal("Server error") from e

    def get_tracking(self, workspace_id: int, actor_id: Optional[int]) -> ActivityTrackingConfig:
        if actor_id is None:
            raise Unauthenticated("Not logged in")
        self.gate.require(actor_id, workspace_id, Capability.ADMIN)
        return ActivityTrackingConfig.from_stored(self.configs.get(workspace_id, TRACKING_CONFIG_KEY))

    def update_tracking(
        self,
        workspace_id: int,
        actor_id: Optional[int],
        week_starts_on: Any = None,
        tracked_roles: Any = None,
    ) -> ActivityTrackingConfig:
        """Replace the tracking config; omitted values reset to defaults."""
        if actor_id is None:
            raise Unauthenticated("Not logged in")
        self.gate.require(actor_id, workspace_id, Capability.ADMIN)

        week = week_starts_on or WeekStart.SUNDAY.value
        if week not in (WeekStart.SUNDAY.value, WeekStart.MONDAY.value):
            raise InvalidInput("weekStartsOn must be 'sunday' or 'monday'")
        roles = tracked_roles or {}
        if not isinstance(roles, dict) or not all(isinstance(v, bool) for v in roles.values()):
            raise InvalidInput("trackedRoles must map role ids to booleans")

        before = self.configs.get(workspace_id, TRACKING_CONFIG_KEY)
        config = ActivityTrackingConfig(week_starts_on=week, tracked_roles={str(k): v for k, v in roles.items()})
        self._store(workspace_id, TRACKING_CONFIG_KEY, config.to_stored())

        self.audit.record(
            workspace_id, actor_id, AuditAction.TRACKING_SETTINGS_UPDATE, f"config:{TRACKING_CONFIG_KEY}",
            before=before, after=config.to_stored(),
        )
        return config

    def get_webhook(self, workspace_id: int, actor_id: Optional[int]) -> WebhookConfig:
        if actor_id is None:
            raise Unauthenticated("Not logged in")
        self.gate.require_member(actor_id, workspace_id)
        return WebhookConfig.from_stored(self.configs.get(workspace_id, WEBHOOK_CONFIG_KEY))

    def update_webhook(
        self,
        workspace_id: int,
        actor_id: Optional[int],
        enabled: Any = None,
        url: Any = None,
    ) -> WebhookConfig:
        if actor_id is None:
            raise Unauthenticated("Not logged in")
        self.gate.require(actor_id, workspace_id, Capability.ADMIN)

        if enabled is not None and not isinstance(enabled, bool):
            raise InvalidInput("webhookEnabled must be a boolean")
        if url is not None and not isinstance(url, str):
            raise InvalidInput("webhookUrl must be a string")

        before = self.configs.get(workspace_id, WEBHOOK_CONFIG_KEY)
        config = WebhookConfig(enabled=bool(enabled), url=(url or "").strip())
        self._store(workspace_id, WEBHOOK_CONFIG_KEY, config.to_stored())

        self.audit.record(
            workspace_id, actor_id, AuditAction.WEBHOOK_SETTINGS_UPDATE, f"config:{WEBHOOK_CONFIG_KEY}",
            before=before, after=config.to_stored(),
        )
        return config
