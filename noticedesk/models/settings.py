"""Per-workspace notice settings stored in the generic config table."""

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

WEBHOOK_CONFIG_KEY = "inactivity"
TRACKING_CONFIG_KEY = "activityTracking"


class WeekStart(str, Enum):
    SUNDAY = "sunday"
    MONDAY = "monday"


class WebhookConfig(BaseModel):
    """Webhook relay settings. The URL is only validated by the transport."""

    enabled: bool = Field(False, description="Whether notice events are relayed")
    url: str = Field("", description="Destination URL")

    @property
    def active(self) -> bool:
        return self.enabled and bool(self.url)

    @classmethod
    def from_stored(cls, value: Optional[Dict[str, Any]]) -> "WebhookConfig":
        if not value:
            return cls()
        return cls(
            enabled=bool(value.get("webhookEnabled", False)),
            url=str(value.get("webhookUrl") or ""),
        )

    def to_stored(self) -> Dict[str, Any]:
        return {"webhookEnabled": self.enabled, "webhookUrl": self.url}


class ActivityTrackingConfig(BaseModel):
    """Week-start day and which roles count toward activity tracking."""

    week_starts_on: WeekStart = Field(WeekStart.SUNDAY.value, description="First day of the tracking week")
    tracked_roles: Dict[str, bool] = Field(default_factory=dict, description="Role id -> tracked flag")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @classmethod
    def from_stored(cls, value: Optional[Dict[str, Any]]) -> "ActivityTrackingConfig":
        if not value:
            return cls()
        week = value.get("weekStartsOn") or WeekStart.SUNDAY.value
        if week not in (WeekStart.SUNDAY.value, WeekStart.MONDAY.value):
            week = WeekStart.SUNDAY.value
        return cls(week_starts_on=week, tracked_roles=value.get("trackedRoles") or {})

    def to_stored(self) -> Dict[str, Any]:
        return {"weekStartsOn": self.week_starts_on, "trackedRoles": dict(self.tracked_roles)}
