"""Workspace, role and member models for noticedesk."""

from typing import List, Optional
from pydantic import BaseModel, Field

from noticedesk.models.permissions import RoleGrant, grant_for_role


class Workspace(BaseModel):
    """Workspace branding used in outbound notifications."""

    group_id: int = Field(..., description="Workspace (group) id")
    group_name: Optional[str] = Field(None, description="Display name")
    group_logo: Optional[str] = Field(None, description="Logo URL")


class Role(BaseModel):
    """A workspace role and the permission strings it was stored with."""

    id: str = Field(..., description="Role identifier")
    workspace_id: int = Field(..., description="Workspace the role belongs to")
    name: str = Field(..., description="Role name")
    permissions: List[str] = Field(default_factory=list, description="Stored permission strings")
    is_owner_role: bool = Field(False, description="Owner role implicitly holds every capability")

    @property
    def grant(self) -> RoleGrant:
        return grant_for_role(self.permissions, self.is_owner_role)
