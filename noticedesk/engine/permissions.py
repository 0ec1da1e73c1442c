"""Capability checks for acting users inside a workspace.

A user's effective role is the first of their roles in the workspace, with
the owner role sorted ahead of everything else. Only that role's grant is
consulted. Having no role at all and lacking the capability are reported the
same way.
"""

import logging
from typing import Optional

from noticedesk.database.workspace_repository import WorkspaceRepository
from noticedesk.engine.errors import Forbidden
from noticedesk.models.permissions import Capability, RoleGrant
from noticedesk.models.workspace import Role

logger = logging.getLogger(__name__)


class PermissionGate:
    """Resolve whether a user holds a capability in a workspace."""

    def __init__(self, workspaces: WorkspaceRepository):
        self.workspaces = workspaces

    def effective_role(self, user_id: int, workspace_id: int) -> Optional[Role]:
        roles = self.workspaces.roles_for_user(workspace_id, user_id)
        return roles[0] if roles else None

    def grant_for(self, user_id: int, workspace_id: int) -> Optional[RoleGrant]:
        role = self.effective_role(user_id, workspace_id)
        return role.grant if role else None

    def is_member(self, user_id: int, workspace_id: int) -> bool:
        return self.effective_role(user_id, workspace_id) is not None

    def has(self, user_id: int, workspace_id: int, capability: Capability) -> bool:
        grant = self.grant_for(user_id, workspace_id)
        return grant is not None and grant.allows(capability)

    def require(self, user_id: int, workspace_id: int, capability: Capability) -> None:
        """Raise Forbidden unless the user holds `capability`."""
        if not self.has(user_id, workspace_id, capability):
            logger.info(f"User {user_id} lacks {capability.value} in workspace {workspace_id}")
            raise Forbidden("Insufficient permissions")

    def require_member(self, user_id: int, workspace_id: int) -> None:
        """Raise Forbidden unless the user holds any role in the workspace."""
        if not self.is_member(user_id, workspace_id):
            logger.info(f"User {user_id} is not a member of workspace {workspace_id}")
            raise Forbidden("Insufficient permissions")
