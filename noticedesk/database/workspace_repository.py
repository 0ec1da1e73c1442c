"""Repository for workspaces and member roles."""

import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc

from noticedesk.models.workspace import Role, Workspace
from noticedesk.database.models import RoleDB, WorkspaceDB, user_roles

logger = logging.getLogger(__name__)


class WorkspaceRepository:
    """Read access to workspace branding and role membership."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, workspace_id: int) -> Optional[Workspace]:
        """Get workspace by group id."""
        workspace_db = self.db.query(WorkspaceDB).filter(WorkspaceDB.group_id == workspace_id).first()
        return workspace_db.to_pydantic() if workspace_db else None

    def roles_for_user(self, workspace_id: int, user_id: int) -> List[Role]:
        """Roles a user holds in a workspace, owner role first."""
        roles_db = (
            self.db.query(RoleDB)
            .join(user_roles, user_roles.c.role_id == RoleDB.id)
            .filter(
                user_roles.c.user_id == user_id,
                RoleDB.workspace_id == workspace_id,
            )
            .order_by(desc(RoleDB.is_owner_role), RoleDB.name)
            .all()
        )
        return [r.to_pydantic() for r in roles_db]
