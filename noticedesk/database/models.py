"""SQLAlchemy database models for noticedesk."""

from datetime import datetime
import uuid
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from typing import Union, TypeVar
from noticedesk.database.database import Base

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", BigInteger, ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", String, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class UserDB(Base):
    """Database model for a locally known member."""

    __tablename__ = "users"

    # External numeric user id (64-bit)
    user_id = Column(BigInteger, primary_key=True, autoincrement=False)

    username = Column(String, nullable=True)
    picture = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    roles = relationship("RoleDB", secondary=user_roles, back_populates="members")

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from noticedesk.models.user import User
        return User(
            user_id=self.user_id,
            username=self.username,
            picture=self.picture,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class WorkspaceDB(Base):
    """Database model for a workspace (group)."""

    __tablename__ = "workspaces"

    group_id = Column(Integer, primary_key=True, autoincrement=False)
    group_name = Column(String, nullable=True)
    group_logo = Column(String, nullable=True)

    roles = relationship("RoleDB", back_populates="workspace", cascade="all, delete-orphan")

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from noticedesk.models.workspace import Workspace
        return Workspace(
            group_id=self.group_id,
            group_name=self.group_name,
            group_logo=self.group_logo,
        )


class RoleDB(Base):
    """Database model for a workspace role."""

    __tablename__ = "roles"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    workspace_id = Column(Integer, ForeignKey("workspaces.group_id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)

    # Stored permission strings (stringly typed; parsed into Capability at the domain edge)
    permissions = Column(JSON, nullable=False, default=list)
    is_owner_role = Column(Boolean, nullable=False, default=False)

    workspace = relationship("WorkspaceDB", back_populates="roles")
    members = relationship("UserDB", secondary=user_roles, back_populates="roles")

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from noticedesk.models.workspace import Role
        return Role(
            id=self.id,
            workspace_id=self.workspace_id,
            name=self.name,
            permissions=list(self.permissions or []),
            is_owner_role=bool(self.is_owner_role),
        )


class WorkspaceConfigDB(Base):
    """Generic per-workspace key/value configuration."""

    __tablename__ = "workspace_configs"

    workspace_id = Column(Integer, ForeignKey("workspaces.group_id", ondelete="CASCADE"), primary_key=True)
    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=True)

    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class NoticeDB(Base):
    """Database model for InactivityNotice."""

    __tablename__ = "inactivity_notices"

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Scope
    workspace_id = Column(Integer, ForeignKey("workspaces.group_id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(BigInteger, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)

    # Period
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    reason = Column(String, nullable=False)

    # Review state
    reviewed = Column(Boolean, nullable=False, default=False, index=True)
    approved = Column(Boolean, nullable=False, default=False)
    review_comment = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from noticedesk.models.notice import Notice
        return Notice(
            id=self.id,
            workspace_id=self.workspace_id,
            user_id=self.user_id,
            start_time=self.start_time,
            end_time=self.end_time,
            reason=self.reason,
            reviewed=bool(self.reviewed),
            approved=bool(self.approved),
            review_comment=self.review_comment,
            created_at=self.created_at,
        )

    @classmethod
    def from_pydantic(cls, notice):
        """Create database model from Pydantic model."""
        return cls(
            id=notice.id,
            workspace_id=notice.workspace_id,
            user_id=notice.user_id,
            start_time=notice.start_time,
            end_time=notice.end_time,
            reason=notice.reason,
            reviewed=notice.reviewed,
            approved=notice.approved,
            review_comment=notice.review_comment,
            created_at=notice.created_at,
        )


class AuditEntryDB(Base):
    """Append-only audit ledger.

    Rows are never updated or deleted. Each row carries the hash of the
    previous row in the same workspace; `position` orders the chain and the
    unique constraint rejects two writers appending at the same position.
    """

    __tablename__ = "audit_entries"
    __table_args__ = (
        UniqueConstraint("workspace_id", "position", name="uq_audit_entry_position"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Not a foreign key: the ledger outlives the rows it describes.
    workspace_id = Column(Integer, nullable=False, index=True)
    position = Column(Integer, nullable=False)

    actor_id = Column(BigInteger, nullable=True, index=True)
    action = Column(String, nullable=False, index=True)
    target_ref = Column(String, nullable=False, index=True)
    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)
    details = Column(JSON, nullable=False, default=dict)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow)

    previous_hash = Column(String, nullable=True)
    entry_hash = Column(String, nullable=False)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from noticedesk.models.audit_entry import AuditEntry
        return AuditEntry(
            id=self.id,
            workspace_id=self.workspace_id,
            actor_id=self.actor_id,
            action=self.action,
            target_ref=self.target_ref,
            before=self.before,
            after=self.after,
            details=self.details or {},
            timestamp=self.timestamp,
            previous_hash=self.previous_hash,
            entry_hash=self.entry_hash,
        )

    @classmethod
    def from_pydantic(cls, entry, position: int):
        """Create database model from Pydantic model."""
        return cls(
            id=entry.id,
            workspace_id=entry.workspace_id,
            position=position,
            actor_id=entry.actor_id,
            action=enum_to_value(entry.action),
            target_ref=entry.target_ref,
            before=entry.before,
            after=entry.after,
            details=entry.details,
            timestamp=entry.timestamp,
            previous_hash=entry.previous_hash,
            entry_hash=entry.entry_hash,
        )
