"""Pytest fixtures and configuration for noticedesk tests."""

import os

# Point the app's module-level engine at a throwaway database before it is imported.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from noticedesk.database.database import Base
from noticedesk.database import models  # noqa: F401
from noticedesk.database.models import RoleDB, UserDB, WorkspaceDB
from noticedesk.database.audit_repository import AuditRepository
from noticedesk.database.config_repository import ConfigRepository
from noticedesk.database.notice_repository import NoticeRepository
from noticedesk.database.user_repository import UserRepository
from noticedesk.database.workspace_repository import WorkspaceRepository
from noticedesk.engine.audit_log import AuditLog
from noticedesk.engine.permissions import PermissionGate
from noticedesk.engine.settings import NoticeSettings
from noticedesk.engine.workflow import NoticeWorkflow
from noticedesk.integrations.identity import IdentityResolver
from noticedesk.integrations.ttl_cache import TTLCache
from noticedesk.integrations.webhook import WebhookDispatcher


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

WORKSPACE_ID = 100
OTHER_WORKSPACE_ID = 200

# 2024-01-05T00:00:00Z and 2024-01-10T00:00:00Z in epoch milliseconds
START_MS = 1704412800000
END_MS = 1704844800000

MEMBERS = {
    "owner": 1,
    "reviewer": 2,
    "manager": 3,
    "admin": 4,
    "member": 5,
    "outsider": 6,
    "owner_and_member": 7,
    "member_and_reviewer": 8,
}

# role name -> (permissions, is_owner_role)
ROLES = {
    "Owner": ([], True),
    "Reviewer": (["manage_activity"], False),
    "Manager": (["manage_members"], False),
    "Admin": (["admin"], False),
    "Member": (["view_wall", "not_a_real_permission"], False),
}

ROLE_ASSIGNMENTS = {
    "owner": ["Owner"],
    "reviewer": ["Reviewer"],
    "manager": ["Manager"],
    "admin": ["Admin"],
    "member": ["Member"],
    "outsider": [],
    "owner_and_member": ["Member", "Owner"],
    # "Member" sorts ahead of "Reviewer", so only Member's grant applies
    "member_and_reviewer": ["Member", "Reviewer"],
}


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test and
    seeds one workspace with a user per role, plus a second empty workspace.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    now = datetime.utcnow()
    workspace = WorkspaceDB(
        group_id=WORKSPACE_ID,
        group_name="Test Group",
        group_logo="https://cdn.example.com/logo.png",
    )
    other = WorkspaceDB(group_id=OTHER_WORKSPACE_ID, group_name="Other Group", group_logo=None)
    session.add_all([workspace, other])

    roles = {}
    for name, (permissions, is_owner_role) in ROLES.items():
        roles[name] = RoleDB(
            id=f"role-{name.lower()}",
            workspace_id=WORKSPACE_ID,
            name=name,
            permissions=permissions,
            is_owner_role=is_owner_role,
        )
    session.add_all(roles.values())

    for key, user_id in MEMBERS.items():
        user = UserDB(
            user_id=user_id,
            username=f"{key}_user",
            picture=f"https://cdn.example.com/avatars/{user_id}.png",
            created_at=now,
            updated_at=now,
        )
        user.roles = [roles[name] for name in ROLE_ASSIGNMENTS[key]]
        session.add(user)
    session.commit()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def members():
    """Seeded user ids keyed by the role they hold."""
    return dict(MEMBERS)


@pytest.fixture
def notice_repository(db_session: Session):
    return NoticeRepository(db_session)


@pytest.fixture
def audit_repository(db_session: Session):
    return AuditRepository(db_session)


@pytest.fixture
def config_repository(db_session: Session):
    return ConfigRepository(db_session)


@pytest.fixture
def gate(db_session: Session):
    return PermissionGate(WorkspaceRepository(db_session))


@pytest.fixture
def audit_log(audit_repository):
    return AuditLog(audit_repository)


@pytest.fixture
def fake_post():
    """Stand-in for requests.post that records calls and answers 204."""
    post = MagicMock()
    post.return_value = MagicMock(status_code=204, text="")
    return post


@pytest.fixture
def identity_resolver(db_session: Session):
    """Resolver backed by local rows only (no external API)."""
    return IdentityResolver(UserRepository(db_session), TTLCache(ttl_seconds=60, max_entries=32))


@pytest.fixture
def dispatcher(db_session: Session, config_repository, identity_resolver, fake_post):
    return WebhookDispatcher(
        config_repository, WorkspaceRepository(db_session), identity_resolver, post=fake_post, timeout=3
    )


@pytest.fixture
def webhook_enabled(config_repository):
    """Turn the webhook relay on for the seeded workspace."""
    url = "https://hooks.example.com/notices"
    config_repository.set(WORKSPACE_ID, "inactivity", {"webhookEnabled": True, "webhookUrl": url})
    return url


@pytest.fixture
def workflow(notice_repository, gate, audit_log, dispatcher):
    return NoticeWorkflow(notice_repository, gate, audit_log, dispatcher)


@pytest.fixture
def notice_settings(config_repository, gate, audit_log):
    return NoticeSettings(config_repository, gate, audit_log)


class ActingUser:
    """Switchable identity returned by the overridden auth dependency."""

    def __init__(self, user_id: int):
        self.user_id = user_id


@pytest.fixture
def acting_user(members):
    return ActingUser(members["member"])


@pytest.fixture
def test_client(db_session: Session, acting_user):
    """Create a FastAPI test client with overridden database, auth and user-info dependencies."""
    from noticedesk.api.app import app, get_user_info_client
    from noticedesk.database.database import get_db
    from noticedesk.auth.dependencies import get_current_user

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    def override_get_current_user():
        return db_session.query(UserDB).filter(UserDB.user_id == acting_user.user_id).one().to_pydantic()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    # No outbound user-info lookups in tests
    app.dependency_overrides[get_user_info_client] = lambda: None

    with TestClient(app) as client:
        app.state.identity_cache.clear()
        yield client

    app.dependency_overrides.clear()
