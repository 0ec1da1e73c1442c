"""FastAPI web application for noticedesk."""

import os
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from dotenv import load_dotenv

from noticedesk.api.schemas import (
    AuditChainOut,
    AuditEntryOut,
    AuditListResponse,
    NoticeListResponse,
    NoticeOut,
    NoticeResponse,
    RecordNoticeRequest,
    RecordNoticeResponse,
    ReviewNoticeRequest,
    SubmitNoticeRequest,
    SuccessResponse,
    TrackingSettingsRequest,
    TrackingSettingsResponse,
    WebhookSettingsRequest,
    WebhookSettingsResponse,
)
from noticedesk.auth.dependencies import get_current_user
from noticedesk.database.audit_repository import AuditRepository
from noticedesk.database.config_repository import ConfigRepository
from noticedesk.database.database import get_db, init_db
from noticedesk.database.notice_repository import NoticeRepository
from noticedesk.database.user_repository import UserRepository
from noticedesk.database.workspace_repository import WorkspaceRepository
from noticedesk.engine.audit_log import AuditLog
from noticedesk.engine.errors import NoticeError
from noticedesk.engine.permissions import PermissionGate
from noticedesk.engine.settings import NoticeSettings
from noticedesk.engine.workflow import NoticeWorkflow
from noticedesk.integrations.identity import IdentityResolver, UserInfoClient, build_identity_cache
from noticedesk.integrations.ttl_cache import TTLCache
from noticedesk.integrations.webhook import WebhookDispatcher
from noticedesk.models.permissions import Capability
from noticedesk.models.user import User

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield
    app.state.identity_cache.clear()


app = FastAPI(
    title="noticedesk API",
    description="Inactivity notices with review workflow, audit trail and webhook relay",
    version="0.1.0",
    lifespan=lifespan,
)

# One identity cache per application instance, injected into resolvers
app.state.identity_cache = build_identity_cache()


@app.exception_handler(NoticeError)
async def notice_error_handler(request: Request, exc: NoticeError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc.__cause__)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Malformed bodies and path params are plain bad input
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )


# Dependencies

def get_identity_cache(request: Request) -> TTLCache:
    return request.app.state.identity_cache


def get_user_info_client() -> Optional[UserInfoClient]:
    return UserInfoClient()


def get_identity_resolver(
    db: Session = Depends(get_db),
    cache: TTLCache = Depends(get_identity_cache),
    client: Optional[UserInfoClient] = Depends(get_user_info_client),
) -> IdentityResolver:
    return IdentityResolver(UserRepository(db), cache, client)


def get_permission_gate(db: Session = Depends(get_db)) -> PermissionGate:
    return PermissionGate(WorkspaceRepository(db))


def get_audit_log(db: Session = Depends(get_db)) -> AuditLog:
    return AuditLog(AuditRepository(db))


def get_dispatcher(
    db: Session = Depends(get_db),
    identities: IdentityResolver = Depends(get_identity_resolver),
) -> WebhookDispatcher:
    return WebhookDispatcher(ConfigRepository(db), WorkspaceRepository(db), identities)


def get_workflow(
    db: Session = Depends(get_db),
    gate: PermissionGate = Depends(get_permission_gate),
    audit: AuditLog = Depends(get_audit_log),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
) -> NoticeWorkflow:
    return NoticeWorkflow(NoticeRepository(db), gate, audit, dispatcher)


def get_notice_settings(
    db: Session = Depends(get_db),
    gate: PermissionGate = Depends(get_permission_gate),
    audit: AuditLog = Depends(get_audit_log),
) -> NoticeSettings:
    return NoticeSettings(ConfigRepository(db), gate, audit)


# Routes

@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": "0.1.0"}


@app.post("/workspaces/{workspace_id}/notices", response_model=NoticeResponse)
def submit_notice(
    workspace_id: int,
    body: SubmitNoticeRequest,
    current_user: User = Depends(get_current_user),
    workflow: NoticeWorkflow = Depends(get_workflow),
):
    """Submit an inactivity notice for the current user."""
    notice = workflow.submit(
        workspace_id, current_user.user_id, body.start_time, body.end_time, body.reason
    )
    return NoticeResponse(notice=NoticeOut.from_notice(notice))


@app.post(
    "/workspaces/{workspace_id}/notices/record",
    response_model=RecordNoticeResponse,
    status_code=status.HTTP_201_CREATED,
)
def record_notice(
    workspace_id: int,
    body: RecordNoticeRequest,
    current_user: User = Depends(get_current_user),
    workflow: NoticeWorkflow = Depends(get_workflow),
):
    """Record an already-approved notice on a member's behalf."""
    notice = workflow.record(
        workspace_id, current_user.user_id, body.user_id, body.start_time, body.end_time, body.reason
    )
    return RecordNoticeResponse(notice=NoticeOut.from_notice(notice))


@app.post("/workspaces/{workspace_id}/notices/review", response_model=SuccessResponse)
def review_notice(
    workspace_id: int,
    body: ReviewNoticeRequest,
    current_user: User = Depends(get_current_user),
    workflow: NoticeWorkflow = Depends(get_workflow),
):
    """Approve, deny or cancel a notice."""
    workflow.review(workspace_id, current_user.user_id, body.id, body.status, body.review_comment)
    return SuccessResponse()


@app.get("/workspaces/{workspace_id}/notices", response_model=NoticeListResponse)
def list_notices(
    workspace_id: int,
    pending: Optional[bool] = Query(None, description="Only pending (true) or only reviewed (false) notices"),
    current_user: User = Depends(get_current_user),
    workflow: NoticeWorkflow = Depends(get_workflow),
):
    """List notices visible to the current user."""
    notices = workflow.list_notices(workspace_id, current_user.user_id, pending=pending)
    return NoticeListResponse(notices=[NoticeOut.from_notice(n) for n in notices], count=len(notices))


@app.get("/workspaces/{workspace_id}/notices/{notice_id}", response_model=NoticeResponse)
def get_notice(
    workspace_id: int,
    notice_id: str,
    current_user: User = Depends(get_current_user),
    workflow: NoticeWorkflow = Depends(get_workflow),
):
    """Get a single notice."""
    notice = workflow.get_notice(workspace_id, current_user.user_id, notice_id)
    return NoticeResponse(notice=NoticeOut.from_notice(notice))


@app.get("/workspaces/{workspace_id}/settings/notice-tracking", response_model=TrackingSettingsResponse)
def get_tracking_settings(
    workspace_id: int,
    current_user: User = Depends(get_current_user),
    settings: NoticeSettings = Depends(get_notice_settings),
):
    """Read activity tracking settings."""
    config = settings.get_tracking(workspace_id, current_user.user_id)
    return TrackingSettingsResponse(week_starts_on=config.week_starts_on, tracked_roles=config.tracked_roles)


@app.patch("/workspaces/{workspace_id}/settings/notice-tracking", response_model=TrackingSettingsResponse)
def update_tracking_settings(
    workspace_id: int,
    body: TrackingSettingsRequest,
    current_user: User = Depends(get_current_user),
    settings: NoticeSettings = Depends(get_notice_settings),
):
    """Replace activity tracking settings."""
    config = settings.update_tracking(
        workspace_id, current_user.user_id, body.week_starts_on, body.tracked_roles
    )
    return TrackingSettingsResponse(week_starts_on=config.week_starts_on, tracked_roles=config.tracked_roles)


@app.get("/workspaces/{workspace_id}/settings/notice-webhook", response_model=WebhookSettingsResponse)
def get_webhook_settings(
    workspace_id: int,
    current_user: User = Depends(get_current_user),
    settings: NoticeSettings = Depends(get_notice_settings),
):
    """Read webhook relay settings."""
    config = settings.get_webhook(workspace_id, current_user.user_id)
    return WebhookSettingsResponse(value=config.to_stored())


@app.patch("/workspaces/{workspace_id}/settings/notice-webhook", response_model=WebhookSettingsResponse)
def update_webhook_settings(
    workspace_id: int,
    body: WebhookSettingsRequest,
    current_user: User = Depends(get_current_user),
    settings: NoticeSettings = Depends(get_notice_settings),
):
    """Replace webhook relay settings."""
    config = settings.update_webhook(
        workspace_id, current_user.user_id, body.webhook_enabled, body.webhook_url
    )
    return WebhookSettingsResponse(value=config.to_stored())


@app.get("/workspaces/{workspace_id}/audit", response_model=AuditListResponse)
def list_audit_entries(
    workspace_id: int,
    verify: bool = Query(False, description="Re-hash the workspace chain"),
    limit: int = Query(100, ge=1, le=1000),
    target: Optional[str] = Query(None, description="Filter by target reference, e.g. notice:<id>"),
    current_user: User = Depends(get_current_user),
    gate: PermissionGate = Depends(get_permission_gate),
    audit: AuditLog = Depends(get_audit_log),
):
    """List audit entries, newest first (admin only)."""
    gate.require(current_user.user_id, workspace_id, Capability.ADMIN)
    entries = audit.entries(workspace_id, target_ref=target, limit=limit)
    chain = None
    if verify:
        result = audit.verify_chain(workspace_id)
        chain = AuditChainOut(
            valid=result.valid,
            checked=result.checked,
            broken_entry_id=result.broken_entry_id,
            reason=result.reason,
        )
    return AuditListResponse(entries=[AuditEntryOut.from_entry(e) for e in entries], chain=chain)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
