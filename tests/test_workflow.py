"""Tests for the notice workflow: submit, record and review."""

import pytest
import requests
from unittest.mock import MagicMock

from noticedesk.engine.audit_log import AuditLog
from noticedesk.engine.errors import Forbidden, Internal, InvalidInput, InvalidRange, NotFound, Unauthenticated
from noticedesk.engine.workflow import NoticeWorkflow
from noticedesk.models.notice import NoticeState

from conftest import WORKSPACE_ID, OTHER_WORKSPACE_ID, START_MS, END_MS


def _entries(audit_log):
    return audit_log.entries(WORKSPACE_ID)


class TestSubmit:
    """Test member submission."""

    def test_submit_creates_pending_notice(self, workflow, notice_repository, members):
        notice = workflow.submit(WORKSPACE_ID, members["member"], START_MS, END_MS, "Family trip")

        stored = notice_repository.get(WORKSPACE_ID, notice.id)
        assert stored.state == NoticeState.PENDING
        assert stored.user_id == members["member"]
        assert stored.reason == "Family trip"
        assert stored.start_time.isoformat() == "2024-01-05T00:00:00"
        assert stored.end_time.isoformat() == "2024-01-10T00:00:00"

    def test_submit_stores_reason_as_given(self, workflow, members):
        notice = workflow.submit(WORKSPACE_ID, members["member"], START_MS, END_MS, "  padded  ")
        assert notice.reason == "  padded  "

    def test_submit_accepts_float_millis(self, workflow, members):
        notice = workflow.submit(WORKSPACE_ID, members["member"], float(START_MS), float(END_MS), "x")
        assert notice.start_time.isoformat() == "2024-01-05T00:00:00"

    def test_submit_does_not_check_ordering(self, workflow, members):
        """Test a reversed period is accepted on the member path."""
        notice = workflow.submit(WORKSPACE_ID, members["member"], END_MS, START_MS, "Reversed")
        assert notice.start_time > notice.end_time

    @pytest.mark.parametrize("start,end,reason", [
        (None, END_MS, "x"),
        (START_MS, None, "x"),
        (START_MS, END_MS, None),
        (START_MS, END_MS, "   "),
    ])
    def test_submit_missing_data(self, workflow, members, start, end, reason):
        with pytest.raises(InvalidInput) as exc:
            workflow.submit(WORKSPACE_ID, members["member"], start, end, reason)
        assert exc.value.message == "Missing data"

    @pytest.mark.parametrize("start,end", [
        ("1704412800000", END_MS),
        (START_MS, True),
        (START_MS, float("inf")),
        ({"ms": START_MS}, END_MS),
    ])
    def test_submit_invalid_types(self, workflow, members, start, end):
        with pytest.raises(InvalidInput) as exc:
            workflow.submit(WORKSPACE_ID, members["member"], start, end, "x")
        assert exc.value.message == "Invalid type(s)"

    def test_submit_requires_login(self, workflow):
        with pytest.raises(Unauthenticated):
            workflow.submit(WORKSPACE_ID, None, START_MS, END_MS, "x")

    def test_submit_requires_membership(self, workflow, notice_repository, members):
        with pytest.raises(Forbidden):
            workflow.submit(WORKSPACE_ID, members["outsider"], START_MS, END_MS, "x")
        assert notice_repository.list_for_workspace(WORKSPACE_ID) == []

    def test_submit_writes_audit_entry(self, workflow, audit_log, members):
        notice = workflow.submit(WORKSPACE_ID, members["member"], START_MS, END_MS, "x")

        [entry] = _entries(audit_log)
        assert entry.action == "notice.create"
        assert entry.target_ref == f"notice:{notice.id}"
        assert entry.actor_id == members["member"]
        assert entry.before is None
        assert entry.after["user_id"] == str(members["member"])

    def test_submit_dispatches_when_enabled(self, workflow, fake_post, webhook_enabled, members):
        workflow.submit(WORKSPACE_ID, members["member"], START_MS, END_MS, "x")

        fake_post.assert_called_once()
        args, kwargs = fake_post.call_args
        assert args[0] == webhook_enabled
        assert kwargs["json"]["embeds"][0]["title"] == "📋 New Inactivity Notice"

    def test_submit_skips_dispatch_when_disabled(self, workflow, fake_post, members):
        workflow.submit(WORKSPACE_ID, members["member"], START_MS, END_MS, "x")
        fake_post.assert_not_called()


class TestRecord:
    """Test privileged recording on a member's behalf."""

    def test_record_creates_approved_notice(self, workflow, notice_repository, members):
        notice = workflow.record(
            WORKSPACE_ID, members["manager"], members["member"], START_MS, END_MS, "  Medical leave  "
        )

        stored = notice_repository.get(WORKSPACE_ID, notice.id)
        assert stored.state == NoticeState.APPROVED
        assert stored.user_id == members["member"]
        assert stored.reason == "Medical leave"

    def test_record_accepts_string_user_id(self, workflow, members):
        notice = workflow.record(
            WORKSPACE_ID, members["manager"], str(members["member"]), START_MS, END_MS, "x"
        )
        assert notice.user_id == members["member"]

    def test_record_requires_manage_members(self, workflow, members):
        # manage_activity alone is not enough to record
        with pytest.raises(Forbidden):
            workflow.record(WORKSPACE_ID, members["reviewer"], members["member"], START_MS, END_MS, "x")

    def test_record_owner_allowed(self, workflow, members):
        notice = workflow.record(WORKSPACE_ID, members["owner"], members["member"], START_MS, END_MS, "x")
        assert notice.approved

    @pytest.mark.parametrize("start,end", [(END_MS, START_MS), (START_MS, START_MS)])
    def test_record_rejects_bad_range(self, workflow, notice_repository, audit_log, members, start, end):
        with pytest.raises(InvalidRange) as exc:
            workflow.record(WORKSPACE_ID, members["manager"], members["member"], start, end, "x")
        assert exc.value.status_code == 400
        assert notice_repository.list_for_workspace(WORKSPACE_ID) == []
        assert audit_log.entries(WORKSPACE_ID) == []

    def test_record_missing_fields(self, workflow, members):
        with pytest.raises(InvalidInput) as exc:
            workflow.record(WORKSPACE_ID, members["manager"], None, START_MS, END_MS, "x")
        assert "userId" in exc.value.message

    def test_record_blank_reason(self, workflow, members):
        with pytest.raises(InvalidInput):
            workflow.record(WORKSPACE_ID, members["manager"], members["member"], START_MS, END_MS, "  ")

    @pytest.mark.parametrize("user_id", ["abc", -5, 0, True, 1.5, "\u00b2", "99999999999999999999999", 2 ** 63])
    def test_record_invalid_user_id(self, workflow, members, user_id):
        with pytest.raises(InvalidInput):
            workflow.record(WORKSPACE_ID, members["manager"], user_id, START_MS, END_MS, "x")

    def test_record_target_must_be_member(self, workflow, members):
        with pytest.raises(NotFound) as exc:
            workflow.record(WORKSPACE_ID, members["manager"], members["outsider"], START_MS, END_MS, "x")
        assert exc.value.message == "User not found in workspace"

    def test_record_audit_and_dispatch(self, workflow, audit_log, fake_post, webhook_enabled, members):
        notice = workflow.record(WORKSPACE_ID, members["manager"], members["member"], START_MS, END_MS, "x")

        [entry] = _entries(audit_log)
        assert entry.action == "notice.record"
        assert entry.actor_id == members["manager"]
        assert entry.details == {"recorded_by": str(members["manager"])}
        assert entry.target_ref == f"notice:{notice.id}"

        embed = fake_post.call_args.kwargs["json"]["embeds"][0]
        assert embed["title"] == "✅ Inactivity Notice Approved"
        assert "(admin action)" in embed["description"]
        fields = {f["name"]: f["value"] for f in embed["fields"]}
        assert fields["Recorded By"] == "manager_user"


class TestReview:
    """Test approve, deny and cancel."""

    @pytest.fixture
    def pending(self, workflow, members):
        return workflow.submit(WORKSPACE_ID, members["member"], START_MS, END_MS, "Exams")

    def test_approve(self, workflow, notice_repository, members, pending):
        workflow.review(WORKSPACE_ID, members["reviewer"], pending.id, "approve", "Good luck")

        stored = notice_repository.get(WORKSPACE_ID, pending.id)
        assert stored.state == NoticeState.APPROVED
        assert stored.review_comment == "Good luck"

    def test_deny(self, workflow, notice_repository, members, pending):
        workflow.review(WORKSPACE_ID, members["reviewer"], pending.id, "deny")

        stored = notice_repository.get(WORKSPACE_ID, pending.id)
        assert stored.state == NoticeState.DENIED
        assert stored.review_comment is None

    def test_empty_comment_stored_as_none(self, workflow, notice_repository, members, pending):
        workflow.review(WORKSPACE_ID, members["reviewer"], pending.id, "approve", "")
        assert notice_repository.get(WORKSPACE_ID, pending.id).review_comment is None

    def test_cancel_deletes(self, workflow, notice_repository, fake_post, webhook_enabled, members, pending):
        fake_post.reset_mock()
        workflow.review(WORKSPACE_ID, members["reviewer"], pending.id, "cancel")

        assert notice_repository.get(WORKSPACE_ID, pending.id) is None
        fake_post.assert_not_called()

    def test_re_review_is_allowed(self, workflow, notice_repository, members, pending):
        workflow.review(WORKSPACE_ID, members["reviewer"], pending.id, "approve")
        workflow.review(WORKSPACE_ID, members["reviewer"], pending.id, "deny")
        assert notice_repository.get(WORKSPACE_ID, pending.id).state == NoticeState.DENIED

    def test_requires_manage_activity(self, workflow, notice_repository, members, pending):
        for key in ("member", "manager", "admin", "outsider", "member_and_reviewer"):
            with pytest.raises(Forbidden):
                workflow.review(WORKSPACE_ID, members[key], pending.id, "approve")
        assert notice_repository.get(WORKSPACE_ID, pending.id).state == NoticeState.PENDING

    def test_owner_can_review(self, workflow, members, pending):
        workflow.review(WORKSPACE_ID, members["owner_and_member"], pending.id, "approve")

    @pytest.mark.parametrize("status", ["APPROVE", "accept", None, 1, ["approve"]])
    def test_invalid_status(self, workflow, members, pending, status):
        with pytest.raises(InvalidInput) as exc:
            workflow.review(WORKSPACE_ID, members["reviewer"], pending.id, status)
        assert exc.value.message == "Invalid status"

    @pytest.mark.parametrize("notice_id", [None, "", 42])
    def test_invalid_id(self, workflow, members, notice_id):
        with pytest.raises(InvalidInput):
            workflow.review(WORKSPACE_ID, members["reviewer"], notice_id, "approve")

    def test_invalid_comment_type(self, workflow, members, pending):
        with pytest.raises(InvalidInput):
            workflow.review(WORKSPACE_ID, members["reviewer"], pending.id, "approve", {"text": "hi"})

    def test_missing_notice(self, workflow, members):
        with pytest.raises(NotFound):
            workflow.review(WORKSPACE_ID, members["reviewer"], "no-such-notice", "approve")

    def test_notice_from_other_workspace_is_not_found(self, workflow, notice_repository, members, pending):
        foreign = notice_repository.create(pending.model_copy(update={"id": "foreign", "workspace_id": OTHER_WORKSPACE_ID}))
        with pytest.raises(NotFound):
            workflow.review(WORKSPACE_ID, members["reviewer"], foreign.id, "approve")
        assert notice_repository.get(OTHER_WORKSPACE_ID, foreign.id).state == NoticeState.PENDING

    def test_reviewer_has_no_role_in_other_workspace(self, workflow, members, pending):
        with pytest.raises(Forbidden):
            workflow.review(OTHER_WORKSPACE_ID, members["reviewer"], pending.id, "approve")

    def test_review_audit_entry(self, workflow, audit_log, members, pending):
        workflow.review(WORKSPACE_ID, members["reviewer"], pending.id, "deny", "Too long")

        latest = _entries(audit_log)[0]
        assert latest.action == "notice.deny"
        assert latest.details == {"reviewer": str(members["reviewer"])}
        assert latest.before["reviewed"] is False
        assert latest.after["reviewed"] is True
        assert latest.after["review_comment"] == "Too long"

    def test_cancel_audit_entry_has_no_after(self, workflow, audit_log, members, pending):
        workflow.review(WORKSPACE_ID, members["reviewer"], pending.id, "cancel")

        latest = _entries(audit_log)[0]
        assert latest.action == "notice.cancel"
        assert latest.before["id"] == pending.id
        assert latest.after is None

    def test_approve_dispatch_carries_comment(self, workflow, fake_post, webhook_enabled, members, pending):
        fake_post.reset_mock()
        workflow.review(WORKSPACE_ID, members["reviewer"], pending.id, "approve", "Enjoy")

        embed = fake_post.call_args.kwargs["json"]["embeds"][0]
        fields = {f["name"]: f["value"] for f in embed["fields"]}
        assert embed["title"] == "✅ Inactivity Notice Approved"
        assert fields["Reviewed By"] == "reviewer_user"
        assert fields["Review Comment"] == "Enjoy"
        assert fields["Original Reason"] == "Exams"

    def test_deny_dispatch(self, workflow, fake_post, webhook_enabled, members, pending):
        fake_post.reset_mock()
        workflow.review(WORKSPACE_ID, members["reviewer"], pending.id, "deny")

        embed = fake_post.call_args.kwargs["json"]["embeds"][0]
        assert embed["title"] == "❌ Inactivity Notice Denied"
        assert "Review Comment" not in {f["name"] for f in embed["fields"]}


class TestSideEffectIsolation:
    """Audit and webhook failures never undo or fail the primary mutation."""

    def test_webhook_transport_failure(self, workflow, notice_repository, fake_post, webhook_enabled, members):
        fake_post.side_effect = requests.ConnectionError("unreachable")

        notice = workflow.submit(WORKSPACE_ID, members["member"], START_MS, END_MS, "x")

        assert notice_repository.get(WORKSPACE_ID, notice.id) is not None
        fake_post.assert_called_once()

    def test_webhook_error_status(self, workflow, notice_repository, fake_post, webhook_enabled, members):
        fake_post.return_value = MagicMock(status_code=500, text="boom")

        notice = workflow.record(WORKSPACE_ID, members["manager"], members["member"], START_MS, END_MS, "x")
        assert notice_repository.get(WORKSPACE_ID, notice.id).approved

    def test_audit_failure(self, notice_repository, gate, dispatcher, members):
        failing = MagicMock()
        failing.chain_head.side_effect = RuntimeError("ledger offline")
        workflow = NoticeWorkflow(notice_repository, gate, AuditLog(failing), dispatcher)

        notice = workflow.submit(WORKSPACE_ID, members["member"], START_MS, END_MS, "x")
        workflow.review(WORKSPACE_ID, members["reviewer"], notice.id, "approve")

        assert notice_repository.get(WORKSPACE_ID, notice.id).state == NoticeState.APPROVED

    def test_store_failure_is_internal(self, gate, audit_log, dispatcher, members):
        notices = MagicMock()
        notices.create.side_effect = RuntimeError("database is locked")
        workflow = NoticeWorkflow(notices, gate, audit_log, dispatcher)

        with pytest.raises(Internal) as exc:
            workflow.submit(WORKSPACE_ID, members["member"], START_MS, END_MS, "x")
        assert exc.value.status_code == 500
        assert audit_log.entries(WORKSPACE_ID) == []

    def test_concurrent_delete_during_review(self, workflow, gate, audit_log, dispatcher, members, notice_repository):
        notice = workflow.submit(WORKSPACE_ID, members["member"], START_MS, END_MS, "x")
        notices = MagicMock(wraps=notice_repository)
        notices.set_review.side_effect = ValueError(f"Notice {notice.id} not found")
        racing = NoticeWorkflow(notices, gate, audit_log, dispatcher)

        with pytest.raises(NotFound):
            racing.review(WORKSPACE_ID, members["reviewer"], notice.id, "approve")

    @pytest.mark.parametrize("read", ["get", "list_for_workspace"])
    def test_store_read_failure_is_internal(self, gate, audit_log, dispatcher, members, read):
        notices = MagicMock()
        getattr(notices, read).side_effect = RuntimeError("connection reset")
        workflow = NoticeWorkflow(notices, gate, audit_log, dispatcher)

        with pytest.raises(Internal) as exc:
            if read == "get":
                workflow.get_notice(WORKSPACE_ID, members["reviewer"], "some-id")
            else:
                workflow.list_notices(WORKSPACE_ID, members["reviewer"])
        assert exc.value.status_code == 500

    def test_review_read_failure_is_internal(self, gate, audit_log, dispatcher, members):
        notices = MagicMock()
        notices.get.side_effect = RuntimeError("connection reset")
        workflow = NoticeWorkflow(notices, gate, audit_log, dispatcher)

        with pytest.raises(Internal):
            workflow.review(WORKSPACE_ID, members["reviewer"], "some-id", "approve")
        notices.set_review.assert_not_called()
        assert audit_log.entries(WORKSPACE_ID) == []

class TestReads:
    """Test single-notice and list reads."""

    def test_member_sees_only_own_notices(self, workflow, members):
        mine = workflow.submit(WORKSPACE_ID, members["member"], START_MS, END_MS, "mine")
        workflow.submit(WORKSPACE_ID, members["manager"], START_MS, END_MS, "theirs")

        assert [n.id for n in workflow.list_notices(WORKSPACE_ID, members["member"])] == [mine.id]
        assert len(workflow.list_notices(WORKSPACE_ID, members["reviewer"])) == 2

    def test_pending_filter(self, workflow, members):
        pending = workflow.submit(WORKSPACE_ID, members["member"], START_MS, END_MS, "a")
        recorded = workflow.record(WORKSPACE_ID, members["manager"], members["member"], START_MS, END_MS, "b")

        assert [n.id for n in workflow.list_notices(WORKSPACE_ID, members["reviewer"], pending=True)] == [pending.id]
        assert [n.id for n in workflow.list_notices(WORKSPACE_ID, members["reviewer"], pending=False)] == [recorded.id]

    def test_get_notice_visibility(self, workflow, members):
        notice = workflow.submit(WORKSPACE_ID, members["member"], START_MS, END_MS, "x")

        assert workflow.get_notice(WORKSPACE_ID, members["member"], notice.id).id == notice.id
        assert workflow.get_notice(WORKSPACE_ID, members["reviewer"], notice.id).id == notice.id
        with pytest.raises(Forbidden):
            workflow.get_notice(WORKSPACE_ID, members["manager"], notice.id)
        with pytest.raises(NotFound):
            workflow.get_notice(WORKSPACE_ID, members["reviewer"], "missing")

    def test_outsider_cannot_list(self, workflow, members):
        with pytest.raises(Forbidden):
            workflow.list_notices(WORKSPACE_ID, members["outsider"])
