"""
WorkHub: Approval workflow tests.

Covers:
    1. request_approval always starts PENDING
    2. process_approval approve / reject (reason optional)
    3. Terminal states refuse further transitions
    4. Activity log entries per status change
"""

import pytest

from workhub.core.exceptions import InvalidTransitionError, ValidationError
from workhub.services.approval_service import APPROVAL_TRANSITIONS


def _request(ws, **extra):
    payload = {
        "title": "Release 2.1",
        "type": "release",
        "approver_id": "member-9",
        "approver_name": "Kim Lee",
        **extra,
    }
    return ws.approvals.request_approval(payload)


class TestRequest:

    def test_starts_pending(self, admin):
        approval = _request(admin, status="approved", rejection_reason="sneaky")
        assert approval.status == "pending"
        assert approval.rejection_reason is None
        assert approval.processed_at is None
        assert approval.requester_id == "user-1"

    def test_project_name_resolved(self, workspace):
        project = workspace.projects.add_project({"name": "Plant 2"})
        assert _request(workspace, project_id=project.id).project_name == "Plant 2"
        assert _request(workspace, project_id="project-gone").project_name == "-"

    def test_validation(self, workspace):
        with pytest.raises(ValidationError) as exc:
            workspace.approvals.request_approval({"title": "", "type": "bribe"})
        assert set(exc.value.details) == {"title", "approver_id", "type"}

    def test_newest_first(self, workspace):
        first = _request(workspace, title="first")
        second = _request(workspace, title="second")
        assert [a.id for a in workspace.approvals.list_approvals()] == [second.id, first.id]

    def test_pending_for_approver(self, workspace):
        a = _request(workspace)
        b = _request(workspace)
        _request(workspace, approver_id="member-1")
        workspace.approvals.process_approval(b.id, "approved")
        assert [x.id for x in workspace.approvals.pending_for("member-9")] == [a.id]


class TestProcess:

    def test_approve(self, workspace):
        approval = _request(workspace)
        done = workspace.approvals.process_approval(approval.id, "approved", "looks fine")
        assert done.status == "approved"
        assert done.rejection_reason is None
        assert done.processed_at is not None

    def test_reject_with_reason(self, workspace):
        approval = _request(workspace)
        done = workspace.approvals.process_approval(approval.id, "rejected", "Missing QA sign-off")
        assert done.status == "rejected"
        assert done.rejection_reason == "Missing QA sign-off"

    def test_reject_without_reason(self, workspace):
        approval = _request(workspace)
        done = workspace.approvals.process_approval(approval.id, "rejected")
        assert done.status == "rejected"
        assert done.rejection_reason is None

    def test_only_decisions_accepted(self, workspace):
        approval = _request(workspace)
        for status in ("pending", "cancelled", "maybe"):
            with pytest.raises(ValidationError):
                workspace.approvals.process_approval(approval.id, status)
        assert workspace.approvals.get_approval_by_id(approval.id).status == "pending"

    def test_unknown_id_is_quiet(self, workspace):
        assert workspace.approvals.process_approval("approval-missing", "approved") is None
        assert workspace.approvals.cancel_approval("approval-missing") is None

    @pytest.mark.parametrize("first", ["approved", "rejected"])
    @pytest.mark.parametrize("second", ["approved", "rejected"])
    def test_terminal_decisions_refuse_reprocessing(self, workspace, first, second):
        approval = _request(workspace)
        workspace.approvals.process_approval(approval.id, first)
        with pytest.raises(InvalidTransitionError) as exc:
            workspace.approvals.process_approval(approval.id, second)
        assert exc.value.current_status == first
        assert workspace.approvals.get_approval_by_id(approval.id).status == first

    def test_cancel(self, workspace):
        approval = _request(workspace)
        cancelled = workspace.approvals.cancel_approval(approval.id)
        assert cancelled.status == "cancelled"
        with pytest.raises(InvalidTransitionError):
            workspace.approvals.process_approval(approval.id, "approved")
        with pytest.raises(InvalidTransitionError):
            workspace.approvals.cancel_approval(approval.id)

    def test_every_transition_leaves_pending(self):
        assert all(rule["from"] == ["pending"] for rule in APPROVAL_TRANSITIONS.values())

    def test_delete(self, workspace):
        approval = _request(workspace)
        assert workspace.approvals.delete_approval(approval.id) is True
        assert workspace.approvals.delete_approval(approval.id) is False


class TestActivity:

    def test_request_and_decision_logged(self, admin):
        approval = _request(admin)
        admin.approvals.process_approval(approval.id, "rejected", "no")
        types = [a.type for a in admin.activity.list()]
        assert types[:2] == ["approval.rejected", "approval.requested"]
        assert admin.activity.list()[0].approval_id == approval.id
