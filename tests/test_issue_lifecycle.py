"""
WorkHub: Issue lifecycle tests.

Covers:
    1. add_issue validation (required fields, industry vocabulary, assignee pair)
    2. Status-driven timestamps (resolved_at / closed_at set once, never cleared)
    3. bulk_update_issues per-row derivation and duplicate ids
    4. Delete cascades to comments and attachments
    5. Comments and attachments
"""

from datetime import datetime, timezone

import pytest

from workhub.core.exceptions import NotFoundError, ValidationError


def _project(ws, **extra):
    return ws.projects.add_project({"name": "Portal", **extra})


def _issue(ws, project_id, title="Login fails", **extra):
    return ws.issues.add_issue({"project_id": project_id, "title": title, **extra})


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 1: Creation
# ═══════════════════════════════════════════════════════════════════════════

class TestAddIssue:

    def test_defaults_and_reporter(self, admin):
        project = _project(admin)
        issue = _issue(admin, project.id)
        assert issue.status == "open"
        assert issue.priority == "medium"
        assert issue.type == "task"
        assert issue.reporter_id == "user-1"
        assert issue.reporter_name == "Administrator"
        assert issue.resolved_at is None
        assert issue.closed_at is None

    def test_required_fields(self, workspace):
        with pytest.raises(ValidationError) as exc:
            workspace.issues.add_issue({"title": ""})
        assert set(exc.value.details) == {"project_id", "title"}
        assert workspace.issues.list_issues() == []

    def test_unknown_enum_rejected(self, workspace):
        project = _project(workspace)
        with pytest.raises(ValidationError) as exc:
            _issue(workspace, project.id, priority="whenever")
        assert "priority" in exc.value.details

    def test_type_outside_industry_vocabulary_rejected(self, workspace):
        project = _project(workspace, industry="manufacturing")
        with pytest.raises(ValidationError) as exc:
            _issue(workspace, project.id, type="bug")
        assert "type" in exc.value.details
        assert _issue(workspace, project.id, type="defect").type == "defect"

    def test_general_project_accepts_every_type(self, workspace):
        project = _project(workspace)
        for issue_type in ("bug", "defect", "safety", "question"):
            assert _issue(workspace, project.id, type=issue_type).type == issue_type

    def test_assignee_id_without_name_rejected(self, workspace):
        project = _project(workspace)
        with pytest.raises(ValidationError) as exc:
            _issue(workspace, project.id, assignee_id="member-1")
        assert "assignee_name" in exc.value.details

    def test_created_resolved_gets_resolved_at(self, workspace):
        project = _project(workspace)
        issue = _issue(workspace, project.id, status="resolved")
        assert issue.resolved_at is not None
        assert issue.closed_at is None

    def test_metadata_values_stringified(self, workspace):
        project = _project(workspace, industry="manufacturing")
        issue = _issue(workspace, project.id, type="equipment", metadata={"line_id": 3, "lot": None})
        assert issue.metadata == {"line_id": "3"}


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 2: Status transitions
# ═══════════════════════════════════════════════════════════════════════════

class TestStatusTimestamps:

    def test_resolved_at_set_once(self, workspace):
        issue = _issue(workspace, _project(workspace).id)
        first = workspace.issues.change_status(issue.id, "resolved")
        assert first.resolved_at is not None
        workspace.issues.change_status(issue.id, "reopened")
        again = workspace.issues.change_status(issue.id, "resolved")
        assert again.resolved_at == first.resolved_at

    def test_resolve_then_close_orders_timestamps(self, workspace):
        issue = _issue(workspace, _project(workspace).id)
        workspace.issues.change_status(issue.id, "resolved")
        closed = workspace.issues.change_status(issue.id, "closed")
        assert closed.resolved_at is not None
        assert closed.closed_at is not None
        assert closed.resolved_at < closed.closed_at

    def test_closed_at_set_once(self, workspace):
        issue = _issue(workspace, _project(workspace).id)
        first = workspace.issues.change_status(issue.id, "closed")
        workspace.issues.change_status(issue.id, "reopened")
        again = workspace.issues.change_status(issue.id, "closed")
        assert first.closed_at is not None
        assert again.closed_at == first.closed_at

    def test_reopen_keeps_both_timestamps(self, workspace):
        issue = _issue(workspace, _project(workspace).id)
        workspace.issues.change_status(issue.id, "resolved")
        closed = workspace.issues.change_status(issue.id, "closed")
        reopened = workspace.issues.change_status(issue.id, "reopened")
        assert reopened.status == "reopened"
        assert reopened.resolved_at == closed.resolved_at
        assert reopened.closed_at == closed.closed_at

    def test_other_transitions_leave_timestamps_alone(self, workspace):
        issue = _issue(workspace, _project(workspace).id)
        moved = workspace.issues.change_status(issue.id, "in_progress")
        assert moved.resolved_at is None
        assert moved.closed_at is None

    def test_update_issue_applies_same_derivation(self, workspace):
        issue = _issue(workspace, _project(workspace).id)
        updated = workspace.issues.update_issue(issue.id, {"status": "resolved", "title": "Fixed"})
        assert updated.resolved_at is not None
        assert updated.title == "Fixed"

    def test_update_issue_unknown_id_is_quiet(self, workspace):
        assert workspace.issues.update_issue("issue-missing", {"title": "x"}) is None
        assert workspace.issues.change_status("issue-missing", "closed") is None

    def test_invalid_status_rejected(self, workspace):
        issue = _issue(workspace, _project(workspace).id)
        with pytest.raises(ValidationError):
            workspace.issues.change_status(issue.id, "done")
        with pytest.raises(ValidationError):
            workspace.issues.change_status(issue.id, None)

    def test_status_change_logged(self, admin):
        issue = _issue(admin, _project(admin).id)
        admin.issues.change_status(issue.id, "in_progress")
        entry = admin.activity.recent(1)[0]
        assert entry.type == "issue.status_changed"
        assert (entry.old_value, entry.new_value) == ("open", "in_progress")
        assert entry.issue_id == issue.id
        assert entry.user_id == "user-1"

    def test_caller_cannot_clear_timestamps(self, workspace):
        issue = _issue(workspace, _project(workspace).id)
        resolved = workspace.issues.change_status(issue.id, "resolved")
        updated = workspace.issues.update_issue(issue.id, {"resolved_at": None, "closed_at": "2024-01-01T00:00:00Z"})
        assert updated.resolved_at == resolved.resolved_at
        assert updated.closed_at is None
        assert workspace.issues.get_issue_by_id(issue.id).to_dict()["closed_at"] is None

    def test_caller_cannot_prefill_timestamps(self, workspace):
        stamp = datetime(2020, 1, 1, tzinfo=timezone.utc)
        issue = _issue(workspace, _project(workspace).id, resolved_at=stamp, closed_at=stamp)
        assert issue.status == "open"
        assert issue.resolved_at is None
        assert issue.closed_at is None

    def test_unchanged_status_not_logged(self, workspace):
        issue = _issue(workspace, _project(workspace).id)
        before = len(workspace.activity.list())
        workspace.issues.update_issue(issue.id, {"description": "more detail"})
        assert len(workspace.activity.list()) == before


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 3: Bulk operations
# ═══════════════════════════════════════════════════════════════════════════

class TestBulk:

    def test_bulk_status_derives_per_row(self, workspace):
        project = _project(workspace)
        a = _issue(workspace, project.id, title="A")
        b = _issue(workspace, project.id, title="B")
        earlier = workspace.issues.change_status(a.id, "resolved").resolved_at

        count = workspace.issues.bulk_update_issues([a.id, b.id], {"status": "resolved"})

        assert count == 2
        assert workspace.issues.get_issue_by_id(a.id).resolved_at == earlier
        later = workspace.issues.get_issue_by_id(b.id).resolved_at
        assert later is not None and later > earlier

    def test_duplicate_ids_are_idempotent(self, workspace):
        project = _project(workspace)
        a = _issue(workspace, project.id)
        assert workspace.issues.bulk_update_issues([a.id, a.id, a.id], {"status": "closed"}) == 1
        assert workspace.issues.get_issue_by_id(a.id).status == "closed"

    def test_bulk_unknown_ids(self, workspace):
        assert workspace.issues.bulk_update_issues(["issue-x"], {"status": "closed"}) == 0

    def test_bulk_rejects_project_move(self, workspace):
        a = _issue(workspace, _project(workspace).id)
        with pytest.raises(ValidationError):
            workspace.issues.bulk_update_issues([a.id], {"project_id": "project-2"})

    def test_bulk_type_checked_against_every_project(self, workspace):
        software = _issue(workspace, _project(workspace, industry="software").id, type="task")
        plant = _issue(workspace, _project(workspace, name="Line 3", industry="manufacturing").id, type="task")

        with pytest.raises(ValidationError) as exc:
            workspace.issues.bulk_update_issues([software.id, plant.id], {"type": "bug"})

        assert "type" in exc.value.details
        assert workspace.issues.get_issue_by_id(software.id).type == "task"
        assert workspace.issues.get_issue_by_id(plant.id).type == "task"

    def test_bulk_delete_cascades(self, workspace):
        project = _project(workspace)
        a = _issue(workspace, project.id, title="A")
        b = _issue(workspace, project.id, title="B")
        keep = _issue(workspace, project.id, title="C")
        for issue in (a, b, keep):
            workspace.issues.add_comment(issue.id, f"note on {issue.title}")
            workspace.issues.add_attachment(issue.id, {"file_name": f"{issue.title}.png", "file_size": 10})

        assert workspace.issues.bulk_delete_issues([a.id, b.id, a.id]) == 2

        assert [i.id for i in workspace.issues.list_issues()] == [keep.id]
        assert {c.issue_id for c in workspace.comment_store.list()} == {keep.id}
        assert {f.issue_id for f in workspace.attachment_store.list()} == {keep.id}


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 4: Delete & children
# ═══════════════════════════════════════════════════════════════════════════

class TestChildren:

    def test_delete_issue_removes_comments_and_attachments(self, workspace):
        issue = _issue(workspace, _project(workspace).id)
        workspace.issues.add_comment(issue.id, "first")
        workspace.issues.add_attachment(issue.id, {"file_name": "log.txt"})
        assert workspace.issues.delete_issue(issue.id) is True
        assert workspace.issues.get_issue_comments(issue.id) == []
        assert workspace.issues.get_issue_attachments(issue.id) == []
        assert workspace.issues.delete_issue(issue.id) is False

    def test_comments_ordered_oldest_first(self, admin):
        issue = _issue(admin, _project(admin).id)
        for text in ("one", "two", "three"):
            admin.issues.add_comment(issue.id, text)
        comments = admin.issues.get_issue_comments(issue.id)
        assert [c.content for c in comments] == ["one", "two", "three"]
        assert comments[0].author_name == "Administrator"

    def test_comment_on_missing_issue(self, workspace):
        with pytest.raises(NotFoundError):
            workspace.issues.add_comment("issue-missing", "hello")

    def test_empty_comment_rejected(self, workspace):
        issue = _issue(workspace, _project(workspace).id)
        with pytest.raises(ValidationError):
            workspace.issues.add_comment(issue.id, "   ")

    def test_update_and_delete_comment(self, workspace):
        issue = _issue(workspace, _project(workspace).id)
        comment = workspace.issues.add_comment(issue.id, "typo")
        edited = workspace.issues.update_comment(comment.id, "fixed")
        assert edited.content == "fixed"
        assert edited.updated_at > comment.updated_at
        assert workspace.issues.delete_comment(comment.id) is True
        assert workspace.issues.update_comment(comment.id, "gone") is None

    def test_attachment_defaults_uploader(self, admin):
        issue = _issue(admin, _project(admin).id)
        attachment = admin.issues.add_attachment(issue.id, {"file_name": "trace.log", "file_size": 2048,
                                                            "file_type": "text/plain"})
        assert attachment.uploaded_by == "user-1"
        assert admin.issues.delete_attachment(attachment.id) is True

    def test_attachment_requires_name(self, workspace):
        issue = _issue(workspace, _project(workspace).id)
        with pytest.raises(ValidationError):
            workspace.issues.add_attachment(issue.id, {"file_size": -1})
