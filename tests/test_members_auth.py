"""
WorkHub: Members, session identity, event bus and activity log.
"""

import logging

import pytest

from workhub.core.exceptions import ValidationError
from workhub.services.activity_log import activity_message
from workhub.services.auth_service import CurrentUser
from workhub.services.events import EventBus, MemberChanged, ProjectChanged


# ═══════════════════════════════════════════════════════════════════════════
#  Members
# ═══════════════════════════════════════════════════════════════════════════

class TestMembers:

    def test_add_member(self, workspace):
        member = workspace.members.add_member({
            "name": "Kim Lee", "email": "kim@example.com", "skills": [" SQL ", "", "Python"],
            "join_date": "15.03.2024",
        })
        assert member.role == "developer"
        assert member.skills == ["SQL", "Python"]
        assert member.join_date.isoformat() == "2024-03-15"
        assert workspace.activity.recent(1)[0].type == "member.added"

    def test_validation(self, workspace):
        with pytest.raises(ValidationError) as exc:
            workspace.members.add_member({"name": "", "email": "not-an-email", "role": "wizard"})
        assert set(exc.value.details) == {"name", "email", "role"}

    def test_update_and_delete(self, workspace):
        member = workspace.members.add_member({"name": "Kim", "email": "kim@example.com"})
        assert workspace.members.update_member(member.id, {"status": "vacation"}).status == "vacation"
        assert workspace.members.update_member("member-missing", {"status": "busy"}) is None
        assert workspace.members.delete_member(member.id) is True
        assert workspace.members.delete_member(member.id) is False
        types = [a.type for a in workspace.activity.list()]
        assert types == ["member.removed", "member.updated", "member.added"]


# ═══════════════════════════════════════════════════════════════════════════
#  Session identity
# ═══════════════════════════════════════════════════════════════════════════

class TestAuth:

    def test_static_user_login(self, workspace):
        user = workspace.auth.login("admin", "admin123")
        assert user == CurrentUser(id="user-1", name="Administrator", email="admin@example.com")
        assert workspace.current_user == user
        assert workspace.users.is_authenticated

    def test_member_email_fallback(self, workspace):
        member = workspace.members.add_member({"name": "Kim", "email": "Kim@Example.com"})
        user = workspace.auth.login("kim@example.com", "member123")
        assert user.id == member.id

    def test_wrong_password(self, workspace, caplog):
        workspace.members.add_member({"name": "Kim", "email": "kim@example.com"})
        with caplog.at_level(logging.WARNING):
            assert workspace.auth.login("admin", "nope") is None
            assert workspace.auth.login("kim@example.com", "nope") is None
            assert workspace.auth.login("nobody", "admin123") is None
        assert not workspace.users.is_authenticated
        assert sum(1 for r in caplog.records if r.levelname == "WARNING") == 3

    def test_logout_falls_back_to_system(self, admin):
        admin.auth.logout()
        assert admin.current_user.id == "system"
        project = admin.projects.add_project({"name": "P"})
        entry = admin.activity.recent(1)[0]
        assert entry.project_id == project.id
        assert entry.user_name == "System"


# ═══════════════════════════════════════════════════════════════════════════
#  Event bus
# ═══════════════════════════════════════════════════════════════════════════

class TestEventBus:

    def _event(self):
        from workhub.models.entities import Member
        return MemberChanged(actor=CurrentUser("u", "U"), kind="added", member=Member(id="m", name="M"))

    def test_delivery_in_subscription_order(self):
        bus, seen = EventBus(), []
        bus.subscribe(MemberChanged, lambda e: seen.append("first"))
        bus.subscribe(MemberChanged, lambda e: seen.append("second"))
        bus.subscribe(ProjectChanged, lambda e: seen.append("other"))
        assert bus.publish(self._event()) == 0
        assert seen == ["first", "second"]

    def test_failing_subscriber_isolated(self, caplog):
        bus, seen = EventBus(), []

        def boom(event):
            raise RuntimeError("subscriber down")

        bus.subscribe(MemberChanged, boom)
        bus.subscribe(MemberChanged, lambda e: seen.append(e.kind))
        assert bus.publish(self._event()) == 1
        assert seen == ["added"]
        record = next(r for r in caplog.records if r.levelname == "ERROR")
        assert record.event_type == "MemberChanged"

    def test_unsubscribe(self):
        bus, seen = EventBus(), []
        handler = seen.append
        bus.subscribe(MemberChanged, handler)
        bus.unsubscribe(MemberChanged, handler)
        bus.unsubscribe(MemberChanged, handler)
        bus.publish(self._event())
        assert seen == []


# ═══════════════════════════════════════════════════════════════════════════
#  Activity log
# ═══════════════════════════════════════════════════════════════════════════

class TestActivityLog:

    def test_capped_newest_first(self, app, clock):
        from workhub.services.workspace import Workspace
        ws = Workspace(activity_limit=5, clock=clock)
        for i in range(8):
            ws.projects.add_project({"name": f"P{i}"})
        assert [a.project_name for a in ws.activity.list()] == ["P7", "P6", "P5", "P4", "P3"]

    def test_activity_failure_does_not_block_notification(self, workspace, monkeypatch):
        member = workspace.members.add_member({"name": "Kim", "email": "kim@example.com"})

        def broken(*args, **kwargs):
            raise RuntimeError("log store unavailable")

        monkeypatch.setattr(workspace.activity, "record", broken)
        project = workspace.projects.add_project({"name": "P", "team_members": [member.id]})
        assert workspace.projects.get_project_by_id(project.id) is not None
        assert len(workspace.messages.inbox(member.id)) == 1

    def test_by_project_and_member(self, admin):
        member = admin.members.add_member({"name": "Kim", "email": "kim@example.com"})
        project = admin.projects.add_project({"name": "P"})
        assert [a.type for a in admin.activity.by_project(project.id)] == ["project.created"]
        assert [a.type for a in admin.activity.by_member(member.id)] == ["member.added"]
        assert len(admin.activity.by_member("user-1")) == 2

    def test_messages(self, workspace):
        workspace.projects.add_project({"name": "Portal"})
        workspace.members.add_member({"name": "Kim", "email": "kim@example.com"})
        messages = [activity_message(a) for a in workspace.activity.list()]
        assert messages == ['Added team member "Kim"', 'Created project "Portal"']

    def test_clear(self, workspace):
        workspace.projects.add_project({"name": "Portal"})
        workspace.activity.clear()
        assert workspace.activity.list() == []
