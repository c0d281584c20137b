"""
Workspace: the composition root of the core.

Builds one EntityStore per entity family, the event bus, and the services
on top of them, then wires the subscribers:

    ProjectChanged / MemberChanged / TaskChanged /
    IssueStatusChanged / IssueAssigned /
    ApprovalStatusChanged                          → ActivityLog
    ProjectTeamChanged / IssueAssigned             → NotificationDispatcher
    ProjectChanged (industry change)               → IssueService label pruning

The activity log subscribes first, so an activity entry is always written
before the notification for the same mutation.

Must be constructed inside an application context (stores load their
records through ``db.session``).

Usage:
    from workhub.services.workspace import get_workspace

    ws = get_workspace()
    ws.auth.login("admin", "admin123")
    project = ws.projects.add_project({"name": "Plant 2 rollout"})
"""

from __future__ import annotations

import logging
from typing import Callable

from flask import current_app

from workhub.models.entities import (
    Activity,
    Approval,
    Issue,
    IssueAttachment,
    IssueComment,
    Label,
    Member,
    Message,
    Notice,
    Project,
    Task,
    WikiPage,
)
from workhub.services.activity_log import ActivityLog
from workhub.services.approval_service import ApprovalService
from workhub.services.auth_service import AuthService, CurrentUser, UserContext
from workhub.services.entity_store import EntityStore
from workhub.services.events import EventBus
from workhub.services.issue_service import IssueService
from workhub.services.member_service import MemberService
from workhub.services.message_service import MessageService
from workhub.services.notice_service import NoticeService
from workhub.services.notification import NotificationDispatcher
from workhub.services.project_service import ProjectService
from workhub.services.task_service import TaskService
from workhub.services.wiki_service import WikiService
from workhub.utils.helpers import utcnow

logger = logging.getLogger(__name__)

# Durable record names, one per entity family
MEMBER_STORE = "member-storage"
PROJECT_STORE = "project-storage"
TASK_STORE = "task-storage"
ISSUE_STORE = "issue-storage"
COMMENT_STORE = "issue-comment-storage"
ATTACHMENT_STORE = "issue-attachment-storage"
LABEL_STORE = "issue-label-storage"
APPROVAL_STORE = "approval-storage"
MESSAGE_STORE = "message-storage"
NOTICE_STORE = "notice-storage"
WIKI_STORE = "wiki-storage"
ACTIVITY_STORE = "activity-storage"

_EXTENSION_KEY = "workhub.workspace"


class Workspace:
    def __init__(
        self,
        *,
        activity_limit: int = 500,
        member_password: str = "member123",
        clock: Callable = utcnow,
    ) -> None:
        self.bus = EventBus()
        self.users = UserContext()

        def store(name, cls, **kwargs):
            return EntityStore(name, cls, clock=clock, **kwargs)

        self.member_store = store(MEMBER_STORE, Member)
        self.project_store = store(PROJECT_STORE, Project)
        self.task_store = store(TASK_STORE, Task)
        self.issue_store = store(ISSUE_STORE, Issue)
        self.comment_store = store(COMMENT_STORE, IssueComment)
        self.attachment_store = store(ATTACHMENT_STORE, IssueAttachment)
        self.label_store = store(LABEL_STORE, Label)
        self.approval_store = store(APPROVAL_STORE, Approval, prepend=True)
        self.message_store = store(MESSAGE_STORE, Message, prepend=True)
        self.notice_store = store(NOTICE_STORE, Notice, prepend=True)
        self.wiki_store = store(WIKI_STORE, WikiPage, prepend=True)
        self.activity_store = store(ACTIVITY_STORE, Activity, prepend=True, limit=activity_limit)

        self.messages = MessageService(self.message_store, self.users)
        self.activity = ActivityLog(self.activity_store)
        self.notifications = NotificationDispatcher(self.messages, self.member_store)
        self.activity.subscribe_to(self.bus)
        self.notifications.subscribe_to(self.bus)

        self.members = MemberService(self.member_store, self.bus, self.users)
        self.projects = ProjectService(self.project_store, self.bus, self.users)
        self.tasks = TaskService(self.task_store, self.projects, self.bus, self.users)
        self.issues = IssueService(
            self.issue_store, self.comment_store, self.attachment_store, self.label_store,
            self.project_store, self.bus, self.users,
        )
        self.issues.subscribe_to(self.bus)
        self.approvals = ApprovalService(self.approval_store, self.project_store, self.bus, self.users)
        self.notices = NoticeService(self.notice_store, self.users)
        self.wiki = WikiService(self.wiki_store, self.users)
        self.auth = AuthService(self.users, self.member_store, member_password=member_password)

    @property
    def current_user(self) -> CurrentUser:
        return self.users.current

    def stores(self) -> list[EntityStore]:
        return [value for value in vars(self).values() if isinstance(value, EntityStore)]

    def reload(self) -> None:
        """Re-read every store from its durable record."""
        for entity_store in self.stores():
            entity_store.reload()


def get_workspace() -> Workspace:
    """Return the application's Workspace, building it on first use."""
    workspace = current_app.extensions.get(_EXTENSION_KEY)
    if workspace is None:
        workspace = Workspace(
            activity_limit=current_app.config["ACTIVITY_LOG_LIMIT"],
            member_password=current_app.config["MEMBER_LOGIN_PASSWORD"],
        )
        current_app.extensions[_EXTENSION_KEY] = workspace
        logger.info("Workspace ready (%d stores)", len(workspace.stores()))
    return workspace
