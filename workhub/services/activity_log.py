"""
WorkHub Activity Log.

Append-only, newest-first record of who did what to which entity. The
core only writes to it (via event subscriptions); presentation reads it
through the query helpers below.
"""

from __future__ import annotations

import logging

from workhub.models.entities import Activity, ActivityType
from workhub.services.auth_service import CurrentUser
from workhub.services.entity_store import EntityStore
from workhub.services.events import (
    ApprovalStatusChanged,
    EventBus,
    IssueAssigned,
    IssueStatusChanged,
    MemberChanged,
    ProjectChanged,
    TaskChanged,
)

logger = logging.getLogger(__name__)

_PROJECT_KINDS = {
    "created": ActivityType.PROJECT_CREATED,
    "updated": ActivityType.PROJECT_UPDATED,
    "completed": ActivityType.PROJECT_COMPLETED,
    "deleted": ActivityType.PROJECT_DELETED,
}

_MEMBER_KINDS = {
    "added": ActivityType.MEMBER_ADDED,
    "updated": ActivityType.MEMBER_UPDATED,
    "removed": ActivityType.MEMBER_REMOVED,
}

_TASK_KINDS = {
    "created": ActivityType.TASK_CREATED,
    "updated": ActivityType.TASK_UPDATED,
    "status_changed": ActivityType.TASK_STATUS_CHANGED,
    "deleted": ActivityType.TASK_DELETED,
}

_APPROVAL_STATUSES = {
    "pending": ActivityType.APPROVAL_REQUESTED,
    "approved": ActivityType.APPROVAL_APPROVED,
    "rejected": ActivityType.APPROVAL_REJECTED,
    "cancelled": ActivityType.APPROVAL_CANCELLED,
}


class ActivityLog:
    """Writes Activity rows in response to domain events."""

    def __init__(self, store: EntityStore[Activity]) -> None:
        self.store = store

    def subscribe_to(self, bus: EventBus) -> None:
        bus.subscribe(ProjectChanged, self.on_project_changed)
        bus.subscribe(MemberChanged, self.on_member_changed)
        bus.subscribe(TaskChanged, self.on_task_changed)
        bus.subscribe(IssueStatusChanged, self.on_issue_status_changed)
        bus.subscribe(IssueAssigned, self.on_issue_assigned)
        bus.subscribe(ApprovalStatusChanged, self.on_approval_status_changed)

    # ── Write ─────────────────────────────────────────────────────────────

    def record(self, activity_type: ActivityType | str, actor: CurrentUser, **fields) -> Activity:
        activity_type = ActivityType(activity_type).value
        activity = self.store.build({
            "type": activity_type,
            "user_id": actor.id,
            "user_name": actor.name,
            **fields,
        })
        self.store.insert(activity)
        logger.debug("Activity %s recorded", activity_type,
                     extra={"event_type": activity_type, "actor": actor.id})
        return activity

    def clear(self) -> None:
        self.store.clear()

    # ── Subscribers ───────────────────────────────────────────────────────

    def on_project_changed(self, event: ProjectChanged) -> None:
        self.record(
            _PROJECT_KINDS[event.kind], event.actor,
            project_id=event.project.id,
            project_name=event.project.name,
        )

    def on_member_changed(self, event: MemberChanged) -> None:
        self.record(
            _MEMBER_KINDS[event.kind], event.actor,
            member_id=event.member.id,
            member_name=event.member.name,
        )

    def on_task_changed(self, event: TaskChanged) -> None:
        self.record(
            _TASK_KINDS[event.kind], event.actor,
            project_id=event.task.project_id,
            project_name=event.project_name,
            task_id=event.task.id,
            task_title=event.task.title,
            old_value=event.old_status,
            new_value=event.task.status if event.old_status else None,
        )

    def on_issue_status_changed(self, event: IssueStatusChanged) -> None:
        self.record(
            ActivityType.ISSUE_STATUS_CHANGED, event.actor,
            project_id=event.issue.project_id,
            issue_id=event.issue.id,
            issue_title=event.issue.title,
            old_value=event.old_status,
            new_value=event.new_status,
        )

    def on_issue_assigned(self, event: IssueAssigned) -> None:
        self.record(
            ActivityType.ISSUE_ASSIGNED, event.actor,
            project_id=event.issue.project_id,
            issue_id=event.issue.id,
            issue_title=event.issue.title,
            member_id=event.issue.assignee_id,
            member_name=event.issue.assignee_name,
            old_value=event.previous_assignee_id,
            new_value=event.issue.assignee_id,
        )

    def on_approval_status_changed(self, event: ApprovalStatusChanged) -> None:
        self.record(
            _APPROVAL_STATUSES[event.new_status], event.actor,
            project_id=event.approval.project_id,
            project_name=event.approval.project_name,
            approval_id=event.approval.id,
            old_value=event.old_status,
            new_value=event.new_status,
            description=event.approval.title,
        )

    # ── Read ──────────────────────────────────────────────────────────────

    def list(self) -> list[Activity]:
        return self.store.list()

    def by_project(self, project_id: str) -> list[Activity]:
        return self.store.find(lambda a: a.project_id == project_id)

    def by_member(self, member_id: str) -> list[Activity]:
        return self.store.find(lambda a: a.user_id == member_id or a.member_id == member_id)

    def recent(self, limit: int = 50) -> list[Activity]:
        return self.store.list()[:limit]


def activity_message(activity: Activity) -> str:
    """One-line English summary of an activity row."""
    t = activity.type
    if t == ActivityType.PROJECT_CREATED:
        return f'Created project "{activity.project_name}"'
    if t == ActivityType.PROJECT_UPDATED:
        return f'Updated project "{activity.project_name}"'
    if t == ActivityType.PROJECT_COMPLETED:
        return f'Completed project "{activity.project_name}"'
    if t == ActivityType.PROJECT_DELETED:
        return f'Deleted project "{activity.project_name}"'
    if t == ActivityType.MEMBER_ADDED:
        return f'Added team member "{activity.member_name}"'
    if t == ActivityType.MEMBER_UPDATED:
        return f'Updated team member "{activity.member_name}"'
    if t == ActivityType.MEMBER_REMOVED:
        return f'Removed team member "{activity.member_name}"'
    if t == ActivityType.TASK_CREATED:
        return f'Created task "{activity.task_title}"'
    if t == ActivityType.TASK_UPDATED:
        return f'Updated task "{activity.task_title}"'
    if t == ActivityType.TASK_STATUS_CHANGED:
        return f'Moved task "{activity.task_title}" from {activity.old_value} to {activity.new_value}'
    if t == ActivityType.TASK_DELETED:
        return f'Deleted task "{activity.task_title}"'
    if t == ActivityType.ISSUE_STATUS_CHANGED:
        return f'Changed issue "{activity.issue_title}" from {activity.old_value} to {activity.new_value}'
    if t == ActivityType.ISSUE_ASSIGNED:
        return f'Assigned issue "{activity.issue_title}" to {activity.member_name or "nobody"}'
    if t == ActivityType.APPROVAL_REQUESTED:
        return f'Requested approval "{activity.description}"'
    if t in (ActivityType.APPROVAL_APPROVED, ActivityType.APPROVAL_REJECTED, ActivityType.APPROVAL_CANCELLED):
        return f'Approval "{activity.description}" {activity.new_value}'
    return activity.description or "Activity recorded"
