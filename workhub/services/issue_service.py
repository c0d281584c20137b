"""
Issue service: issue lifecycle, comments, attachments and labels.

Status-driven derivation (applied by add_issue, update_issue,
change_status and, per row, bulk_update_issues):
    → resolved   resolved_at = now, only if not already set
    → closed     closed_at = now, only if not already set
    anything else leaves both timestamps untouched (reopen never clears them)

Cascades:
    delete_issue / bulk_delete_issues → the issue's comments and attachments
    delete_label                      → the label id is stripped from every issue
    project industry change           → labels the new industry does not offer
                                        are pruned from the project's issues
"""

from __future__ import annotations

import logging
from typing import Iterable

from workhub.core.exceptions import NotFoundError, ValidationError
from workhub.models.entities import (
    INDUSTRY_ISSUE_TYPES,
    Industry,
    Issue,
    IssueAttachment,
    IssueComment,
    IssuePriority,
    IssueSeverity,
    IssueStatus,
    IssueType,
    Label,
    Project,
)
from workhub.services import labels as label_rules
from workhub.services.auth_service import UserContext
from workhub.services.entity_store import EntityStore
from workhub.services.events import EventBus, IssueAssigned, IssueStatusChanged, ProjectChanged
from workhub.services.queries import sort_comments
from workhub.utils.helpers import parse_date
from workhub.utils.validation import check_enum, check_number, require_text, unique_ids

logger = logging.getLogger(__name__)

# Stamped by the store and derive_status_stamps, never taken from callers
_SERVER_FIELDS = ("id", "created_at", "updated_at", "resolved_at", "closed_at")


def derive_status_stamps(issue: Issue | None, new_status: str | None, now) -> dict:
    """Timestamp fields to set when *issue* moves to *new_status*."""
    stamps = {}
    if new_status == IssueStatus.RESOLVED.value and not (issue and issue.resolved_at):
        stamps["resolved_at"] = now
    elif new_status == IssueStatus.CLOSED.value and not (issue and issue.closed_at):
        stamps["closed_at"] = now
    return stamps


class IssueService:
    def __init__(
        self,
        issues: EntityStore[Issue],
        comments: EntityStore[IssueComment],
        attachments: EntityStore[IssueAttachment],
        labels: EntityStore[Label],
        projects: EntityStore[Project],
        bus: EventBus,
        users: UserContext,
    ) -> None:
        self.issues = issues
        self.comments = comments
        self.attachments = attachments
        self.labels = labels
        self.projects = projects
        self.bus = bus
        self.users = users

    # ═════════════════════════════════════════════════════════════════════
    # Validation
    # ═════════════════════════════════════════════════════════════════════

    def _industry_of(self, project_id: str | None) -> str:
        project = self.projects.get_by_id(project_id) if project_id else None
        return project.industry if project else Industry.GENERAL.value

    def _validate(self, data: dict, current: Issue | None = None) -> dict:
        """Validate a create payload (current=None) or a partial update.

        Raised before anything is written, so a rejected payload never
        reaches the store.
        """
        partial = current is not None
        errors: dict = {}
        clean = {k: v for k, v in data.items() if k not in _SERVER_FIELDS}

        if not partial or "project_id" in data:
            clean["project_id"] = require_text(data, "project_id", errors)
        if not partial or "title" in data:
            clean["title"] = require_text(data, "title", errors)
        if not partial or "type" in data:
            clean["type"] = check_enum(IssueType, data.get("type"), "type", errors, default=IssueType.TASK)
        if not partial or "status" in data:
            clean["status"] = check_enum(IssueStatus, data.get("status"), "status", errors,
                                         default=IssueStatus.OPEN)
        if not partial or "priority" in data:
            clean["priority"] = check_enum(IssuePriority, data.get("priority"), "priority", errors,
                                           default=IssuePriority.MEDIUM)
        if "severity" in data:
            clean["severity"] = check_enum(IssueSeverity, data.get("severity"), "severity", errors)
        if "labels" in data:
            clean["labels"] = unique_ids(data.get("labels"))
        if "related_issue_ids" in data:
            clean["related_issue_ids"] = unique_ids(data.get("related_issue_ids"))
        if "due_date" in data:
            clean["due_date"] = parse_date(data.get("due_date"))
        if "metadata" in data:
            metadata = data.get("metadata") or {}
            if not isinstance(metadata, dict):
                errors["metadata"] = "must be a mapping"
            else:
                clean["metadata"] = {str(k): str(v) for k, v in metadata.items() if v is not None}

        if "assignee_id" in data or "assignee_name" in data:
            assignee_id = data.get("assignee_id") or None
            assignee_name = (data.get("assignee_name") or "").strip() or None
            if assignee_id and not assignee_name:
                errors["assignee_name"] = "required when assignee_id is set"
            clean["assignee_id"] = assignee_id
            clean["assignee_name"] = assignee_name if assignee_id else None

        # Type must come from the governing project's vocabulary
        if "type" in clean or "project_id" in clean:
            issue_type = clean.get("type") or (current.type if current else None)
            industry = self._industry_of(clean.get("project_id") or (current.project_id if current else None))
            if issue_type and issue_type not in INDUSTRY_ISSUE_TYPES[industry]:
                errors["type"] = f"'{issue_type}' is not an issue type for {industry} projects"

        if errors:
            raise ValidationError("Invalid issue", details=errors)
        return clean

    # ═════════════════════════════════════════════════════════════════════
    # Issues
    # ═════════════════════════════════════════════════════════════════════

    def add_issue(self, payload: dict) -> Issue:
        data = self._validate(payload)
        actor = self.users.current
        if not data.get("reporter_id"):
            data["reporter_id"] = actor.id
            data["reporter_name"] = actor.name
        data.update(derive_status_stamps(None, data["status"], self.issues.clock()))

        issue = self.issues.build(data)
        self.issues.insert(issue)
        logger.info("Issue %s created", issue.id,
                    extra={"store": self.issues.name, "issue_id": issue.id, "project_id": issue.project_id})
        if issue.assignee_id:
            self.bus.publish(IssueAssigned(actor=actor, issue=issue, previous_assignee_id=None))
        return issue

    def update_issue(self, issue_id: str, changes: dict) -> Issue | None:
        """Partial update with status derivation. Unknown id is a quiet miss."""
        current = self.issues.get_by_id(issue_id)
        if current is None:
            return None
        data = self._validate(changes, current)

        # Moving to another project re-checks the selected labels
        if data.get("project_id") and data["project_id"] != current.project_id:
            data["labels"] = label_rules.prune_ineligible_labels(
                data.get("labels", current.labels),
                self.labels.list(),
                self._industry_of(data["project_id"]),
            )

        now = self.issues.clock()
        updated = self.issues.update_where(
            lambda e: e.id == issue_id,
            lambda e: {**data, **derive_status_stamps(e, data.get("status"), now)},
        )
        self._publish_changes(current, updated)
        return updated

    def change_status(self, issue_id: str, status: str) -> Issue | None:
        errors: dict = {}
        status = check_enum(IssueStatus, status, "status", errors)
        if errors or status is None:
            raise ValidationError("Invalid status", details=errors or {"status": "required"})
        return self.update_issue(issue_id, {"status": status})

    def assign_issue(self, issue_id: str, assignee_id: str | None, assignee_name: str | None) -> Issue | None:
        """Overwrite the assignee id/name pair. Pass (None, None) to unassign."""
        return self.update_issue(issue_id, {"assignee_id": assignee_id, "assignee_name": assignee_name})

    def bulk_update_issues(self, issue_ids: Iterable[str], changes: dict) -> int:
        """Apply *changes* to every listed issue in one write.

        Status derivation runs per row against that row's own prior state.
        Duplicate ids are harmless. Returns the number of issues updated.
        """
        if "project_id" in changes:
            raise ValidationError("Invalid bulk update", details={"project_id": "cannot be bulk updated"})
        wanted = set(issue_ids)
        before = {issue.id: issue for issue in self.issues.find(lambda e: e.id in wanted)}
        if not before:
            return 0
        # Every row is checked against its own project before the single write
        for old in before.values():
            data = self._validate(changes, old)

        now = self.issues.clock()
        self.issues.update_where(
            lambda e: e.id in wanted,
            lambda e: {**data, **derive_status_stamps(e, data.get("status"), now)},
        )
        for issue_id, old in before.items():
            self._publish_changes(old, self.issues.get_by_id(issue_id))
        logger.info("Bulk updated %d issue(s)", len(before), extra={"store": self.issues.name})
        return len(before)

    def _publish_changes(self, old: Issue, new: Issue) -> None:
        actor = self.users.current
        if old.status != new.status:
            self.bus.publish(IssueStatusChanged(
                actor=actor, issue=new, old_status=old.status, new_status=new.status,
            ))
        if new.assignee_id and new.assignee_id != old.assignee_id:
            self.bus.publish(IssueAssigned(actor=actor, issue=new, previous_assignee_id=old.assignee_id))

    def delete_issue(self, issue_id: str) -> bool:
        return self.bulk_delete_issues([issue_id]) > 0

    def bulk_delete_issues(self, issue_ids: Iterable[str]) -> int:
        wanted = set(issue_ids)
        removed = self.issues.delete_where(lambda e: e.id in wanted)
        if removed:
            self.comments.delete_where(lambda c: c.issue_id in wanted)
            self.attachments.delete_where(lambda a: a.issue_id in wanted)
            logger.info("Deleted %d issue(s) with their comments and attachments", removed,
                        extra={"store": self.issues.name})
        return removed

    def get_issue_by_id(self, issue_id: str) -> Issue | None:
        return self.issues.get_by_id(issue_id)

    def list_issues(self) -> list[Issue]:
        return self.issues.list()

    def get_issues_by_project(self, project_id: str) -> list[Issue]:
        return self.issues.find(lambda e: e.project_id == project_id)

    def get_issues_by_assignee(self, assignee_id: str) -> list[Issue]:
        return self.issues.find(lambda e: e.assignee_id == assignee_id)

    # ═════════════════════════════════════════════════════════════════════
    # Comments
    # ═════════════════════════════════════════════════════════════════════

    def _require_issue(self, issue_id: str) -> Issue:
        issue = self.issues.get_by_id(issue_id)
        if issue is None:
            raise NotFoundError("Issue", issue_id)
        return issue

    def add_comment(self, issue_id: str, content: str) -> IssueComment:
        self._require_issue(issue_id)
        errors: dict = {}
        content = require_text({"content": content}, "content", errors)
        if errors:
            raise ValidationError("Invalid comment", details=errors)
        actor = self.users.current
        comment = self.comments.build({
            "issue_id": issue_id, "author_id": actor.id, "author_name": actor.name, "content": content,
        })
        self.comments.insert(comment)
        return comment

    def update_comment(self, comment_id: str, content: str) -> IssueComment | None:
        errors: dict = {}
        content = require_text({"content": content}, "content", errors)
        if errors:
            raise ValidationError("Invalid comment", details=errors)
        return self.comments.update(comment_id, {"content": content})

    def delete_comment(self, comment_id: str) -> bool:
        return self.comments.delete(comment_id)

    def get_issue_comments(self, issue_id: str) -> list[IssueComment]:
        return sort_comments(self.comments.find(lambda c: c.issue_id == issue_id))

    # ═════════════════════════════════════════════════════════════════════
    # Attachments
    # ═════════════════════════════════════════════════════════════════════

    def add_attachment(self, issue_id: str, payload: dict) -> IssueAttachment:
        self._require_issue(issue_id)
        errors: dict = {}
        file_name = require_text(payload, "file_name", errors)
        check_number(payload.get("file_size", 0), "file_size", errors, minimum=0)
        if errors:
            raise ValidationError("Invalid attachment", details=errors)
        attachment = self.attachments.build({
            "issue_id": issue_id,
            "file_name": file_name,
            "file_size": payload.get("file_size", 0),
            "file_type": payload.get("file_type") or "",
            "uploaded_by": payload.get("uploaded_by") or self.users.current.id,
        })
        self.attachments.insert(attachment)
        return attachment

    def delete_attachment(self, attachment_id: str) -> bool:
        return self.attachments.delete(attachment_id)

    def get_issue_attachments(self, issue_id: str) -> list[IssueAttachment]:
        return self.attachments.find(lambda a: a.issue_id == issue_id)

    # ═════════════════════════════════════════════════════════════════════
    # Labels
    # ═════════════════════════════════════════════════════════════════════

    def _validate_label(self, data: dict, *, partial: bool) -> dict:
        errors: dict = {}
        clean = dict(data)
        if not partial or "name" in data:
            clean["name"] = require_text(data, "name", errors)
        if "industry" in data:
            clean["industry"] = check_enum(Industry, data.get("industry"), "industry", errors)
        if errors:
            raise ValidationError("Invalid label", details=errors)
        return clean

    def add_label(self, payload: dict) -> Label:
        label = self.labels.build(self._validate_label(payload, partial=False))
        self.labels.insert(label)
        return label

    def update_label(self, label_id: str, changes: dict) -> Label | None:
        return self.labels.update(label_id, self._validate_label(changes, partial=True))

    def delete_label(self, label_id: str) -> bool:
        if not self.labels.delete(label_id):
            return False
        self._strip_labels({label_id})
        return True

    def _strip_labels(self, label_ids: set[str]) -> None:
        self.issues.update_where(
            lambda e: any(lid in label_ids for lid in e.labels),
            lambda e: {"labels": [lid for lid in e.labels if lid not in label_ids]},
        )

    def subscribe_to(self, bus: EventBus) -> None:
        bus.subscribe(ProjectChanged, self.on_project_changed)

    def on_project_changed(self, event: ProjectChanged) -> None:
        if event.previous_industry is None:
            return
        self.prune_project_labels(event.project.id, event.project.industry)

    def prune_project_labels(self, project_id: str, industry: str) -> int:
        """Drop labels *industry* does not offer from every issue of the project.

        Returns the number of issues changed.
        """
        catalogue = self.labels.list()
        kept = {}
        for issue in self.issues.find(lambda e: e.project_id == project_id):
            eligible = label_rules.prune_ineligible_labels(issue.labels, catalogue, industry)
            if eligible != issue.labels:
                kept[issue.id] = eligible
        if kept:
            self.issues.update_where(lambda e: e.id in kept, lambda e: {"labels": kept[e.id]})
            logger.info("Pruned labels on %d issue(s) after industry change", len(kept),
                        extra={"store": self.issues.name, "project_id": project_id})
        return len(kept)

    def list_labels(self) -> list[Label]:
        return self.labels.list()

    def eligible_labels_for(self, project_id: str | None = None, industry: str | None = None) -> list[Label]:
        """Labels offered for an issue in *project_id* (or directly for *industry*)."""
        if project_id is not None:
            industry = self._industry_of(project_id)
        return label_rules.eligible_labels(self.labels.list(), industry)

    def initialize_labels(self) -> list[Label]:
        """Reconcile the working label set against the canonical defaults."""
        current = self.labels.list()
        merged, replaced = label_rules.reconcile_labels(current, label_rules.default_labels())
        if [l.id for l in merged] == [l.id for l in current]:
            return current

        now = self.labels.clock()
        for label in merged:
            if label.created_at is None:
                label.created_at = now
                label.updated_at = now
        self.labels.replace_all(merged)

        if replaced:
            dropped = {l.id for l in current} - {l.id for l in merged}
            if dropped:
                self._strip_labels(dropped)
        logger.info("Labels initialised (%s), %d in set", "replaced" if replaced else "merged", len(merged),
                    extra={"store": self.labels.name})
        return self.labels.list()
