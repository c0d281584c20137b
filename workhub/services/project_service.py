"""
Project service: cross-store orchestration for project mutations.

add_project / update_project, after writing the project store, publish in
this order:
  1. ProjectChanged  → activity log (created | completed | updated)
  2. ProjectTeamChanged (only when members were added or removed)
     → notification dispatcher messages each newly added member

Both are fire-and-forget: a failing subscriber never undoes the project
write. Deleting a project leaves its issues, approvals and messages in
place; readers show their project as "-".

Usage:
    project = workspace.projects.add_project({"name": "Line 3 retrofit",
                                              "industry": "manufacturing"})
    workspace.projects.update_project(project.id, {"team_members": ["member-1"]})
"""

from __future__ import annotations

import logging
from typing import Callable

from workhub.core.exceptions import ValidationError
from workhub.models.entities import Industry, Methodology, Project, ProjectPriority, ProjectStatus
from workhub.services.auth_service import UserContext
from workhub.services.entity_store import EntityStore
from workhub.services.events import EventBus, ProjectChanged, ProjectTeamChanged
from workhub.utils.helpers import parse_date
from workhub.utils.validation import check_enum, check_number, require_text, unique_ids

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(self, store: EntityStore[Project], bus: EventBus, users: UserContext) -> None:
        self.store = store
        self.bus = bus
        self.users = users

    # ── Validation ────────────────────────────────────────────────────────

    def _validate(self, data: dict, current: Project | None = None) -> dict:
        """Validate a create payload (current=None) or a partial update."""
        partial = current is not None
        errors: dict = {}
        clean = dict(data)

        if not partial or "name" in data:
            clean["name"] = require_text(data, "name", errors)
        if not partial or "status" in data:
            clean["status"] = check_enum(ProjectStatus, data.get("status"), "status", errors,
                                         default=ProjectStatus.PLANNING)
        if not partial or "priority" in data:
            clean["priority"] = check_enum(ProjectPriority, data.get("priority"), "priority", errors,
                                           default=ProjectPriority.MEDIUM)
        if not partial or "industry" in data:
            clean["industry"] = check_enum(Industry, data.get("industry"), "industry", errors,
                                           default=Industry.GENERAL)
        if "methodology" in data:
            clean["methodology"] = check_enum(Methodology, data.get("methodology"), "methodology", errors)
        if "team_members" in data:
            clean["team_members"] = unique_ids(data.get("team_members"))
        for name in ("budget", "spent_budget"):
            if name in data:
                check_number(data[name], name, errors, minimum=0)
        if "progress" in data:
            check_number(data["progress"], "progress", errors, minimum=0, maximum=100)
        if "team_size" in data:
            check_number(data["team_size"], "team_size", errors, minimum=0)

        for name in ("start_date", "end_date"):
            if name in data:
                parsed = parse_date(data[name])
                if data[name] and parsed is None:
                    errors[name] = "invalid date"
                clean[name] = parsed
        start = clean.get("start_date", current.start_date if current else None)
        end = clean.get("end_date", current.end_date if current else None)
        if start and end and start > end:
            errors["end_date"] = "must not be before start_date"

        if errors:
            raise ValidationError("Invalid project", details=errors)
        return clean

    # ── Commands ──────────────────────────────────────────────────────────

    def add_project(self, payload: dict) -> Project:
        data = self._validate(payload)
        data.setdefault("team_members", [])
        data.setdefault("team_size", len(data["team_members"]))
        data.update(progress=0, spent_budget=0, is_favorite=False)

        project = self.store.build(data)
        self.store.insert(project)
        logger.info("Project %s created", project.id,
                    extra={"store": self.store.name, "project_id": project.id})

        actor = self.users.current
        self.bus.publish(ProjectChanged(actor=actor, kind="created", project=project))
        if project.team_members:
            self.bus.publish(ProjectTeamChanged(
                actor=actor, project=project, added=tuple(project.team_members), removed=(),
            ))
        return project

    def update_project(self, project_id: str, changes: dict) -> Project | None:
        """Apply a partial update. Unknown id is a quiet miss (None)."""
        current = self.store.get_by_id(project_id)
        if current is None:
            logger.debug("update_project: %s not found", project_id)
            return None

        updated = self.store.update(project_id, self._validate(changes, current))

        actor = self.users.current
        completed_now = (
            current.status != ProjectStatus.COMPLETED
            and updated.status == ProjectStatus.COMPLETED
        )
        self.bus.publish(ProjectChanged(
            actor=actor, kind="completed" if completed_now else "updated", project=updated,
            previous_industry=current.industry if current.industry != updated.industry else None,
        ))

        added = tuple(m for m in updated.team_members if m not in current.team_members)
        removed = tuple(m for m in current.team_members if m not in updated.team_members)
        if added or removed:
            self.bus.publish(ProjectTeamChanged(actor=actor, project=updated, added=added, removed=removed))
        return updated

    def delete_project(self, project_id: str) -> bool:
        project = self.store.get_by_id(project_id)
        if project is None:
            return False
        self.store.delete(project_id)
        logger.info("Project %s deleted", project_id,
                    extra={"store": self.store.name, "project_id": project_id})
        self.bus.publish(ProjectChanged(actor=self.users.current, kind="deleted", project=project))
        return True

    def toggle_favorite(self, project_id: str) -> Project | None:
        project = self.store.get_by_id(project_id)
        if project is None:
            return None
        return self.store.update(project_id, {"is_favorite": not project.is_favorite})

    def update_progress(self, project_id: str, progress: float) -> Project | None:
        return self._set_rounded(project_id, "progress", progress, maximum=100)

    def update_budget(self, project_id: str, spent_budget: float) -> Project | None:
        return self._set_rounded(project_id, "spent_budget", spent_budget)

    def _set_rounded(self, project_id: str, field: str, value, maximum=None) -> Project | None:
        errors: dict = {}
        check_number(value, field, errors, minimum=0, maximum=maximum)
        if errors:
            raise ValidationError(f"Invalid {field}", details=errors)
        return self.store.update(project_id, {field: round(value)})

    # ── Queries ───────────────────────────────────────────────────────────

    def get_project_by_id(self, project_id: str) -> Project | None:
        return self.store.get_by_id(project_id)

    def list_projects(self) -> list[Project]:
        return self.store.list()

    def find(self, predicate: Callable[[Project], bool]) -> list[Project]:
        return self.store.find(predicate)
