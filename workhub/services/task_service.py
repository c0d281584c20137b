"""
Task service: project work items and the project figures derived from them.

Every task write recomputes, for each project it touched, the project's
    progress      = mean of TASK_PROGRESS_WEIGHTS over its tasks × 100
                    (0 for a project without tasks)
    spent_budget  = sum of actual_cost, falling back to estimated_cost
and writes both through ProjectService before TaskChanged is published
to the activity log. Moving a task to another project recomputes both
the old and the new project.

Usage:
    task = workspace.tasks.add_task({"project_id": project.id, "title": "Wire PLC",
                                     "estimated_cost": 1200})
    workspace.tasks.update_task(task.id, {"status": "review"})
"""

from __future__ import annotations

import logging

from workhub.core.exceptions import ValidationError
from workhub.models.entities import TASK_PROGRESS_WEIGHTS, Task, TaskPriority, TaskStatus
from workhub.services.auth_service import UserContext
from workhub.services.entity_store import EntityStore
from workhub.services.events import EventBus, TaskChanged
from workhub.services.project_service import ProjectService
from workhub.utils.helpers import parse_date
from workhub.utils.validation import check_enum, check_number, require_text, unique_ids

logger = logging.getLogger(__name__)


def project_progress(tasks: list[Task], project_id: str) -> float:
    """Weighted completion of *project_id*'s tasks, 0–100."""
    weights = [TASK_PROGRESS_WEIGHTS[t.status] for t in tasks if t.project_id == project_id]
    if not weights:
        return 0
    return min(100, sum(weights) / len(weights) * 100)


def project_spent_budget(tasks: list[Task], project_id: str) -> float:
    return sum(t.cost for t in tasks if t.project_id == project_id)


class TaskService:
    def __init__(self, store: EntityStore[Task], projects: ProjectService, bus: EventBus, users: UserContext) -> None:
        self.store = store
        self.projects = projects
        self.bus = bus
        self.users = users

    def _validate(self, data: dict, current: Task | None = None) -> dict:
        partial = current is not None
        errors: dict = {}
        clean = dict(data)

        if not partial or "project_id" in data:
            clean["project_id"] = require_text(data, "project_id", errors)
        if not partial or "title" in data:
            clean["title"] = require_text(data, "title", errors)
        if not partial or "status" in data:
            clean["status"] = check_enum(TaskStatus, data.get("status"), "status", errors,
                                         default=TaskStatus.TODO)
        if not partial or "priority" in data:
            clean["priority"] = check_enum(TaskPriority, data.get("priority"), "priority", errors,
                                           default=TaskPriority.MEDIUM)
        for name in ("estimated_hours", "actual_hours", "estimated_cost", "actual_cost"):
            if name in data:
                check_number(data[name], name, errors, minimum=0)
        if "tags" in data:
            clean["tags"] = unique_ids(data.get("tags"))
        if "assignee_id" in data or "assignee_name" in data:
            assignee_id = data.get("assignee_id") or None
            assignee_name = (data.get("assignee_name") or "").strip() or None
            if assignee_id and not assignee_name:
                errors["assignee_name"] = "required when assignee_id is set"
            clean["assignee_id"] = assignee_id
            clean["assignee_name"] = assignee_name if assignee_id else None

        for name in ("start_date", "due_date"):
            if name in data:
                parsed = parse_date(data[name])
                if data[name] and parsed is None:
                    errors[name] = "invalid date"
                clean[name] = parsed
        start = clean.get("start_date", current.start_date if current else None)
        due = clean.get("due_date", current.due_date if current else None)
        if start and due and start > due:
            errors["due_date"] = "must not be before start_date"

        if errors:
            raise ValidationError("Invalid task", details=errors)
        return clean

    # ── Commands ──────────────────────────────────────────────────────────

    def add_task(self, payload: dict) -> Task:
        task = self.store.build(self._validate(payload))
        self.store.insert(task)
        logger.info("Task %s created", task.id,
                    extra={"store": self.store.name, "task_id": task.id, "project_id": task.project_id})
        self._sync_projects(task.project_id)
        self._publish("created", task)
        return task

    def update_task(self, task_id: str, changes: dict) -> Task | None:
        """Partial update. Unknown id is a quiet miss (None)."""
        current = self.store.get_by_id(task_id)
        if current is None:
            logger.debug("update_task: %s not found", task_id)
            return None
        updated = self.store.update(task_id, self._validate(changes, current))
        self._sync_projects(current.project_id, updated.project_id)
        if updated.status != current.status:
            self._publish("status_changed", updated, old_status=current.status)
        else:
            self._publish("updated", updated)
        return updated

    def delete_task(self, task_id: str) -> bool:
        task = self.store.get_by_id(task_id)
        if task is None:
            return False
        self.store.delete(task_id)
        logger.info("Task %s deleted", task_id, extra={"store": self.store.name, "task_id": task_id})
        self._sync_projects(task.project_id)
        self._publish("deleted", task)
        return True

    def _sync_projects(self, *project_ids: str) -> None:
        tasks = self.store.list()
        for project_id in dict.fromkeys(project_ids):
            if self.projects.get_project_by_id(project_id) is None:
                continue
            self.projects.update_progress(project_id, project_progress(tasks, project_id))
            self.projects.update_budget(project_id, project_spent_budget(tasks, project_id))

    def _publish(self, kind: str, task: Task, old_status: str | None = None) -> None:
        project = self.projects.get_project_by_id(task.project_id)
        self.bus.publish(TaskChanged(
            actor=self.users.current, kind=kind, task=task,
            project_name=project.name if project else None, old_status=old_status,
        ))

    # ── Queries ───────────────────────────────────────────────────────────

    def get_task_by_id(self, task_id: str) -> Task | None:
        return self.store.get_by_id(task_id)

    def list_tasks(self) -> list[Task]:
        return self.store.list()

    def get_tasks_by_project(self, project_id: str) -> list[Task]:
        return self.store.find(lambda t: t.project_id == project_id)

    def get_tasks_by_status(self, project_id: str, status: str) -> list[Task]:
        return self.store.find(lambda t: t.project_id == project_id and t.status == status)
