"""
WorkHub: Tasks and the project figures derived from them.

Covers:
    1. Task validation and lookups
    2. Project progress (weighted by status) and spent budget after every write
    3. Task activity entries
"""

import pytest

from workhub.core.exceptions import ValidationError
from workhub.models.entities import Task
from workhub.services.task_service import project_progress, project_spent_budget


def _project(ws, name="Line 3 retrofit", **extra):
    return ws.projects.add_project({"name": name, **extra})


def _task(ws, project_id, title="Wire PLC", **extra):
    return ws.tasks.add_task({"project_id": project_id, "title": title, **extra})


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 1: Validation & lookups
# ═══════════════════════════════════════════════════════════════════════════

class TestTaskCrud:

    def test_defaults(self, workspace):
        task = _task(workspace, _project(workspace).id)
        assert task.id.startswith("task-")
        assert task.status == "todo"
        assert task.priority == "medium"
        assert task.tags == []

    def test_required_fields(self, workspace):
        with pytest.raises(ValidationError) as exc:
            workspace.tasks.add_task({"title": " "})
        assert set(exc.value.details) == {"project_id", "title"}
        assert workspace.tasks.list_tasks() == []

    def test_negative_cost_rejected(self, workspace):
        with pytest.raises(ValidationError) as exc:
            _task(workspace, _project(workspace).id, estimated_cost=-10)
        assert "estimated_cost" in exc.value.details

    def test_due_before_start_rejected(self, workspace):
        with pytest.raises(ValidationError):
            _task(workspace, _project(workspace).id, start_date="2026-03-10", due_date="2026-03-01")

    def test_update_and_delete_unknown_are_quiet(self, workspace):
        assert workspace.tasks.update_task("task-missing", {"title": "x"}) is None
        assert workspace.tasks.delete_task("task-missing") is False
        assert workspace.activity.list() == []

    def test_lookups(self, workspace):
        project, other = _project(workspace), _project(workspace, name="Portal")
        a = _task(workspace, project.id, status="done")
        b = _task(workspace, project.id)
        _task(workspace, other.id, status="done")
        assert [t.id for t in workspace.tasks.get_tasks_by_project(project.id)] == [a.id, b.id]
        assert [t.id for t in workspace.tasks.get_tasks_by_status(project.id, "done")] == [a.id]
        assert workspace.tasks.get_task_by_id(b.id).title == "Wire PLC"


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 2: Derived project figures
# ═══════════════════════════════════════════════════════════════════════════

class TestProjectDerivation:

    def test_weights(self):
        tasks = [
            Task(project_id="p", status="todo"),
            Task(project_id="p", status="in_progress"),
            Task(project_id="p", status="review"),
            Task(project_id="p", status="done"),
            Task(project_id="other", status="todo"),
        ]
        assert project_progress(tasks, "p") == pytest.approx(57.5)
        assert project_progress(tasks, "nobody") == 0

    def test_cost_prefers_actual(self):
        tasks = [
            Task(project_id="p", estimated_cost=100, actual_cost=140),
            Task(project_id="p", estimated_cost=50),
            Task(project_id="p"),
        ]
        assert project_spent_budget(tasks, "p") == 190

    def test_add_updates_project(self, workspace):
        project = _project(workspace, budget=5000)
        _task(workspace, project.id, status="done", estimated_cost=1000)
        _task(workspace, project.id, status="in_progress", estimated_cost=500, actual_cost=800)
        _task(workspace, project.id)

        stored = workspace.projects.get_project_by_id(project.id)
        assert stored.progress == 50
        assert stored.spent_budget == 1800

    def test_status_change_updates_progress(self, workspace):
        project = _project(workspace)
        a = _task(workspace, project.id)
        _task(workspace, project.id)
        workspace.tasks.update_task(a.id, {"status": "review"})
        assert workspace.projects.get_project_by_id(project.id).progress == 40

    def test_progress_rounded(self, workspace):
        project = _project(workspace)
        _task(workspace, project.id, status="done")
        _task(workspace, project.id)
        _task(workspace, project.id)
        assert workspace.projects.get_project_by_id(project.id).progress == 33

    def test_delete_recomputes(self, workspace):
        project = _project(workspace)
        done = _task(workspace, project.id, status="done", estimated_cost=300)
        _task(workspace, project.id, estimated_cost=200)
        workspace.tasks.delete_task(done.id)
        stored = workspace.projects.get_project_by_id(project.id)
        assert (stored.progress, stored.spent_budget) == (0, 200)

    def test_move_recomputes_both_projects(self, workspace):
        source, target = _project(workspace), _project(workspace, name="Portal")
        task = _task(workspace, source.id, status="done", estimated_cost=700)
        workspace.tasks.update_task(task.id, {"project_id": target.id})
        assert workspace.projects.get_project_by_id(source.id).progress == 0
        assert workspace.projects.get_project_by_id(source.id).spent_budget == 0
        assert workspace.projects.get_project_by_id(target.id).progress == 100
        assert workspace.projects.get_project_by_id(target.id).spent_budget == 700

    def test_dangling_project_is_tolerated(self, workspace):
        task = _task(workspace, "project-ghost", status="done")
        assert workspace.tasks.get_task_by_id(task.id).project_id == "project-ghost"


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 3: Activity
# ═══════════════════════════════════════════════════════════════════════════

class TestTaskActivity:

    def test_created(self, admin):
        project = _project(admin)
        task = _task(admin, project.id)
        entry = admin.activity.recent(1)[0]
        assert entry.type == "task.created"
        assert (entry.task_id, entry.task_title) == (task.id, "Wire PLC")
        assert entry.project_name == "Line 3 retrofit"
        assert entry.user_id == "user-1"

    def test_status_change_vs_plain_update(self, workspace):
        task = _task(workspace, _project(workspace).id)
        workspace.tasks.update_task(task.id, {"status": "in_progress"})
        entry = workspace.activity.recent(1)[0]
        assert entry.type == "task.status_changed"
        assert (entry.old_value, entry.new_value) == ("todo", "in_progress")

        workspace.tasks.update_task(task.id, {"description": "cabinet B"})
        assert workspace.activity.recent(1)[0].type == "task.updated"

    def test_deleted(self, workspace):
        task = _task(workspace, _project(workspace).id)
        assert workspace.tasks.delete_task(task.id) is True
        assert workspace.activity.recent(1)[0].type == "task.deleted"

    def test_progress_sync_adds_no_project_entry(self, workspace):
        project = _project(workspace)
        _task(workspace, project.id, status="done")
        assert [a.type for a in workspace.activity.by_project(project.id)] == ["task.created", "project.created"]
