"""
Derived views over store snapshots.

Every function here is pure: it takes lists of entities (as returned by
``EntityStore.list()``), never mutates them, and returns a new list or
dict. Results depend only on the arguments, so the same input in any
order yields the same output wherever an ordering key is defined.

Usage:
    from workhub.services import queries

    rows = queries.filter_issues(issues, status=queries.ALL, assignee_id="member-2")
    board = queries.group_by_status(rows)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Sequence

from workhub.models.entities import (
    INDUSTRY_ISSUE_FIELDS,
    INDUSTRY_ISSUE_TYPES,
    ISSUE_BOARD_COLUMNS,
    Activity,
    Industry,
    Issue,
    IssueComment,
    IssuePriority,
    IssueStatus,
    IssueType,
    Member,
    Message,
    MessageType,
    Notice,
    NoticeTarget,
    Project,
    ProjectStatus,
)

# Filter sentinel: a predicate given ALL is skipped
ALL = "all"

UNKNOWN_MEMBER = "unknown"
UNKNOWN_PROJECT = "-"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

_TEXT_FIELDS = ("title", "name", "description", "content")


# ── Text search ───────────────────────────────────────────────────────────────

def matches_text(entity, text: str, fields: Sequence[str] = _TEXT_FIELDS) -> bool:
    """Case-insensitive substring match over *fields* and any ``metadata`` values."""
    needle = (text or "").strip().lower()
    if not needle:
        return True
    for name in fields:
        value = getattr(entity, name, None)
        if isinstance(value, str) and needle in value.lower():
            return True
    metadata = getattr(entity, "metadata", None)
    if isinstance(metadata, dict):
        return any(isinstance(v, str) and needle in v.lower() for v in metadata.values())
    return False


def search(items: Iterable, text: str, fields: Sequence[str] = _TEXT_FIELDS) -> list:
    return [item for item in items if matches_text(item, text, fields)]


# ── Filters ───────────────────────────────────────────────────────────────────

def _passes(value, wanted) -> bool:
    return wanted is None or wanted == ALL or value == wanted


def filter_projects(
    projects: Iterable[Project],
    *,
    search_text: str = "",
    status: str = ALL,
    priority: str = ALL,
    industry: str = ALL,
) -> list[Project]:
    return [
        p for p in projects
        if matches_text(p, search_text, ("name", "description"))
        and _passes(p.status, status)
        and _passes(p.priority, priority)
        and _passes(p.industry, industry)
    ]


def filter_issues(
    issues: Iterable[Issue],
    *,
    search_text: str = "",
    type: str = ALL,
    status: str = ALL,
    priority: str = ALL,
    project_id: str = ALL,
    assignee_id: str = ALL,
    label_id: str = ALL,
) -> list[Issue]:
    """Exact-match filters over issue enum/id fields; ``ALL`` skips a predicate."""
    return [
        i for i in issues
        if matches_text(i, search_text, ("title", "description"))
        and _passes(i.type, type)
        and _passes(i.status, status)
        and _passes(i.priority, priority)
        and _passes(i.project_id, project_id)
        and _passes(i.assignee_id, assignee_id)
        and (label_id is None or label_id == ALL or label_id in i.labels)
    ]


# ── Ordering & grouping ──────────────────────────────────────────────────────

def _ts(value) -> datetime:
    return value or _EPOCH


def favorite_first(projects: Iterable[Project]) -> list[Project]:
    """Favorites before the rest; within each group newest first (stable)."""
    return sorted(projects, key=lambda p: (not p.is_favorite, -_ts(p.created_at).timestamp()))


def sort_comments(comments: Iterable[IssueComment]) -> list[IssueComment]:
    """Oldest first."""
    return sorted(comments, key=lambda c: _ts(c.created_at))


def group_by_status(items: Iterable, columns: Sequence[str] = ISSUE_BOARD_COLUMNS) -> dict[str, list]:
    """Kanban board: one column per status in *columns* order, items keep input order.

    Items whose status is not a column are left out.
    """
    board: dict[str, list] = {status: [] for status in columns}
    for item in items:
        if item.status in board:
            board[item.status].append(item)
    return board


# ── Lookups with placeholders ────────────────────────────────────────────────

def resolve_member_name(members: Iterable[Member], member_id: str | None) -> str:
    for m in members:
        if m.id == member_id:
            return m.name
    return UNKNOWN_MEMBER


def resolve_project_name(projects: Iterable[Project], project_id: str | None) -> str:
    for p in projects:
        if p.id == project_id:
            return p.name
    return UNKNOWN_PROJECT


def team_roster(project: Project, members: Iterable[Member]) -> list[tuple[str, str]]:
    """(member_id, name) for every team member; dangling ids resolve to "unknown"."""
    by_id = {m.id: m.name for m in members}
    return [(mid, by_id.get(mid, UNKNOWN_MEMBER)) for mid in project.team_members]


# ── Industry vocabulary ──────────────────────────────────────────────────────

def issue_types_for(industry: str | None) -> tuple[str, ...]:
    return INDUSTRY_ISSUE_TYPES.get(industry or Industry.GENERAL.value, INDUSTRY_ISSUE_TYPES[Industry.GENERAL.value])


def issue_fields_for(industry: str | None) -> tuple[str, ...]:
    return INDUSTRY_ISSUE_FIELDS.get(industry or Industry.GENERAL.value, ())


# ── Aggregates ───────────────────────────────────────────────────────────────

def issue_stats(issues: Iterable[Issue]) -> dict:
    issues = list(issues)
    return {
        "total": len(issues),
        "open": sum(1 for i in issues if i.status in (IssueStatus.OPEN, IssueStatus.REOPENED)),
        "in_progress": sum(1 for i in issues if i.status == IssueStatus.IN_PROGRESS),
        "resolved": sum(1 for i in issues if i.status in (IssueStatus.RESOLVED, IssueStatus.CLOSED)),
        "bugs": sum(1 for i in issues if i.type in (IssueType.BUG, IssueType.DEFECT)),
        "critical_open": sum(
            1 for i in issues
            if i.priority == IssuePriority.CRITICAL and i.status != IssueStatus.CLOSED
        ),
    }


def project_stats(projects: Iterable[Project]) -> dict:
    projects = list(projects)
    by_status = {s.value: 0 for s in ProjectStatus}
    for p in projects:
        if p.status in by_status:
            by_status[p.status] += 1
    total_budget = sum(p.budget or 0 for p in projects)
    total_spent = sum(p.spent_budget or 0 for p in projects)
    return {
        "total": len(projects),
        "by_status": by_status,
        "favorites": sum(1 for p in projects if p.is_favorite),
        "average_progress": round(sum(p.progress for p in projects) / len(projects)) if projects else 0,
        "total_budget": total_budget,
        "total_spent": total_spent,
        "budget_utilisation_pct": round(total_spent / total_budget * 100, 1) if total_budget else 0.0,
    }


def recent_activities(activities: Iterable[Activity], limit: int = 50) -> list[Activity]:
    return sorted(activities, key=lambda a: _ts(a.created_at), reverse=True)[:limit]


# ── Messages & notices ───────────────────────────────────────────────────────

def unread_count(messages: Iterable[Message], member_id: str) -> int:
    return sum(
        1 for m in messages
        if m.type == MessageType.DIRECT and m.receiver_id == member_id and not m.is_read
    )


def conversation(messages: Iterable[Message], member_a: str, member_b: str) -> list[Message]:
    """Direct messages exchanged between two members, oldest first."""
    pair = {member_a, member_b}
    rows = [
        m for m in messages
        if m.type == MessageType.DIRECT and {m.sender_id, m.receiver_id} == pair
    ]
    return sorted(rows, key=lambda m: _ts(m.created_at))


def visible_notices(notices: Iterable[Notice], member_id: str | None) -> list[Notice]:
    """Notices addressed to everyone or to *member_id*; important first, then newest."""
    rows = [
        n for n in notices
        if n.target_type == NoticeTarget.ALL or (member_id and member_id in n.target_member_ids)
    ]
    return sorted(rows, key=lambda n: (not n.is_important, -_ts(n.created_at).timestamp()))
