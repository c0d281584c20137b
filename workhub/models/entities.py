"""
WorkHub entity types.

Every entity family is a dataclass persisted as a JSON dict inside its
store's ``StoreRecord``. Enum-valued fields hold the plain lower-case
string value so that reloaded records compare equal to fresh ones.

Entities:
    - Member, Project, Task, Issue, IssueComment, IssueAttachment, Label,
      Approval, Message, Notice, WikiPage, Activity
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import date, datetime
from enum import Enum
from typing import ClassVar

from workhub.utils.helpers import parse_date, parse_datetime


# ═════════════════════════════════════════════════════════════════════════════
# Enums
# ═════════════════════════════════════════════════════════════════════════════

class Industry(str, Enum):
    SOFTWARE = "software"
    MANUFACTURING = "manufacturing"
    SERVICE = "service"
    GENERAL = "general"


class MemberRole(str, Enum):
    MANAGER = "manager"
    DEVELOPER = "developer"
    DESIGNER = "designer"
    QA = "qa"
    ANALYST = "analyst"


class MemberStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    BUSY = "busy"
    VACATION = "vacation"
    MEETING = "meeting"


class ProjectStatus(str, Enum):
    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ProjectPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Methodology(str, Enum):
    WATERFALL = "waterfall"
    AGILE = "agile"
    SCRUM = "scrum"
    KANBAN = "kanban"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class IssueType(str, Enum):
    BUG = "bug"
    FEATURE = "feature"
    IMPROVEMENT = "improvement"
    QUESTION = "question"
    TASK = "task"
    # Manufacturing vocabulary
    DEFECT = "defect"
    EQUIPMENT = "equipment"
    SAFETY = "safety"
    QUALITY = "quality"


class IssueStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    REOPENED = "reopened"


class IssuePriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class IssueSeverity(str, Enum):
    BLOCKER = "blocker"
    MAJOR = "major"
    MINOR = "minor"
    TRIVIAL = "trivial"


class ApprovalType(str, Enum):
    ISSUE_RESOLUTION = "issue_resolution"
    BUDGET = "budget"
    QUALITY_CHECK = "quality_check"
    RELEASE = "release"
    GENERAL = "general"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ApprovalPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class MessageType(str, Enum):
    DIRECT = "direct"
    CHANNEL = "channel"
    SYSTEM = "system"


class NoticeTarget(str, Enum):
    ALL = "all"
    SELECTED = "selected"


class WikiCategory(str, Enum):
    GENERAL = "general"
    TECHNICAL = "technical"
    PROCESS = "process"
    ONBOARDING = "onboarding"


class ActivityType(str, Enum):
    PROJECT_CREATED = "project.created"
    PROJECT_UPDATED = "project.updated"
    PROJECT_COMPLETED = "project.completed"
    PROJECT_DELETED = "project.deleted"
    MEMBER_ADDED = "member.added"
    MEMBER_UPDATED = "member.updated"
    MEMBER_REMOVED = "member.removed"
    TASK_CREATED = "task.created"
    TASK_UPDATED = "task.updated"
    TASK_STATUS_CHANGED = "task.status_changed"
    TASK_DELETED = "task.deleted"
    ISSUE_STATUS_CHANGED = "issue.status_changed"
    ISSUE_ASSIGNED = "issue.assigned"
    APPROVAL_REQUESTED = "approval.requested"
    APPROVAL_APPROVED = "approval.approved"
    APPROVAL_REJECTED = "approval.rejected"
    APPROVAL_CANCELLED = "approval.cancelled"


# ── Vocabulary tables ───────────────────────────────────────────────────────

# Kanban column order, independent of data order
ISSUE_BOARD_COLUMNS = tuple(s.value for s in IssueStatus)
PROJECT_BOARD_COLUMNS = tuple(s.value for s in ProjectStatus)
TASK_BOARD_COLUMNS = tuple(s.value for s in TaskStatus)

# Share of a task counted towards its project's progress
TASK_PROGRESS_WEIGHTS: dict[str, float] = {
    TaskStatus.TODO.value: 0,
    TaskStatus.IN_PROGRESS.value: 0.5,
    TaskStatus.REVIEW.value: 0.8,
    TaskStatus.DONE.value: 1,
}

_SOFTWARE_TYPES = ("bug", "feature", "improvement", "question", "task")
_MANUFACTURING_TYPES = ("defect", "equipment", "safety", "quality", "improvement", "question", "task")
_SERVICE_TYPES = ("feature", "improvement", "quality", "question", "task")

INDUSTRY_ISSUE_TYPES: dict[str, tuple[str, ...]] = {
    Industry.SOFTWARE.value: _SOFTWARE_TYPES,
    Industry.MANUFACTURING.value: _MANUFACTURING_TYPES,
    Industry.SERVICE.value: _SERVICE_TYPES,
    Industry.GENERAL.value: tuple(t.value for t in IssueType),
}

# Issue sub-fields solicited per industry
INDUSTRY_ISSUE_FIELDS: dict[str, tuple[str, ...]] = {
    Industry.SOFTWARE.value: ("environment", "steps_to_reproduce", "expected_result", "actual_result"),
    Industry.MANUFACTURING.value: ("metadata.line_id", "metadata.equipment_id", "metadata.lot_number"),
    Industry.SERVICE.value: ("metadata.customer", "metadata.contract_id"),
    Industry.GENERAL.value: (),
}

TERMINAL_APPROVAL_STATUSES = frozenset({
    ApprovalStatus.APPROVED.value,
    ApprovalStatus.REJECTED.value,
    ApprovalStatus.CANCELLED.value,
})


# ═════════════════════════════════════════════════════════════════════════════
# Entities
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(kw_only=True)
class Entity:
    """Common identity and timestamp fields plus JSON (de)serialisation."""

    id: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    ID_PREFIX: ClassVar[str] = "entity"
    DATETIME_FIELDS: ClassVar[tuple[str, ...]] = ("created_at", "updated_at")
    DATE_FIELDS: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    def to_dict(self) -> dict:
        data = asdict(self)
        for name in self.DATETIME_FIELDS + self.DATE_FIELDS:
            value = data.get(name)
            data[name] = value.isoformat() if value else None
        return data

    @classmethod
    def from_dict(cls, data: dict):
        """Re-hydrate an entity; unknown keys from older payloads are dropped."""
        known = cls.field_names()
        values = {k: v for k, v in data.items() if k in known}
        for name in cls.DATETIME_FIELDS:
            if name in values:
                values[name] = parse_datetime(values[name])
        for name in cls.DATE_FIELDS:
            if name in values:
                values[name] = parse_date(values[name])
        return cls(**values)


@dataclass(kw_only=True)
class Member(Entity):
    name: str = ""
    email: str = ""
    role: str = MemberRole.DEVELOPER.value
    department: str | None = None
    skills: list[str] = field(default_factory=list)
    status: str | None = None
    phone: str | None = None
    join_date: date | None = None

    ID_PREFIX: ClassVar[str] = "member"
    DATE_FIELDS: ClassVar[tuple[str, ...]] = ("join_date",)


@dataclass(kw_only=True)
class Project(Entity):
    name: str = ""
    description: str = ""
    status: str = ProjectStatus.PLANNING.value
    priority: str = ProjectPriority.MEDIUM.value
    industry: str = Industry.GENERAL.value
    methodology: str | None = None
    team_members: list[str] = field(default_factory=list)
    team_size: int = 0
    progress: int = 0
    budget: float = 0
    spent_budget: float = 0
    start_date: date | None = None
    end_date: date | None = None
    is_favorite: bool = False

    ID_PREFIX: ClassVar[str] = "project"
    DATE_FIELDS: ClassVar[tuple[str, ...]] = ("start_date", "end_date")


@dataclass(kw_only=True)
class Task(Entity):
    project_id: str = ""
    title: str = ""
    description: str = ""
    status: str = TaskStatus.TODO.value
    priority: str = TaskPriority.MEDIUM.value
    assignee_id: str | None = None
    assignee_name: str | None = None
    start_date: date | None = None
    due_date: date | None = None
    estimated_hours: float | None = None
    actual_hours: float | None = None
    estimated_cost: float | None = None
    actual_cost: float | None = None
    tags: list[str] = field(default_factory=list)

    ID_PREFIX: ClassVar[str] = "task"
    DATE_FIELDS: ClassVar[tuple[str, ...]] = ("start_date", "due_date")

    @property
    def cost(self) -> float:
        """Actual cost once booked, the estimate until then."""
        return self.actual_cost or self.estimated_cost or 0


@dataclass(kw_only=True)
class Issue(Entity):
    project_id: str = ""
    task_id: str | None = None
    title: str = ""
    description: str = ""
    type: str = IssueType.TASK.value
    status: str = IssueStatus.OPEN.value
    priority: str = IssuePriority.MEDIUM.value
    severity: str | None = None
    reporter_id: str = ""
    reporter_name: str = ""
    assignee_id: str | None = None
    assignee_name: str | None = None
    labels: list[str] = field(default_factory=list)
    due_date: date | None = None
    parent_issue_id: str | None = None
    related_issue_ids: list[str] = field(default_factory=list)
    # Software-specific
    environment: str | None = None
    steps_to_reproduce: str | None = None
    expected_result: str | None = None
    actual_result: str | None = None
    # Line / equipment / lot identifiers for non-software industries
    metadata: dict[str, str] = field(default_factory=dict)
    resolved_at: datetime | None = None
    closed_at: datetime | None = None

    ID_PREFIX: ClassVar[str] = "issue"
    DATETIME_FIELDS: ClassVar[tuple[str, ...]] = Entity.DATETIME_FIELDS + ("resolved_at", "closed_at")
    DATE_FIELDS: ClassVar[tuple[str, ...]] = ("due_date",)


@dataclass(kw_only=True)
class IssueComment(Entity):
    issue_id: str = ""
    author_id: str = ""
    author_name: str = ""
    content: str = ""

    ID_PREFIX: ClassVar[str] = "comment"


@dataclass(kw_only=True)
class IssueAttachment(Entity):
    issue_id: str = ""
    file_name: str = ""
    file_size: int = 0
    file_type: str = ""
    uploaded_by: str = ""

    ID_PREFIX: ClassVar[str] = "attachment"


@dataclass(kw_only=True)
class Label(Entity):
    name: str = ""
    color: str = "#8c8c8c"
    description: str | None = None
    industry: str | None = None
    category: str | None = None

    ID_PREFIX: ClassVar[str] = "label"


@dataclass(kw_only=True)
class Approval(Entity):
    title: str = ""
    type: str = ApprovalType.GENERAL.value
    priority: str = ApprovalPriority.MEDIUM.value
    status: str = ApprovalStatus.PENDING.value
    requester_id: str = ""
    requester_name: str = ""
    approver_id: str = ""
    approver_name: str = ""
    project_id: str = ""
    project_name: str = ""
    related_entity_id: str | None = None
    content: str = ""
    rejection_reason: str | None = None
    processed_at: datetime | None = None

    ID_PREFIX: ClassVar[str] = "approval"
    DATETIME_FIELDS: ClassVar[tuple[str, ...]] = Entity.DATETIME_FIELDS + ("processed_at",)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_APPROVAL_STATUSES


@dataclass(kw_only=True)
class Message(Entity):
    type: str = MessageType.DIRECT.value
    sender_id: str = ""
    sender_name: str = ""
    receiver_id: str | None = None
    receiver_name: str | None = None
    channel_id: str | None = None
    content: str = ""
    is_read: bool = False
    metadata: dict[str, str] = field(default_factory=dict)

    ID_PREFIX: ClassVar[str] = "message"


@dataclass(kw_only=True)
class Notice(Entity):
    title: str = ""
    content: str = ""
    author_id: str = ""
    author_name: str = ""
    is_important: bool = False
    target_type: str = NoticeTarget.ALL.value
    target_member_ids: list[str] = field(default_factory=list)

    ID_PREFIX: ClassVar[str] = "notice"


@dataclass(kw_only=True)
class WikiPage(Entity):
    title: str = ""
    content: str = ""
    category: str = WikiCategory.GENERAL.value
    author_id: str = ""
    author_name: str = ""
    parent_id: str | None = None

    ID_PREFIX: ClassVar[str] = "wiki"


@dataclass(kw_only=True)
class Activity(Entity):
    """Append-only activity log row. ``created_at`` is the event time."""

    type: str = ""
    user_id: str | None = None
    user_name: str = ""
    project_id: str | None = None
    project_name: str | None = None
    issue_id: str | None = None
    task_id: str | None = None
    task_title: str | None = None
    issue_title: str | None = None
    member_id: str | None = None
    member_name: str | None = None
    approval_id: str | None = None
    old_value: str | None = None
    new_value: str | None = None
    description: str | None = None

    ID_PREFIX: ClassVar[str] = "activity"
