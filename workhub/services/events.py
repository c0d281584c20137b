"""
Domain event bus.

Mutating services publish a typed event after their own store write has
committed; independent subscribers (Activity Log, Notification
Dispatcher) react to it. Delivery is synchronous and in subscription
order. A failing subscriber is logged and skipped: the mutation that
emitted the event has already succeeded and is never rolled back.

Usage:
    bus = EventBus()
    bus.subscribe(ProjectTeamChanged, dispatcher.on_team_changed)
    bus.publish(ProjectTeamChanged(actor=user, project=p, added=("m1",), removed=()))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from workhub.models.entities import Approval, Issue, Member, Project, Task
from workhub.services.auth_service import CurrentUser

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# Events
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    actor: CurrentUser

    @property
    def event_type(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, kw_only=True)
class ProjectChanged(DomainEvent):
    """kind is one of created | updated | completed | deleted.

    previous_industry is set on updates that changed the industry.
    """
    kind: str
    project: Project
    previous_industry: str | None = None


@dataclass(frozen=True, kw_only=True)
class ProjectTeamChanged(DomainEvent):
    project: Project
    added: tuple[str, ...]
    removed: tuple[str, ...]


@dataclass(frozen=True, kw_only=True)
class TaskChanged(DomainEvent):
    """kind is one of created | updated | status_changed | deleted."""
    kind: str
    task: Task
    project_name: str | None = None
    old_status: str | None = None


@dataclass(frozen=True, kw_only=True)
class MemberChanged(DomainEvent):
    """kind is one of added | updated | removed."""
    kind: str
    member: Member


@dataclass(frozen=True, kw_only=True)
class IssueStatusChanged(DomainEvent):
    issue: Issue
    old_status: str
    new_status: str


@dataclass(frozen=True, kw_only=True)
class IssueAssigned(DomainEvent):
    issue: Issue
    previous_assignee_id: str | None


@dataclass(frozen=True, kw_only=True)
class ApprovalStatusChanged(DomainEvent):
    approval: Approval
    old_status: str | None
    new_status: str


Handler = Callable[[DomainEvent], None]


# ═════════════════════════════════════════════════════════════════════════════
# Bus
# ═════════════════════════════════════════════════════════════════════════════

class EventBus:
    """Synchronous, fire-and-forget publish/subscribe keyed by event class."""

    def __init__(self) -> None:
        self._subscribers: dict[type[DomainEvent], list[Handler]] = {}

    def subscribe(self, event_type: type[DomainEvent], handler: Handler) -> None:
        self._subscribers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: type[DomainEvent], handler: Handler) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: DomainEvent) -> int:
        """Deliver *event* to every subscriber of its class.

        Returns the number of subscribers that failed.
        """
        failures = 0
        for handler in list(self._subscribers.get(type(event), [])):
            try:
                handler(event)
            except Exception:
                failures += 1
                logger.exception(
                    "Subscriber %s failed for %s",
                    getattr(handler, "__qualname__", repr(handler)),
                    event.event_type,
                    extra={"event_type": event.event_type, "actor": event.actor.id},
                )
        return failures
