"""
WorkHub Notification Dispatcher.

Turns membership and workload changes into direct messages:
  - a member newly added to a project's team is told about the assignment
    (members removed from a team are not messaged)
  - a member who becomes the assignee of an issue is told about it

Every message is best effort. A failed send is logged and the remaining
recipients are still processed; the project/issue mutation that triggered
the dispatch is never rolled back.
"""

import logging

from workhub.models.entities import Member
from workhub.services.entity_store import EntityStore
from workhub.services.events import EventBus, IssueAssigned, ProjectTeamChanged
from workhub.services.message_service import MessageService
from workhub.services.queries import UNKNOWN_MEMBER

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Stateless (apart from its collaborators) notification fan-out."""

    def __init__(self, messages: MessageService, members: EntityStore[Member]):
        self.messages = messages
        self.members = members

    def subscribe_to(self, bus: EventBus) -> None:
        bus.subscribe(ProjectTeamChanged, self.on_team_changed)
        bus.subscribe(IssueAssigned, self.on_issue_assigned)

    # ── Subscribers ───────────────────────────────────────────────────────

    def on_team_changed(self, event: ProjectTeamChanged):
        """Message every newly added member. Returns the number sent."""
        project = event.project
        sent = 0
        for member_id in event.added:
            try:
                self.messages.send_direct(
                    receiver_id=member_id,
                    receiver_name=self._member_name(member_id),
                    content=f'You have been assigned to project "{project.name}".',
                    metadata={"project_id": project.id},
                    sender=event.actor,
                )
                sent += 1
            except Exception:
                logger.exception(
                    "Assignment notice to %s failed", member_id,
                    extra={"event_type": event.event_type, "project_id": project.id},
                )
        if sent:
            logger.info("Sent %d team assignment notice(s)", sent,
                        extra={"event_type": event.event_type, "project_id": project.id})
        return sent

    def on_issue_assigned(self, event: IssueAssigned):
        issue = event.issue
        if not issue.assignee_id or issue.assignee_id == event.actor.id:
            return None
        try:
            return self.messages.send_direct(
                receiver_id=issue.assignee_id,
                receiver_name=issue.assignee_name or self._member_name(issue.assignee_id),
                content=f'Issue "{issue.title}" has been assigned to you.',
                metadata={"issue_id": issue.id, "project_id": issue.project_id},
                sender=event.actor,
            )
        except Exception:
            logger.exception(
                "Assignment notice for issue %s failed", issue.id,
                extra={"event_type": event.event_type, "issue_id": issue.id},
            )
            return None

    # ── Helpers ───────────────────────────────────────────────────────────

    def _member_name(self, member_id: str) -> str:
        member = self.members.get_by_id(member_id)
        return member.name if member else UNKNOWN_MEMBER
