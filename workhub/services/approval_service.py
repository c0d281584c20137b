"""
Approval workflow: single-step request/response.

    pending ──process(approved)──▶ approved
            ──process(rejected)──▶ rejected
            ──cancel─────────────▶ cancelled

approved / rejected / cancelled are terminal; any further transition
raises InvalidTransitionError. Every status change is published as an
ApprovalStatusChanged event and lands in the activity log.

Usage:
    approval = workspace.approvals.request_approval({
        "title": "Release 2.1", "type": "release",
        "approver_id": "member-1", "approver_name": "Kim", "project_id": pid,
    })
    workspace.approvals.process_approval(approval.id, "rejected", "Missing QA sign-off")
"""

from __future__ import annotations

import logging

from workhub.core.exceptions import InvalidTransitionError, ValidationError
from workhub.models.entities import (
    Approval,
    ApprovalPriority,
    ApprovalStatus,
    ApprovalType,
    Project,
)
from workhub.services.auth_service import UserContext
from workhub.services.entity_store import EntityStore
from workhub.services.events import ApprovalStatusChanged, EventBus
from workhub.services.queries import resolve_project_name
from workhub.utils.validation import check_enum, require_text

logger = logging.getLogger(__name__)

# Approval transition rules
APPROVAL_TRANSITIONS = {
    ApprovalStatus.APPROVED.value: {"from": [ApprovalStatus.PENDING.value]},
    ApprovalStatus.REJECTED.value: {"from": [ApprovalStatus.PENDING.value]},
    ApprovalStatus.CANCELLED.value: {"from": [ApprovalStatus.PENDING.value]},
}

_DECISIONS = (ApprovalStatus.APPROVED.value, ApprovalStatus.REJECTED.value)


class ApprovalService:
    def __init__(
        self,
        store: EntityStore[Approval],
        projects: EntityStore[Project],
        bus: EventBus,
        users: UserContext,
    ) -> None:
        self.store = store
        self.projects = projects
        self.bus = bus
        self.users = users

    # ── Commands ──────────────────────────────────────────────────────────

    def request_approval(self, payload: dict) -> Approval:
        """Create a PENDING approval. Requester defaults to the current user."""
        errors: dict = {}
        data = dict(payload)
        data["title"] = require_text(payload, "title", errors)
        data["approver_id"] = require_text(payload, "approver_id", errors)
        data["type"] = check_enum(ApprovalType, payload.get("type"), "type", errors,
                                  default=ApprovalType.GENERAL)
        data["priority"] = check_enum(ApprovalPriority, payload.get("priority"), "priority", errors,
                                      default=ApprovalPriority.MEDIUM)
        if errors:
            raise ValidationError("Invalid approval request", details=errors)

        actor = self.users.current
        if not data.get("requester_id"):
            data["requester_id"] = actor.id
            data["requester_name"] = actor.name
        data["project_name"] = resolve_project_name(self.projects.list(), data.get("project_id"))
        data["status"] = ApprovalStatus.PENDING.value
        data["rejection_reason"] = None
        data["processed_at"] = None

        approval = self.store.build(data)
        self.store.insert(approval)
        logger.info("Approval %s requested from %s", approval.id, approval.approver_id,
                    extra={"store": self.store.name, "approval_id": approval.id})
        self.bus.publish(ApprovalStatusChanged(
            actor=actor, approval=approval, old_status=None, new_status=approval.status,
        ))
        return approval

    def process_approval(self, approval_id: str, status: str, reason: str | None = None) -> Approval | None:
        """Approve or reject a pending approval.

        A rejection reason is optional; it is stored only for rejections.
        Unknown id is a quiet miss (None).

        Raises:
            ValidationError: status is not approved/rejected.
            InvalidTransitionError: the approval is already terminal.
        """
        if status not in _DECISIONS:
            raise ValidationError("Invalid decision", details={"status": f"must be one of: {', '.join(_DECISIONS)}"})
        changes = {
            "rejection_reason": (reason or None) if status == ApprovalStatus.REJECTED.value else None,
        }
        return self._transition(approval_id, status, changes)

    def cancel_approval(self, approval_id: str) -> Approval | None:
        return self._transition(approval_id, ApprovalStatus.CANCELLED.value, {})

    def _transition(self, approval_id: str, target: str, changes: dict) -> Approval | None:
        current = self.store.get_by_id(approval_id)
        if current is None:
            logger.debug("Approval %s not found", approval_id)
            return None
        if current.status not in APPROVAL_TRANSITIONS[target]["from"]:
            raise InvalidTransitionError("Approval", approval_id, current.status, target)

        updated = self.store.update(approval_id, {
            **changes, "status": target, "processed_at": self.store.clock(),
        })
        logger.info("Approval %s %s", approval_id, target,
                    extra={"store": self.store.name, "approval_id": approval_id})
        self.bus.publish(ApprovalStatusChanged(
            actor=self.users.current, approval=updated, old_status=current.status, new_status=target,
        ))
        return updated

    def delete_approval(self, approval_id: str) -> bool:
        return self.store.delete(approval_id)

    # ── Queries ───────────────────────────────────────────────────────────

    def get_approval_by_id(self, approval_id: str) -> Approval | None:
        return self.store.get_by_id(approval_id)

    def list_approvals(self) -> list[Approval]:
        return self.store.list()

    def pending_for(self, approver_id: str) -> list[Approval]:
        return self.store.find(
            lambda a: a.approver_id == approver_id and a.status == ApprovalStatus.PENDING.value
        )

    def requested_by(self, requester_id: str) -> list[Approval]:
        return self.store.find(lambda a: a.requester_id == requester_id)
