"""Member CRUD with activity logging.

Deleting a member does not touch the projects, issues or messages that
reference it; readers resolve those dangling ids to "unknown".
"""

from __future__ import annotations

import logging

from workhub.core.exceptions import ValidationError
from workhub.models.entities import Member, MemberRole, MemberStatus
from workhub.services.auth_service import UserContext
from workhub.services.entity_store import EntityStore
from workhub.services.events import EventBus, MemberChanged
from workhub.utils.helpers import parse_date
from workhub.utils.validation import check_enum, require_text

logger = logging.getLogger(__name__)


class MemberService:
    def __init__(self, store: EntityStore[Member], bus: EventBus, users: UserContext) -> None:
        self.store = store
        self.bus = bus
        self.users = users

    def _validate(self, data: dict, *, partial: bool) -> dict:
        errors = {}
        clean = dict(data)
        if not partial or "name" in data:
            clean["name"] = require_text(data, "name", errors)
        if not partial or "email" in data:
            email = require_text(data, "email", errors)
            if email and "@" not in email:
                errors["email"] = "must be an email address"
            clean["email"] = email
        if not partial or "role" in data:
            clean["role"] = check_enum(MemberRole, data.get("role"), "role", errors,
                                       default=MemberRole.DEVELOPER)
        if "status" in data:
            clean["status"] = check_enum(MemberStatus, data.get("status"), "status", errors)
        if "join_date" in data:
            clean["join_date"] = parse_date(data.get("join_date"))
        if "skills" in data:
            clean["skills"] = [str(s).strip() for s in data.get("skills") or [] if str(s).strip()]
        if errors:
            raise ValidationError("Invalid member", details=errors)
        return clean

    def add_member(self, payload: dict) -> Member:
        member = self.store.build(self._validate(payload, partial=False))
        self.store.insert(member)
        logger.info("Member %s added", member.id, extra={"store": self.store.name, "entity_id": member.id})
        self.bus.publish(MemberChanged(actor=self.users.current, kind="added", member=member))
        return member

    def update_member(self, member_id: str, changes: dict) -> Member | None:
        if self.store.get_by_id(member_id) is None:
            return None
        member = self.store.update(member_id, self._validate(changes, partial=True))
        self.bus.publish(MemberChanged(actor=self.users.current, kind="updated", member=member))
        return member

    def delete_member(self, member_id: str) -> bool:
        member = self.store.get_by_id(member_id)
        if member is None:
            return False
        self.store.delete(member_id)
        self.bus.publish(MemberChanged(actor=self.users.current, kind="removed", member=member))
        return True

    def get_member_by_id(self, member_id: str) -> Member | None:
        return self.store.get_by_id(member_id)

    def list_members(self) -> list[Member]:
        return self.store.list()
