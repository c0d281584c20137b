"""Notice board: announcements for everyone or for selected members."""

from __future__ import annotations

import logging

from workhub.core.exceptions import ValidationError
from workhub.models.entities import Notice, NoticeTarget
from workhub.services.auth_service import UserContext
from workhub.services.entity_store import EntityStore
from workhub.services.queries import visible_notices
from workhub.utils.validation import check_enum, require_text, unique_ids

logger = logging.getLogger(__name__)


class NoticeService:
    def __init__(self, store: EntityStore[Notice], users: UserContext) -> None:
        self.store = store
        self.users = users

    def _validate(self, data: dict, current: Notice | None = None) -> dict:
        partial = current is not None
        errors: dict = {}
        clean = dict(data)
        if not partial or "title" in data:
            clean["title"] = require_text(data, "title", errors)
        if not partial or "content" in data:
            clean["content"] = require_text(data, "content", errors)
        if not partial or "target_type" in data:
            clean["target_type"] = check_enum(NoticeTarget, data.get("target_type"), "target_type", errors,
                                              default=NoticeTarget.ALL)
        if "target_member_ids" in data:
            clean["target_member_ids"] = unique_ids(data.get("target_member_ids"))

        target = clean.get("target_type", current.target_type if current else None)
        members = clean.get("target_member_ids", current.target_member_ids if current else [])
        if target == NoticeTarget.SELECTED.value and not members:
            errors["target_member_ids"] = "required when target_type is selected"
        if target == NoticeTarget.ALL.value:
            clean["target_member_ids"] = []

        if errors:
            raise ValidationError("Invalid notice", details=errors)
        return clean

    def add_notice(self, payload: dict) -> Notice:
        data = self._validate(payload)
        if not data.get("author_id"):
            actor = self.users.current
            data["author_id"] = actor.id
            data["author_name"] = actor.name
        notice = self.store.build(data)
        self.store.insert(notice)
        logger.info("Notice %s posted", notice.id, extra={"store": self.store.name, "entity_id": notice.id})
        return notice

    def update_notice(self, notice_id: str, changes: dict) -> Notice | None:
        current = self.store.get_by_id(notice_id)
        if current is None:
            return None
        return self.store.update(notice_id, self._validate(changes, current))

    def delete_notice(self, notice_id: str) -> bool:
        return self.store.delete(notice_id)

    def get_notice_by_id(self, notice_id: str) -> Notice | None:
        return self.store.get_by_id(notice_id)

    def list_notices(self) -> list[Notice]:
        return self.store.list()

    def notices_for(self, member_id: str | None) -> list[Notice]:
        return visible_notices(self.store.list(), member_id)
