"""Wiki pages. A flat list; ``parent_id`` is stored but not interpreted."""

from __future__ import annotations

from workhub.core.exceptions import ValidationError
from workhub.models.entities import WikiCategory, WikiPage
from workhub.services.auth_service import UserContext
from workhub.services.entity_store import EntityStore
from workhub.utils.validation import check_enum, require_text


class WikiService:
    def __init__(self, store: EntityStore[WikiPage], users: UserContext) -> None:
        self.store = store
        self.users = users

    def _validate(self, data: dict, *, partial: bool) -> dict:
        errors: dict = {}
        clean = dict(data)
        if not partial or "title" in data:
            clean["title"] = require_text(data, "title", errors)
        if not partial or "category" in data:
            clean["category"] = check_enum(WikiCategory, data.get("category"), "category", errors,
                                           default=WikiCategory.GENERAL)
        if errors:
            raise ValidationError("Invalid wiki page", details=errors)
        return clean

    def add_page(self, payload: dict) -> WikiPage:
        data = self._validate(payload, partial=False)
        if not data.get("author_id"):
            actor = self.users.current
            data["author_id"] = actor.id
            data["author_name"] = actor.name
        page = self.store.build(data)
        self.store.insert(page)
        return page

    def update_page(self, page_id: str, changes: dict) -> WikiPage | None:
        return self.store.update(page_id, self._validate(changes, partial=True))

    def delete_page(self, page_id: str) -> bool:
        return self.store.delete(page_id)

    def get_page_by_id(self, page_id: str) -> WikiPage | None:
        return self.store.get_by_id(page_id)

    def list_pages(self) -> list[WikiPage]:
        return self.store.list()

    def pages_by_category(self, category: str) -> list[WikiPage]:
        return self.store.find(lambda p: p.category == category)
