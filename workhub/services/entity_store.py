"""
WorkHub Persistent Entity Store.

One ``EntityStore`` instance per entity family. The store keeps the
family's ordered collection in memory and writes it through to the
``store_records`` row named after the store on every mutation, committing
before the call returns.

Contract:
    create(payload)        -> id
    update(id, changes)    -> updated entity | None (quiet miss)
    delete(id)             -> bool
    list()                 -> snapshot (copies)
    get_by_id(id)          -> copy | None

Usage:
    from workhub.services.entity_store import EntityStore
    from workhub.models.entities import Project

    projects = EntityStore("project-storage", Project)
    pid = projects.create({"name": "ERP upgrade"})
    projects.update(pid, {"progress": 40})
"""

from __future__ import annotations

import copy
import dataclasses
import logging
from typing import Callable, Generic, Iterable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from workhub.core.exceptions import ValidationError
from workhub.models import db
from workhub.models.entities import Entity
from workhub.models.store_record import StoreRecord
from workhub.utils.helpers import new_id, utcnow

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)

# Fields the store owns; callers can never overwrite them through update()
_PROTECTED_FIELDS = frozenset({"id", "created_at"})


class EntityStore(Generic[E]):
    """Ordered, durably persisted collection of one entity family."""

    def __init__(
        self,
        name: str,
        entity_cls: type[E],
        *,
        clock: Callable = utcnow,
        prepend: bool = False,
        limit: int | None = None,
        seed: Iterable[E] | None = None,
    ) -> None:
        """
        Args:
            name: Store name; the primary key of its StoreRecord row.
            entity_cls: Dataclass of the family.
            clock: Zero-arg callable returning an aware datetime.
            prepend: New rows go to the head of the collection (newest first).
            limit: Keep at most this many rows, dropping from the tail.
            seed: Rows written on first load when no record exists yet.
        """
        self.name = name
        self.entity_cls = entity_cls
        self.clock = clock
        self.prepend = prepend
        self.limit = limit
        self._items: list[E] = self._load(seed)

    # ── Loading / persistence ─────────────────────────────────────────────

    def _load(self, seed: Iterable[E] | None) -> list[E]:
        record = db.session.get(StoreRecord, self.name)
        if record is None:
            items = [copy.deepcopy(e) for e in seed] if seed else []
            if items:
                self._persist(items)
                logger.info("Seeded store with %d rows", len(items), extra={"store": self.name})
            return items
        items = [self.entity_cls.from_dict(row) for row in record.rows]
        logger.debug("Loaded %d rows", len(items), extra={"store": self.name})
        return items

    def _persist(self, items: list[E]) -> None:
        """Write the full collection and commit; swap in-memory state only on success."""
        if self.limit is not None:
            items = items[: self.limit]
        try:
            record = db.session.get(StoreRecord, self.name)
            if record is None:
                record = StoreRecord(store_name=self.name)
                db.session.add(record)
            record.write_rows([e.to_dict() for e in items])
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Failed to persist store", extra={"store": self.name})
            raise
        self._items = items

    def reload(self) -> None:
        """Discard in-memory state and re-read the durable record."""
        db.session.expire_all()
        self._items = self._load(None)

    # ── Queries ───────────────────────────────────────────────────────────

    def list(self) -> list[E]:
        return copy.deepcopy(self._items)

    def get_by_id(self, entity_id: str) -> E | None:
        for item in self._items:
            if item.id == entity_id:
                return copy.deepcopy(item)
        return None

    def find(self, predicate: Callable[[E], bool]) -> list[E]:
        return [copy.deepcopy(e) for e in self._items if predicate(e)]

    def __len__(self) -> int:
        return len(self._items)

    # ── Commands ──────────────────────────────────────────────────────────

    def build(self, payload: dict | E) -> E:
        """Build a new entity with a fresh id and stamped timestamps (not stored)."""
        if isinstance(payload, Entity):
            payload = {name: getattr(payload, name) for name in payload.field_names()}
        self._check_fields(payload)
        now = self.clock()
        values = {k: v for k, v in payload.items() if k not in ("id", "created_at", "updated_at")}
        entity = self.entity_cls(**values)
        entity.id = new_id(self.entity_cls.ID_PREFIX)
        entity.created_at = now
        entity.updated_at = now
        return entity

    def create(self, payload: dict | E) -> str:
        entity = self.build(payload)
        self.insert(entity)
        return entity.id

    def insert(self, entity: E) -> None:
        """Store an already built entity at the head or tail of the collection."""
        entity = copy.deepcopy(entity)
        items = [entity, *self._items] if self.prepend else [*self._items, entity]
        self._persist(items)
        logger.debug("Created %s", entity.id, extra={"store": self.name, "entity_id": entity.id})

    def update(self, entity_id: str, changes: dict) -> E | None:
        """Merge *changes* into one row and re-stamp ``updated_at``.

        An unknown id matches no rows: nothing is written and None is
        returned.
        """
        return self.update_where(lambda e: e.id == entity_id, lambda _e: changes, quiet_id=entity_id)

    def update_where(
        self,
        predicate: Callable[[E], bool],
        changes_for: Callable[[E], dict],
        *,
        quiet_id: str | None = None,
    ) -> E | None:
        """Apply per-row changes to every matching row in a single write.

        ``changes_for`` receives the current row and returns the dict to
        merge, which lets callers derive fields from prior state. Returns
        the last updated row, or None when nothing matched.
        """
        now = self.clock()
        updated: E | None = None
        items: list[E] = []
        for item in self._items:
            if predicate(item):
                changes = changes_for(item)
                self._check_fields(changes)
                values = {k: v for k, v in changes.items() if k not in _PROTECTED_FIELDS}
                values["updated_at"] = now
                item = dataclasses.replace(item, **values)
                updated = item
            items.append(item)
        if updated is None:
            logger.debug("Update matched no rows (%s)", quiet_id or "predicate",
                         extra={"store": self.name})
            return None
        self._persist(items)
        return copy.deepcopy(updated)

    def delete(self, entity_id: str) -> bool:
        return self.delete_where(lambda e: e.id == entity_id) > 0

    def delete_where(self, predicate: Callable[[E], bool]) -> int:
        items = [e for e in self._items if not predicate(e)]
        removed = len(self._items) - len(items)
        if removed:
            self._persist(items)
            logger.debug("Deleted %d rows", removed, extra={"store": self.name})
        return removed

    def replace_all(self, entities: Iterable[E]) -> None:
        self._persist([copy.deepcopy(e) for e in entities])

    def clear(self) -> None:
        self._persist([])

    # ── Internals ─────────────────────────────────────────────────────────

    def _check_fields(self, payload: dict) -> None:
        unknown = sorted(set(payload) - self.entity_cls.field_names())
        if unknown:
            raise ValidationError(
                f"Unknown field(s) for {self.entity_cls.__name__}: {', '.join(unknown)}",
                details={name: "unknown field" for name in unknown},
            )
