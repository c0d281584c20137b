"""
WorkHub durable key space.

Models:
    - StoreRecord: one row per entity family, keyed by store name, holding
      the full JSON array of that family's entities.
"""

import json
from datetime import datetime, timezone

from workhub.models import db


class StoreRecord(db.Model):
    """
    Persisted record set for a single entity store.

    The payload is overwritten wholesale on every mutation of the store
    (last writer wins, no version check).
    """

    __tablename__ = "store_records"

    store_name = db.Column(db.String(80), primary_key=True, comment="e.g. project-storage")
    payload = db.Column(db.Text, nullable=False, default="[]", comment="JSON array of entity dicts")
    item_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    @property
    def rows(self) -> list[dict]:
        """Deserialise *payload* to a list of dicts."""
        try:
            data = json.loads(self.payload or "[]")
        except (json.JSONDecodeError, TypeError):
            return []
        return data if isinstance(data, list) else []

    def write_rows(self, rows: list[dict]) -> None:
        self.payload = json.dumps(rows, ensure_ascii=False)
        self.item_count = len(rows)

    def to_dict(self):
        return {
            "store_name": self.store_name,
            "item_count": self.item_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<StoreRecord {self.store_name}: {self.item_count} rows>"
