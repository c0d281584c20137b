"""Shared utility functions for timestamps, dates and ids.

utcnow:          default clock for every store (timezone-aware UTC)
parse_datetime:  ISO string → aware datetime (None on empty/invalid input)
parse_date:      ISO / DD.MM.YYYY string → date (None on empty/invalid input)
new_id:          collision-resistant entity id with a readable prefix
"""
import uuid
from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value):
    """Parse an ISO-8601 timestamp to an aware datetime.

    Naive values are assumed to be UTC so that reloaded records compare
    equal to the aware datetimes the stores stamp.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except (ValueError, TypeError):
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD.MM.YYYY (European format)
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def new_id(prefix: str) -> str:
    """Return ``<prefix>-<32 hex chars>``; safe under same-millisecond creation."""
    return f"{prefix}-{uuid.uuid4().hex}"
