"""Payload validation helpers shared by the services.

Each helper records a problem in the ``errors`` dict it is given instead of
raising, so a service can report every bad field at once:

    errors = {}
    name = require_text(data, "name", errors)
    status = check_enum(ProjectStatus, data.get("status"), "status", errors)
    if errors:
        raise ValidationError("Invalid project", details=errors)
"""

from enum import Enum


def require_text(data: dict, field: str, errors: dict) -> str:
    value = str(data.get(field) or "").strip()
    if not value:
        errors[field] = "required"
    return value


def check_enum(enum_cls: type[Enum], value, field: str, errors: dict, *, default=None):
    """Return the enum's string value, or *default* when value is empty."""
    if value is None or value == "":
        return default.value if isinstance(default, Enum) else default
    try:
        return enum_cls(value).value
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        errors[field] = f"must be one of: {allowed}"
        return None


def check_number(value, field: str, errors: dict, *, minimum=None, maximum=None):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        errors[field] = "must be a number"
        return None
    if minimum is not None and value < minimum:
        errors[field] = f"must be >= {minimum}"
    elif maximum is not None and value > maximum:
        errors[field] = f"must be <= {maximum}"
    return value


def unique_ids(values) -> list[str]:
    """De-duplicate a list of ids, keeping first-seen order."""
    seen = set()
    result = []
    for value in values or []:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result
