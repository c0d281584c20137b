"""
Core exception hierarchy.

Every service raises these types so callers (presentation code, CLI
commands, tests) only need to import from one place.

Usage:
    from workhub.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id="project-1a2b")
    raise ValidationError("Title is required", details={"title": "required"})
"""


class NotFoundError(Exception):
    """Raised when a lookup that must succeed finds nothing.

    Ordinary update/delete by unknown id is a quiet miss and does NOT raise
    this; it is reserved for operations that cannot proceed without the
    target (e.g. commenting on an issue that does not exist).

    Args:
        resource: Human-readable entity name (e.g. "Issue", "Approval").
        resource_id: The id that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when a command payload violates a business rule.

    Always raised before any store is written, so a rejected command is
    never partially applied.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names;
                 values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class InvalidTransitionError(Exception):
    """Raised when a workflow entity is asked to leave a terminal state."""

    def __init__(self, resource: str, resource_id: str, current: str, target: str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.current_status = current
        self.target_status = target
        super().__init__(
            f"Cannot move {resource} {resource_id} from '{current}' to '{target}'"
        )
