"""
Exception hierarchy for the nomination pipeline.

Every error raised by the lifecycle, onboarding and import code derives from
NominationError so UI code can catch one type and show the message inline.

Usage:
    from errors import NotFoundError, ValidationError

    raise NotFoundError(resource="Nomination", resource_id=42)
    raise ValidationError("Please enter a valid email address", details={"email": "..."})
"""


class NominationError(Exception):
    """Base class for all errors surfaced to the admin or coachee."""


class NotFoundError(NominationError):
    """Raised when a referenced coachee, nominee or nomination does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Nomination", "Nominee").
        resource_id: The id that was looked up.
    """

    def __init__(self, resource, resource_id=None):
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(NominationError):
    """Raised when input fails a business rule. No state is changed.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message, details=None):
        self.details = details or {}
        super().__init__(message)


class ConflictError(NominationError):
    """Raised when a transition is attempted from a terminal state.

    Args:
        resource: Entity name.
        resource_id: Id of the entity.
        status: The status the entity was found in.
    """

    def __init__(self, resource, resource_id, status):
        self.resource = resource
        self.resource_id = resource_id
        self.status = status
        super().__init__(
            f"{resource} id={resource_id} has already been processed (status={status})"
        )


class PersistenceError(NominationError):
    """Raised when the underlying store is unavailable or rejects a write."""
