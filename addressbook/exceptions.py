"""Error kinds raised by the addressbook model.

Every error is raised synchronously to the immediate caller. Nothing in the
model retries or swallows them; retry policy belongs to the command layer.
"""

from typing import Any, Optional


class AddressBookError(Exception):
    """Base class for all errors raised by the addressbook model."""


class DuplicateEntityError(AddressBookError, ValueError):
    """Raised when adding an entity whose identity is already present.

    Args:
        entity_type: "person" or "meeting".
        key: The identifier or duplicate key that collided.
    """

    def __init__(self, entity_type: str, key: Any):
        self.entity_type = entity_type
        self.key = key
        super().__init__(f"{entity_type.capitalize()} '{key}' already exists")


class EntityNotFoundError(AddressBookError, LookupError):
    """Raised when a replace/remove/lookup target is not in the store.

    Args:
        entity_type: "person" or "meeting".
        key: The identifier that was looked up.
    """

    def __init__(self, entity_type: str, key: Any):
        self.entity_type = entity_type
        self.key = key
        super().__init__(f"{entity_type.capitalize()} '{key}' not found")


class InvalidArgumentError(AddressBookError, ValueError):
    """Raised when a parameter is malformed (e.g. a non-positive hour count)."""


class HistoryError(AddressBookError):
    """Base class for undo/redo boundary errors."""


class NothingToUndoError(HistoryError):
    """Raised when undo is requested at the start of the history."""

    def __init__(self, message: str = "Nothing to undo"):
        self.message = message
        super().__init__(message)


class NothingToRedoError(HistoryError):
    """Raised when redo is requested at the end of the history."""

    def __init__(self, message: str = "Nothing to redo"):
        self.message = message
        super().__init__(message)


class SchedulingConflictError(AddressBookError):
    """Raised by callers that choose to reject a conflicting meeting.

    The store itself reports conflicts as a ConflictResult value; this error
    only exists for the reject policy.

    Args:
        meeting_title: Title of the candidate meeting.
        conflicting_title: Title of the existing meeting it clashes with.
    """

    def __init__(self, meeting_title: str, conflicting_title: Optional[str] = None):
        self.meeting_title = meeting_title
        self.conflicting_title = conflicting_title
        if conflicting_title:
            message = f"Meeting '{meeting_title}' conflicts with '{conflicting_title}'"
        else:
            message = f"Meeting '{meeting_title}' conflicts with an existing meeting"
        super().__init__(message)
