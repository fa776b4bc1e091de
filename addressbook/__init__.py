"""Addressbook data model package.

This package contains the in-memory model of a personal contact and meeting
manager: the person and meeting entities, the canonical address book with
conflict-aware meeting management, live filtered views, and snapshot-based
undo/redo, all reached through the ModelManager.
"""

from addressbook.address_book import AddressBook, AddressBookSnapshot, ConflictResult
from addressbook.clock import Clock, ManualClock, SystemClock
from addressbook.exceptions import (
    AddressBookError,
    DuplicateEntityError,
    EntityNotFoundError,
    InvalidArgumentError,
    NothingToRedoError,
    NothingToUndoError,
    SchedulingConflictError,
)
from addressbook.filtered import (
    PREDICATE_SHOW_ALL,
    FilteredView,
    MeetingContainsKeywordsPredicate,
    MeetingWithinHoursPredicate,
    NameContainsKeywordsPredicate,
)
from addressbook.history import History, HistoryEntry
from addressbook.meeting import Meeting, Recurrence
from addressbook.model_manager import ModelManager
from addressbook.person import Person
from addressbook.prefs import UserPrefs

__all__ = [
    "AddressBook",
    "AddressBookSnapshot",
    "ConflictResult",
    "Clock",
    "ManualClock",
    "SystemClock",
    "AddressBookError",
    "DuplicateEntityError",
    "EntityNotFoundError",
    "InvalidArgumentError",
    "NothingToRedoError",
    "NothingToUndoError",
    "SchedulingConflictError",
    "PREDICATE_SHOW_ALL",
    "FilteredView",
    "MeetingContainsKeywordsPredicate",
    "MeetingWithinHoursPredicate",
    "NameContainsKeywordsPredicate",
    "History",
    "HistoryEntry",
    "Meeting",
    "Recurrence",
    "ModelManager",
    "Person",
    "UserPrefs",
]
