"""Model manager: single entry point over the address book.

The ModelManager combines the canonical AddressBook, the two filtered views
and the undo/redo History. Command execution and the UI only talk to this
class.

Every public mutator runs under one operation lock, delegates to the book,
and on success commits exactly one snapshot to the history. A mutator that
raises leaves both the book and the history untouched.
"""

import logging
import threading
from datetime import timedelta
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Union
from uuid import UUID

from addressbook.address_book import AddressBook, AddressBookSnapshot, ConflictResult
from addressbook.clock import Clock, SystemClock
from addressbook.exceptions import AddressBookError
from addressbook.filtered import (
    PREDICATE_SHOW_ALL,
    FilteredView,
    MeetingWithinHoursPredicate,
    Predicate,
)
from addressbook.history import History
from addressbook.meeting import Meeting
from addressbook.person import Person
from addressbook.prefs import UserPrefs

logger = logging.getLogger(__name__)


class ModelManager:
    """In-memory model of the address book data.

    Args:
        address_book: Initial contents (copied, never aliased).
        user_prefs: Preferences (copied).
        history: Existing history to continue; a new one starting from the
            initial contents is created when omitted.
        clock: Source of "now" for reminders and next-meeting lookups.

    Example:
        >>> model = ModelManager(clock=ManualClock(current_time=now))
        >>> model.add_person(Person(name="Alice"))
        >>> model.undo()
    """

    def __init__(
        self,
        address_book: Optional[AddressBook | AddressBookSnapshot] = None,
        user_prefs: Optional[UserPrefs] = None,
        history: Optional[History] = None,
        clock: Optional[Clock] = None,
    ):
        self._book = AddressBook()
        if address_book is not None:
            self._book.reset_data(address_book)
        self._user_prefs = user_prefs.model_copy() if user_prefs else UserPrefs()
        self._clock = clock if clock is not None else SystemClock()
        self._history = (
            history if history is not None else History.starting_from(self._book.snapshot())
        )
        self._operation_lock = threading.RLock()

        self._filtered_persons: FilteredView[Person] = FilteredView(
            self._book, lambda book: book.person_list
        )
        self._filtered_meetings: FilteredView[Meeting] = FilteredView(
            self._book, lambda book: book.meetings
        )

        logger.debug(
            f"Initialized model with {self._book.summary} and prefs {self._user_prefs}"
        )

    # ===== User prefs =====

    def get_user_prefs(self) -> UserPrefs:
        return self._user_prefs

    def set_user_prefs(self, user_prefs: UserPrefs) -> None:
        self._user_prefs.reset_data(user_prefs)

    @property
    def address_book_file_path(self) -> Path:
        return self._user_prefs.address_book_file_path

    @address_book_file_path.setter
    def address_book_file_path(self, path: Union[str, Path]) -> None:
        self._user_prefs.address_book_file_path = path

    @property
    def interval_between_meetings(self) -> int:
        return self._user_prefs.interval_between_meetings

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def history(self) -> History:
        return self._history

    # ===== Address book =====

    def get_address_book(self) -> AddressBook:
        """Return the live book. Callers must not mutate it directly."""
        return self._book

    def set_address_book(self, address_book: AddressBook | AddressBookSnapshot) -> None:
        """Replace the whole contents (e.g. after loading from storage)."""
        with self._operation_lock:
            self._book.reset_data(address_book)
            self._commit("replace address book")

    # ===== Persons =====

    def has_person(self, person: Person) -> bool:
        return self._book.has_person(person)

    def add_person(self, person: Person) -> None:
        with self._operation_lock:
            self._book.add_person(person)
            self.update_filtered_person_list(PREDICATE_SHOW_ALL)
            self._commit(f"add person {person.name}")

    def delete_person(self, target: Person) -> None:
        """Delete a person and detach them from every meeting."""
        with self._operation_lock:
            detached = self._book.remove_person(target)
            self._commit(
                f"delete person {target.name} ({len(detached)} meeting(s) updated)"
            )

    def set_person(self, target: Person, edited_person: Person) -> None:
        with self._operation_lock:
            self._book.set_person(target, edited_person)
            self._commit(f"edit person {edited_person.name}")

    def reattach_dependent_meetings(self, edited_person: Person) -> None:
        """Refresh the meetings listing ``edited_person``.

        Substitutes re-validated copies so views re-render meetings whose
        display depends on the person's fields. Participant identity is
        unchanged, so the snapshot is equal and nothing is committed.
        """
        with self._operation_lock:
            self._book.reattach_meetings(edited_person)
            self._commit(f"reattach meetings of {edited_person.name}")

    def get_participant(self, person_uuid: UUID) -> Person:
        """Look up a meeting participant.

        Raises:
            EntityNotFoundError: If no person has that uuid.
        """
        return self._book.get_person(person_uuid)

    def get_person_map(self) -> Mapping[UUID, Person]:
        """Read-only, live mapping of uuid to person."""
        return MappingProxyType(self._book.persons)

    # ===== Meetings =====

    def has_meeting(self, meeting: Meeting) -> bool:
        return self._book.has_meeting(meeting)

    def has_conflict(self, meeting: Meeting) -> ConflictResult:
        """Check ``meeting`` against the configured interval between meetings."""
        return self._book.has_conflict(meeting, self._user_prefs.interval_between_meetings)

    def add_meeting(self, meeting: Meeting) -> None:
        """Add a meeting. Conflict policy is the caller's; see has_conflict()."""
        with self._operation_lock:
            self._book.add_meeting(meeting)
            self.update_filtered_meeting_list(PREDICATE_SHOW_ALL)
            self._commit(f"add meeting {meeting.title}")

    def add_recurring_meeting(self, meeting: Meeting) -> list[Meeting]:
        """Generate every occurrence of ``meeting`` and add them together.

        Either all occurrences are added, or none are.

        Returns:
            The added occurrences.
        """
        occurrences = meeting.generate_occurrences()
        with self._operation_lock:
            before = self._book.snapshot()
            try:
                for occurrence in occurrences:
                    self._book.add_meeting(occurrence)
            except AddressBookError:
                self._book.reset_data(before)
                raise
            self.update_filtered_meeting_list(PREDICATE_SHOW_ALL)
            self._commit(f"add {len(occurrences)} occurrence(s) of {meeting.title}")
        return occurrences

    def delete_meeting(self, target: Meeting) -> None:
        with self._operation_lock:
            self._book.remove_meeting(target)
            self._commit(f"delete meeting {target.title}")

    def delete_recurring_meetings(self, target: Meeting) -> None:
        with self._operation_lock:
            removed = self._book.remove_recurring_meetings(target)
            self._commit(f"delete {len(removed)} occurrence(s) of {target.title}")

    def set_meeting(self, target: Meeting, edited_meeting: Meeting) -> None:
        with self._operation_lock:
            self._book.set_meeting(target, edited_meeting)
            self._commit(f"edit meeting {edited_meeting.title}")

    def sort_meeting(self) -> None:
        """Sort meetings by start time.

        The current history entry is updated in place, so the order survives
        undo/redo but sorting is not an undo step of its own.
        """
        with self._operation_lock:
            self._book.sort_meetings()
            self._history.replace_current(self._book.snapshot())

    def get_next_meeting(self, offset: timedelta = timedelta(0)) -> Optional[Meeting]:
        """Earliest meeting starting at or after now + offset, or None."""
        return self._book.get_next_meeting(self._clock.now(), offset)

    # ===== Filtered views =====

    @property
    def filtered_persons(self) -> FilteredView[Person]:
        return self._filtered_persons

    @property
    def filtered_meetings(self) -> FilteredView[Meeting]:
        return self._filtered_meetings

    def update_filtered_person_list(self, predicate: Predicate) -> None:
        self._filtered_persons.set_predicate(predicate)

    def update_filtered_meeting_list(self, predicate: Predicate) -> None:
        self._filtered_meetings.set_predicate(predicate)

    def remind_meetings(self, hours: int) -> FilteredView[Meeting]:
        """Show only meetings starting within the next ``hours`` hours.

        Raises:
            InvalidArgumentError: If hours is not a positive integer.
        """
        self.update_filtered_meeting_list(MeetingWithinHoursPredicate(hours, self._clock))
        return self._filtered_meetings

    # ===== Undo / redo =====

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    def undo(self) -> None:
        """Restore the previous committed state.

        Raises:
            NothingToUndoError: If there is nothing to undo.
        """
        with self._operation_lock:
            self._book.reset_data(self._history.undo())

    def redo(self) -> None:
        """Re-apply the most recently undone state.

        Raises:
            NothingToRedoError: If there is nothing to redo.
        """
        with self._operation_lock:
            self._book.reset_data(self._history.redo())

    def _commit(self, description: str) -> None:
        if self._history.commit(
            self._book.snapshot(), description, committed_at=self._clock.now()
        ):
            logger.info(f"Committed: {description}")

    # ===== Utility =====

    def refresh_application(self) -> None:
        """Re-sort meetings by start time. Idempotent and not an undo step."""
        self.sort_meeting()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModelManager):
            return NotImplemented
        return (
            self._book == other._book
            and self._user_prefs == other._user_prefs
            and self._filtered_persons == other._filtered_persons
            and self._filtered_meetings == other._filtered_meetings
        )

