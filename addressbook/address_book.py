"""Address book: canonical store of persons and meetings.

The AddressBook owns the single authoritative collections. It enforces
identity uniqueness, keeps meeting participants pointing at existing persons
(cascading on delete, reattaching on edit) and answers scheduling-conflict
queries. It does not keep history; see addressbook.history for that.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from addressbook.exceptions import (
    DuplicateEntityError,
    EntityNotFoundError,
    InvalidArgumentError,
    SchedulingConflictError,
)
from addressbook.meeting import Meeting
from addressbook.person import Person

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]


class ConflictResult(BaseModel):
    """Outcome of a scheduling-conflict query.

    Conflicts are reported as a value so the caller decides whether to warn
    and allow, or reject. Truthy when a conflict was found.

    Args:
        conflict: Whether the candidate violates the gap rule.
        conflicting_meeting: First violating meeting in canonical order.
    """

    model_config = ConfigDict(frozen=True)

    conflict: bool = Field(description="Whether a conflict was found")
    conflicting_meeting: Optional[Meeting] = Field(
        default=None, description="First conflicting meeting"
    )

    def __bool__(self) -> bool:
        return self.conflict

    def raise_if_conflict(self, candidate: Meeting) -> None:
        """Apply the reject policy.

        Args:
            candidate: The meeting that was checked.

        Raises:
            SchedulingConflictError: If a conflict was found.
        """
        if self.conflict:
            raise SchedulingConflictError(
                candidate.title,
                self.conflicting_meeting.title if self.conflicting_meeting else None,
            )


class AddressBookSnapshot(BaseModel):
    """Immutable point-in-time copy of the canonical collections.

    Args:
        persons: Persons in canonical order.
        meetings: Meetings in canonical order.
    """

    model_config = ConfigDict(frozen=True)

    persons: tuple[Person, ...] = Field(default_factory=tuple)
    meetings: tuple[Meeting, ...] = Field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "persons": [person.to_dict() for person in self.persons],
            "meetings": [meeting.to_dict() for meeting in self.meetings],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AddressBookSnapshot":
        return cls(
            persons=tuple(Person.from_dict(p) for p in data.get("persons", [])),
            meetings=tuple(Meeting.from_dict(m) for m in data.get("meetings", [])),
        )


class AddressBook(BaseModel):
    """Canonical collections of persons and meetings.

    Persons are indexed by uuid; the insertion-ordered dict doubles as the
    person list. Meetings are kept in canonical order, which is insertion
    order until sort_meetings() is called.

    Every mutation bumps ``version`` and calls the registered change
    listeners synchronously, so views never go stale.

    Args:
        persons: Dict mapping person uuid to Person.
        meetings: Meetings in canonical order.
    """

    persons: dict[UUID, Person] = Field(
        default_factory=dict, description="Persons by uuid"
    )
    meetings: list[Meeting] = Field(
        default_factory=list, description="Meetings in canonical order"
    )

    _listeners: list[ChangeListener] = PrivateAttr(default_factory=list)
    _version: int = PrivateAttr(default=0)

    # ===== Change notification =====

    @property
    def version(self) -> int:
        """Counter incremented by every mutation."""
        return self._version

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        self._listeners.remove(listener)

    def _changed(self) -> None:
        self._version += 1
        for listener in list(self._listeners):
            listener()

    # ===== Whole-state access =====

    def reset_data(self, other: Union["AddressBook", AddressBookSnapshot]) -> None:
        """Replace all contents with those of another book or snapshot.

        Args:
            other: Source of the new contents.
        """
        if isinstance(other, AddressBook):
            persons = list(other.persons.values())
        else:
            persons = list(other.persons)
        meetings = list(other.meetings)
        self.persons.clear()
        self.persons.update((person.uuid, person) for person in persons)
        self.meetings[:] = meetings
        self._changed()

    def snapshot(self) -> AddressBookSnapshot:
        """Capture an immutable copy of the canonical collections.

        Returns:
            Snapshot sharing no mutable container with this book.
        """
        return AddressBookSnapshot(
            persons=tuple(self.persons.values()),
            meetings=tuple(self.meetings),
        )

    @classmethod
    def from_snapshot(cls, snapshot: AddressBookSnapshot) -> "AddressBook":
        book = cls()
        book.reset_data(snapshot)
        return book

    # ===== Persons =====

    @property
    def person_list(self) -> list[Person]:
        """Persons in canonical order (a fresh list)."""
        return list(self.persons.values())

    def has_person(self, person: Person) -> bool:
        """Check if a person with the same uuid or duplicate key exists.

        Args:
            person: Person to look for.

        Returns:
            True if the person would be a duplicate.
        """
        return self._find_duplicate_person(person) is not None

    def get_person(self, person_uuid: UUID) -> Person:
        """Get person by uuid.

        Raises:
            EntityNotFoundError: If no person has that uuid.
        """
        if person_uuid not in self.persons:
            raise EntityNotFoundError("person", person_uuid)
        return self.persons[person_uuid]

    def add_person(self, person: Person) -> None:
        """Add a person.

        Raises:
            DuplicateEntityError: If the uuid or the name is already taken.
        """
        duplicate = self._find_duplicate_person(person)
        if duplicate is not None:
            raise DuplicateEntityError("person", duplicate)

        self.persons[person.uuid] = person
        logger.debug(f"Added person {person.uuid} ({person.name})")
        self._changed()

    def set_person(self, target: Person, edited: Person) -> list[Meeting]:
        """Replace ``target`` with ``edited`` and reattach dependent meetings.

        The edited person takes the target's position. Every meeting that
        referenced the target is substituted with a re-validated copy (with
        the reference remapped if the uuid changed).

        Args:
            target: Person currently in the book.
            edited: Replacement value.

        Returns:
            The meetings that were reattached.

        Raises:
            EntityNotFoundError: If target is not in the book.
            DuplicateEntityError: If edited collides with another person.
        """
        if target.uuid not in self.persons:
            raise EntityNotFoundError("person", target.uuid)

        duplicate = self._find_duplicate_person(edited, ignore=target.uuid)
        if duplicate is not None:
            raise DuplicateEntityError("person", duplicate)

        if edited.uuid == target.uuid:
            self.persons[target.uuid] = edited
        else:
            reordered = [
                edited if uuid == target.uuid else person
                for uuid, person in self.persons.items()
            ]
            self.persons.clear()
            self.persons.update((person.uuid, person) for person in reordered)

        reattached = self._reattach_meetings(target.uuid, edited.uuid)
        logger.debug(
            f"Replaced person {target.uuid}; reattached {len(reattached)} meeting(s)"
        )
        self._changed()
        return reattached

    def remove_person(self, person: Person) -> list[Meeting]:
        """Remove a person and detach them from every meeting.

        Args:
            person: Person to remove (matched by uuid).

        Returns:
            The edited meetings that no longer list the person.

        Raises:
            EntityNotFoundError: If the person is not in the book.
        """
        if person.uuid not in self.persons:
            raise EntityNotFoundError("person", person.uuid)

        del self.persons[person.uuid]

        affected = [m for m in self.meetings if m.has_participant(person.uuid)]
        detached = []
        for meeting in affected:
            edited = meeting.without_participant(person.uuid)
            self._replace_meeting(meeting, edited)
            detached.append(edited)

        logger.debug(
            f"Removed person {person.uuid}; detached from {len(detached)} meeting(s)"
        )
        self._changed()
        return detached

    def reattach_meetings(self, person: Person) -> list[Meeting]:
        """Refresh every meeting that references ``person``.

        Args:
            person: Person whose meetings should be re-rendered.

        Returns:
            The substituted meetings.
        """
        reattached = self._reattach_meetings(person.uuid, person.uuid)
        if reattached:
            self._changed()
        return reattached

    def _reattach_meetings(self, old_uuid: UUID, new_uuid: UUID) -> list[Meeting]:
        affected = [m for m in self.meetings if m.has_participant(old_uuid)]
        reattached = []
        for meeting in affected:
            edited = meeting.replace_participant(old_uuid, new_uuid)
            self._replace_meeting(meeting, edited)
            reattached.append(edited)
        return reattached

    def _find_duplicate_person(
        self, person: Person, ignore: Optional[UUID] = None
    ) -> Optional[Union[UUID, str]]:
        if person.uuid != ignore and person.uuid in self.persons:
            return person.uuid
        for uuid, existing in self.persons.items():
            if uuid != ignore and existing.duplicate_key == person.duplicate_key:
                return person.name
        return None

    # ===== Meetings =====

    def has_meeting(self, meeting: Meeting) -> bool:
        return self._index_of(meeting.meeting_id) is not None

    def get_meeting(self, meeting_id: UUID) -> Meeting:
        """Get meeting by id.

        Raises:
            EntityNotFoundError: If no meeting has that id.
        """
        index = self._index_of(meeting_id)
        if index is None:
            raise EntityNotFoundError("meeting", meeting_id)
        return self.meetings[index]

    def add_meeting(self, meeting: Meeting) -> None:
        """Append a meeting to the canonical collection.

        Conflicts are not checked here; use has_conflict() first and apply
        the caller's policy.

        Raises:
            DuplicateEntityError: If the meeting_id is already present.
            EntityNotFoundError: If a participant is not in the book.
        """
        if self.has_meeting(meeting):
            raise DuplicateEntityError("meeting", meeting.meeting_id)
        self._check_participants(meeting)

        self.meetings.append(meeting)
        logger.debug(f"Added meeting {meeting.meeting_id} ({meeting.title})")
        self._changed()

    def set_meeting(self, target: Meeting, edited: Meeting) -> None:
        """Substitute ``edited`` for ``target`` at the same position.

        Raises:
            EntityNotFoundError: If target is absent or a participant is unknown.
            DuplicateEntityError: If edited's id belongs to another meeting.
        """
        if not self.has_meeting(target):
            raise EntityNotFoundError("meeting", target.meeting_id)
        if edited.meeting_id != target.meeting_id and self.has_meeting(edited):
            raise DuplicateEntityError("meeting", edited.meeting_id)
        self._check_participants(edited)

        self._replace_meeting(target, edited)
        self._changed()

    def remove_meeting(self, meeting: Meeting) -> None:
        """Remove a single meeting.

        Raises:
            EntityNotFoundError: If the meeting is not in the book.
        """
        index = self._index_of(meeting.meeting_id)
        if index is None:
            raise EntityNotFoundError("meeting", meeting.meeting_id)

        del self.meetings[index]
        self._changed()

    def remove_recurring_meetings(self, meeting: Meeting) -> list[Meeting]:
        """Remove a meeting and every meeting of its recurrence lineage.

        Args:
            meeting: Any instance of the group.

        Returns:
            The removed meetings in canonical order.

        Raises:
            EntityNotFoundError: If the meeting is not in the book.
        """
        stored = self.get_meeting(meeting.meeting_id)

        removed = [m for m in self.meetings if stored.shares_lineage(m)]
        self.meetings[:] = [m for m in self.meetings if not stored.shares_lineage(m)]
        logger.debug(
            f"Removed {len(removed)} meeting(s) of lineage {stored.lineage_id}"
        )
        self._changed()
        return removed

    def sort_meetings(self) -> None:
        """Sort meetings ascending by start time (stable)."""
        self.meetings.sort(key=lambda m: m.start)
        self._changed()

    def has_conflict(self, meeting: Meeting, min_gap_minutes: int = 0) -> ConflictResult:
        """Check ``meeting`` against every other stored meeting.

        Meetings are scanned in canonical order and the first violator is
        reported. A meeting never conflicts with itself (same meeting_id),
        so edits of a stored meeting can be checked directly.

        Args:
            meeting: Candidate meeting.
            min_gap_minutes: Minimum gap required between meetings.

        Returns:
            ConflictResult describing the first conflict, if any.

        Raises:
            InvalidArgumentError: If min_gap_minutes is not a non-negative int.
        """
        if (
            isinstance(min_gap_minutes, bool)
            or not isinstance(min_gap_minutes, int)
            or min_gap_minutes < 0
        ):
            raise InvalidArgumentError(
                f"min_gap_minutes must be a non-negative integer, got {min_gap_minutes!r}"
            )

        gap = timedelta(minutes=min_gap_minutes)
        for existing in self.meetings:
            if existing.is_same_meeting(meeting):
                continue
            if meeting.overlaps(existing, gap):
                logger.warning(
                    f"Meeting '{meeting.title}' conflicts with '{existing.title}' "
                    f"(gap {min_gap_minutes} min)"
                )
                return ConflictResult(conflict=True, conflicting_meeting=existing)

        return ConflictResult(conflict=False)

    def get_next_meeting(
        self, now: datetime, offset: timedelta = timedelta(0)
    ) -> Optional[Meeting]:
        """Find the earliest meeting starting at or after ``now + offset``.

        Ties on start time go to the meeting first in canonical order.

        Args:
            now: Current time, supplied by a clock.
            offset: How far ahead of now to start looking.

        Returns:
            The next meeting, or None if there is none.
        """
        threshold = now + offset
        upcoming = [m for m in self.meetings if m.start >= threshold]
        if not upcoming:
            return None
        return min(upcoming, key=lambda m: m.start)

    def _index_of(self, meeting_id: UUID) -> Optional[int]:
        for index, meeting in enumerate(self.meetings):
            if meeting.meeting_id == meeting_id:
                return index
        return None

    def _replace_meeting(self, target: Meeting, edited: Meeting) -> None:
        self.meetings[self._index_of(target.meeting_id)] = edited

    def _check_participants(self, meeting: Meeting) -> None:
        for participant in meeting.participants:
            if participant not in self.persons:
                raise EntityNotFoundError("person", participant)

    # ===== Consistency and serialization =====

    def validate(self) -> list[str]:
        """Validate internal consistency.

        Returns:
            List of validation error messages (empty list if valid).
        """
        errors = []

        keys: dict[str, UUID] = {}
        for uuid, person in self.persons.items():
            if uuid != person.uuid:
                errors.append(f"Person {person.uuid} is indexed under {uuid}")
            if person.duplicate_key in keys:
                errors.append(
                    f"Persons {keys[person.duplicate_key]} and {uuid} share name '{person.name}'"
                )
            keys[person.duplicate_key] = uuid

        seen: set[UUID] = set()
        for meeting in self.meetings:
            if meeting.meeting_id in seen:
                errors.append(f"Meeting {meeting.meeting_id} is stored more than once")
            seen.add(meeting.meeting_id)

            for participant in meeting.participants:
                if participant not in self.persons:
                    errors.append(
                        f"Meeting {meeting.meeting_id} references missing person {participant}"
                    )

        return errors

    def to_dict(self) -> dict[str, Any]:
        """Convert the book to plain data for the persistence layer."""
        return self.snapshot().to_dict()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AddressBook":
        """Rebuild a book from to_dict() output, enforcing every invariant.

        Raises:
            DuplicateEntityError: If the data holds duplicate entities.
            EntityNotFoundError: If a meeting references an unknown person.
        """
        book = cls()
        for person_data in data.get("persons", []):
            book.add_person(Person.from_dict(person_data))
        for meeting_data in data.get("meetings", []):
            book.add_meeting(Meeting.from_dict(meeting_data))
        return book

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AddressBook):
            return NotImplemented
        return self.person_list == other.person_list and self.meetings == other.meetings

    @property
    def summary(self) -> str:
        return f"{len(self.persons)} persons, {len(self.meetings)} meetings"
