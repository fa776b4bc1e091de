"""Undo/redo history of whole address book snapshots.

This module provides:
- HistoryEntry: One committed snapshot tagged with its sequence position
- History: The snapshot sequence with a current pointer

The history follows the memento pattern: after every successful mutating
command the caller commits a full copy of the post-mutation book. Undo and
redo move the pointer and hand back the snapshot to install. Only the
canonical persons and meetings are versioned; view predicates are not.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, PrivateAttr, field_validator

from addressbook.address_book import AddressBookSnapshot
from addressbook.exceptions import NothingToRedoError, NothingToUndoError

logger = logging.getLogger(__name__)


class HistoryEntry(BaseModel):
    """A committed snapshot and where it sits in the history.

    Args:
        sequence: Monotonically increasing position assigned at commit.
        snapshot: The address book contents after the command ran.
        description: What produced the snapshot (e.g. "add person Alice").
        committed_at: When the snapshot was committed, if a clock was given.
    """

    sequence: int = Field(ge=0, description="Monotonic sequence position")
    snapshot: AddressBookSnapshot = Field(description="Address book contents")
    description: str = Field(default="", description="What produced the snapshot")
    committed_at: Optional[datetime] = Field(
        default=None, description="When the snapshot was committed"
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert this entry to a dictionary.

        Returns:
            Dictionary representation suitable for serialization.
        """
        return {
            "sequence": self.sequence,
            "snapshot": self.snapshot.to_dict(),
            "description": self.description,
            "committed_at": self.committed_at.isoformat() if self.committed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        """Create a HistoryEntry from a dictionary.

        Args:
            data: Dictionary containing history entry data.

        Returns:
            New HistoryEntry instance.
        """
        committed_at = data.get("committed_at")
        return cls(
            sequence=data["sequence"],
            snapshot=AddressBookSnapshot.from_dict(data["snapshot"]),
            description=data.get("description", ""),
            committed_at=datetime.fromisoformat(committed_at) if committed_at else None,
        )


class History(BaseModel):
    """Snapshot sequence with a current pointer.

    - entries[0] is the initial (empty or loaded) state
    - commit() drops everything after the pointer, appends, and advances
    - undo() / redo() move the pointer and return the snapshot to install
    - committing a snapshot equal to the current one is a no-op

    The pointer always stays within [0, len(entries) - 1]. With max_size
    set, the oldest entries are discarded once the sequence grows past it.

    Args:
        entries: Committed entries, oldest first.
        pointer: Index of the entry matching the live book.
        max_size: Maximum number of entries to keep (None = unlimited).

    Examples:
        history = History.starting_from(book.snapshot())
        book.add_person(alice)
        history.commit(book.snapshot(), "add person Alice")
        book.reset_data(history.undo())
    """

    entries: list[HistoryEntry] = Field(
        default_factory=lambda: [HistoryEntry(sequence=0, snapshot=AddressBookSnapshot())],
        description="Committed entries, oldest first",
    )
    pointer: int = Field(default=0, ge=0, description="Index of the current entry")
    max_size: Optional[int] = Field(
        default=None, description="Maximum number of entries to keep (None = unlimited)"
    )

    _next_sequence: int = PrivateAttr(default=0)

    @field_validator("entries")
    @classmethod
    def validate_entries(cls, v: list[HistoryEntry]) -> list[HistoryEntry]:
        """Validate that there is an initial entry.

        Raises:
            ValueError: If entries is empty.
        """
        if not v:
            raise ValueError("history needs at least the initial entry")
        return v

    @field_validator("max_size")
    @classmethod
    def validate_max_size(cls, v: Optional[int]) -> Optional[int]:
        """Validate that max_size leaves room for at least one undo.

        Raises:
            ValueError: If max_size is smaller than 2.
        """
        if v is not None and v < 2:
            raise ValueError("max_size must be at least 2")
        return v

    def model_post_init(self, __context: Any) -> None:
        """Clamp the pointer and continue numbering after the loaded entries."""
        self.pointer = min(self.pointer, len(self.entries) - 1)
        self._next_sequence = max(entry.sequence for entry in self.entries) + 1

    @classmethod
    def starting_from(
        cls, snapshot: AddressBookSnapshot, max_size: Optional[int] = None
    ) -> "History":
        """Create a history whose initial entry is ``snapshot``."""
        return cls(
            entries=[HistoryEntry(sequence=0, snapshot=snapshot, description="initial")],
            max_size=max_size,
        )

    @property
    def current(self) -> AddressBookSnapshot:
        """Snapshot at the pointer."""
        return self.entries[self.pointer].snapshot

    @property
    def can_undo(self) -> bool:
        return self.pointer > 0

    @property
    def can_redo(self) -> bool:
        return self.pointer < len(self.entries) - 1

    @property
    def undo_count(self) -> int:
        return self.pointer

    @property
    def redo_count(self) -> int:
        return len(self.entries) - 1 - self.pointer

    def commit(
        self,
        snapshot: AddressBookSnapshot,
        description: str = "",
        committed_at: Optional[datetime] = None,
    ) -> bool:
        """Record the state after a mutating command.

        Entries after the pointer are discarded (the redo branch is gone)
        and the pointer moves to the new entry. A snapshot structurally
        equal to the current one is not recorded.

        Args:
            snapshot: Contents of the book after the command.
            description: What produced the snapshot.
            committed_at: When the command ran.

        Returns:
            True if an entry was added, False for a no-op.
        """
        if snapshot == self.current:
            logger.debug(f"Skipped no-op commit: {description or 'unnamed command'}")
            return False

        discarded = self.redo_count
        del self.entries[self.pointer + 1 :]

        self.entries.append(
            HistoryEntry(
                sequence=self._next_sequence,
                snapshot=snapshot,
                description=description,
                committed_at=committed_at,
            )
        )
        self._next_sequence += 1

        if self.max_size is not None and len(self.entries) > self.max_size:
            del self.entries[: len(self.entries) - self.max_size]

        self.pointer = len(self.entries) - 1

        if discarded:
            logger.debug(f"Commit discarded {discarded} redo entr(ies)")
        return True

    def undo(self) -> AddressBookSnapshot:
        """Step back one entry.

        Returns:
            The snapshot to install as the live book.

        Raises:
            NothingToUndoError: If the pointer is at the initial entry.
        """
        if not self.can_undo:
            raise NothingToUndoError()

        undone = self.entries[self.pointer]
        self.pointer -= 1
        logger.info(f"Undid #{undone.sequence}: {undone.description or 'unnamed command'}")
        return self.current

    def redo(self) -> AddressBookSnapshot:
        """Step forward one entry.

        Returns:
            The snapshot to install as the live book.

        Raises:
            NothingToRedoError: If the pointer is at the latest entry.
        """
        if not self.can_redo:
            raise NothingToRedoError()

        self.pointer += 1
        redone = self.entries[self.pointer]
        logger.info(f"Redid #{redone.sequence}: {redone.description or 'unnamed command'}")
        return self.current

    def replace_current(self, snapshot: AddressBookSnapshot) -> None:
        """Swap the snapshot at the pointer without adding an entry.

        Used for changes that should not be undoable on their own, such as
        re-sorting, so the current entry keeps matching the live book.

        Args:
            snapshot: Snapshot to store at the current position.
        """
        self.entries[self.pointer] = self.entries[self.pointer].model_copy(
            update={"snapshot": snapshot}
        )

    def reset(self, snapshot: AddressBookSnapshot) -> None:
        """Forget everything and start over from ``snapshot``."""
        self.entries = [
            HistoryEntry(
                sequence=self._next_sequence, snapshot=snapshot, description="reset"
            )
        ]
        self._next_sequence += 1
        self.pointer = 0

    def get_undo_summary(self) -> list[dict[str, Any]]:
        """Describe the entries that undo would step back over.

        Returns:
            List of dicts with sequence and description, most recent first.
        """
        return [
            {"sequence": entry.sequence, "description": entry.description}
            for entry in reversed(self.entries[1 : self.pointer + 1])
        ]

    def get_redo_summary(self) -> list[dict[str, Any]]:
        """Describe the entries that redo would re-apply.

        Returns:
            List of dicts with sequence and description, next to redo first.
        """
        return [
            {"sequence": entry.sequence, "description": entry.description}
            for entry in self.entries[self.pointer + 1 :]
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": [entry.to_dict() for entry in self.entries],
            "pointer": self.pointer,
            "max_size": self.max_size,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "History":
        return cls(
            entries=[HistoryEntry.from_dict(e) for e in data["entries"]],
            pointer=data.get("pointer", 0),
            max_size=data.get("max_size"),
        )
