"""Meeting and recurrence models."""

import calendar
from datetime import datetime, timedelta
from typing import Any, Literal, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

RecurrenceFrequency = Literal["daily", "weekly", "monthly", "yearly"]


class Recurrence(BaseModel):
    """Generation rule for a recurring meeting.

    Every meeting generated from one definition carries the same lineage_id.
    Deleting any instance of a recurring meeting with the recurring scope
    removes every meeting sharing that lineage.

    Args:
        lineage_id: Shared origin key of all generated instances.
        frequency: How often the meeting repeats.
        interval: Repeat every N periods (default: 1).
        count: Number of occurrences generated, the original included.
    """

    model_config = ConfigDict(frozen=True)

    lineage_id: UUID = Field(default_factory=uuid4, description="Shared origin key")
    frequency: RecurrenceFrequency = Field(description="Recurrence frequency")
    interval: int = Field(default=1, ge=1, description="Repeat every N periods")
    count: int = Field(default=1, ge=1, description="Number of occurrences")

    def shift(self, start: datetime, steps: int) -> datetime:
        """Return the start of the occurrence ``steps`` periods after ``start``.

        Month and year steps clamp the day to the last day of the target
        month (31 Jan + 1 month is 28/29 Feb).

        Args:
            start: Start of the first occurrence.
            steps: Number of periods to move forward.

        Returns:
            Start datetime of that occurrence.
        """
        periods = steps * self.interval
        if self.frequency == "daily":
            return start + timedelta(days=periods)
        if self.frequency == "weekly":
            return start + timedelta(weeks=periods)

        months = periods if self.frequency == "monthly" else periods * 12
        month_index = start.month - 1 + months
        year = start.year + month_index // 12
        month = month_index % 12 + 1
        day = min(start.day, calendar.monthrange(year, month)[1])
        return start.replace(year=year, month=month, day=day)


class Meeting(BaseModel):
    """A scheduled meeting.

    Participants are references to Person uuids, not owned copies. Meetings
    are immutable values; every edit helper returns a new Meeting that keeps
    the meeting_id.

    Args:
        meeting_id: Stable unique identifier.
        title: Meeting title.
        start: Start datetime (timezone-aware).
        end: End datetime (timezone-aware, after start).
        location: Where the meeting takes place.
        description: Free-form notes.
        recurrence: Generation rule if this meeting belongs to a recurring group.
        participants: Ordered uuids of participating persons, without duplicates.
    """

    model_config = ConfigDict(frozen=True)

    meeting_id: UUID = Field(default_factory=uuid4, description="Stable unique identifier")
    title: str = Field(description="Meeting title")
    start: datetime = Field(description="Start datetime")
    end: datetime = Field(description="End datetime")
    location: Optional[str] = Field(default=None, description="Meeting location")
    description: Optional[str] = Field(default=None, description="Meeting notes")
    recurrence: Optional[Recurrence] = Field(default=None, description="Recurrence rule")
    participants: tuple[UUID, ...] = Field(
        default_factory=tuple, description="Participant person uuids"
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate that title is non-empty."""
        if not v or not v.strip():
            raise ValueError("title cannot be empty")
        return v.strip()

    @field_validator("start", "end")
    @classmethod
    def validate_timezone_aware(cls, v: datetime) -> datetime:
        """Ensure datetime is timezone-aware."""
        if v.tzinfo is None:
            raise ValueError("Datetime must be timezone-aware (recommend UTC)")
        return v

    @field_validator("participants")
    @classmethod
    def deduplicate_participants(cls, v: tuple[UUID, ...]) -> tuple[UUID, ...]:
        """Drop repeated participants, keeping the first occurrence."""
        return tuple(dict.fromkeys(v))

    @model_validator(mode="after")
    def validate_time_range(self) -> "Meeting":
        """Validate that the meeting starts before it ends.

        Raises:
            ValueError: If start is not before end.
        """
        if self.start >= self.end:
            raise ValueError(
                f"Meeting must start before it ends: {self.start} to {self.end}"
            )
        return self

    @classmethod
    def from_duration(
        cls, title: str, start: datetime, duration: timedelta, **kwargs: Any
    ) -> "Meeting":
        """Create a meeting from a start time and a duration.

        Args:
            title: Meeting title.
            start: Start datetime.
            duration: Length of the meeting.
            **kwargs: Remaining Meeting fields.

        Returns:
            New Meeting instance.
        """
        return cls(title=title, start=start, end=start + duration, **kwargs)

    @property
    def duration(self) -> timedelta:
        """Length of the meeting."""
        return self.end - self.start

    @property
    def lineage_id(self) -> Optional[UUID]:
        """Recurrence lineage key, or None for a one-off meeting."""
        return self.recurrence.lineage_id if self.recurrence else None

    def is_recurring(self) -> bool:
        """Check if this meeting belongs to a recurring group.

        Returns:
            True if meeting has a recurrence rule.
        """
        return self.recurrence is not None

    def is_same_meeting(self, other: Optional["Meeting"]) -> bool:
        """Check identity (meeting_id equality), not field equality."""
        return other is not None and other.meeting_id == self.meeting_id

    def shares_lineage(self, other: "Meeting") -> bool:
        """Check whether both meetings were generated from one definition.

        A one-off meeting only shares lineage with itself.
        """
        if self.lineage_id is None:
            return self.is_same_meeting(other)
        return self.lineage_id == other.lineage_id

    def has_participant(self, person_uuid: UUID) -> bool:
        return person_uuid in self.participants

    def overlaps(self, other: "Meeting", gap: timedelta = timedelta(0)) -> bool:
        """Check whether two meetings are closer than the required gap.

        Spans [s1, e1) and [s2, e2) conflict iff s1 < e2 + gap and
        s2 < e1 + gap. With a zero gap, back-to-back meetings do not conflict.

        Args:
            other: Meeting to compare against.
            gap: Minimum time required between the two meetings.

        Returns:
            True if the meetings conflict.
        """
        return self.start < other.end + gap and other.start < self.end + gap

    def edit(self, **changes: Any) -> "Meeting":
        """Return an edited, re-validated copy keeping the meeting_id.

        Args:
            **changes: Field values to replace.

        Returns:
            New Meeting instance.
        """
        data = self.model_dump()
        data.update(changes)
        return Meeting.model_validate(data)

    def with_participant(self, person_uuid: UUID) -> "Meeting":
        return self.edit(participants=self.participants + (person_uuid,))

    def without_participant(self, person_uuid: UUID) -> "Meeting":
        return self.edit(
            participants=tuple(p for p in self.participants if p != person_uuid)
        )

    def replace_participant(self, old_uuid: UUID, new_uuid: UUID) -> "Meeting":
        return self.edit(
            participants=tuple(
                new_uuid if p == old_uuid else p for p in self.participants
            )
        )

    def generate_occurrences(self) -> list["Meeting"]:
        """Expand this meeting's recurrence rule into individual meetings.

        The first occurrence is this meeting itself. Later occurrences get
        fresh meeting_ids, keep the duration and share the lineage.

        Returns:
            List of meetings in chronological order.
        """
        if not self.recurrence:
            return [self]

        occurrences = [self]
        for step in range(1, self.recurrence.count):
            start = self.recurrence.shift(self.start, step)
            occurrences.append(
                self.edit(meeting_id=uuid4(), start=start, end=start + self.duration)
            )
        return occurrences

    def to_dict(self) -> dict[str, Any]:
        """Convert this meeting to a JSON-compatible dictionary.

        Returns:
            Dictionary representation suitable for serialization.
        """
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Meeting":
        """Create a Meeting from a dictionary produced by to_dict().

        Args:
            data: Dictionary containing meeting data.

        Returns:
            New Meeting instance.
        """
        return cls.model_validate(data)

    def __str__(self) -> str:
        return f"{self.title} ({self.start.isoformat()} - {self.end.isoformat()})"
