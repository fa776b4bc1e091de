"""Clock collaborators supplying "now" to the model.

The model never reads the system clock by itself. Anything time-relative
(next meeting, reminders) asks an injected clock, so tests can pin time.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field, field_validator


@runtime_checkable
class Clock(Protocol):
    """Anything that can tell the current time."""

    def now(self) -> datetime:
        """Return the current timezone-aware datetime."""
        ...


class SystemClock:
    """Clock backed by the machine's wall clock (UTC)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SystemClock)

    def __repr__(self) -> str:
        return "SystemClock()"


class ManualClock(BaseModel):
    """Clock whose time only moves when told to.

    Used by tests and by callers that replay commands at a fixed time.

    Args:
        current_time: The time reported by now() (timezone-aware).
    """

    current_time: datetime = Field(description="The time reported by now()")

    @field_validator("current_time")
    @classmethod
    def validate_timezone_aware(cls, v: datetime) -> datetime:
        """Ensure datetime is timezone-aware."""
        if v.tzinfo is None:
            raise ValueError("Datetime must be timezone-aware (recommend UTC)")
        return v

    def now(self) -> datetime:
        return self.current_time

    def advance(self, delta: timedelta) -> None:
        """Move the clock forward.

        Args:
            delta: Amount of time to advance.

        Raises:
            ValueError: If delta is negative.
        """
        if delta < timedelta(0):
            raise ValueError("Cannot advance time backwards")

        self.current_time += delta

    def set_time(self, new_time: datetime) -> None:
        """Jump to a specific time (forwards or backwards).

        Args:
            new_time: New time to report.

        Raises:
            ValueError: If new_time is naive.
        """
        if new_time.tzinfo is None:
            raise ValueError("new_time must be timezone-aware")

        self.current_time = new_time
