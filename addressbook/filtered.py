"""Live, predicate-driven views over the address book collections.

A FilteredView holds no copy of the canonical data, only a predicate and a
reference to the book. Reads recompute against the book's version counter,
so a mutation is visible through every view on the next access.
"""

import logging
from datetime import timedelta
from typing import Any, Callable, Generic, Iterable, Iterator, Sequence, TypeVar

from addressbook.address_book import AddressBook
from addressbook.clock import Clock
from addressbook.exceptions import InvalidArgumentError
from addressbook.meeting import Meeting
from addressbook.person import Person

logger = logging.getLogger(__name__)

T = TypeVar("T")
Predicate = Callable[[Any], bool]
ViewListener = Callable[["FilteredView"], None]


def PREDICATE_SHOW_ALL(_entity: Any) -> bool:
    return True


class MeetingWithinHoursPredicate:
    """Matches meetings starting within the next ``hours`` hours.

    A meeting matches iff now <= start <= now + hours, with "now" read from
    the clock at evaluation time.

    Args:
        hours: Look-ahead window, a positive integer.
        clock: Supplies the current time.

    Raises:
        InvalidArgumentError: If hours is not a positive integer.
    """

    def __init__(self, hours: int, clock: Clock):
        if isinstance(hours, bool) or not isinstance(hours, int) or hours <= 0:
            raise InvalidArgumentError(
                f"hours must be a positive integer, got {hours!r}"
            )
        self.hours = hours
        self.clock = clock

    def __call__(self, meeting: Meeting) -> bool:
        now = self.clock.now()
        return now <= meeting.start <= now + timedelta(hours=self.hours)

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, MeetingWithinHoursPredicate)
            and self.hours == other.hours
            and self.clock == other.clock
        )

    def __repr__(self) -> str:
        return f"MeetingWithinHoursPredicate(hours={self.hours})"


class _KeywordPredicate:
    def __init__(self, keywords: Iterable[str]):
        self.keywords = tuple(k.strip().casefold() for k in keywords if k.strip())
        if not self.keywords:
            raise InvalidArgumentError("at least one keyword is required")

    def _matches(self, text: str) -> bool:
        words = set(text.casefold().split())
        return any(keyword in words for keyword in self.keywords)

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and self.keywords == other.keywords

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self.keywords)})"


class NameContainsKeywordsPredicate(_KeywordPredicate):
    """Matches persons whose name contains any keyword as a whole word.

    Matching is case-insensitive.
    """

    def __call__(self, person: Person) -> bool:
        return self._matches(person.name)


class MeetingContainsKeywordsPredicate(_KeywordPredicate):
    """Matches meetings whose title, location or description contains a keyword."""

    def __call__(self, meeting: Meeting) -> bool:
        text = " ".join(
            part for part in (meeting.title, meeting.location, meeting.description) if part
        )
        return self._matches(text)


class FilteredView(Generic[T]):
    """Read-only projection of a canonical collection filtered by a predicate.

    The view always equals the subsequence of the canonical collection, in
    canonical order, for which the current predicate holds. Listeners are
    called after every book mutation and predicate change.

    Args:
        book: The address book to observe.
        source: Returns the canonical sequence from the book.
        predicate: Initial predicate (default: show everything).
    """

    def __init__(
        self,
        book: AddressBook,
        source: Callable[[AddressBook], Sequence[T]],
        predicate: Predicate = PREDICATE_SHOW_ALL,
    ):
        self._book = book
        self._source = source
        self._predicate = predicate
        self._listeners: list[ViewListener] = []
        self._items: tuple[T, ...] = ()
        self._seen_version = -1
        book.add_listener(self._on_book_changed)
        self._recompute()

    @property
    def predicate(self) -> Predicate:
        return self._predicate

    def set_predicate(self, predicate: Predicate) -> None:
        """Replace the active predicate and recompute immediately.

        Args:
            predicate: Callable deciding whether an entity is visible.

        Raises:
            InvalidArgumentError: If predicate is not callable.
        """
        if not callable(predicate):
            raise InvalidArgumentError(f"predicate must be callable, got {predicate!r}")

        self._predicate = predicate
        self._recompute()
        self._notify()

    def add_listener(self, listener: ViewListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ViewListener) -> None:
        self._listeners.remove(listener)

    def detach(self) -> None:
        """Stop observing the book."""
        self._book.remove_listener(self._on_book_changed)

    @property
    def items(self) -> tuple[T, ...]:
        """Current visible entities, in canonical order."""
        if self._seen_version != self._book.version:
            self._recompute()
        return self._items

    def _recompute(self) -> None:
        self._items = tuple(e for e in self._source(self._book) if self._predicate(e))
        self._seen_version = self._book.version
        logger.debug(f"View recomputed: {len(self._items)} visible")

    def _on_book_changed(self) -> None:
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> T:
        return self.items[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FilteredView):
            return NotImplemented
        return self.items == other.items and self._predicate == other._predicate

    def __repr__(self) -> str:
        return f"FilteredView({len(self)} visible)"
