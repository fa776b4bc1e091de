"""Person (contact record) model."""

from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Person(BaseModel):
    """A contact stored in the address book.

    Persons are immutable values. Editing a person produces a new value that
    keeps the same uuid, so identity survives edits while structural equality
    (``==``) tells the old and new versions apart.

    Args:
        uuid: Stable unique identifier, assigned at creation.
        name: Display name.
        phone: Phone number (free-form).
        email: Email address (free-form).
        address: Postal address (free-form).
        tags: Set of labels.
    """

    model_config = ConfigDict(frozen=True)

    uuid: UUID = Field(default_factory=uuid4, description="Stable unique identifier")
    name: str = Field(description="Display name")
    phone: Optional[str] = Field(default=None, description="Phone number")
    email: Optional[str] = Field(default=None, description="Email address")
    address: Optional[str] = Field(default=None, description="Postal address")
    tags: frozenset[str] = Field(default_factory=frozenset, description="Labels")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate that name is non-empty.

        Args:
            v: The name value.

        Returns:
            The stripped name.

        Raises:
            ValueError: If name is empty or whitespace.
        """
        if not v or not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: frozenset[str]) -> frozenset[str]:
        """Validate that no tag is blank.

        Args:
            v: The tags value.

        Returns:
            The stripped tags.

        Raises:
            ValueError: If any tag is empty or whitespace.
        """
        cleaned = frozenset(tag.strip() for tag in v)
        if "" in cleaned:
            raise ValueError("tags cannot be empty")
        return cleaned

    @property
    def duplicate_key(self) -> str:
        """Key used to reject two contacts with the same name.

        Returns:
            Case-insensitive, whitespace-normalised name.
        """
        return " ".join(self.name.split()).casefold()

    def is_same_person(self, other: Optional["Person"]) -> bool:
        """Check identity (uuid equality), not field equality.

        Args:
            other: Person to compare against.

        Returns:
            True if both records describe the same entity.
        """
        return other is not None and other.uuid == self.uuid

    def edit(self, **changes: Any) -> "Person":
        """Return an edited version of this person.

        The uuid is kept unless explicitly overridden. Changes are validated.

        Args:
            **changes: Field values to replace.

        Returns:
            New Person instance.
        """
        data = self.model_dump()
        data.update(changes)
        return Person.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert this person to a JSON-compatible dictionary.

        Returns:
            Dictionary representation with tags sorted.
        """
        data = self.model_dump(mode="json")
        data["tags"] = sorted(self.tags)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Person":
        """Create a Person from a dictionary produced by to_dict().

        Args:
            data: Dictionary containing person data.

        Returns:
            New Person instance.
        """
        return cls.model_validate(data)

    def __str__(self) -> str:
        tags = "".join(f"[{tag}]" for tag in sorted(self.tags))
        return f"{self.name}{' ' + tags if tags else ''}"
