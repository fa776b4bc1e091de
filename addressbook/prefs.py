"""User preferences for the addressbook model."""

from pathlib import Path
from typing import Any, Optional, Union

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "ADDRESSBOOK_"
INTERVAL_ENV_VAR = f"{ENV_PREFIX}INTERVAL_BETWEEN_MEETINGS"
FILE_PATH_ENV_VAR = f"{ENV_PREFIX}ADDRESS_BOOK_FILE_PATH"
DEFAULT_FILE_PATH = Path("data") / "addressbook.json"


class UserPrefs(BaseSettings):
    """Preferences that shape model behaviour.

    Values come from keyword arguments first, then ``ADDRESSBOOK_*``
    environment variables, then a ``.env`` file, then the defaults.

    Args:
        interval_between_meetings: Minimum gap in minutes required between
            two meetings before they are reported as conflicting.
        address_book_file_path: Where the persistence layer keeps the data.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        validate_assignment=True,
    )

    interval_between_meetings: int = Field(
        default=0, ge=0, description="Minimum gap between meetings (minutes)"
    )
    address_book_file_path: Path = Field(
        default=DEFAULT_FILE_PATH, description="Address book data file"
    )

    @classmethod
    def from_env(
        cls, dotenv_path: Optional[Union[str, Path]] = None
    ) -> "UserPrefs":
        """Build preferences from the environment only.

        Existing environment variables win over values in the ``.env`` file.
        A missing file is ignored.

        Args:
            dotenv_path: Explicit .env file to read (default: ``./.env``).

        Returns:
            New UserPrefs instance.

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value.
        """
        if dotenv_path is None:
            return cls()
        return cls(_env_file=dotenv_path)

    def reset_data(self, other: "UserPrefs") -> None:
        """Copy every preference from another instance.

        Args:
            other: Preferences to copy.
        """
        self.interval_between_meetings = other.interval_between_meetings
        self.address_book_file_path = other.address_book_file_path

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserPrefs":
        return cls.model_validate(data)
