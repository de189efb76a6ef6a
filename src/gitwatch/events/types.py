"""Event types for filesystem monitoring."""
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class RawKind(str, Enum):
    """Kinds of raw notifications produced by the event source."""

    CREATE = "create"
    MODIFY = "modify"
    REMOVE = "remove"
    ANY = "any"
    OTHER = "other"
    ERROR = "error"


@dataclass(frozen=True)
class RawEvent:
    """A single raw notification before debouncing and translation.

    Attributes:
        kind: Raw notification kind.
        paths: Absolute paths referenced by the notification.
        is_directory: Whether the paths refer to directories.
        message: Error description, set only for ERROR notifications.
    """

    kind: RawKind
    paths: tuple[str, ...] = ()
    is_directory: bool = False
    message: str | None = None

    @classmethod
    def error(cls, message: str) -> "RawEvent":
        """Build an ERROR notification, which never carries a path."""
        return cls(kind=RawKind.ERROR, message=message)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class _BaseEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="Event timestamp (UTC)",
    )


class CreatedEvent(_BaseEvent):
    """A file or directory appeared."""

    kind: Literal["created"] = "created"
    path: Path = Field(description="Absolute path of the created entry")


class ModifiedEvent(_BaseEvent):
    """A file's content or metadata changed."""

    kind: Literal["modified"] = "modified"
    path: Path = Field(description="Absolute path of the modified entry")


class DeletedEvent(_BaseEvent):
    """A file or directory disappeared."""

    kind: Literal["deleted"] = "deleted"
    path: Path = Field(description="Absolute path of the deleted entry")


class RenamedEvent(_BaseEvent):
    """An entry moved from one path to another.

    The watchdog source delivers moves as a delete plus a create, so this
    variant is only constructed by callers that pair paths themselves.
    """

    kind: Literal["renamed"] = "renamed"
    from_path: Path = Field(description="Path before the rename")
    to_path: Path = Field(description="Path after the rename")

    @property
    def path(self) -> Path:
        """Destination path, used for status correlation."""
        return self.to_path


class ErrorEvent(_BaseEvent):
    """A runtime failure of the subscription."""

    kind: Literal["error"] = "error"
    message: str = Field(description="Human readable failure description")

    @property
    def path(self) -> None:
        """Error events never carry a path."""
        return None


WatchEvent = Annotated[
    CreatedEvent | ModifiedEvent | DeletedEvent | RenamedEvent | ErrorEvent,
    Field(discriminator="kind"),
]
