"""Translation of debounced raw notifications into public watch events."""
from pathlib import Path

import structlog

from gitwatch.events.types import (
    CreatedEvent,
    DeletedEvent,
    ErrorEvent,
    ModifiedEvent,
    RawEvent,
    RawKind,
    WatchEvent,
)
from gitwatch.ignore import IgnoreMatcher

logger = structlog.get_logger()

_EVENT_FOR_KIND: dict[RawKind, type[CreatedEvent | ModifiedEvent | DeletedEvent]] = {
    RawKind.CREATE: CreatedEvent,
    RawKind.MODIFY: ModifiedEvent,
    RawKind.REMOVE: DeletedEvent,
    # ambiguous notifications are reported rather than lost
    RawKind.ANY: ModifiedEvent,
}


def is_ignored(
    path: str,
    root: Path,
    ignore: IgnoreMatcher,
    is_directory: bool = False,
) -> bool:
    """Check a single absolute path against the ignore rules.

    Args:
        path: Absolute path from a raw notification.
        root: Watch root the rules are relative to.
        ignore: Compiled ignore rules.
        is_directory: Whether the path is a directory.

    Returns:
        True if the path is ignored. Paths outside the root never are.
    """
    try:
        relative = Path(path).relative_to(root)
    except ValueError:
        return False
    return ignore.matches(relative, is_directory)


def translate_event(
    raw_event: RawEvent,
    root: Path,
    ignore: IgnoreMatcher | None = None,
) -> WatchEvent | None:
    """Transform a debounced raw notification into a watch event.

    Args:
        raw_event: Net notification emitted by the debouncer.
        root: Watch root used to relativize paths for ignore matching.
        ignore: Compiled ignore rules, None to disable filtering.

    Returns:
        The watch event, or None if the notification should be dropped.
    """
    if raw_event.kind is RawKind.ERROR:
        return ErrorEvent(message=raw_event.message or "unknown watcher error")

    event_cls = _EVENT_FOR_KIND.get(raw_event.kind)
    if event_cls is None or not raw_event.paths:
        return None

    if ignore is not None and all(
        is_ignored(path, root, ignore, raw_event.is_directory)
        for path in raw_event.paths
    ):
        logger.debug("event_ignored", paths=list(raw_event.paths))
        return None

    return event_cls(path=Path(raw_event.paths[0]))
