"""Filesystem watcher with debouncing and ignore filtering."""

import os
from pathlib import Path
from types import TracebackType

import structlog
from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CLOSED_NO_WRITE,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    EVENT_TYPE_OPENED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from gitwatch.errors import WatchSetupError
from gitwatch.events.channel import EventChannel
from gitwatch.events.debouncer import Debouncer
from gitwatch.events.translator import translate_event
from gitwatch.events.types import RawEvent, RawKind
from gitwatch.ignore import IgnoreMatcher

logger = structlog.get_logger()

RAW_KIND_BY_TYPE: dict[str, RawKind] = {
    EVENT_TYPE_CREATED: RawKind.CREATE,
    EVENT_TYPE_MODIFIED: RawKind.MODIFY,
    EVENT_TYPE_DELETED: RawKind.REMOVE,
    EVENT_TYPE_OPENED: RawKind.OTHER,
    EVENT_TYPE_CLOSED: RawKind.OTHER,
    EVENT_TYPE_CLOSED_NO_WRITE: RawKind.OTHER,
}


def _decode_path(path: str | bytes) -> str:
    if isinstance(path, str):
        return path
    return bytes(path).decode("utf-8", errors="replace")


def to_raw_events(event: FileSystemEvent) -> list[RawEvent]:
    """Convert a watchdog event into raw notifications.

    Moves are split into a removal of the source and a creation of the
    destination. Directory modifications only echo changes to their children
    and are dropped.

    Args:
        event: Watchdog filesystem event.

    Returns:
        Zero or more raw notifications, each referencing one path.
    """
    src_path = _decode_path(event.src_path)
    is_dir = event.is_directory

    if event.event_type == EVENT_TYPE_MOVED:
        dest_path = _decode_path(event.dest_path)
        return [
            RawEvent(kind=RawKind.REMOVE, paths=(src_path,), is_directory=is_dir),
            RawEvent(kind=RawKind.CREATE, paths=(dest_path,), is_directory=is_dir),
        ]

    kind = RAW_KIND_BY_TYPE.get(event.event_type, RawKind.ANY)
    if kind is RawKind.MODIFY and is_dir:
        return []
    return [RawEvent(kind=kind, paths=(src_path,), is_directory=is_dir)]


class DebouncingHandler(FileSystemEventHandler):
    """Watchdog event handler feeding a :class:`Debouncer`.

    Runs on the observer thread. Any failure while handling a notification
    is reported downstream as an ERROR notification instead of escaping into
    watchdog.
    """

    def __init__(self, root: Path, debouncer: Debouncer) -> None:
        """Initialize handler.

        Args:
            root: Resolved watch root.
            debouncer: Debouncer receiving raw notifications.
        """
        super().__init__()
        self._root = str(root)
        self._debouncer = debouncer

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Handle a raw watchdog event.

        Args:
            event: Raw watchdog filesystem event.
        """
        try:
            if (
                event.event_type == EVENT_TYPE_DELETED
                and _decode_path(event.src_path) == self._root
            ):
                logger.error("watch_root_removed", path=self._root)
                self._debouncer.push(RawEvent.error(f"Watch root removed: {self._root}"))
                return

            for raw_event in to_raw_events(event):
                self._debouncer.push(raw_event)
        except Exception as e:
            logger.error("watcher_event_error", error=str(e), event_type=event.event_type)
            self._debouncer.push(RawEvent.error(f"Failed to process event: {e}"))


class FileWatcher:
    """Scoped handle over a watchdog observer and its debouncer.

    Translated events are delivered to an :class:`EventChannel`. Leaving the
    ``with`` block (normally or through an exception) unsubscribes, completes
    every open debounce window and closes the channel.

    Attributes:
        root: Resolved directory being watched.
        recursive: Whether subdirectories are watched.
    """

    def __init__(
        self,
        root: str | Path,
        channel: EventChannel,
        debounce_ms: int = 100,
        recursive: bool = True,
        ignore: IgnoreMatcher | None = None,
    ) -> None:
        """Initialize filesystem watcher.

        Args:
            root: Directory to watch.
            channel: Channel receiving translated events.
            debounce_ms: Debounce window in milliseconds.
            recursive: Watch subdirectories, including ones created later.
            ignore: Compiled ignore rules, None to disable filtering.
        """
        self._root = Path(root).resolve()
        self._channel = channel
        self._recursive = recursive
        self._ignore = ignore
        self._debouncer = Debouncer(debounce_ms / 1000.0, self._forward)
        self._observer: Observer | None = None  # pyright: ignore[reportInvalidTypeForm]

    @property
    def root(self) -> Path:
        """Directory being watched."""
        return self._root

    @property
    def recursive(self) -> bool:
        """Whether subdirectories are watched."""
        return self._recursive

    @property
    def debouncer(self) -> Debouncer:
        """Debouncer aggregating raw notifications."""
        return self._debouncer

    @property
    def is_running(self) -> bool:
        """Whether the observer thread is alive."""
        return self._observer is not None and self._observer.is_alive()

    def _forward(self, raw_event: RawEvent) -> None:
        event = translate_event(raw_event, self._root, self._ignore)
        if event is None:
            return
        if not self._channel.send(event):
            logger.debug("watcher_event_after_close", kind=event.kind)

    def start(self) -> None:
        """Start the filesystem observer.

        Raises:
            WatchSetupError: If the root is missing, not a directory, not
                readable, or the observer cannot subscribe to it.
        """
        if not self._root.exists():
            raise WatchSetupError(f"Watch path does not exist: {self._root}", str(self._root))
        if not self._root.is_dir():
            raise WatchSetupError(f"Watch path is not a directory: {self._root}", str(self._root))
        if not os.access(self._root, os.R_OK | os.X_OK):
            raise WatchSetupError(f"Permission denied: {self._root}", str(self._root))

        handler = DebouncingHandler(self._root, self._debouncer)
        observer = Observer()
        try:
            observer.schedule(handler, str(self._root), recursive=self._recursive)
            observer.start()
        except OSError as e:
            raise WatchSetupError(f"Failed to start watching: {e}", str(self._root)) from e

        self._observer = observer
        logger.info(
            "watcher_started",
            path=str(self._root),
            recursive=self._recursive,
            debounce_ms=int(self._debouncer.window_seconds * 1000),
        )

    def stop(self) -> None:
        """Stop the observer, complete open windows and close the channel.

        Idempotent.
        """
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._observer = None

        self._debouncer.flush()
        self._channel.close()
        logger.info(
            "watcher_stopped",
            path=str(self._root),
            coalesced_events=self._debouncer.coalesced_events,
        )

    def __enter__(self) -> "FileWatcher":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()
