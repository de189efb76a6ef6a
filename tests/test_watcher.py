"""Filesystem watcher tests."""

from pathlib import Path

import pytest
from watchdog.events import (
    DirDeletedEvent,
    DirModifiedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileMovedEvent,
)

from gitwatch.errors import ChannelClosed, WatchSetupError
from gitwatch.events.channel import EventChannel
from gitwatch.events.debouncer import Debouncer
from gitwatch.events.types import CreatedEvent, RawEvent, RawKind, WatchEvent
from gitwatch.events.watcher import DebouncingHandler, FileWatcher, to_raw_events
from gitwatch.ignore import IgnoreMatcher


def _collect(
    channel: EventChannel,
    first_timeout: float = 5.0,
    quiet: float = 0.5,
) -> list[WatchEvent]:
    """Wait for a first event, then gather until the channel stays quiet."""
    events: list[WatchEvent] = []
    event = channel.receive(first_timeout)
    while event is not None:
        events.append(event)
        event = channel.receive(quiet)
    return events


def test_move_splits_into_remove_and_create() -> None:
    """A move is reported as removal of the source and creation of the target."""
    raws = to_raw_events(FileMovedEvent("/w/old.txt", "/w/new.txt"))
    assert [(r.kind, r.paths) for r in raws] == [
        (RawKind.REMOVE, ("/w/old.txt",)),
        (RawKind.CREATE, ("/w/new.txt",)),
    ]


def test_directory_modify_is_dropped() -> None:
    """Directory modifications only echo child changes."""
    assert to_raw_events(DirModifiedEvent("/w/sub")) == []


def test_close_is_other_and_create_is_create() -> None:
    """Open/close map to OTHER, creations to CREATE."""
    assert to_raw_events(FileClosedEvent("/w/a"))[0].kind is RawKind.OTHER
    assert to_raw_events(FileCreatedEvent("/w/a"))[0].kind is RawKind.CREATE


def test_root_removal_is_reported_as_error(tmp_path: Path) -> None:
    """Deleting the watch root produces an error notification."""
    delivered: list[RawEvent] = []
    handler = DebouncingHandler(tmp_path, Debouncer(10.0, delivered.append))

    handler.on_any_event(DirDeletedEvent(str(tmp_path)))

    assert len(delivered) == 1
    assert delivered[0].kind is RawKind.ERROR
    assert "removed" in (delivered[0].message or "")


def test_missing_root_fails_setup(tmp_path: Path) -> None:
    """A nonexistent root is a setup error."""
    watcher = FileWatcher(tmp_path / "missing", EventChannel())
    with pytest.raises(WatchSetupError) as exc_info:
        watcher.start()
    assert exc_info.value.path == str((tmp_path / "missing").resolve())


def test_file_root_fails_setup(tmp_path: Path) -> None:
    """A regular file cannot be watched."""
    target = tmp_path / "file.txt"
    target.write_text("x", encoding="utf-8")
    with pytest.raises(WatchSetupError):
        with FileWatcher(target, EventChannel()):
            pass


def test_stop_closes_channel(tmp_path: Path) -> None:
    """Leaving the watcher scope disconnects the channel."""
    channel = EventChannel()
    with FileWatcher(tmp_path, channel) as watcher:
        assert watcher.is_running

    assert not watcher.is_running
    assert channel.closed
    with pytest.raises(ChannelClosed):
        channel.receive(1.0)


def test_ignored_file_never_reaches_channel(tmp_path: Path) -> None:
    """Creating x.tmp then x.txt delivers one Created event for x.txt."""
    root = tmp_path.resolve()
    channel = EventChannel()
    ignore = IgnoreMatcher.build(root, use_gitignore=False, extra_patterns=["*.tmp"])

    with FileWatcher(root, channel, debounce_ms=50, ignore=ignore):
        (root / "x.tmp").touch()
        (root / "x.txt").touch()
        events = _collect(channel)

    assert len(events) == 1
    assert isinstance(events[0], CreatedEvent)
    assert events[0].path == root / "x.txt"


def test_new_subdirectory_is_watched(tmp_path: Path) -> None:
    """Subdirectories created after start are watched recursively."""
    root = tmp_path.resolve()
    channel = EventChannel()

    with FileWatcher(root, channel, debounce_ms=50):
        sub = root / "sub"
        sub.mkdir()
        _collect(channel)
        (sub / "inner.txt").touch()
        events = _collect(channel)

    assert any(event.path == sub / "inner.txt" for event in events)


class _FlakyDebouncer(Debouncer):
    """Debouncer whose first push fails."""

    def __init__(self, sink: list[RawEvent]) -> None:
        super().__init__(10.0, sink.append)
        self.failed = False

    def push(self, event: RawEvent) -> None:
        if not self.failed:
            self.failed = True
            raise RuntimeError("queue full")
        super().push(event)


def test_handler_failure_becomes_error_and_stream_continues(tmp_path: Path) -> None:
    """A notification that fails to process is reported, later ones still flow."""
    delivered: list[RawEvent] = []
    debouncer = _FlakyDebouncer(delivered)
    handler = DebouncingHandler(tmp_path, debouncer)

    handler.on_any_event(FileCreatedEvent(str(tmp_path / "a.txt")))
    handler.on_any_event(FileCreatedEvent(str(tmp_path / "b.txt")))
    debouncer.flush()

    assert delivered[0].kind is RawKind.ERROR
    assert "queue full" in (delivered[0].message or "")
    assert [(e.kind, e.paths) for e in delivered[1:]] == [
        (RawKind.CREATE, (str(tmp_path / "b.txt"),)),
    ]


def test_non_recursive_ignores_subdirectories(tmp_path: Path) -> None:
    """Without recursion only direct children of the root are reported."""
    root = tmp_path.resolve()
    sub = root / "sub"
    sub.mkdir()
    channel = EventChannel()

    with FileWatcher(root, channel, debounce_ms=50, recursive=False) as watcher:
        assert not watcher.recursive
        (sub / "inner.txt").touch()
        (root / "top.txt").touch()
        events = _collect(channel)

    assert [event.path for event in events] == [root / "top.txt"]
