"""Events subsystem: filesystem subscription, debouncing and translation."""
from gitwatch.events.channel import EventChannel
from gitwatch.events.debouncer import Debouncer
from gitwatch.events.translator import translate_event
from gitwatch.events.types import (
    CreatedEvent,
    DeletedEvent,
    ErrorEvent,
    ModifiedEvent,
    RawEvent,
    RawKind,
    RenamedEvent,
    WatchEvent,
)
from gitwatch.events.watcher import FileWatcher

__all__ = [
    "CreatedEvent",
    "Debouncer",
    "DeletedEvent",
    "ErrorEvent",
    "EventChannel",
    "FileWatcher",
    "ModifiedEvent",
    "RawEvent",
    "RawKind",
    "RenamedEvent",
    "WatchEvent",
    "translate_event",
]
