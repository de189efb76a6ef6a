"""Per-path debouncing with net-effect aggregation."""
import threading
from collections.abc import Callable
from dataclasses import dataclass, replace

import structlog

from gitwatch.events.types import RawEvent, RawKind

logger = structlog.get_logger()


def merge_kinds(previous: RawKind | None, incoming: RawKind) -> RawKind | None:
    """Combine two notifications for the same path into their net effect.

    Args:
        previous: Kind accumulated so far in the window, None if nothing
            is pending (fresh window or cancelled).
        incoming: Kind of the new notification.

    Returns:
        The merged kind, or None when the two cancel out.
    """
    if incoming is RawKind.REMOVE:
        if previous is RawKind.CREATE:
            return None
        return RawKind.REMOVE
    if incoming is RawKind.CREATE and previous is RawKind.REMOVE:
        return RawKind.MODIFY
    return incoming


@dataclass
class _Window:
    timer: threading.Timer
    event: RawEvent | None
    # the path did not exist before the window opened
    created: bool = False
    merged: int = 0


class Debouncer:
    """Aggregates raw notifications per path inside a fixed time window.

    The first notification for a path opens a window; every later
    notification for the same path inside the window is merged into it with
    :func:`merge_kinds`. A window opened by a creation is cancelled by any
    later removal, since the path did not exist before it. When the window
    elapses the net event, if any, is passed to the sink. Windows are never
    cancelled once started: a window whose events cancel out still runs to
    completion and then discards.

    Attributes:
        window_seconds: Length of each debounce window.
    """

    def __init__(
        self,
        window_seconds: float,
        sink: Callable[[RawEvent], None],
    ) -> None:
        """Initialize debouncer.

        Args:
            window_seconds: Debounce window in seconds.
            sink: Called with each net event, from a timer thread.
        """
        self._window_seconds = window_seconds
        self._sink = sink
        self._pending: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._coalesced_count = 0

    @property
    def window_seconds(self) -> float:
        """Length of each debounce window."""
        return self._window_seconds

    @property
    def coalesced_events(self) -> int:
        """Number of notifications merged into an already open window."""
        return self._coalesced_count

    @property
    def pending_count(self) -> int:
        """Number of windows currently open."""
        with self._lock:
            return len(self._pending)

    def push(self, event: RawEvent) -> None:
        """Feed one raw notification.

        ERROR notifications bypass windows and reach the sink immediately.
        OTHER notifications carry no net effect and are dropped.

        Args:
            event: Raw notification referencing at most one path.
        """
        if event.kind is RawKind.ERROR:
            self._deliver(event)
            return
        if event.kind is RawKind.OTHER or not event.paths:
            return

        key = event.paths[0]
        with self._lock:
            window = self._pending.get(key)
            if window is None:
                timer = threading.Timer(self._window_seconds, self._complete, args=(key,))
                timer.daemon = True
                self._pending[key] = _Window(
                    timer=timer,
                    event=event,
                    created=event.kind is RawKind.CREATE,
                )
                timer.start()
                return

            previous = window.event.kind if window.event is not None else None
            merged = merge_kinds(previous, event.kind)
            if event.kind is RawKind.REMOVE and window.created:
                merged = None
            if merged is None:
                window.event = None
            else:
                window.event = replace(event, kind=merged)
            window.merged += 1
            self._coalesced_count += 1

    def flush(self) -> None:
        """Complete every open window now."""
        with self._lock:
            keys = list(self._pending)
        for key in keys:
            self._complete(key)

    def _complete(self, key: str) -> None:
        with self._lock:
            window = self._pending.pop(key, None)
            if window is None:
                return
            window.timer.cancel()

        if window.event is None:
            logger.debug("debounce_cancelled", path=key, merged=window.merged)
            return

        logger.debug(
            "debounce_emit",
            path=key,
            kind=window.event.kind.value,
            merged=window.merged,
        )
        self._deliver(window.event)

    def _deliver(self, event: RawEvent) -> None:
        try:
            self._sink(event)
        except Exception as e:
            logger.error("debounce_sink_error", error=str(e), kind=event.kind.value)
