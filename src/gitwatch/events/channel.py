"""Single-producer/single-consumer event channel."""
import queue
import threading

from gitwatch.errors import ChannelClosed
from gitwatch.events.types import WatchEvent

_CLOSED = object()


class EventChannel:
    """Unbounded hand-off queue between the watcher threads and the main loop.

    The producer side sends translated events and eventually closes the
    channel; the consumer pulls one event per receive call, waiting at most
    the given timeout.
    """

    def __init__(self) -> None:
        """Initialize an open, empty channel."""
        self._queue: queue.SimpleQueue[object] = queue.SimpleQueue()
        self._closed = threading.Event()
        self._drained = False

    @property
    def closed(self) -> bool:
        """Whether the producer side has closed."""
        return self._closed.is_set()

    def send(self, event: WatchEvent) -> bool:
        """Enqueue an event.

        Args:
            event: Translated event.

        Returns:
            False if the channel was already closed and the event was dropped.
        """
        if self._closed.is_set():
            return False
        self._queue.put(event)
        return True

    def close(self) -> None:
        """Close the producer side. Idempotent.

        Events sent before closing are still delivered to the consumer.
        """
        if self._closed.is_set():
            return
        self._closed.set()
        self._queue.put(_CLOSED)

    def receive(self, timeout: float) -> WatchEvent | None:
        """Wait for the next event.

        Args:
            timeout: Maximum seconds to wait.

        Returns:
            The next event, or None if the timeout elapsed.

        Raises:
            ChannelClosed: If the channel is closed and fully drained.
        """
        if self._drained:
            raise ChannelClosed("Event channel closed")
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            self._drained = True
            raise ChannelClosed("Event channel closed")
        return item  # type: ignore[return-value]
