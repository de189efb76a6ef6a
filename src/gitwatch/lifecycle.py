"""Cooperative cancellation for the main loop."""
import threading

import structlog

logger = structlog.get_logger()


class CancellationToken:
    """Signals the main loop to stop.

    Signal handlers and other threads call :meth:`cancel`; the loop polls
    :attr:`is_cancelled` once per iteration.

    Attributes:
        is_cancelled: Whether cancellation has been requested.
    """

    def __init__(self) -> None:
        """Initialize an uncancelled token."""
        self._event = threading.Event()

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested.

        Returns:
            True once cancel() has been called.
        """
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation.

        Idempotent - calling multiple times has no additional effect.
        """
        if self._event.is_set():
            return
        logger.info("cancellation_requested")
        self._event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or the timeout elapses.

        Args:
            timeout: Seconds to wait, None to wait indefinitely.

        Returns:
            True if cancelled, False if the timeout elapsed first.
        """
        return self._event.wait(timeout)
