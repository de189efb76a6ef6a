"""Main loop correlating watch events with repository status."""
from enum import Enum

import structlog

from gitwatch.errors import ChannelClosed, GitUnavailableError
from gitwatch.events.channel import EventChannel
from gitwatch.events.types import ErrorEvent, WatchEvent
from gitwatch.git.cache import StatusCache
from gitwatch.git.types import FileStatus
from gitwatch.lifecycle import CancellationToken
from gitwatch.output import OutputFormat, OutputSink

logger = structlog.get_logger()

DEFAULT_POLL_TIMEOUT = 0.1


class LoopState(str, Enum):
    """States of the correlator loop."""

    IDLE = "idle"
    DRAINING = "draining"
    SHUTDOWN = "shutdown"


class Correlator:
    """Pulls translated events, attaches git status and hands them on.

    Runs on the main thread and is the channel's only consumer. Its only
    wait is the timeout-bounded channel receive, so cancellation is noticed
    within one poll interval.

    Attributes:
        state: Current loop state.
        events_handled: Number of events handed to the output.
    """

    def __init__(
        self,
        channel: EventChannel,
        output: OutputSink,
        cache: StatusCache | None = None,
        display: OutputFormat = OutputFormat.PRETTY,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT,
    ) -> None:
        """Initialize correlator.

        Args:
            channel: Channel fed by the watcher.
            output: Collaborator receiving (event, status) pairs.
            cache: Status cache, None when git integration is disabled.
            display: Display mode; heartbeats only run in summary mode.
            poll_timeout: Seconds to wait for an event per iteration.
        """
        self._channel = channel
        self._output = output
        self._cache = cache
        self._display = display
        self._poll_timeout = poll_timeout
        self.state = LoopState.IDLE
        self.events_handled = 0

    def tick(self) -> LoopState:
        """Run one loop iteration.

        Returns:
            The state after the iteration.
        """
        if self.state is LoopState.SHUTDOWN:
            return self.state

        try:
            event = self._channel.receive(self._poll_timeout)
        except ChannelClosed:
            logger.info("event_channel_closed")
            self.state = LoopState.SHUTDOWN
            return self.state

        if event is None:
            self.state = LoopState.IDLE
            self._heartbeat()
            return self.state

        self.state = LoopState.DRAINING
        self._handle(event)
        return self.state

    def run(self, token: CancellationToken) -> int:
        """Loop until cancelled or the channel disconnects.

        Args:
            token: Cancellation token polled once per iteration.

        Returns:
            Number of events handed to the output.
        """
        logger.info("correlator_started", display=self._display.value, git=self._cache is not None)
        while self.state is not LoopState.SHUTDOWN:
            if token.is_cancelled:
                self.state = LoopState.SHUTDOWN
                break
            self.tick()

        logger.info("correlator_stopped", events_handled=self.events_handled)
        return self.events_handled

    def _handle(self, event: WatchEvent) -> None:
        if isinstance(event, ErrorEvent):
            logger.warning("watch_error", message=event.message)

        status: FileStatus | None = None
        if self._cache is not None and event.path is not None:
            # any filesystem change may alter repository status
            self._cache.invalidate()
            status = self._cache.get_file_status(event.path)

        self._output.emit_event(event, status)
        self.events_handled += 1

    def _heartbeat(self) -> None:
        if self._display is not OutputFormat.SUMMARY or self._cache is None:
            return
        try:
            info = self._cache.get_status()
        except GitUnavailableError as e:
            logger.debug("heartbeat_status_unavailable", error=str(e))
            return
        self._output.emit_summary(info)
