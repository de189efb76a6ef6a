"""Rendering of watch events and repository status for the display modes."""
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Protocol, TextIO

from pydantic import BaseModel

from gitwatch.events.types import (
    CreatedEvent,
    DeletedEvent,
    ErrorEvent,
    ModifiedEvent,
    RenamedEvent,
    WatchEvent,
)
from gitwatch.git.types import FileStatus, GitInfo

RESET = "\033[0m"
BOLD = "\033[1m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
CYAN = "\033[36m"
BRIGHT_BLACK = "\033[90m"
BRIGHT_WHITE = "\033[97m"

_STATUS_COLORS: dict[FileStatus, str] = {
    FileStatus.MODIFIED: YELLOW,
    FileStatus.ADDED: GREEN,
    FileStatus.DELETED: RED,
    FileStatus.RENAMED: BLUE,
    FileStatus.UNTRACKED: BRIGHT_BLACK,
    FileStatus.CONFLICTED: BOLD + RED,
    FileStatus.STAGED: GREEN,
}


class OutputFormat(str, Enum):
    """Display modes."""

    JSON = "json"
    PRETTY = "pretty"
    EVENTS = "events"
    SUMMARY = "summary"


class OutputSink(Protocol):
    """Consumer of correlated events, driven by the main loop."""

    def emit_event(self, event: WatchEvent, status: FileStatus | None) -> None: ...

    def emit_summary(self, info: GitInfo) -> None: ...


class EventRecord(BaseModel):
    """JSON shape of one correlated event."""

    event_type: str
    path: Path | None = None
    from_path: Path | None = None
    to_path: Path | None = None
    git_status: str | None = None
    timestamp: int


class StatusSummary(BaseModel):
    """JSON shape of a repository status snapshot."""

    git_branch: str | None
    git_ahead: int | None
    git_behind: int | None
    has_conflicts: bool
    modified_files: int
    untracked_files: int
    staged_files: int
    total_files: int


def _paint(text: str, color: str, enabled: bool) -> str:
    if not enabled:
        return text
    return f"{color}{text}{RESET}"


def _unix_now() -> int:
    return int(datetime.now(UTC).timestamp())


class OutputFormatter:
    """Formats and writes events and status snapshots.

    Attributes:
        output_format: Active display mode.
    """

    def __init__(
        self,
        output_format: OutputFormat,
        stream: TextIO | None = None,
        color: bool = True,
    ) -> None:
        """Initialize formatter.

        Args:
            output_format: Display mode.
            stream: Destination, stdout when None.
            color: Emit ANSI colors in the pretty and summary modes.
        """
        self.output_format = output_format
        self._stream = stream if stream is not None else sys.stdout
        self._color = color

    def emit_event(self, event: WatchEvent, status: FileStatus | None) -> None:
        """Write one correlated event, if the mode shows events."""
        text = self.format_event(event, status)
        if text:
            print(text, file=self._stream, flush=True)

    def emit_summary(self, info: GitInfo) -> None:
        """Write a status heartbeat; summary mode only shows it with changes."""
        if self.output_format is OutputFormat.SUMMARY:
            if not info.file_statuses:
                return
            self._stream.write(f"\r{self.format_git_info(info)}")
            self._stream.flush()
            return
        text = self.format_git_info(info)
        if text:
            print(text, file=self._stream, flush=True)

    def format_event(self, event: WatchEvent, status: FileStatus | None) -> str:
        """Render an event for the active mode."""
        if self.output_format is OutputFormat.JSON:
            return self._format_json(event, status)
        if self.output_format is OutputFormat.PRETTY:
            return self._format_pretty(event, status)
        if self.output_format is OutputFormat.EVENTS:
            return self._format_events(event, status)
        return ""

    def format_git_info(self, info: GitInfo) -> str:
        """Render a status snapshot for the active mode."""
        if self.output_format is OutputFormat.JSON:
            return summarize(info).model_dump_json()
        if self.output_format is OutputFormat.PRETTY:
            return self._format_git_pretty(info)
        if self.output_format is OutputFormat.SUMMARY:
            return self._format_git_summary(info)
        return ""

    def _format_json(self, event: WatchEvent, status: FileStatus | None) -> str:
        git_status = status.short if status is not None else None
        if isinstance(event, RenamedEvent):
            record = EventRecord(
                event_type=event.kind,
                from_path=event.from_path,
                to_path=event.to_path,
                git_status=git_status,
                timestamp=_unix_now(),
            )
        elif isinstance(event, ErrorEvent):
            record = EventRecord(event_type=event.kind, timestamp=_unix_now())
        else:
            record = EventRecord(
                event_type=event.kind,
                path=event.path,
                git_status=git_status,
                timestamp=_unix_now(),
            )
        return record.model_dump_json()

    def _format_pretty(self, event: WatchEvent, status: FileStatus | None) -> str:
        indicator = ""
        if status is not None:
            painted = _paint(status.short, _STATUS_COLORS.get(status, ""), self._color)
            indicator = f"[{painted}] "

        if isinstance(event, CreatedEvent):
            return f"{indicator}{_paint('CREATED', BOLD + GREEN, self._color)} {event.path}"
        if isinstance(event, ModifiedEvent):
            return f"{indicator}{_paint('MODIFIED', BOLD + YELLOW, self._color)} {event.path}"
        if isinstance(event, DeletedEvent):
            return f"{indicator}{_paint('DELETED', BOLD + RED, self._color)} {event.path}"
        if isinstance(event, RenamedEvent):
            label = _paint("RENAMED", BOLD + BLUE, self._color)
            return f"{indicator}{label} {event.from_path} -> {event.to_path}"
        return f"{_paint('ERROR', BOLD + RED, self._color)} {event.message}"

    def _format_events(self, event: WatchEvent, status: FileStatus | None) -> str:
        indicator = status.short if status is not None else " "
        if isinstance(event, CreatedEvent):
            return f"{indicator} + {event.path}"
        if isinstance(event, ModifiedEvent):
            return f"{indicator} ~ {event.path}"
        if isinstance(event, DeletedEvent):
            return f"{indicator} - {event.path}"
        if isinstance(event, RenamedEvent):
            return f"{indicator} R {event.from_path} -> {event.to_path}"
        return f"! {event.message}"

    def _format_git_pretty(self, info: GitInfo) -> str:
        branch = _paint(info.branch, BRIGHT_WHITE, self._color)
        lines = [f"{_paint('Branch:', BOLD + CYAN, self._color)} {branch}"]
        if info.ahead or info.behind:
            lines.append(
                f"{_paint('Status:', BOLD + CYAN, self._color)} "
                f"{_paint(str(info.ahead), GREEN, self._color)} ahead, "
                f"{_paint(str(info.behind), RED, self._color)} behind"
            )
        if info.has_conflicts:
            lines.append(_paint("CONFLICTS DETECTED", BOLD + RED, self._color))
        lines.append(
            f"{_paint('Files:', BOLD + CYAN, self._color)} "
            f"{info.count(FileStatus.MODIFIED)} modified, "
            f"{info.count(FileStatus.STAGED)} staged, "
            f"{info.count(FileStatus.UNTRACKED)} untracked"
        )
        return "\n".join(lines) + "\n"

    def _format_git_summary(self, info: GitInfo) -> str:
        conflict = " [CONFLICT]" if info.has_conflicts else ""
        return (
            f"[{info.branch}] ↑{info.ahead} ↓{info.behind} | "
            f"M:{info.count(FileStatus.MODIFIED)} "
            f"S:{info.count(FileStatus.STAGED)} "
            f"U:{info.count(FileStatus.UNTRACKED)}{conflict}"
        )


def summarize(info: GitInfo) -> StatusSummary:
    """Build the JSON status summary for a snapshot."""
    return StatusSummary(
        git_branch=info.branch,
        git_ahead=info.ahead,
        git_behind=info.behind,
        has_conflicts=info.has_conflicts,
        modified_files=info.count(FileStatus.MODIFIED),
        untracked_files=info.count(FileStatus.UNTRACKED),
        staged_files=info.count(FileStatus.STAGED),
        total_files=len(info.file_statuses),
    )
