"""Structured logging configuration using structlog."""

import logging
import sys

import structlog


def _renderer(json_logs: bool) -> structlog.typing.Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(debug: bool = False, json_logs: bool | None = None) -> None:
    """Configure structlog to write every log line to stderr.

    Stdout carries the event stream, so logs never go there.

    Args:
        debug: Enable debug-level logging when True.
        json_logs: Render JSON lines; None picks JSON unless stderr is a
            terminal.
    """
    level = logging.DEBUG if debug else logging.INFO
    if json_logs is None:
        json_logs = not sys.stderr.isatty()

    shared_processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_logs:
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        shared_processors.append(structlog.dev.set_exc_info)

    structlog.configure(
        processors=[*shared_processors, _renderer(json_logs)],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        level=level,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    # inotify overflow chatter
    logging.getLogger("watchdog").setLevel(logging.WARNING)
