"""Command-line entry point for the watcher."""

import argparse
import signal
import sys
from collections.abc import Sequence
from typing import Any

import structlog
from pydantic import ValidationError

from gitwatch.config import Settings
from gitwatch.correlator import Correlator
from gitwatch.errors import GitUnavailableError, IgnorePatternError, WatchSetupError
from gitwatch.events.channel import EventChannel
from gitwatch.events.watcher import FileWatcher
from gitwatch.git.cache import StatusCache
from gitwatch.git.provider import GitStatusProvider
from gitwatch.ignore import IgnoreMatcher
from gitwatch.lifecycle import CancellationToken
from gitwatch.logging import configure_logging
from gitwatch.output import OutputFormat, OutputFormatter

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_NO_REPOSITORY = 1
EXIT_CONFIG_ERROR = 2


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed < 1:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="gitwatch",
        description="File watcher with git status integration.",
    )
    parser.add_argument("path", nargs="?", default=None, help="Directory to watch.")
    parser.add_argument(
        "-f",
        "--format",
        dest="output_format",
        choices=[fmt.value for fmt in OutputFormat],
        default=None,
        help="Output format (default: pretty).",
    )
    parser.add_argument(
        "-i",
        "--interval",
        dest="debounce_ms",
        type=_positive_int,
        default=None,
        help="Debounce interval in milliseconds (default: 100).",
    )
    git_group = parser.add_mutually_exclusive_group()
    git_group.add_argument(
        "-g",
        "--git",
        dest="git",
        action="store_true",
        default=None,
        help="Force git integration on.",
    )
    git_group.add_argument(
        "--no-git", dest="git", action="store_false", default=None, help="Disable git integration."
    )
    parser.add_argument(
        "--ignore",
        dest="ignore",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Additional ignore pattern; may be repeated.",
    )
    parser.add_argument(
        "--no-gitignore", action="store_true", help="Do not read the root .gitignore."
    )
    parser.add_argument(
        "--no-recursive", action="store_true", help="Only watch the top-level directory."
    )
    parser.add_argument(
        "--untracked-files",
        action="store_true",
        help="Report files inside untracked directories individually.",
    )
    parser.add_argument("--status", action="store_true", help="Print git status once and exit.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Merge parsed flags over environment settings.

    Args:
        args: Parsed command-line namespace.

    Returns:
        Effective settings.
    """
    overrides: dict[str, Any] = {}
    if args.path is not None:
        overrides["path"] = args.path
    if args.output_format is not None:
        overrides["output_format"] = args.output_format
    if args.debounce_ms is not None:
        overrides["debounce_ms"] = args.debounce_ms
    if args.git is not None:
        overrides["git"] = args.git
    if args.no_gitignore:
        overrides["use_gitignore"] = False
    if args.no_recursive:
        overrides["recursive"] = False
    if args.untracked_files:
        overrides["recurse_untracked_dirs"] = True
    if args.verbose:
        overrides["debug"] = True
    return Settings(**overrides)


def build_status_cache(settings: Settings) -> StatusCache | None:
    """Create the status cache if git integration is enabled.

    With ``git`` unset, integration is enabled only when the watch root is
    inside a repository.

    Args:
        settings: Effective settings.

    Returns:
        Status cache, or None when git integration is off.
    """
    if settings.git is False:
        return None

    provider = GitStatusProvider(recurse_untracked_dirs=settings.recurse_untracked_dirs)
    root = settings.path.resolve()
    if settings.git is None:
        try:
            provider.discover(root)
        except GitUnavailableError:
            logger.info("git_integration_disabled", path=str(root), reason="no repository")
            return None

    return StatusCache(provider, root, ttl=settings.status_ttl_ms / 1000.0)


def print_status(cache: StatusCache | None, formatter: OutputFormatter) -> int:
    """Print the repository status once.

    Returns:
        Process exit code.
    """
    if cache is None:
        print("Not a git repository or git disabled", file=sys.stderr)
        return EXIT_NO_REPOSITORY
    try:
        info = cache.get_status()
    except GitUnavailableError as e:
        print(f"Git status unavailable: {e}", file=sys.stderr)
        return EXIT_NO_REPOSITORY
    print(formatter.format_git_info(info))
    return EXIT_OK


def watch(settings: Settings, extra_ignores: Sequence[str] = ()) -> int:
    """Watch the configured root until interrupted.

    Args:
        settings: Effective settings.
        extra_ignores: Ignore patterns given on the command line.

    Returns:
        Process exit code.
    """
    root = settings.path.resolve()
    cache = build_status_cache(settings)
    formatter = OutputFormatter(settings.output_format, color=sys.stdout.isatty())

    try:
        ignore = IgnoreMatcher.build(
            root,
            use_gitignore=settings.use_gitignore,
            extra_patterns=[*settings.ignore_patterns, *extra_ignores],
        )
    except IgnorePatternError as e:
        print(f"Invalid ignore pattern {e.pattern!r} ({e.source}): {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    channel = EventChannel()
    watcher = FileWatcher(
        root,
        channel,
        debounce_ms=settings.debounce_ms,
        recursive=settings.recursive,
        ignore=ignore,
    )
    token = CancellationToken()
    for sig in (signal.SIGTERM, signal.SIGINT):
        signal.signal(sig, lambda _signum, _frame: token.cancel())

    try:
        with watcher:
            shows_status = settings.output_format in (OutputFormat.PRETTY, OutputFormat.SUMMARY)
            if cache is not None and shows_status:
                try:
                    print(formatter.format_git_info(cache.get_status()))
                except GitUnavailableError as e:
                    logger.warning("initial_status_unavailable", error=str(e))

            correlator = Correlator(
                channel,
                formatter,
                cache=cache,
                display=settings.output_format,
                poll_timeout=settings.poll_timeout_ms / 1000.0,
            )
            correlator.run(token)
    except WatchSetupError as e:
        print(f"Cannot watch {e.path}: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    print("\nWatcher stopped")
    return EXIT_OK


def run(argv: Sequence[str] | None = None) -> int:
    """Parse arguments and run the requested mode.

    Args:
        argv: Arguments without the program name, sys.argv when None.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)
    try:
        settings = settings_from_args(args)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(debug=settings.debug, json_logs=settings.log_json)

    if args.status:
        cache = build_status_cache(settings)
        formatter = OutputFormatter(settings.output_format, color=sys.stdout.isatty())
        return print_status(cache, formatter)

    return watch(settings, extra_ignores=args.ignore)


def main() -> None:
    """Entry point for python -m gitwatch."""
    sys.exit(run())


if __name__ == "__main__":
    main()
