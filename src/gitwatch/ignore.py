"""Layered gitignore-style path filtering."""
from collections.abc import Iterable
from pathlib import Path, PurePath

import pathspec
import structlog

from gitwatch.errors import IgnorePatternError

logger = structlog.get_logger()

BUILTIN_IGNORE_PATTERNS: tuple[str, ...] = (
    ".git",
    "target/",
    "node_modules/",
    "*.swp",
    "*.tmp",
    ".DS_Store",
)


def _has_unclosed_class(pattern: str) -> bool:
    """Check for a ``[`` character class that is never closed.

    Args:
        pattern: Pattern text without a leading negation.

    Returns:
        True if the pattern contains an unterminated character class.
    """
    index = 0
    while index < len(pattern):
        char = pattern[index]
        if char == "\\":
            index += 2
            continue
        if char == "[":
            end = index + 1
            if end < len(pattern) and pattern[end] in "!^":
                end += 1
            # a leading ] is a literal member of the class
            if end < len(pattern) and pattern[end] == "]":
                end += 1
            close = pattern.find("]", end)
            if close == -1:
                return True
            index = close + 1
            continue
        index += 1
    return False


def validate_pattern(pattern: str, source: str) -> None:
    """Reject a pattern that cannot be compiled.

    Args:
        pattern: Raw pattern line.
        source: Where the pattern came from, for error reporting.

    Raises:
        IgnorePatternError: If the pattern is malformed.
    """
    body = pattern.strip()
    if not body or body.startswith("#"):
        return

    negated = body.startswith("!")
    if negated:
        body = body[1:]
        if not body:
            raise IgnorePatternError("Negation without a pattern", pattern, source)

    if _has_unclosed_class(body):
        raise IgnorePatternError("Unclosed character class", pattern, source)

    try:
        pathspec.GitIgnoreSpec.from_lines([pattern])
    except (ValueError, TypeError) as e:
        raise IgnorePatternError(str(e), pattern, source) from e


class IgnoreMatcher:
    """Compiled, immutable ignore rule set.

    Patterns follow gitignore semantics: later patterns take precedence over
    earlier ones and ``!`` re-includes a previously ignored path. Instances
    are safe to share between threads once built.

    Attributes:
        patterns: Every compiled pattern line, lowest precedence first.
    """

    def __init__(self, lines: Iterable[tuple[str, str]]) -> None:
        """Compile pattern lines.

        Args:
            lines: ``(pattern, source)`` pairs in increasing precedence.

        Raises:
            IgnorePatternError: If any pattern is malformed.
        """
        patterns: list[str] = []
        for pattern, source in lines:
            try:
                validate_pattern(pattern, source)
            except IgnorePatternError as e:
                logger.error(
                    "ignore_pattern_invalid",
                    pattern=e.pattern,
                    source=e.source,
                    error=str(e),
                )
                raise
            patterns.append(pattern)

        self._patterns = tuple(patterns)
        self._spec = pathspec.GitIgnoreSpec.from_lines(self._patterns)

    @property
    def patterns(self) -> tuple[str, ...]:
        """Compiled pattern lines."""
        return self._patterns

    @classmethod
    def build(
        cls,
        root: Path,
        use_gitignore: bool = True,
        extra_patterns: Iterable[str] = (),
    ) -> "IgnoreMatcher":
        """Build the layered rule set for a watch root.

        Layers, in increasing precedence: ``<root>/.gitignore`` (when enabled
        and present), the built-in list, then caller-supplied patterns.

        Args:
            root: Watch root directory.
            use_gitignore: Whether to read the root's ``.gitignore``.
            extra_patterns: Caller-supplied patterns.

        Returns:
            Compiled matcher.

        Raises:
            IgnorePatternError: If any pattern is malformed.
        """
        lines: list[tuple[str, str]] = []

        gitignore_path = root / ".gitignore"
        if use_gitignore and gitignore_path.is_file():
            text = gitignore_path.read_text(encoding="utf-8", errors="replace")
            lines.extend((line, str(gitignore_path)) for line in text.splitlines())

        lines.extend((pattern, "builtin") for pattern in BUILTIN_IGNORE_PATTERNS)
        lines.extend((pattern, "custom") for pattern in extra_patterns)

        matcher = cls(lines)
        logger.debug(
            "ignore_rules_built",
            root=str(root),
            pattern_count=len(matcher.patterns),
            gitignore=use_gitignore,
        )
        return matcher

    def matches(self, relative_path: str | PurePath, is_dir: bool = False) -> bool:
        """Check whether a root-relative path is ignored.

        Args:
            relative_path: Path relative to the watch root.
            is_dir: Whether the path is a directory.

        Returns:
            True if the path (or one of its parent directories) is ignored.
        """
        text = PurePath(relative_path).as_posix()
        if text in ("", "."):
            return False
        if is_dir and self._spec.match_file(f"{text}/"):
            return True
        return self._spec.match_file(text)
