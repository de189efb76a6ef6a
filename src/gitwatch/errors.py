"""Exception hierarchy for the watcher and git status layers."""


class GitwatchError(Exception):
    """Base class for all gitwatch errors."""


class WatchSetupError(GitwatchError):
    """Raised when the filesystem subscription cannot be established.

    Attributes:
        path: The root path that could not be watched.
    """

    def __init__(self, message: str, path: str) -> None:
        """Initialize setup error.

        Args:
            message: Error description.
            path: The offending watch root.
        """
        super().__init__(message)
        self.path = path


class IgnorePatternError(GitwatchError):
    """Raised when an ignore pattern cannot be compiled.

    Attributes:
        pattern: The malformed pattern text.
        source: Where the pattern came from (file path or "builtin"/"custom").
    """

    def __init__(self, message: str, pattern: str, source: str) -> None:
        """Initialize pattern error.

        Args:
            message: Error description.
            pattern: The malformed pattern text.
            source: Origin of the pattern.
        """
        super().__init__(message)
        self.pattern = pattern
        self.source = source


class GitUnavailableError(GitwatchError):
    """Raised when no usable repository status can be produced."""


class ChannelClosed(GitwatchError):
    """Raised by a receive on a channel whose producer side has closed."""
