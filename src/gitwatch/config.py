"""Watcher configuration loaded from environment variables."""
from pathlib import Path

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from gitwatch.output import OutputFormat


class Settings(BaseSettings):
    """Watcher configuration loaded from environment variables.

    Command-line flags are passed as keyword arguments and take precedence
    over the environment.

    Attributes:
        path: Directory to watch.
        recursive: Watch subdirectories, including ones created later.
        debounce_ms: Debounce window for filesystem events.
        ignore_patterns_raw: Raw comma-separated extra ignore patterns.
        use_gitignore: Read the watch root's .gitignore.
        git: Force git integration on or off; None auto-detects.
        recurse_untracked_dirs: Report files inside untracked directories.
        status_ttl_ms: Lifetime of the cached repository status.
        poll_timeout_ms: Main loop wait per iteration.
        output_format: Display mode.
        debug: Enable debug logging.
        log_json: Force JSON log lines on or off; None follows the terminal.
    """

    model_config = SettingsConfigDict(
        env_prefix="GITWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    path: Path = Path(".")
    recursive: bool = True
    debounce_ms: int = Field(default=100, ge=1)
    ignore_patterns_raw: str = ""
    use_gitignore: bool = True
    git: bool | None = None
    recurse_untracked_dirs: bool = False
    status_ttl_ms: int = Field(default=500, ge=0)
    poll_timeout_ms: int = Field(default=100, ge=1)
    output_format: OutputFormat = OutputFormat.PRETTY
    debug: bool = False
    log_json: bool | None = None

    @computed_field
    @property
    def ignore_patterns(self) -> list[str]:
        """Parse extra ignore patterns from comma-separated string.

        Returns:
            List of gitignore-style patterns.
        """
        return [
            pattern.strip()
            for pattern in self.ignore_patterns_raw.split(",")
            if pattern.strip()
        ]
