"""Repository status value types."""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class FileStatus(str, Enum):
    """Classification of a single path in the repository."""

    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"
    RENAMED = "renamed"
    UNTRACKED = "untracked"
    CONFLICTED = "conflicted"
    STAGED = "staged"
    UNKNOWN = "unknown"

    @property
    def short(self) -> str:
        """One-letter code used by the compact display modes."""
        return _SHORT_CODES[self]


_SHORT_CODES: dict[FileStatus, str] = {
    FileStatus.MODIFIED: "M",
    FileStatus.ADDED: "A",
    FileStatus.DELETED: "D",
    FileStatus.RENAMED: "R",
    FileStatus.UNTRACKED: "?",
    FileStatus.CONFLICTED: "U",
    FileStatus.STAGED: "S",
    FileStatus.UNKNOWN: " ",
}


class GitInfo(BaseModel):
    """Immutable snapshot of repository status.

    Attributes:
        branch: Current branch name, or "detached".
        ahead: Commits on HEAD not on the upstream.
        behind: Commits on the upstream not on HEAD.
        has_conflicts: Whether any path is unmerged.
        file_statuses: Repo-relative POSIX path to classification.
    """

    model_config = ConfigDict(frozen=True)

    branch: str = Field(description="Branch name or 'detached'")
    ahead: int = Field(default=0, ge=0)
    behind: int = Field(default=0, ge=0)
    has_conflicts: bool = False
    file_statuses: dict[str, FileStatus] = Field(default_factory=dict)

    def count(self, status: FileStatus) -> int:
        """Number of paths with the given classification."""
        return sum(1 for value in self.file_statuses.values() if value is status)
