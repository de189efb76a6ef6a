"""Git subsystem: status computation and caching."""
from gitwatch.git.cache import CachedGitInfo, StatusCache
from gitwatch.git.provider import GitStatusProvider
from gitwatch.git.types import FileStatus, GitInfo

__all__ = [
    "CachedGitInfo",
    "FileStatus",
    "GitInfo",
    "GitStatusProvider",
    "StatusCache",
]
