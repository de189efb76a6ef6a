"""TTL-bounded, invalidatable cache over repository status."""
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path, PurePosixPath
from typing import Protocol

import structlog

from gitwatch.errors import GitUnavailableError
from gitwatch.git.types import FileStatus, GitInfo

logger = structlog.get_logger()

DEFAULT_TTL_SECONDS = 0.5


class StatusProvider(Protocol):
    """Anything that can discover a repository and compute its status."""

    def discover(self, path: Path) -> Path: ...

    def compute(self, path: Path) -> GitInfo: ...


@dataclass(frozen=True)
class CachedGitInfo:
    """One immutable cache entry.

    Attributes:
        info: Cached snapshot, None before the first computation.
        last_update: Clock reading when the snapshot was stored.
        ttl: Maximum age in seconds at which the snapshot is fresh.
        generation: Bumped by every invalidation.
    """

    info: GitInfo | None
    last_update: float
    ttl: float
    generation: int = 0

    def is_fresh(self, now: float) -> bool:
        """Whether the snapshot may be served at clock reading ``now``."""
        return self.info is not None and now - self.last_update < self.ttl


class StatusCache:
    """Copy-on-write status cache shared by the watcher and the main loop.

    The current entry is replaced by a single reference assignment, so a
    reader holding a fresh entry never waits on a recomputation in progress.
    Recomputations are serialized and re-check freshness after acquiring the
    refresh lock, so concurrent misses trigger one provider call.

    Attributes:
        root: Path the repository is discovered from.
        ttl: Cache lifetime in seconds.
    """

    def __init__(
        self,
        provider: StatusProvider,
        root: Path,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize cache.

        Args:
            provider: Status provider doing the actual git work.
            root: Path the repository is discovered from.
            ttl: Cache lifetime in seconds.
            clock: Monotonic clock, injectable for tests.
        """
        self._provider = provider
        self._root = root
        self._ttl = ttl
        self._clock = clock
        self._entry = CachedGitInfo(info=None, last_update=float("-inf"), ttl=ttl)
        self._lock = threading.Lock()
        self._refresh_lock = threading.Lock()
        self._repo_root: Path | None = None
        self._recompute_count = 0

    @property
    def root(self) -> Path:
        """Path the repository is discovered from."""
        return self._root

    @property
    def ttl(self) -> float:
        """Cache lifetime in seconds."""
        return self._ttl

    @property
    def recompute_count(self) -> int:
        """Number of provider computations performed."""
        return self._recompute_count

    @property
    def repo_root(self) -> Path:
        """Work tree root, discovered on first use.

        Raises:
            GitUnavailableError: If no repository is discoverable.
        """
        if self._repo_root is None:
            self._repo_root = self._provider.discover(self._root)
        return self._repo_root

    def get_status(self) -> GitInfo:
        """Return the cached snapshot, recomputing it if stale.

        Returns:
            Current repository status.

        Raises:
            GitUnavailableError: If the status cannot be computed.
        """
        entry = self._entry
        if entry.is_fresh(self._clock()):
            return entry.info  # type: ignore[return-value]

        with self._refresh_lock:
            entry = self._entry
            if entry.is_fresh(self._clock()):
                return entry.info  # type: ignore[return-value]

            info = self._provider.compute(self._root)

            with self._lock:
                self._recompute_count += 1
                current = self._entry
                # an invalidation raced with the computation: serve the
                # result once but keep the entry stale
                stale = current.generation != entry.generation
                self._entry = CachedGitInfo(
                    info=info,
                    last_update=float("-inf") if stale else self._clock(),
                    ttl=self._ttl,
                    generation=current.generation,
                )

        logger.debug(
            "status_recomputed",
            branch=info.branch,
            files=len(info.file_statuses),
            recomputes=self._recompute_count,
            raced=stale,
        )
        return info

    def invalidate(self) -> None:
        """Force the next :meth:`get_status` to recompute."""
        with self._lock:
            self._entry = replace(
                self._entry,
                last_update=float("-inf"),
                generation=self._entry.generation + 1,
            )

    def get_file_status(self, path: str | Path) -> FileStatus | None:
        """Resolve the status of one path.

        Tries the path as given, then relative to the repository root, then
        the nearest ancestor reported as an untracked directory.

        Args:
            path: Absolute or repo-relative path.

        Returns:
            The path's status, or None if clean, outside the repository, or
            git is unavailable.
        """
        try:
            info = self.get_status()
            repo_root = self.repo_root
        except GitUnavailableError as e:
            logger.debug("file_status_unavailable", path=str(path), error=str(e))
            return None

        statuses = info.file_statuses
        candidate = Path(path)
        status = statuses.get(str(path)) or statuses.get(candidate.as_posix())
        if status is not None:
            return status

        if candidate.is_absolute():
            try:
                relative = PurePosixPath(candidate.relative_to(repo_root).as_posix())
            except ValueError:
                try:
                    relative = PurePosixPath(
                        candidate.resolve().relative_to(repo_root).as_posix()
                    )
                except ValueError:
                    return None
        else:
            relative = PurePosixPath(candidate.as_posix())

        status = statuses.get(str(relative))
        if status is not None:
            return status

        for parent in relative.parents:
            if statuses.get(str(parent)) is FileStatus.UNTRACKED:
                return FileStatus.UNTRACKED
        return None
