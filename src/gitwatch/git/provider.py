"""Repository status computation backed by the git command line."""

import subprocess
from dataclasses import dataclass
from pathlib import Path

import structlog

from gitwatch.errors import GitUnavailableError
from gitwatch.git.types import FileStatus, GitInfo

logger = structlog.get_logger()

DETACHED_BRANCH = "detached"

_STAGED_INDEX_CODES = frozenset("AMD")


@dataclass(frozen=True)
class StatusRecord:
    """One path entry from ``git status --porcelain=v2``.

    Attributes:
        kind: Record type: "1" ordinary, "2" rename/copy, "u" unmerged,
            "?" untracked.
        index: Index column of the XY code ("." when unchanged).
        worktree: Worktree column of the XY code.
        path: Repo-relative path.
    """

    kind: str
    index: str
    worktree: str
    path: str


@dataclass(frozen=True)
class PorcelainStatus:
    """Parsed output of a single ``git status --porcelain=v2 --branch`` call."""

    head_oid: str | None
    head_name: str | None
    records: tuple[StatusRecord, ...]


def classify(record: StatusRecord) -> FileStatus:
    """Classify a status record with strict precedence.

    Conflicted, then staged, then untracked, then worktree modified, then
    worktree deleted, then renamed, else unknown.

    Args:
        record: Parsed porcelain record.

    Returns:
        The single classification for the path.
    """
    if record.kind == "u":
        return FileStatus.CONFLICTED
    if record.index in _STAGED_INDEX_CODES:
        return FileStatus.STAGED
    if record.kind == "?":
        return FileStatus.UNTRACKED
    if record.worktree == "M":
        return FileStatus.MODIFIED
    if record.worktree == "D":
        return FileStatus.DELETED
    if "R" in (record.index, record.worktree):
        return FileStatus.RENAMED
    return FileStatus.UNKNOWN


def parse_porcelain_v2(output: str) -> PorcelainStatus:
    """Parse NUL-separated ``git status --porcelain=v2 --branch -z`` output.

    Malformed records are skipped.

    Args:
        output: Raw command output.

    Returns:
        Branch headers and path records.
    """
    head_oid: str | None = None
    head_name: str | None = None
    records: list[StatusRecord] = []

    tokens = output.split("\0")
    index = 0
    while index < len(tokens):
        token = tokens[index]
        index += 1
        if not token:
            continue

        if token.startswith("# "):
            key, _, value = token[2:].partition(" ")
            if key == "branch.oid":
                head_oid = value
            elif key == "branch.head":
                head_name = value
            continue

        kind = token[0]
        if kind == "?":
            records.append(StatusRecord(kind="?", index="?", worktree="?", path=token[2:]))
            continue

        field_count = {"1": 9, "2": 10, "u": 11}.get(kind)
        if field_count is None:
            continue
        parts = token.split(" ", field_count - 1)
        if len(parts) != field_count or len(parts[1]) != 2:
            logger.debug("status_record_malformed", record=token)
            continue

        records.append(
            StatusRecord(kind=kind, index=parts[1][0], worktree=parts[1][1], path=parts[-1])
        )
        # rename/copy records are followed by the original path
        if kind == "2":
            index += 1

    return PorcelainStatus(head_oid=head_oid, head_name=head_name, records=tuple(records))


class GitStatusProvider:
    """Computes full repository status snapshots.

    Every call shells out to ``git``; nothing is cached here.

    Attributes:
        recurse_untracked_dirs: Report files inside untracked directories
            individually instead of the directory itself.
        timeout_seconds: Upper bound for each git invocation.
    """

    def __init__(
        self,
        recurse_untracked_dirs: bool = False,
        timeout_seconds: float = 5.0,
    ) -> None:
        """Initialize provider.

        Args:
            recurse_untracked_dirs: Expand untracked directories to files.
            timeout_seconds: Upper bound for each git invocation.
        """
        self.recurse_untracked_dirs = recurse_untracked_dirs
        self.timeout_seconds = timeout_seconds

    def _run_git(self, cwd: Path, args: list[str]) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                ["git", "--no-optional-locks", "-C", str(cwd), *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=self.timeout_seconds,
            )
        except FileNotFoundError as e:
            raise GitUnavailableError("git executable not found") from e
        except subprocess.TimeoutExpired as e:
            raise GitUnavailableError(f"git {args[0]} timed out") from e
        except OSError as e:
            raise GitUnavailableError(f"git {args[0]} failed: {e}") from e

    def discover(self, path: Path) -> Path:
        """Find the work tree root of the repository containing a path.

        Args:
            path: Any path inside the repository.

        Returns:
            Resolved work tree root.

        Raises:
            GitUnavailableError: If no repository is discoverable upward.
        """
        start = path if path.is_dir() else path.parent
        proc = self._run_git(start, ["rev-parse", "--show-toplevel"])
        toplevel = proc.stdout.strip()
        if proc.returncode != 0 or not toplevel:
            raise GitUnavailableError(f"Not a git repository: {path}")
        return Path(toplevel).resolve()

    def compute(self, path: Path) -> GitInfo:
        """Compute a full status snapshot.

        Args:
            path: Any path inside the repository.

        Returns:
            Fresh status snapshot.

        Raises:
            GitUnavailableError: If there is no repository, HEAD is unborn,
                or git cannot report status.
        """
        repo_root = self.discover(path)
        untracked = "all" if self.recurse_untracked_dirs else "normal"
        proc = self._run_git(
            repo_root,
            [
                "status",
                "--porcelain=v2",
                "--branch",
                "-z",
                f"--untracked-files={untracked}",
                "--ignored=no",
            ],
        )
        if proc.returncode != 0:
            raise GitUnavailableError(f"git status failed: {proc.stderr.strip()}")

        status = parse_porcelain_v2(proc.stdout)
        if status.head_oid is None or status.head_oid == "(initial)":
            raise GitUnavailableError(f"HEAD is unborn in {repo_root}")

        if status.head_name is None or status.head_name == "(detached)":
            branch = DETACHED_BRANCH
            ahead, behind = 0, 0
        else:
            branch = status.head_name
            ahead, behind = self.ahead_behind(repo_root, branch)

        file_statuses: dict[str, FileStatus] = {}
        has_conflicts = False
        for record in status.records:
            file_status = classify(record)
            if file_status is FileStatus.CONFLICTED:
                has_conflicts = True
            file_statuses[record.path.rstrip("/")] = file_status

        return GitInfo(
            branch=branch,
            ahead=ahead,
            behind=behind,
            has_conflicts=has_conflicts,
            file_statuses=file_statuses,
        )

    def ahead_behind(self, repo_root: Path, branch: str) -> tuple[int, int]:
        """Count commits between HEAD and ``refs/remotes/origin/<branch>``.

        Args:
            repo_root: Work tree root.
            branch: Local branch name.

        Returns:
            ``(ahead, behind)``; ``(0, 0)`` if the remote branch does not
            exist or the lookup fails.
        """
        upstream = f"refs/remotes/origin/{branch}"
        try:
            exists = self._run_git(repo_root, ["rev-parse", "--verify", "--quiet", upstream])
            if exists.returncode != 0:
                return 0, 0

            proc = self._run_git(
                repo_root,
                ["rev-list", "--left-right", "--count", f"HEAD...{upstream}"],
            )
        except GitUnavailableError as e:
            logger.warning("ahead_behind_failed", branch=branch, error=str(e))
            return 0, 0

        if proc.returncode != 0:
            logger.warning("ahead_behind_failed", branch=branch, error=proc.stderr.strip())
            return 0, 0

        try:
            ahead_text, behind_text = proc.stdout.split()
            return int(ahead_text), int(behind_text)
        except ValueError:
            logger.warning("ahead_behind_unparseable", branch=branch, output=proc.stdout)
            return 0, 0
