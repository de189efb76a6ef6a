"""Pytest configuration and fixtures."""

import shutil
import subprocess
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from gitwatch.errors import GitUnavailableError
from gitwatch.events.types import WatchEvent
from gitwatch.git.types import FileStatus, GitInfo

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is required")


def git(repo: Path, *args: str) -> str:
    """Run a git command in a test repository."""
    proc = subprocess.run(
        ["git", "-C", str(repo), *args],
        check=True,
        capture_output=True,
        text=True,
    )
    return proc.stdout


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider:
    """Status provider returning a fixed snapshot and counting computations."""

    def __init__(self, repo_root: Path, info: GitInfo | None = None) -> None:
        self.repo_root = repo_root
        self.info = info or GitInfo(branch="main")
        self.compute_calls = 0
        self.fail = False

    def discover(self, path: Path) -> Path:
        if self.fail:
            raise GitUnavailableError("no repository")
        return self.repo_root

    def compute(self, path: Path) -> GitInfo:
        if self.fail:
            raise GitUnavailableError("no repository")
        self.compute_calls += 1
        return self.info


class RecordingOutput:
    """Output collaborator that records everything it is given."""

    def __init__(self) -> None:
        self.events: list[tuple[WatchEvent, FileStatus | None]] = []
        self.summaries: list[GitInfo] = []

    def emit_event(self, event: WatchEvent, status: FileStatus | None) -> None:
        self.events.append((event, status))

    def emit_summary(self, info: GitInfo) -> None:
        self.summaries.append(info)


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock at t=0."""
    return FakeClock()


@pytest.fixture
def recording_output() -> RecordingOutput:
    """Create a recording output collaborator."""
    return RecordingOutput()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a repository with one commit containing ``b.txt``."""
    if shutil.which("git") is None:
        pytest.skip("git is required")
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q", "-b", "main")
    git(repo, "config", "user.email", "tests@example.com")
    git(repo, "config", "user.name", "Tests")
    git(repo, "config", "commit.gpgsign", "false")
    (repo / "b.txt").write_text("original\n", encoding="utf-8")
    git(repo, "add", "b.txt")
    git(repo, "commit", "-q", "-m", "initial")
    return repo.resolve()
