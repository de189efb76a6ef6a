"""Git status provider tests against real repositories."""

import subprocess
from pathlib import Path

import pytest
from conftest import git, requires_git

from gitwatch.errors import GitUnavailableError
from gitwatch.git.provider import (
    GitStatusProvider,
    StatusRecord,
    classify,
    parse_porcelain_v2,
)
from gitwatch.git.types import FileStatus


@pytest.mark.parametrize(
    ("record", "expected"),
    [
        (StatusRecord("u", "U", "U", "c.txt"), FileStatus.CONFLICTED),
        (StatusRecord("1", "M", "M", "s.txt"), FileStatus.STAGED),
        (StatusRecord("1", "A", ".", "n.txt"), FileStatus.STAGED),
        (StatusRecord("1", "D", ".", "d.txt"), FileStatus.STAGED),
        (StatusRecord("?", "?", "?", "u.txt"), FileStatus.UNTRACKED),
        (StatusRecord("1", ".", "M", "m.txt"), FileStatus.MODIFIED),
        (StatusRecord("1", ".", "D", "w.txt"), FileStatus.DELETED),
        (StatusRecord("2", "R", ".", "r.txt"), FileStatus.RENAMED),
        (StatusRecord("1", ".", "T", "t.txt"), FileStatus.UNKNOWN),
    ],
)
def test_classification_precedence(record: StatusRecord, expected: FileStatus) -> None:
    """Each record gets exactly one status by strict precedence."""
    assert classify(record) is expected


def test_parse_porcelain_v2_records() -> None:
    """Headers, ordinary, rename, unmerged and untracked records parse."""
    output = "\0".join(
        [
            "# branch.oid 1234",
            "# branch.head main",
            "1 .M N... 100644 100644 100644 aaa bbb b.txt",
            "2 R. N... 100644 100644 100644 aaa aaa R100 new name.txt",
            "old.txt",
            "u UU N... 100644 100644 100644 100644 aaa bbb ccc conflict.txt",
            "? a.txt",
            "",
        ]
    )
    status = parse_porcelain_v2(output)

    assert status.head_oid == "1234"
    assert status.head_name == "main"
    assert [r.path for r in status.records] == ["b.txt", "new name.txt", "conflict.txt", "a.txt"]
    assert [classify(r) for r in status.records] == [
        FileStatus.MODIFIED,
        FileStatus.RENAMED,
        FileStatus.CONFLICTED,
        FileStatus.UNTRACKED,
    ]


@requires_git
def test_untracked_and_modified_without_upstream(git_repo: Path) -> None:
    """Untracked a.txt and modified b.txt with no upstream."""
    (git_repo / "a.txt").write_text("new\n", encoding="utf-8")
    (git_repo / "b.txt").write_text("changed\n", encoding="utf-8")

    info = GitStatusProvider().compute(git_repo)

    assert info.file_statuses == {"a.txt": FileStatus.UNTRACKED, "b.txt": FileStatus.MODIFIED}
    assert (info.ahead, info.behind) == (0, 0)
    assert info.branch == "main"
    assert not info.has_conflicts


@requires_git
def test_staged_wins_over_worktree_change(git_repo: Path) -> None:
    """A staged file that is modified again is still reported staged."""
    (git_repo / "b.txt").write_text("staged\n", encoding="utf-8")
    git(git_repo, "add", "b.txt")
    (git_repo / "b.txt").write_text("staged then edited\n", encoding="utf-8")

    info = GitStatusProvider().compute(git_repo)

    assert info.file_statuses == {"b.txt": FileStatus.STAGED}


@requires_git
def test_worktree_deleted(git_repo: Path) -> None:
    """A tracked file removed from disk is reported deleted."""
    (git_repo / "b.txt").unlink()
    info = GitStatusProvider().compute(git_repo)
    assert info.file_statuses == {"b.txt": FileStatus.DELETED}


@requires_git
def test_untracked_directory_recursion(git_repo: Path) -> None:
    """Untracked directories expand to files only when requested."""
    nested = git_repo / "newdir"
    nested.mkdir()
    (nested / "one.txt").write_text("1\n", encoding="utf-8")
    (nested / "two.txt").write_text("2\n", encoding="utf-8")

    collapsed = GitStatusProvider().compute(git_repo)
    expanded = GitStatusProvider(recurse_untracked_dirs=True).compute(git_repo)

    assert collapsed.file_statuses == {"newdir": FileStatus.UNTRACKED}
    assert expanded.file_statuses == {
        "newdir/one.txt": FileStatus.UNTRACKED,
        "newdir/two.txt": FileStatus.UNTRACKED,
    }


@requires_git
def test_compute_from_subdirectory(git_repo: Path) -> None:
    """The repository is discovered upward from a nested path."""
    nested = git_repo / "pkg" / "sub"
    nested.mkdir(parents=True)
    provider = GitStatusProvider()

    assert provider.discover(nested) == git_repo
    assert provider.compute(nested).branch == "main"


@requires_git
def test_detached_head(git_repo: Path) -> None:
    """A detached HEAD reports the literal branch name 'detached'."""
    git(git_repo, "checkout", "-q", "--detach")
    info = GitStatusProvider().compute(git_repo)
    assert info.branch == "detached"
    assert (info.ahead, info.behind) == (0, 0)


@requires_git
def test_ahead_behind_against_origin(git_repo: Path) -> None:
    """Counts are measured against refs/remotes/origin/<branch>."""
    base = git(git_repo, "rev-parse", "HEAD").strip()
    (git_repo / "b.txt").write_text("remote side\n", encoding="utf-8")
    git(git_repo, "commit", "-q", "-am", "remote commit")
    git(git_repo, "update-ref", "refs/remotes/origin/main", "HEAD")
    git(git_repo, "reset", "-q", "--hard", base)
    for index in range(2):
        (git_repo / f"local{index}.txt").write_text("x\n", encoding="utf-8")
        git(git_repo, "add", f"local{index}.txt")
        git(git_repo, "commit", "-q", "-m", f"local {index}")

    info = GitStatusProvider().compute(git_repo)

    assert (info.ahead, info.behind) == (2, 1)


@requires_git
def test_conflicts_are_flagged(git_repo: Path) -> None:
    """Unmerged paths are conflicted and set has_conflicts."""
    git(git_repo, "checkout", "-q", "-b", "other")
    (git_repo / "b.txt").write_text("other\n", encoding="utf-8")
    git(git_repo, "commit", "-q", "-am", "other")
    git(git_repo, "checkout", "-q", "main")
    (git_repo / "b.txt").write_text("main\n", encoding="utf-8")
    git(git_repo, "commit", "-q", "-am", "main")
    with pytest.raises(subprocess.CalledProcessError):
        git(git_repo, "merge", "-q", "other")

    info = GitStatusProvider().compute(git_repo)

    assert info.has_conflicts
    assert info.file_statuses["b.txt"] is FileStatus.CONFLICTED


def test_missing_repository_is_unavailable(tmp_path: Path) -> None:
    """Directories outside any repository raise GitUnavailableError."""
    with pytest.raises(GitUnavailableError):
        GitStatusProvider().compute(tmp_path)


@requires_git
def test_unborn_head_is_unavailable(tmp_path: Path) -> None:
    """A repository without commits has no usable status."""
    git(tmp_path, "init", "-q")
    with pytest.raises(GitUnavailableError):
        GitStatusProvider().compute(tmp_path)
