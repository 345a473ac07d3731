"""Thin wrappers over the ``git`` executable.

Read helpers degrade to an empty value when git is missing, times out or
exits non-zero. :func:`find_repo_root` and :func:`commit_paths` raise
:class:`GitError` instead.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path

GIT_TIMEOUT = 10
RECENT_COMMITS = 5


class GitError(Exception):
    """The working directory is not inside a usable git repository."""


@dataclass(frozen=True)
class GitSnapshot:
    """Repository facts captured alongside a context entry."""

    branch: str
    repo: str
    author: str
    files_changed: list[str] = field(default_factory=list)
    files_staged: list[str] = field(default_factory=list)
    recent_commits: list[str] = field(default_factory=list)


def _run_git_checked(args: list[str], cwd: Path) -> str:
    """Run git; raise :class:`GitError` with its output on any failure."""
    try:
        result = subprocess.run(
            ["git", *args],  # noqa: S607
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as exc:
        msg = f"git {args[0]} failed: {exc}"
        raise GitError(msg) from exc
    if result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip()
        msg = f"git {args[0]} failed: {detail}"
        raise GitError(msg)
    return result.stdout


def _run_git(args: list[str], cwd: Path) -> str | None:
    try:
        return _run_git_checked(args, cwd)
    except GitError:
        return None


def _lines(output: str | None) -> list[str]:
    if not output:
        return []
    return [line.strip() for line in output.splitlines() if line.strip()]


def find_repo_root(start: Path) -> Path:
    """Top-level directory of the repository containing *start*.

    Raises :class:`GitError` outside a repository.
    """
    output = _run_git(["rev-parse", "--show-toplevel"], start)
    if not output or not output.strip():
        raise GitError(f"not a git repository: {start}")
    return Path(output.strip())


def current_branch(root: Path) -> str:
    """Checked-out branch name; ``HEAD`` when detached or unknown."""
    output = _run_git(["rev-parse", "--abbrev-ref", "HEAD"], root)
    branch = output.strip() if output else ""
    return branch or "HEAD"


def repo_name(root: Path) -> str:
    return root.resolve().name


def author(root: Path) -> str:
    output = _run_git(["config", "user.name"], root)
    return output.strip() if output else ""


def changed_files(root: Path) -> list[str]:
    """Modified and untracked paths (``git status --porcelain``)."""
    output = _run_git(["status", "--porcelain"], root)
    files: list[str] = []
    for line in (output or "").splitlines():
        if len(line) < 4:
            continue
        path = line[3:]
        # Renames are reported as "old -> new".
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        files.append(path.strip().strip('"'))
    return files


def staged_files(root: Path) -> list[str]:
    return _lines(_run_git(["diff", "--cached", "--name-only"], root))


def recent_commits(root: Path, count: int = RECENT_COMMITS) -> list[str]:
    """``<short hash> <subject>`` for the last *count* commits."""
    return _lines(_run_git(["log", f"-{count}", "--format=%h %s"], root))


def last_commit_subject(root: Path) -> str:
    output = _run_git(["log", "-1", "--format=%s"], root)
    return output.strip() if output else ""


def diff_stat(root: Path) -> str:
    """``git diff --stat HEAD``, empty when there is nothing to show."""
    output = _run_git(["diff", "--stat", "HEAD"], root)
    return output.strip() if output else ""


def commit_paths(root: Path, paths: list[str], message: str) -> None:
    """Stage *paths* and commit only them. Raises :class:`GitError` on failure."""
    _run_git_checked(["add", "--", *paths], root)
    _run_git_checked(["commit", "-m", message, "--", *paths], root)


def read_snapshot(root: Path) -> GitSnapshot:
    return GitSnapshot(
        branch=current_branch(root),
        repo=repo_name(root),
        author=author(root),
        files_changed=changed_files(root),
        files_staged=staged_files(root),
        recent_commits=recent_commits(root),
    )
