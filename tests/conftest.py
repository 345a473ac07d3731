"""Shared test fixtures for threadkeep."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from threadkeep.context.store import init_store
from threadkeep.infrastructure.config import new_config, save_config
from threadkeep.infrastructure.git import GitSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def fake_home(tmp_path: Path) -> Iterator[Path]:
    """Point ``Path.home()`` at an empty directory so no test reads the real one."""
    home = tmp_path / "home"
    home.mkdir()
    with patch("pathlib.Path.home", return_value=home):
        yield home


@pytest.fixture()
def repo(tmp_path: Path) -> Path:
    """A bare-bones repository checkout with a hooks directory."""
    root = tmp_path / "repo"
    (root / ".git" / "hooks").mkdir(parents=True)
    return root


@pytest.fixture()
def initialized(repo: Path) -> Path:
    """Repository with ``.threadkeep/`` config and store created."""
    save_config(repo, new_config("repo"))
    init_store(repo)
    return repo


@pytest.fixture()
def snapshot() -> GitSnapshot:
    return GitSnapshot(
        branch="feature/login",
        repo="repo",
        author="Dana",
        files_changed=["src/app.py", "tests/test_app.py"],
        files_staged=["src/app.py"],
        recent_commits=["abc1234 Add login form"],
    )


@pytest.fixture()
def fake_git(snapshot: GitSnapshot) -> Iterator[GitSnapshot]:
    """Replace git calls with a fixed snapshot on ``feature/login``."""
    with (
        patch("threadkeep.infrastructure.git.read_snapshot", return_value=snapshot),
        patch("threadkeep.infrastructure.git.current_branch", return_value=snapshot.branch),
        patch("threadkeep.infrastructure.git.diff_stat", return_value=" src/app.py | 4 ++--"),
    ):
        yield snapshot
