"""Tests for threadkeep.infrastructure: git wrappers, config, hooks, watcher helpers."""

from __future__ import annotations

import stat
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from threadkeep.infrastructure import git
from threadkeep.infrastructure.config import (
    Config,
    ConfigError,
    config_path,
    get_config_value,
    load_config,
    new_config,
    save_config,
    set_config_value,
)
from threadkeep.infrastructure.hooks import (
    BEGIN_MARKER,
    install_hooks,
    is_installed,
    remove_hooks,
)
from threadkeep.infrastructure.watcher import AutoSaveSchedule, _filter_relevant


def _completed(stdout: str, returncode: int = 0) -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(
        args=["git"], returncode=returncode, stdout=stdout, stderr=""
    )


# --- git ---


class TestGit:
    def test_current_branch(self, tmp_path: Path) -> None:
        with patch("subprocess.run", return_value=_completed("feature/x\n")):
            assert git.current_branch(tmp_path) == "feature/x"

    def test_current_branch_falls_back_to_head(self, tmp_path: Path) -> None:
        with patch("subprocess.run", side_effect=FileNotFoundError):
            assert git.current_branch(tmp_path) == "HEAD"

    def test_find_repo_root_outside_repository(self, tmp_path: Path) -> None:
        with (
            patch("subprocess.run", return_value=_completed("", returncode=128)),
            pytest.raises(git.GitError),
        ):
            git.find_repo_root(tmp_path)

    def test_changed_files_parses_porcelain(self, tmp_path: Path) -> None:
        porcelain = " M src/app.py\n?? notes.md\nR  old.py -> new.py\n"
        with patch("subprocess.run", return_value=_completed(porcelain)):
            assert git.changed_files(tmp_path) == ["src/app.py", "notes.md", "new.py"]

    def test_recent_commits(self, tmp_path: Path) -> None:
        with patch("subprocess.run", return_value=_completed("abc123 Fix\ndef456 Add\n")) as run:
            assert git.recent_commits(tmp_path) == ["abc123 Fix", "def456 Add"]
        assert run.call_args[0][0] == ["git", "log", "-5", "--format=%h %s"]

    def test_timeout_degrades_to_empty(self, tmp_path: Path) -> None:
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("git", 10)):
            assert git.staged_files(tmp_path) == []
            assert git.author(tmp_path) == ""

    def test_read_snapshot(self, tmp_path: Path) -> None:
        repo = tmp_path / "my-repo"
        repo.mkdir()
        with patch("subprocess.run", return_value=_completed("")):
            snapshot = git.read_snapshot(repo)
        assert snapshot.repo == "my-repo"
        assert snapshot.branch == "HEAD"
        assert snapshot.files_changed == []

    def test_commit_paths(self, tmp_path: Path) -> None:
        with patch("subprocess.run", return_value=_completed("")) as run:
            git.commit_paths(tmp_path, [".threadkeep/", ".gitignore"], "Share context")
        calls = [c[0][0] for c in run.call_args_list]
        assert calls == [
            ["git", "add", "--", ".threadkeep/", ".gitignore"],
            ["git", "commit", "-m", "Share context", "--", ".threadkeep/", ".gitignore"],
        ]

    def test_commit_paths_reports_git_output(self, tmp_path: Path) -> None:
        failed = subprocess.CompletedProcess(
            args=["git"], returncode=1, stdout="", stderr="fatal: pathspec did not match\n"
        )
        with (
            patch("subprocess.run", return_value=failed),
            pytest.raises(git.GitError, match="pathspec did not match"),
        ):
            git.commit_paths(tmp_path, [".threadkeep/"], "Share context")


# --- config ---


class TestConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_config(tmp_path) == Config()

    def test_round_trip(self, tmp_path: Path) -> None:
        config = new_config("demo")
        config.rule_targets = ["cursor"]
        config.llm = {"provider": "openai", "model": "gpt-4o", "api_key_env": "KEY"}
        save_config(tmp_path, config)
        assert load_config(tmp_path) == config

    def test_llm_omitted_when_unset(self, tmp_path: Path) -> None:
        save_config(tmp_path, new_config("demo"))
        assert "llm" not in config_path(tmp_path).read_text()

    def test_malformed_yaml_gives_defaults(self, tmp_path: Path) -> None:
        path = config_path(tmp_path)
        path.parent.mkdir()
        path.write_text("inject_context: [unclosed\n")
        assert load_config(tmp_path) == Config()

    def test_wrong_types_ignored(self, tmp_path: Path) -> None:
        path = config_path(tmp_path)
        path.parent.mkdir()
        path.write_text("inject_context: 'maybe'\nwatch_interval_minutes: 10\nfuture_key: 1\n")
        config = load_config(tmp_path)
        assert config.inject_context is True
        assert config.watch_interval_minutes == 10

    def test_set_value_coercion(self) -> None:
        config = Config()
        assert set_config_value(config, "inject_context", "off") is False
        assert set_config_value(config, "auto_save_guard_minutes", "15") == 15
        assert set_config_value(config, "rule_targets", "cursor, warp") == ["cursor", "warp"]
        assert config.rule_targets == ["cursor", "warp"]

    @pytest.mark.parametrize(
        ("key", "raw"),
        [
            ("inject_context", "sometimes"),
            ("watch_interval_minutes", "ten"),
            ("watch_interval_minutes", "-1"),
            ("repo", "other"),
            ("nope", "1"),
        ],
    )
    def test_set_value_rejected(self, key: str, raw: str) -> None:
        with pytest.raises(ConfigError):
            set_config_value(Config(), key, raw)

    def test_get_value(self) -> None:
        assert get_config_value(Config(), "watch_interval_minutes") == 5
        with pytest.raises(ConfigError):
            get_config_value(Config(), "nope")


# --- hooks ---


class TestHooks:
    def test_install_creates_executable_hooks(self, repo: Path) -> None:
        assert install_hooks(repo) == ["post-commit", "post-checkout"]
        for name in ("post-commit", "post-checkout"):
            path = repo / ".git" / "hooks" / name
            assert path.read_text().startswith("#!/bin/sh\n")
            assert path.stat().st_mode & stat.S_IXUSR
        assert "threadkeep save --auto" in (repo / ".git/hooks/post-commit").read_text()
        assert "threadkeep resume --inject" in (repo / ".git/hooks/post-checkout").read_text()

    def test_install_is_idempotent(self, repo: Path) -> None:
        install_hooks(repo)
        assert install_hooks(repo) == []
        assert (repo / ".git/hooks/post-commit").read_text().count(BEGIN_MARKER) == 1

    def test_foreign_hook_content_preserved(self, repo: Path) -> None:
        hook = repo / ".git" / "hooks" / "post-commit"
        hook.write_text("#!/bin/bash\nrun-linter\n")

        install_hooks(repo)
        assert hook.read_text().startswith("#!/bin/bash\nrun-linter\n")
        assert is_installed(hook)

        assert "post-commit" in remove_hooks(repo)
        assert hook.read_text() == "#!/bin/bash\nrun-linter\n"

    def test_remove_deletes_hooks_we_created(self, repo: Path) -> None:
        install_hooks(repo)
        assert remove_hooks(repo) == ["post-commit", "post-checkout"]
        assert not (repo / ".git/hooks/post-commit").exists()
        assert not (repo / ".git/hooks/post-checkout").exists()

    def test_not_a_repository(self, tmp_path: Path) -> None:
        with pytest.raises(git.GitError):
            install_hooks(tmp_path)


# --- watcher helpers ---


class TestWatcherHelpers:
    def test_filter_relevant(self, tmp_path: Path) -> None:
        changes = [
            (1, str(tmp_path / "src" / "app.py")),
            (1, str(tmp_path / ".git" / "index")),
            (1, str(tmp_path / ".threadkeep" / "branches" / "main.json")),
            (1, str(tmp_path / "node_modules" / "x.js")),
            (1, str(tmp_path / "src" / "app.py.swp")),
            (1, str(tmp_path / ".env")),
            (1, "/elsewhere/file.py"),
        ]
        assert _filter_relevant(changes, tmp_path) == [(1, str(tmp_path / "src" / "app.py"))]

    def test_schedule(self) -> None:
        schedule = AutoSaveSchedule(interval_seconds=300, last_save=0.0)
        assert not schedule.due(1000.0)  # nothing pending

        schedule.record(2)
        schedule.record(1)
        assert not schedule.due(100.0)
        assert schedule.due(300.0)

        assert schedule.mark_saved(300.0) == 3
        assert schedule.pending == 0
        schedule.record(1)
        assert not schedule.due(500.0)
        assert schedule.due(600.0)
