"""Tests for threadkeep.context: store, prompt rendering and capture."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from threadkeep.context.capture import (
    NOTHING_FOUND_TASK,
    build_entry,
    capture_auto,
    recent_rich_save,
    save_and_sync,
    split_list,
    sync_branch_context,
)
from threadkeep.context.prompt import MAX_FILES, format_log_line, render_prompt
from threadkeep.context.store import (
    ContextEntry,
    StoreError,
    branch_file,
    is_initialized,
    load_all,
    load_branch,
    save_entry,
)
from threadkeep.extraction.models import make_context
from threadkeep.infrastructure.config import Config
from threadkeep.rules.engine import write_rules
from threadkeep.rules.sections import CONTEXT_MARKERS

if TYPE_CHECKING:
    from pathlib import Path

    from threadkeep.infrastructure.git import GitSnapshot


def _entry(task: str, branch: str = "main", **kwargs: object) -> ContextEntry:
    return ContextEntry(task=task, branch=branch, **kwargs)  # type: ignore[arg-type]


# --- store ---


class TestStore:
    def test_is_initialized(self, repo: Path, initialized: Path) -> None:
        assert is_initialized(initialized)
        assert not is_initialized(repo.parent)

    def test_branch_file_flattens_slashes(self, tmp_path: Path) -> None:
        assert branch_file(tmp_path, "feature/a/b").name == "feature__a__b.json"

    def test_save_and_load_in_order(self, initialized: Path) -> None:
        save_entry(initialized, _entry("first"))
        save_entry(initialized, _entry("second"))
        assert [e.task for e in load_branch(initialized, "main")] == ["first", "second"]
        assert load_branch(initialized, "other") == []

    def test_entry_round_trip(self) -> None:
        entry = _entry("t", goal="g", approaches=["a"], handoff_note=None)
        data = entry.to_dict()
        assert "handoff_note" not in data
        assert ContextEntry.from_dict({**data, "unknown": 1}) == entry

    def test_load_all_newest_first(self, initialized: Path) -> None:
        save_entry(initialized, _entry("old", timestamp="2026-01-01T00:00:00+00:00"))
        save_entry(
            initialized, _entry("new", "feature/x", timestamp="2026-03-01T00:00:00+00:00")
        )
        save_entry(initialized, _entry("mid", timestamp="2026-02-01T00:00:00+00:00"))
        assert [e.task for e in load_all(initialized)] == ["new", "mid", "old"]

    def test_corrupt_history_reads_empty(self, initialized: Path) -> None:
        path = branch_file(initialized, "main")
        path.write_text("{broken")
        assert load_branch(initialized, "main") == []

    def test_malformed_records_skipped(self, initialized: Path) -> None:
        path = branch_file(initialized, "main")
        path.write_text(json.dumps([{"task": "ok", "branch": "main"}, {"no": "task"}, 3]))
        assert [e.task for e in load_branch(initialized, "main")] == ["ok"]

    def test_save_refuses_unreadable_history(self, initialized: Path) -> None:
        save_entry(initialized, _entry("one"))
        save_entry(initialized, _entry("two"))
        path = branch_file(initialized, "main")
        truncated = path.read_text()[:-3]
        path.write_text(truncated)

        with pytest.raises(StoreError, match="unreadable"):
            save_entry(initialized, _entry("three"))
        assert path.read_text() == truncated
        assert '"one"' in truncated

    def test_save_refuses_non_list_history(self, initialized: Path) -> None:
        path = branch_file(initialized, "main")
        path.write_text('{"task": "not a list"}')
        with pytest.raises(StoreError):
            save_entry(initialized, _entry("next"))
        assert path.read_text() == '{"task": "not a list"}'

    def test_save_keeps_malformed_records(self, initialized: Path) -> None:
        path = branch_file(initialized, "main")
        path.write_text(json.dumps([{"task": "ok", "branch": "main"}, {"no": "task"}]))
        save_entry(initialized, _entry("next"))
        data = json.loads(path.read_text())
        assert data[:2] == [{"task": "ok", "branch": "main"}, {"no": "task"}]
        assert data[2]["task"] == "next"

    def test_non_string_timestamp(self, initialized: Path) -> None:
        assert _entry("t", timestamp=12345).saved_at is None
        assert _entry("t", timestamp="yesterday").saved_at is None
        path = branch_file(initialized, "main")
        path.write_text(json.dumps([{"task": "odd", "branch": "main", "timestamp": 12345}]))
        save_entry(initialized, _entry("new", "feature/x", timestamp="2026-03-01T00:00:00+00:00"))
        assert [e.task for e in load_all(initialized)] == ["new", "odd"]

    def test_is_rich(self) -> None:
        assert _entry("t", decisions=["d"]).is_rich
        assert not _entry("t").is_rich


# --- prompt ---


class TestRenderPrompt:
    def test_empty(self) -> None:
        assert render_prompt([]) == ""

    def test_latest_fields_and_accumulated_history(self) -> None:
        entries = [
            _entry("Start auth", approaches=["Tried sessions"], decisions=["Use JWT"]),
            _entry(
                "Finish auth",
                repo="api",
                author="Dana",
                goal="JIRA-12",
                current_state="Tokens issued",
                approaches=["Tried sessions", "Tried OAuth"],
                decisions=["Use JWT"],
                next_steps=["Add refresh"],
                blockers=["Waiting on keys"],
                recent_commits=["abc Add JWT"],
                handoff_note="Ask Sam about keys",
            ),
        ]

        doc = render_prompt(entries)

        assert doc.startswith("# Resuming work on `main` (api)\n")
        assert "**Task:** Finish auth" in doc
        assert "**Goal:** JIRA-12" in doc
        assert "**Where I left off:** Tokens issued" in doc
        assert "by Dana" in doc
        assert "**Handoff note:** Ask Sam about keys" in doc
        assert doc.count("- Tried sessions") == 1
        assert "- Tried OAuth" in doc
        assert doc.count("- Use JWT") == 1
        assert "## Blockers\n- Waiting on keys" in doc
        assert "## Session history" in doc
        assert doc.endswith("\n")

    def test_files_capped(self) -> None:
        files = [f"f{i}.py" for i in range(MAX_FILES + 3)]
        doc = render_prompt([_entry("t", files_changed=files)])
        assert "`f0.py`" in doc
        assert f"`f{MAX_FILES}.py`" not in doc
        assert "... and 3 more" in doc

    def test_format_log_line(self) -> None:
        entry = _entry("Fix bug", "dev", timestamp="2026-10-19T08:30:15.123+00:00")
        assert format_log_line(entry) == "[2026-10-19 08:30:15] Fix bug"
        assert format_log_line(entry, with_branch=True) == "[2026-10-19 08:30:15] dev: Fix bug"


# --- capture ---


class TestCaptureHelpers:
    def test_split_list(self) -> None:
        assert split_list("a;; b ;;;; c;;") == ["a", "b", "c"]
        assert split_list(None) == []

    def test_build_entry_copies_snapshot(self, snapshot: GitSnapshot) -> None:
        entry = build_entry(snapshot, "Task", decisions=["d"])
        assert entry.branch == "feature/login"
        assert entry.author == "Dana"
        assert entry.files_changed == ["src/app.py", "tests/test_app.py"]
        assert entry.recent_commits == ["abc1234 Add login form"]
        assert entry.decisions == ["d"]

    def test_recent_rich_save(self) -> None:
        now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
        fresh = (now - timedelta(minutes=2)).isoformat()
        stale = (now - timedelta(minutes=20)).isoformat()

        assert recent_rich_save([_entry("t", decisions=["d"], timestamp=fresh)], 5, now)
        assert not recent_rich_save([_entry("t", decisions=["d"], timestamp=stale)], 5, now)
        assert not recent_rich_save([_entry("t", timestamp=fresh)], 5, now)
        assert not recent_rich_save([_entry("t", decisions=["d"], timestamp=fresh)], 0, now)
        assert not recent_rich_save([], 5, now)


class TestCaptureAuto:
    def test_uses_extracted_context(self, initialized: Path, fake_git: GitSnapshot) -> None:
        extracted = make_context(
            "Extracted task", source="warp-logs", decisions=["Use Redis"], next_steps=["Ship"]
        )
        with patch("threadkeep.context.capture.extract_from_sessions", return_value=extracted):
            entry = capture_auto(initialized, None, Config())

        assert entry is not None
        assert entry.task == "Extracted task"
        assert entry.source == "warp-logs"
        assert entry.decisions == ["Use Redis"]
        assert entry.branch == "feature/login"

    def test_message_overrides_extracted_task(
        self, initialized: Path, fake_git: GitSnapshot
    ) -> None:
        extracted = make_context("Extracted task", source="trae")
        with patch("threadkeep.context.capture.extract_from_sessions", return_value=extracted):
            entry = capture_auto(initialized, "Auto-saved on commit: Fix", Config())
        assert entry is not None
        assert entry.task == "Auto-saved on commit: Fix"

    def test_nothing_extracted(self, initialized: Path, fake_git: GitSnapshot) -> None:
        entry = capture_auto(initialized, None, Config())
        assert entry is not None
        assert entry.task == NOTHING_FOUND_TASK

    def test_guard_skips_after_rich_save(self, initialized: Path, fake_git: GitSnapshot) -> None:
        save_entry(initialized, _entry("Manual", "feature/login", decisions=["Use JWT"]))
        assert capture_auto(initialized, "auto", Config(auto_save_guard_minutes=5)) is None

    def test_guard_ignores_non_string_timestamp(
        self, initialized: Path, fake_git: GitSnapshot
    ) -> None:
        path = branch_file(initialized, "feature/login")
        record = {"task": "Manual", "branch": "feature/login", "decisions": ["d"], "timestamp": 1}
        path.write_text(json.dumps([record]))
        entry = capture_auto(initialized, "auto", Config(auto_save_guard_minutes=5))
        assert entry is not None
        assert entry.task == "auto"


class TestSaveAndSync:
    def test_save_injects_context(self, initialized: Path, snapshot: GitSnapshot) -> None:
        write_rules(initialized, ["warp"])
        outcome = save_and_sync(initialized, build_entry(snapshot, "Wire login"), Config())

        assert outcome.path.is_file()
        assert outcome.injected is not None
        assert outcome.injected.touched == [".warp/threadkeep.md"]
        assert "Wire login" in (initialized / ".warp/threadkeep.md").read_text()

    def test_injection_disabled(self, initialized: Path, snapshot: GitSnapshot) -> None:
        write_rules(initialized, ["warp"])
        outcome = save_and_sync(
            initialized, build_entry(snapshot, "Wire login"), Config(inject_context=False)
        )
        assert outcome.injected is None
        assert CONTEXT_MARKERS.start not in (initialized / ".warp/threadkeep.md").read_text()

    def test_injection_failure_does_not_fail_save(
        self, initialized: Path, snapshot: GitSnapshot
    ) -> None:
        with patch(
            "threadkeep.context.capture.inject_context", side_effect=RuntimeError("disk")
        ):
            outcome = save_and_sync(initialized, build_entry(snapshot, "Wire login"), Config())
        assert outcome.injected is None
        assert [e.task for e in load_branch(initialized, "feature/login")] == ["Wire login"]

    def test_sync_clears_context_for_empty_branch(self, initialized: Path) -> None:
        write_rules(initialized, ["warp"])
        save_entry(initialized, _entry("On main"))
        sync_branch_context(initialized, "main")
        assert "On main" in (initialized / ".warp/threadkeep.md").read_text()

        sync_branch_context(initialized, "fresh-branch")
        assert CONTEXT_MARKERS.start not in (initialized / ".warp/threadkeep.md").read_text()
