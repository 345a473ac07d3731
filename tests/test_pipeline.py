"""Tests for threadkeep.extraction.pipeline: source priority and failure isolation."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from threadkeep.extraction.models import ArtifactKind, SessionSource, make_context
from threadkeep.extraction.pipeline import (
    SESSION_SOURCES,
    available_sources,
    extract_from_sessions,
    get_source,
)

if TYPE_CHECKING:
    from pathlib import Path

    from threadkeep.extraction.models import ExtractedContext


def _raise(repo_path: Path) -> ExtractedContext | None:
    raise RuntimeError("corrupt store")


def _blank(repo_path: Path) -> ExtractedContext | None:
    return make_context("   ", source="blank")


def _found(repo_path: Path) -> ExtractedContext | None:
    return make_context("Real task", source="good")


def _source(name: str, attempt: object) -> SessionSource:
    return SessionSource(
        name=name,
        roots=("~/.tool",),
        kinds=(ArtifactKind.DOCUMENT,),
        attempt=attempt,  # type: ignore[arg-type]
    )


class TestRegistry:
    def test_fixed_priority_order(self) -> None:
        assert [s.name for s in SESSION_SOURCES] == [
            "claude-code",
            "antigravity",
            "cursor",
            "opencode",
            "trae",
            "warp",
        ]

    def test_get_source(self) -> None:
        assert get_source("warp").name == "warp"
        with pytest.raises(KeyError):
            get_source("nope")

    def test_available_sources(self, fake_home: Path, tmp_path: Path) -> None:
        assert available_sources(tmp_path / "repo") == []
        (fake_home / ".warp").mkdir()
        (tmp_path / "repo" / ".trae").mkdir(parents=True)
        assert available_sources(tmp_path / "repo") == ["trae", "warp"]

    def test_repo_cursor_dir_does_not_make_cursor_available(self, tmp_path: Path) -> None:
        (tmp_path / "repo" / ".cursor").mkdir(parents=True)
        assert "cursor" not in available_sources(tmp_path / "repo")


class TestExtractFromSessions:
    def test_nothing_available(self, tmp_path: Path) -> None:
        assert extract_from_sessions(tmp_path / "repo") is None

    def test_failing_and_blank_sources_are_skipped(self, fake_home: Path, tmp_path: Path) -> None:
        (fake_home / ".tool").mkdir()
        sources = (_source("broken", _raise), _source("blank", _blank), _source("good", _found))
        result = extract_from_sessions(tmp_path / "repo", sources)
        assert result is not None
        assert result.source == "good"

    def test_unavailable_source_not_attempted(self, tmp_path: Path) -> None:
        # ~/.tool does not exist, so the raising attempt is never called.
        assert extract_from_sessions(tmp_path / "repo", (_source("broken", _raise),)) is None

    def test_higher_priority_source_wins(self, fake_home: Path, tmp_path: Path) -> None:
        log = fake_home / ".warp" / "sessions" / "s.log"
        log.parent.mkdir(parents=True)
        log.write_text("user: Warp task here\n", encoding="utf-8")

        context = fake_home / ".opencode" / "context.json"
        context.parent.mkdir(parents=True)
        context.write_text(json.dumps({"task": "OpenCode task"}), encoding="utf-8")

        result = extract_from_sessions(tmp_path / "repo")

        assert result is not None
        assert result.task == "OpenCode task"
        assert result.source == "opencode-context"
