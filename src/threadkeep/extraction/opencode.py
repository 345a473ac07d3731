"""OpenCode sessions: global and per-repository ``.opencode`` directories."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from threadkeep.extraction.conversation import history_file_context
from threadkeep.extraction.models import ExtractedContext, make_context, resolve_roots
from threadkeep.extraction.readers import HISTORY_TAIL_LINES, list_files, read_json

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

ROOTS = ("~/.opencode", "~/.config/opencode", "{repo}/.opencode")
SESSION_DIRS = ("sessions", "conversations", "history")
HISTORY_SUFFIXES = (".json", ".jsonl")


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def from_context_file(path: Path) -> ExtractedContext | None:
    """A ``context.json`` record written by OpenCode itself."""
    data = read_json(path)
    if not isinstance(data, dict):
        return None
    task = data.get("task") or data.get("goal") or data.get("currentTask")
    if not isinstance(task, str) or not task.strip():
        return None
    state = data.get("state") or data.get("currentState")
    return make_context(
        task,
        source="opencode-context",
        approaches=_strings(data.get("approaches")),
        decisions=_strings(data.get("decisions")),
        current_state=state if isinstance(state, str) else "Loaded from OpenCode",
        next_steps=_strings(data.get("nextSteps") or data.get("todos")),
        blockers=_strings(data.get("blockers")),
    )


def from_root(root: Path) -> ExtractedContext | None:
    for name in SESSION_DIRS:
        files = list_files(root / name, HISTORY_SUFFIXES)
        if not files:
            continue
        try:
            result = history_file_context(files[0], "opencode", tail_lines=HISTORY_TAIL_LINES)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            logger.debug("Skipping unreadable OpenCode history %s", files[0])
            continue
        if result is not None:
            return result

    context_file = root / "context.json"
    if context_file.is_file():
        try:
            return from_context_file(context_file)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            logger.debug("Skipping unreadable %s", context_file)
    return None


def attempt(repo_path: Path) -> ExtractedContext | None:
    for root in resolve_roots(ROOTS, repo_path):
        if not root.is_dir():
            continue
        result = from_root(root)
        if result is not None:
            return result
    return None
