"""Cursor sessions.

Sources, in order: the repository's own ``.cursor/rules`` files, the
composer history under global storage, then per-workspace JSON state.
Cursor's SQLite stores are not read.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from threadkeep.extraction.conversation import (
    conversation_context,
    document_messages,
    rule_file_context,
)
from threadkeep.extraction.models import ExtractedContext, resolve_roots
from threadkeep.extraction.readers import list_dirs, list_files, read_json, read_text

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

ROOTS = ("~/.cursor", "{repo}/.cursor")

OWN_RULE_FILE = "threadkeep.mdc"
WORKSPACE_FILES = ("workspace.json", "chat.json", "conversations.json")

_COMPOSER_FILES = 3
_WORKSPACES = 5


def _load(path: Path) -> Any:
    try:
        return read_json(path)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        logger.debug("Skipping unreadable Cursor file %s", path)
        return None


def from_rules(rules_dir: Path) -> ExtractedContext | None:
    for path in sorted(list_files(rules_dir, (".mdc", ".md"))):
        if path.name == OWN_RULE_FILE:
            continue
        result = rule_file_context(
            read_text(path), source="cursor-rules", fallback_task="Cursor project rules"
        )
        if result is not None and result.found:
            return result
    return None


def from_composer(composer_dir: Path) -> ExtractedContext | None:
    for path in list_files(composer_dir, (".json",))[:_COMPOSER_FILES]:
        data = _load(path)
        if not isinstance(data, dict):
            continue
        for key in ("messages", "conversations", "history"):
            messages = data.get(key)
            if isinstance(messages, list) and messages:
                return conversation_context(messages, "cursor-composer")
    return None


def from_workspaces(storage_dir: Path) -> ExtractedContext | None:
    for workspace in list_dirs(storage_dir)[:_WORKSPACES]:
        for name in WORKSPACE_FILES:
            path = workspace / name
            if not path.is_file():
                continue
            data = _load(path)
            if not isinstance(data, dict) or not ("chat" in data or "conversations" in data):
                continue
            messages = document_messages(data)
            if not messages:
                continue
            result = conversation_context(messages, "cursor-workspace")
            if result is not None and result.found:
                return result
    return None


def attempt(repo_path: Path) -> ExtractedContext | None:
    cursor_home, repo_cursor = resolve_roots(ROOTS, repo_path)
    if not cursor_home.is_dir():
        return None

    result = from_rules(repo_cursor / "rules")
    if result is not None:
        return result

    result = from_composer(cursor_home / "User" / "globalStorage" / "cursor.composer")
    if result is not None and result.found:
        return result

    return from_workspaces(cursor_home / "User" / "workspaceStorage")
