"""Trae sessions: chat history files, then the repository's Trae rule files."""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING

from threadkeep.extraction.conversation import history_file_context, rule_file_context
from threadkeep.extraction.models import ExtractedContext, resolve_roots
from threadkeep.extraction.readers import HISTORY_TAIL_LINES, list_files, read_text

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

ROOTS = ("~/.trae", "~/.config/trae", "{repo}/.trae")
HISTORY_DIRS = ("history", "sessions", "conversations", "User/History")
HISTORY_SUFFIXES = (".json", ".jsonl")

OWN_RULE_FILE = "threadkeep.md"

# Trae rules also record past choices ("decided", "chose").
TRAE_DECISION_RE = re.compile(
    r"\b(?:use|using|prefer|always|never|must|should|decided|chose)\b", re.IGNORECASE
)


def from_history(root: Path) -> ExtractedContext | None:
    for name in HISTORY_DIRS:
        files = list_files(root / name, HISTORY_SUFFIXES)
        if not files:
            continue
        try:
            result = history_file_context(files[0], "trae", tail_lines=HISTORY_TAIL_LINES)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            logger.debug("Skipping unreadable Trae history %s", files[0])
            continue
        if result is not None:
            return result
    return None


def from_rules(rules_dir: Path) -> ExtractedContext | None:
    for path in sorted(list_files(rules_dir, (".md",))):
        if path.name == OWN_RULE_FILE:
            continue
        result = rule_file_context(
            read_text(path),
            source="trae-rules",
            fallback_task="Trae project rules",
            min_length=15,
            decision_re=TRAE_DECISION_RE,
            heading_fallback=True,
        )
        if result is not None and result.found:
            return result
    return None


def attempt(repo_path: Path) -> ExtractedContext | None:
    for root in resolve_roots(ROOTS, repo_path):
        if not root.is_dir():
            continue
        result = from_history(root) or from_rules(root / "rules")
        if result is not None:
            return result
    return None
