"""Warp terminal AI sessions: ``~/.warp``."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import yaml

from threadkeep.extraction.conversation import history_file_context, log_context
from threadkeep.extraction.models import ExtractedContext, make_context, resolve_roots
from threadkeep.extraction.readers import HISTORY_TAIL_LINES, list_files, read_text

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

ROOTS = ("~/.warp",)
SEARCH_PATHS = ("ai_conversations", "sessions", "history", "state")
ARTIFACT_SUFFIXES = (".json", ".jsonl", ".log")
LAUNCH_CONFIG = "launch_configurations.yaml"

_FILES_PER_DIR = 5


def parse_file(path: Path) -> ExtractedContext | None:
    """One Warp artifact: JSON/JSONL chat history or a role-prefixed log."""
    try:
        if path.suffix == ".log":
            return log_context(read_text(path), "warp-logs")
        return history_file_context(path, "warp", tail_lines=HISTORY_TAIL_LINES)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        logger.debug("Skipping unreadable Warp artifact %s", path)
        return None


def from_launch_config(path: Path) -> ExtractedContext | None:
    """First launch configuration name, as a weak hint of what the user runs."""
    try:
        data = yaml.safe_load(read_text(path))
    except yaml.YAMLError:
        logger.debug("Skipping malformed %s", path)
        return None

    configs = data if isinstance(data, list) else [data]
    for config in configs:
        name = config.get("name") if isinstance(config, dict) else None
        if isinstance(name, str) and name.strip():
            return make_context(
                name, source="warp-config", current_state="Loaded from Warp configuration"
            )
    return None


def attempt(repo_path: Path) -> ExtractedContext | None:
    (warp_dir,) = resolve_roots(ROOTS, repo_path)
    if not warp_dir.is_dir():
        return None

    for name in SEARCH_PATHS:
        candidate = warp_dir / name
        if candidate.is_file():
            files = [candidate]
        elif candidate.is_dir():
            files = list_files(candidate, ARTIFACT_SUFFIXES)[:_FILES_PER_DIR]
        else:
            continue
        for path in files:
            result = parse_file(path)
            if result is not None:
                return result

    launch_config = warp_dir / LAUNCH_CONFIG
    if launch_config.is_file():
        return from_launch_config(launch_config)
    return None
