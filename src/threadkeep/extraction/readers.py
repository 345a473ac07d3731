"""Bounded, failure-tolerant file access for session artifacts."""

from __future__ import annotations

import json
import logging
from collections import deque
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

# Tail windows (lines) for line-delimited logs.
TRANSCRIPT_TAIL_LINES = 500
HISTORY_TAIL_LINES = 100


def read_tail_lines(path: Path, max_lines: int) -> list[str]:
    """Return at most the last *max_lines* lines of *path*.

    Memory stays bounded by the window regardless of file size.
    """
    with path.open(encoding="utf-8", errors="replace") as fh:
        window = deque(fh, maxlen=max_lines)
    return [line.rstrip("\r\n") for line in window]


def read_jsonl_tail(path: Path, max_lines: int) -> list[Any]:
    """Decode the tail window of a JSONL file, skipping malformed lines."""
    records: list[Any] = []
    for line in read_tail_lines(path, max_lines):
        if not line.strip():
            continue
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    return records


def read_json(path: Path) -> Any:
    """Load a JSON document. Raises on I/O or decode errors."""
    return json.loads(path.read_text(encoding="utf-8"))


def read_text(path: Path) -> str:
    """Read a text file, returning ``""`` when unreadable."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        logger.debug("Could not read %s", path)
        return ""


def _mtime(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


def newest_first(paths: Iterable[Path]) -> list[Path]:
    """Sort *paths* by modification time, newest first; unstat-able paths dropped."""
    stamped = [(m, p) for p in paths if (m := _mtime(p)) is not None]
    stamped.sort(key=lambda pair: pair[0], reverse=True)
    return [p for _, p in stamped]


def list_files(directory: Path, suffixes: tuple[str, ...]) -> list[Path]:
    """Files directly inside *directory* with one of *suffixes*, newest first."""
    try:
        entries = list(directory.iterdir())
    except OSError:
        return []
    return newest_first(p for p in entries if p.is_file() and p.name.endswith(suffixes))


def list_dirs(directory: Path) -> list[Path]:
    """Sub-directories of *directory*, newest first."""
    try:
        entries = list(directory.iterdir())
    except OSError:
        return []
    return newest_first(p for p in entries if p.is_dir())
