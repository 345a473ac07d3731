"""Marker-delimited sections in files shared with humans and other tools.

A *span* runs from a start marker to the nearest following end marker.
A start marker with no end marker after it spans to end of file, so a
hand-truncated section is still replaced or removed as a whole.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from threadkeep.rules.registry import RuleTarget

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Markers:
    start: str
    end: str


INSTRUCTION_MARKERS = Markers("<!-- threadkeep:start -->", "<!-- threadkeep:end -->")
CONTEXT_MARKERS = Markers(
    "<!-- threadkeep:context-start -->", "<!-- threadkeep:context-end -->"
)


class MergeMode(enum.Enum):
    """How a rule target's file is written."""

    APPEND_WITHIN_MARKERS = "append"  # shared file, we own one span
    DEDICATED_FILE = "dedicated"  # we own the whole file


class SectionAction(enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    APPENDED = "appended"


@dataclass(frozen=True)
class WrittenFile:
    """One file touched by a rule write."""

    path: str  # relative to the repository root
    action: SectionAction
    target_id: str


@lru_cache(maxsize=8)
def _span_re(markers: Markers) -> re.Pattern[str]:
    return re.compile(
        re.escape(markers.start) + r".*?(?:" + re.escape(markers.end) + r"|\Z)",
        re.DOTALL,
    )


@lru_cache(maxsize=8)
def _removal_re(markers: Markers) -> re.Pattern[str]:
    # The trailing newline, and the blank line before the span if any, go with it.
    return re.compile(
        r"(?:(?<=\n)\n)?"
        + re.escape(markers.start)
        + r".*?(?:"
        + re.escape(markers.end)
        + r"|\Z)\n?",
        re.DOTALL,
    )


def wrap(body: str, markers: Markers) -> str:
    """Enclose *body* in *markers*."""
    return f"{markers.start}\n{body.strip()}\n{markers.end}"


def strip_markers(text: str, *markers: Markers) -> str:
    """Drop marker strings from *text* so it can sit inside a span."""
    for pair in markers:
        text = text.replace(pair.start, "").replace(pair.end, "")
    return text


def find_section(text: str, markers: Markers) -> str | None:
    """Text of the first span (markers included), or ``None``."""
    match = _span_re(markers).search(text)
    return match.group(0) if match else None


def replace_section(text: str, block: str, markers: Markers) -> str | None:
    """Replace the first span with *block* and drop any later duplicates.

    Returns ``None`` when *text* holds no span.
    """
    match = _span_re(markers).search(text)
    if match is None:
        return None
    head, tail = text[: match.start()], text[match.end() :]
    tail = _removal_re(markers).sub("", tail)
    return head + block + tail


def strip_section(text: str, markers: Markers) -> str:
    """Remove every span and trim the result."""
    return _removal_re(markers).sub("", text).strip()


def upsert_section(path: Path, block: str, markers: Markers) -> SectionAction:
    """Create *path*, replace its span in place, or append the span.

    *block* must already be wrapped in *markers*. Content outside the span
    is left byte-for-byte intact; repeating the call with the same block
    leaves the file unchanged.
    """
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(block + "\n", encoding="utf-8")
        return SectionAction.CREATED

    existing = path.read_text(encoding="utf-8")
    replaced = replace_section(existing, block, markers)
    if replaced is not None:
        if replaced != existing:
            path.write_text(replaced, encoding="utf-8")
        return SectionAction.UPDATED

    if not existing.strip():
        path.write_text(block + "\n", encoding="utf-8")
    else:
        separator = "\n" if existing.endswith("\n") else "\n\n"
        path.write_text(existing + separator + block + "\n", encoding="utf-8")
    return SectionAction.APPENDED


def remove_section(path: Path, markers: Markers) -> bool:
    """Drop the span from *path*; delete the file if nothing else remains.

    Returns ``True`` when a span was removed.
    """
    if not path.exists():
        return False
    existing = path.read_text(encoding="utf-8")
    if markers.start not in existing:
        return False

    remaining = strip_section(existing, markers)
    if remaining:
        path.write_text(remaining + "\n", encoding="utf-8")
    else:
        path.unlink()
        logger.debug("Removed %s (no content left)", path)
    return True


def write_dedicated(path: Path, content: str, keep: Iterable[Markers] = ()) -> SectionAction:
    """Overwrite *path* with *content*, carrying over existing *keep* spans."""
    existed = path.exists()
    preserved: list[str] = []
    if existed:
        existing = path.read_text(encoding="utf-8")
        for markers in keep:
            span = find_section(existing, markers)
            if span is not None:
                preserved.append(span)
    else:
        path.parent.mkdir(parents=True, exist_ok=True)

    text = content.rstrip("\n") + "\n"
    for span in preserved:
        text += "\n" + span.rstrip("\n") + "\n"
    path.write_text(text, encoding="utf-8")
    return SectionAction.UPDATED if existed else SectionAction.CREATED


def _prune_empty_dirs(directory: Path, stop: Path) -> None:
    while directory != stop and stop in directory.parents:
        try:
            directory.rmdir()
        except OSError:  # not empty
            return
        directory = directory.parent


def write_target(repo_root: Path, target: RuleTarget) -> WrittenFile:
    """Write the instruction content of *target*."""
    path = repo_root / target.file_path
    if target.merge_mode is MergeMode.APPEND_WITHIN_MARKERS:
        markers = target.instruction_markers
        action = upsert_section(path, wrap(target.render(), markers), markers)
    else:
        action = write_dedicated(path, target.render(), keep=(CONTEXT_MARKERS,))
    return WrittenFile(path=target.file_path, action=action, target_id=target.id)


def remove_target(repo_root: Path, target: RuleTarget) -> bool:
    """Remove what :func:`write_target` wrote. Returns ``True`` if anything went."""
    path = repo_root / target.file_path
    if target.merge_mode is MergeMode.APPEND_WITHIN_MARKERS:
        return remove_section(path, target.instruction_markers)
    if not path.exists():
        return False
    path.unlink()
    _prune_empty_dirs(path.parent, repo_root)
    return True


def target_installed(repo_root: Path, target: RuleTarget) -> bool:
    path = repo_root / target.file_path
    if not path.exists():
        return False
    if target.merge_mode is MergeMode.DEDICATED_FILE:
        return True
    try:
        return target.instruction_markers.start in path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return False
