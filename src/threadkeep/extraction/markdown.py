"""Pure helpers for the markdown artifacts written by AI tools.

Covers headings, heading-delimited sections, bullets, checklists,
``> [!NOTE]`` callouts and YAML frontmatter.
"""

from __future__ import annotations

import re
from typing import Any

import yaml

_HEADING_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_BULLET_RE = re.compile(r"^[-*]\s+(.+?)\s*$", re.MULTILINE)
_OPEN_ITEM_RE = re.compile(r"-\s+\[\s\]\s+(.+)$", re.MULTILINE)
_DONE_ITEM_RE = re.compile(r"-\s+\[[xX]\]\s+(.+)$", re.MULTILINE)
_IN_PROGRESS_RE = re.compile(r"-\s+\[[/-]\]\s+(.+)$", re.MULTILINE)
_CALLOUT_RE = re.compile(
    r">\s*\[!(?:IMPORTANT|NOTE|WARNING|CAUTION)\]\s*\n((?:>[^\n]*(?:\n|$))+)",
    re.IGNORECASE,
)
_FRONTMATTER_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---", re.DOTALL)

MAX_CHECKLIST_ITEMS = 8


def first_heading(text: str) -> str:
    """Text of the first level-one heading, or ``""``."""
    match = _HEADING_RE.search(text)
    return match.group(1).strip() if match else ""


def section_body(text: str, heading: str, *, levels: str = "2") -> str | None:
    """Body under the first heading matching the *heading* regex.

    *levels* is a regex quantifier body for the number of ``#`` characters
    (``"2"`` for ``##`` only, ``"2,4"`` for ``##`` through ``####``). The
    body runs until the next heading of the same range or end of text.
    Returns ``None`` when the heading is absent.
    """
    pattern = re.compile(
        rf"^#{{{levels}}}\s*(?:{heading})\s*\n(.*?)(?=\n#{{{levels}}}\s|\Z)",
        re.IGNORECASE | re.MULTILINE | re.DOTALL,
    )
    match = pattern.search(text)
    return match.group(1).strip() if match else None


def first_section(text: str) -> str | None:
    """Body of the first ``##`` section, whatever its title."""
    match = re.search(r"^##\s*.*?\n(.*?)(?=\n##|\Z)", text, re.MULTILINE | re.DOTALL)
    return match.group(1).strip() if match else None


def bullet_items(text: str) -> list[str]:
    """Top-level ``-``/``*`` bullet texts."""
    return [m.group(1).strip() for m in _BULLET_RE.finditer(text)]


def open_items(text: str) -> list[str]:
    """Unchecked ``- [ ]`` checklist items."""
    return [m.group(1).strip() for m in _OPEN_ITEM_RE.finditer(text)][:MAX_CHECKLIST_ITEMS]


def done_items(text: str) -> list[str]:
    """Checked ``- [x]`` checklist items."""
    return [m.group(1).strip() for m in _DONE_ITEM_RE.finditer(text)][:MAX_CHECKLIST_ITEMS]


def all_done_items(text: str) -> list[str]:
    return [m.group(1).strip() for m in _DONE_ITEM_RE.finditer(text)]


def in_progress_item(text: str) -> str:
    """First ``- [/]`` or ``- [-]`` item, or ``""``."""
    match = _IN_PROGRESS_RE.search(text)
    return match.group(1).strip() if match else ""


def callout_blocks(text: str) -> list[str]:
    """Plain text of GitHub-style alert blocks (``> [!NOTE]`` ...)."""
    blocks: list[str] = []
    for match in _CALLOUT_RE.finditer(text):
        body = re.sub(r"^>\s?", "", match.group(1), flags=re.MULTILINE)
        body = body.replace("**", "").strip()
        if body:
            blocks.append(body)
    return blocks


def frontmatter(text: str) -> dict[str, Any]:
    """Parse a leading ``---`` YAML block. Absent -> ``{}``.

    Rule files often carry values YAML rejects (``globs: *.ts`` reads as an
    alias), so a block that fails to parse is read as flat ``key: value``
    lines instead.
    """
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return {}
    block = match.group(1)
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError:
        return _flat_pairs(block)
    return data if isinstance(data, dict) else {}


def _flat_pairs(block: str) -> dict[str, Any]:
    pairs: dict[str, Any] = {}
    for line in block.splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip() and not key.startswith((" ", "\t")):
            pairs[key.strip()] = value.strip().strip("'\"")
    return pairs
