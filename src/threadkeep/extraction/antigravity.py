"""Antigravity (Gemini) sessions: ``~/.gemini/antigravity/brain/<conversation>/``.

A conversation directory holds named markdown artifacts (``task.md``,
``implementation_plan.md``, ``walkthrough.md``) and ``*.metadata.json``
summaries. Only conversations with a ``task.md`` are considered.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from threadkeep.extraction import markdown
from threadkeep.extraction.conversation import first_line
from threadkeep.extraction.miner import is_decision, strip_list_marker
from threadkeep.extraction.models import ExtractedContext, make_context, resolve_roots
from threadkeep.extraction.readers import list_dirs, newest_first, read_json, read_text

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

ROOTS = ("~/.gemini/antigravity/brain",)

TASK_FILE = "task.md"
PLAN_FILE = "implementation_plan.md"
WALKTHROUGH_FILE = "walkthrough.md"
METADATA_FILES = ("task.md.metadata.json", "implementation_plan.md.metadata.json")

_MAX_DONE_APPROACHES = 5
_SENTENCE_RE = re.compile(r"\. |\n")
_CHANGES_HEADING = r"Changes"
_DETAILS_HEADING = r"Implementation Details?|What Was Built"


@dataclass
class _Findings:
    task: str = ""
    decisions: list[str] = field(default_factory=list)
    approaches: list[str] = field(default_factory=list)
    current_state: str = ""

    def add_decision(self, text: str) -> None:
        if text not in self.decisions:
            self.decisions.append(text)

    def add_approach(self, text: str) -> None:
        if text not in self.approaches:
            self.approaches.append(text)


def latest_conversation(brain_dir: Path) -> Path | None:
    """Newest conversation directory, ordered by its ``task.md`` mtime."""
    task_files = [d / TASK_FILE for d in list_dirs(brain_dir) if (d / TASK_FILE).is_file()]
    ordered = newest_first(task_files)
    return ordered[0].parent if ordered else None


def _long_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_RE.split(text) if len(s.strip()) > 20]


def _task_from_checklist(task_md: str, plan_title: str) -> str:
    active = markdown.in_progress_item(task_md)
    if active:
        return active
    done = markdown.all_done_items(task_md)
    if not done:
        return plan_title
    combined = " + ".join(done[-2:])
    return f"{combined} (Structure: {plan_title})" if plan_title else combined


def _read_plan(plan: str, found: _Findings) -> None:
    for callout in markdown.callout_blocks(plan):
        for sentence in _long_sentences(callout):
            found.add_decision(sentence)

    for bullet in markdown.bullet_items(plan):
        # File links and nested checklists carry no rationale.
        if bullet.startswith("[") or "](file://" in bullet:
            continue
        for sentence in _long_sentences(bullet):
            if is_decision(sentence):
                found.add_decision(sentence)

    overview = markdown.section_body(plan, r"Overview|Context|Background")
    if overview and len(overview) > 10:
        found.add_approach(first_line(overview))


def _read_metadata(conversation: Path, found: _Findings) -> None:
    for name in METADATA_FILES:
        path = conversation / name
        if not path.is_file():
            continue
        try:
            meta = read_json(path)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            logger.debug("Skipping unreadable metadata %s", path)
            continue
        summary = meta.get("Summary") if isinstance(meta, dict) else None
        if not isinstance(summary, str) or not summary.strip():
            continue
        if not found.task:
            found.task = first_line(summary)
        if len(summary) > 50:
            found.add_approach(first_line(summary))


def _read_walkthrough(walkthrough: str, found: _Findings) -> None:
    found.current_state = markdown.first_heading(walkthrough)

    changes = markdown.section_body(walkthrough, _CHANGES_HEADING, levels="2,4")
    if changes is None:
        changes = markdown.section_body(walkthrough, _DETAILS_HEADING, levels="2,4")

    if changes is None:
        detail = markdown.first_section(walkthrough)
        if detail is not None:
            detail = detail[:300]
            if found.current_state:
                detail = f"{found.current_state}. {detail}"
            found.current_state = detail
        return

    for line in changes.splitlines():
        cleaned = strip_list_marker(line)
        if len(cleaned) < 10:
            continue
        if is_decision(cleaned):
            found.add_decision(cleaned)
        elif line.lstrip().startswith(("-", "*")) and not cleaned.startswith("["):
            found.add_approach(cleaned)

    pointer = "See approaches for details."
    found.current_state = f"{found.current_state}. {pointer}" if found.current_state else pointer


def parse_conversation(conversation: Path) -> ExtractedContext:
    found = _Findings()

    plan = read_text(conversation / PLAN_FILE)
    plan_title = markdown.first_heading(plan)
    task_md = read_text(conversation / TASK_FILE)
    found.task = _task_from_checklist(task_md, plan_title)

    if plan:
        _read_plan(plan, found)
    _read_metadata(conversation, found)

    if not found.task:
        found.task = markdown.first_heading(task_md)

    walkthrough = read_text(conversation / WALKTHROUGH_FILE)
    if walkthrough:
        _read_walkthrough(walkthrough, found)

    done = markdown.done_items(task_md)[:_MAX_DONE_APPROACHES]
    return make_context(
        found.task or "Antigravity session",
        source="antigravity",
        approaches=[*found.approaches, *(f"Done: {item}" for item in done)],
        decisions=found.decisions,
        current_state=found.current_state or "Loaded from Antigravity brain artifacts",
        next_steps=markdown.open_items(task_md),
    )


def attempt(repo_path: Path) -> ExtractedContext | None:
    (brain_dir,) = resolve_roots(ROOTS, repo_path)
    if not brain_dir.is_dir():
        return None
    conversation = latest_conversation(brain_dir)
    if conversation is None:
        return None
    return parse_conversation(conversation)
