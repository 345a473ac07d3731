"""Render a branch's context history as a markdown briefing for an AI assistant."""

from __future__ import annotations

from typing import TYPE_CHECKING

from threadkeep.extraction.miner import dedupe

if TYPE_CHECKING:
    from collections.abc import Sequence

    from threadkeep.context.store import ContextEntry

MAX_HISTORY = 5
MAX_FILES = 15


def _bullets(lines: list[str], title: str, items: Sequence[str]) -> None:
    if not items:
        return
    lines.append(f"## {title}")
    lines.extend(f"- {item}" for item in items)
    lines.append("")


def render_prompt(entries: Sequence[ContextEntry]) -> str:
    """Markdown briefing for *entries* (oldest first). Empty input -> ``""``."""
    if not entries:
        return ""

    latest = entries[-1]
    lines: list[str] = []

    title = f"# Resuming work on `{latest.branch}`"
    lines.append(f"{title} ({latest.repo})" if latest.repo else title)
    lines.append("")
    lines.append(f"**Task:** {latest.task}")
    if latest.goal:
        lines.append(f"**Goal:** {latest.goal}")
    if latest.current_state:
        lines.append(f"**Where I left off:** {latest.current_state}")
    saved = f"**Last saved:** {latest.timestamp}"
    lines.append(f"{saved} by {latest.author}" if latest.author else saved)
    if latest.handoff_note:
        lines.append(f"**Handoff note:** {latest.handoff_note}")
    lines.append("")

    # Approaches and decisions accumulate over the whole branch.
    _bullets(lines, "Approaches tried", dedupe(a for e in entries for a in e.approaches))
    _bullets(lines, "Decisions made", dedupe(d for e in entries for d in e.decisions))
    _bullets(lines, "Next steps", latest.next_steps)
    _bullets(lines, "Blockers", latest.blockers)

    files = dedupe([*latest.files_staged, *latest.files_changed])
    shown = [f"`{f}`" for f in files[:MAX_FILES]]
    if len(files) > MAX_FILES:
        shown.append(f"... and {len(files) - MAX_FILES} more")
    _bullets(lines, "Files in progress", shown)
    _bullets(lines, "Recent commits", latest.recent_commits)

    if len(entries) > 1:
        lines.append("## Session history")
        for entry in reversed(entries[-MAX_HISTORY:]):
            lines.append(f"- {entry.timestamp}: {entry.task}")
        lines.append("")

    lines.append("Do not re-decide settled decisions unless asked. Continue from the state above.")
    return "\n".join(lines).rstrip() + "\n"


def format_log_line(entry: ContextEntry, *, with_branch: bool = False) -> str:
    """One-line history entry, optionally prefixed with the branch."""
    stamp = entry.timestamp[:19].replace("T", " ")
    if with_branch:
        return f"[{stamp}] {entry.branch}: {entry.task}"
    return f"[{stamp}] {entry.task}"
