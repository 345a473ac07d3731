"""Capture workflow: build a context entry, persist it, sync it into rule files."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from threadkeep.context.prompt import render_prompt
from threadkeep.context.store import ContextEntry, load_branch, save_entry
from threadkeep.extraction.pipeline import extract_from_sessions
from threadkeep.infrastructure import git
from threadkeep.rules.injector import InjectResult, clear_context, inject_context

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from threadkeep.infrastructure.config import Config
    from threadkeep.infrastructure.git import GitSnapshot

logger = logging.getLogger(__name__)

LIST_SEPARATOR = ";;"
NOTHING_FOUND_TASK = "Session (auto-extract found nothing)"


@dataclass(frozen=True)
class SaveOutcome:
    path: Path
    entry: ContextEntry
    injected: InjectResult | None = None


def split_list(raw: str | None, sep: str = LIST_SEPARATOR) -> list[str]:
    """``"a;; b;;"`` -> ``["a", "b"]``."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(sep) if item.strip()]


def build_entry(
    snapshot: GitSnapshot,
    task: str,
    *,
    goal: str | None = None,
    approaches: Iterable[str] = (),
    decisions: Iterable[str] = (),
    current_state: str = "",
    next_steps: Iterable[str] = (),
    blockers: Iterable[str] = (),
    assignee: str | None = None,
    handoff_note: str | None = None,
    source: str | None = None,
) -> ContextEntry:
    return ContextEntry(
        task=task,
        branch=snapshot.branch,
        repo=snapshot.repo,
        author=snapshot.author,
        goal=goal,
        approaches=list(approaches),
        decisions=list(decisions),
        current_state=current_state,
        next_steps=list(next_steps),
        blockers=list(blockers),
        files_changed=list(snapshot.files_changed),
        files_staged=list(snapshot.files_staged),
        recent_commits=list(snapshot.recent_commits),
        assignee=assignee,
        handoff_note=handoff_note,
        source=source,
    )


def recent_rich_save(
    entries: list[ContextEntry],
    guard_minutes: int,
    now: datetime | None = None,
) -> bool:
    """True when the latest entry is a structured save younger than *guard_minutes*."""
    if not entries or guard_minutes <= 0:
        return False
    latest = entries[-1]
    saved_at = latest.saved_at
    if not latest.is_rich or saved_at is None:
        return False
    now = now or datetime.now(tz=timezone.utc)
    return now - saved_at < timedelta(minutes=guard_minutes)


def capture_auto(
    root: Path,
    message: str | None,
    config: Config,
    *,
    now: datetime | None = None,
) -> ContextEntry | None:
    """Entry built from AI session artifacts, or ``None`` when the guard skips it.

    An explicit *message* always wins as the task; with nothing extracted the
    message (or a placeholder) is saved on its own.
    """
    snapshot = git.read_snapshot(root)
    if recent_rich_save(load_branch(root, snapshot.branch), config.auto_save_guard_minutes, now):
        logger.debug("Recent structured save on %s, skipping auto-save", snapshot.branch)
        return None

    extracted = extract_from_sessions(root)
    if extracted is None:
        return build_entry(
            snapshot,
            message or NOTHING_FOUND_TASK,
            current_state=message or "",
        )
    return build_entry(
        snapshot,
        message or extracted.task,
        approaches=extracted.approaches,
        decisions=extracted.decisions,
        current_state=extracted.current_state,
        next_steps=extracted.next_steps,
        blockers=extracted.blockers,
        source=extracted.source,
    )


def sync_branch_context(root: Path, branch: str) -> InjectResult:
    """Inject *branch*'s briefing into rule files, or clear stale context if it has none."""
    entries = load_branch(root, branch)
    if entries:
        return inject_context(root, render_prompt(entries))
    return clear_context(root)


def save_and_sync(root: Path, entry: ContextEntry, config: Config) -> SaveOutcome:
    """Persist *entry*; then refresh rule-file context when enabled.

    A failed refresh is logged and never undoes or fails the save.
    """
    path = save_entry(root, entry)
    if not config.inject_context:
        return SaveOutcome(path=path, entry=entry)
    try:
        injected = sync_branch_context(root, entry.branch)
    except Exception:  # graceful degradation
        logger.warning("Context injection failed for %s", entry.branch, exc_info=True)
        injected = None
    return SaveOutcome(path=path, entry=entry, injected=injected)
