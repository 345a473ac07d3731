"""File watcher: periodic context auto-save while the working tree changes."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

DEFAULT_DEBOUNCE_MS = 1600
DEFAULT_INTERVAL_MINUTES = 5

# Wake up this often even without changes, so a due save is not delayed.
_POLL_TIMEOUT_MS = 5000

_IGNORED_DIRS = frozenset({"node_modules", "__pycache__", "dist", "build", "venv"})


def _filter_relevant(
    changes: Iterable[tuple[object, str]],
    project_root: Path,
) -> list[tuple[object, str]]:
    """Drop temp files and anything under hidden or generated directories."""
    result: list[tuple[object, str]] = []

    for change_type, path_str in changes:
        p = Path(path_str)

        # Editor temp/swap files.
        if p.name.startswith(("~", ".#")) or p.name.endswith((".tmp", ".swp", "~")):
            continue

        try:
            rel = p.relative_to(project_root)
        except ValueError:
            continue

        # .git, .threadkeep (our own writes), .cursor and friends.
        if any(part.startswith(".") or part in _IGNORED_DIRS for part in rel.parts[:-1]):
            continue
        if rel.name.startswith("."):
            continue

        result.append((change_type, path_str))

    return result


def _format_time() -> str:
    """Return current time as ``HH:MM:SS`` string."""
    return datetime.now(tz=timezone.utc).strftime("%H:%M:%S")


@dataclass
class AutoSaveSchedule:
    """Tracks pending changes and decides when the next auto-save is due."""

    interval_seconds: float
    last_save: float
    pending: int = 0

    def record(self, count: int) -> None:
        self.pending += count

    def due(self, now: float) -> bool:
        return self.pending > 0 and now - self.last_save >= self.interval_seconds

    def mark_saved(self, now: float) -> int:
        saved, self.pending, self.last_save = self.pending, 0, now
        return saved


@dataclass(frozen=True)
class WatchEvent:
    """One auto-save performed by the watcher."""

    files_changed: int
    saved_at: str


def watch(
    project_root: Path,
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
    debounce_ms: int = DEFAULT_DEBOUNCE_MS,
    on_save: Callable[[int], None] | None = None,
    callback: Callable[[WatchEvent], None] | None = None,
) -> None:
    """Watch the working tree and call *on_save* every *interval_minutes* of activity.

    *on_save* receives the number of changed files since the previous save.
    Runs until interrupted with Ctrl+C.
    """
    from rich.console import Console
    from watchfiles import watch as fs_watch

    console = Console()
    schedule = AutoSaveSchedule(
        interval_seconds=interval_minutes * 60,
        last_save=time.monotonic(),
    )

    console.print(f"[bold blue]Watching:[/bold blue] {project_root}")
    console.print(
        f"[dim]Auto-save every {interval_minutes} min of activity  |  Press Ctrl+C to stop[/dim]"
    )
    console.print()

    try:
        for batch in fs_watch(
            project_root,
            debounce=debounce_ms,
            rust_timeout=_POLL_TIMEOUT_MS,
            yield_on_timeout=True,
        ):
            schedule.record(len(_filter_relevant(batch, project_root)))

            now = time.monotonic()
            if not schedule.due(now):
                continue

            changed = schedule.mark_saved(now)
            if on_save is not None:
                on_save(changed)

            timestamp = _format_time()
            console.print(
                f"[dim]{timestamp}[/dim] [green]context auto-saved[/green] "
                f"({changed} file{'s' if changed != 1 else ''} changed)"
            )
            if callback is not None:
                callback(WatchEvent(files_changed=changed, saved_at=timestamp))

    except KeyboardInterrupt:
        console.print("\n[yellow]Watch stopped.[/yellow]")
