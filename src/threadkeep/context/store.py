"""Per-branch context history stored as JSON under ``.threadkeep/branches/``."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from threadkeep.infrastructure.config import STORE_DIR, config_path

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

BRANCHES_DIR = "branches"

# .gitignore entry that keeps the store local until it is shared.
STORE_IGNORE_ENTRY = f"{STORE_DIR}/"
STORE_IGNORE_HEADER = "# threadkeep context store (local; `threadkeep share` commits it)"


class StoreError(Exception):
    """A branch history file exists but cannot be parsed, so it is not rewritten."""


@dataclass
class ContextEntry:
    """One saved snapshot of working intent on a branch."""

    task: str
    branch: str
    repo: str = ""
    author: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=lambda: datetime.now(tz=timezone.utc).isoformat())
    goal: str | None = None
    approaches: list[str] = field(default_factory=list)
    decisions: list[str] = field(default_factory=list)
    current_state: str = ""
    next_steps: list[str] = field(default_factory=list)
    blockers: list[str] = field(default_factory=list)
    files_changed: list[str] = field(default_factory=list)
    files_staged: list[str] = field(default_factory=list)
    recent_commits: list[str] = field(default_factory=list)
    assignee: str | None = None
    handoff_note: str | None = None
    source: str | None = None  # session source for auto-extracted entries

    @property
    def is_rich(self) -> bool:
        """Structured save with approaches or decisions."""
        return bool(self.approaches or self.decisions)

    @property
    def saved_at(self) -> datetime | None:
        try:
            stamp = datetime.fromisoformat(self.timestamp)
        except (TypeError, ValueError):
            return None
        return stamp if stamp.tzinfo else stamp.replace(tzinfo=timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContextEntry:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def store_dir(root: Path) -> Path:
    return root / STORE_DIR


def branch_file(root: Path, branch: str) -> Path:
    """JSON file for *branch*; ``/`` in branch names becomes ``__``."""
    return store_dir(root) / BRANCHES_DIR / f"{branch.replace('/', '__')}.json"


def is_initialized(root: Path) -> bool:
    return config_path(root).is_file()


def init_store(root: Path) -> Path:
    directory = store_dir(root) / BRANCHES_DIR
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def _parse_history(path: Path) -> list[Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        msg = f"expected a JSON list, got {type(data).__name__}"
        raise TypeError(msg)
    return data


def _read_entries(path: Path) -> list[ContextEntry]:
    try:
        data = _parse_history(path)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, TypeError):
        logger.warning("Could not read context history %s", path)
        return []

    entries: list[ContextEntry] = []
    for item in data:
        if not isinstance(item, dict) or not isinstance(item.get("task"), str):
            continue
        try:
            entries.append(ContextEntry.from_dict(item))
        except TypeError:
            logger.debug("Skipping malformed entry in %s", path)
    return entries


def load_branch(root: Path, branch: str) -> list[ContextEntry]:
    """Entries for *branch*, oldest first."""
    path = branch_file(root, branch)
    if not path.is_file():
        return []
    return _read_entries(path)


def load_all(root: Path) -> list[ContextEntry]:
    """Entries of every branch, newest first."""
    directory = store_dir(root) / BRANCHES_DIR
    if not directory.is_dir():
        return []
    entries: list[ContextEntry] = []
    for path in sorted(directory.glob("*.json")):
        entries.extend(_read_entries(path))
    entries.sort(key=lambda e: str(e.timestamp), reverse=True)
    return entries


def save_entry(root: Path, entry: ContextEntry) -> Path:
    """Append *entry* to its branch history. Returns the history file.

    Existing items are written back as they were read, malformed ones
    included. Raises :class:`StoreError` when the history file cannot be
    parsed; the file is then left untouched.
    """
    path = branch_file(root, entry.branch)
    history: list[Any] = []
    if path.exists():
        try:
            history = _parse_history(path)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, TypeError) as exc:
            msg = f"context history {path} is unreadable ({exc}); fix or move it, then save again"
            raise StoreError(msg) from exc
    else:
        path.parent.mkdir(parents=True, exist_ok=True)

    history.append(entry.to_dict())
    path.write_text(json.dumps(history, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path
