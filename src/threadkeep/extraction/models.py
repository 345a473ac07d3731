"""Data model shared by the session extractors."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from threadkeep.extraction.miner import STATE_MAX_CHARS

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable


@dataclass(frozen=True)
class ExtractedContext:
    """Normalized result of one extraction attempt."""

    task: str
    approaches: tuple[str, ...] = ()
    decisions: tuple[str, ...] = ()
    current_state: str = ""
    next_steps: tuple[str, ...] = ()
    blockers: tuple[str, ...] = ()
    source: str = ""

    @property
    def found(self) -> bool:
        return bool(self.task.strip())


def make_context(
    task: str,
    *,
    source: str,
    approaches: Iterable[str] = (),
    decisions: Iterable[str] = (),
    current_state: str = "",
    next_steps: Iterable[str] = (),
    blockers: Iterable[str] = (),
) -> ExtractedContext:
    """Build an :class:`ExtractedContext`, coercing list fields to tuples."""
    return ExtractedContext(
        task=task.strip(),
        approaches=tuple(approaches),
        decisions=tuple(decisions),
        current_state=current_state.strip()[:STATE_MAX_CHARS],
        next_steps=tuple(next_steps),
        blockers=tuple(blockers),
        source=source,
    )


class ArtifactKind(enum.Enum):
    """File families a session source may hold."""

    STRUCTURED_LOG = "structured-log"  # line-delimited JSON
    DOCUMENT = "document"  # arbitrary JSON shapes
    MARKDOWN = "markdown"  # named markdown artifacts, rule files
    PLAIN_LOG = "plain-log"  # role-prefixed text lines


@dataclass(frozen=True)
class SessionSource:
    """One external tool's on-disk session storage convention.

    ``roots`` are path templates: ``~`` expands to the user's home directory
    and ``{repo}`` to the repository root. Order matters: the extractor
    visits them first to last.
    """

    name: str
    roots: tuple[str, ...]
    kinds: tuple[ArtifactKind, ...]
    attempt: Callable[[Path], ExtractedContext | None] = field(compare=False)

    def candidate_roots(self, repo_path: Path) -> list[Path]:
        return resolve_roots(self.roots, repo_path)

    def is_available(self, repo_path: Path) -> bool:
        return any(root.exists() for root in self.candidate_roots(repo_path))


def resolve_roots(templates: Iterable[str], repo_path: Path) -> list[Path]:
    """Expand root templates for *repo_path*."""
    home = Path.home()
    roots: list[Path] = []
    for template in templates:
        if template.startswith("~/"):
            roots.append(home / template[2:])
        elif template.startswith("{repo}/"):
            roots.append(repo_path / template[len("{repo}/") :])
        else:
            roots.append(Path(template))
    return roots
