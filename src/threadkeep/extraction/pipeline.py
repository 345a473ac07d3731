"""Extraction pipeline: first usable session context wins.

Sources are tried in a fixed priority order. A source whose storage roots
are all absent is skipped without being opened; a source that raises is
logged and skipped. Results are never merged across sources.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from threadkeep.extraction import antigravity, claude_code, cursor, opencode, trae, warp
from threadkeep.extraction.models import ArtifactKind, SessionSource

if TYPE_CHECKING:
    from pathlib import Path

    from threadkeep.extraction.models import ExtractedContext

logger = logging.getLogger(__name__)

SESSION_SOURCES: tuple[SessionSource, ...] = (
    SessionSource(
        name="claude-code",
        roots=claude_code.ROOTS,
        kinds=(ArtifactKind.STRUCTURED_LOG, ArtifactKind.MARKDOWN),
        attempt=claude_code.attempt,
    ),
    SessionSource(
        name="antigravity",
        roots=antigravity.ROOTS,
        kinds=(ArtifactKind.MARKDOWN, ArtifactKind.DOCUMENT),
        attempt=antigravity.attempt,
    ),
    SessionSource(
        name="cursor",
        # Only the home directory gates Cursor; repo rules are read after it.
        roots=cursor.ROOTS[:1],
        kinds=(ArtifactKind.MARKDOWN, ArtifactKind.DOCUMENT),
        attempt=cursor.attempt,
    ),
    SessionSource(
        name="opencode",
        roots=opencode.ROOTS,
        kinds=(ArtifactKind.STRUCTURED_LOG, ArtifactKind.DOCUMENT),
        attempt=opencode.attempt,
    ),
    SessionSource(
        name="trae",
        roots=trae.ROOTS,
        kinds=(ArtifactKind.STRUCTURED_LOG, ArtifactKind.DOCUMENT, ArtifactKind.MARKDOWN),
        attempt=trae.attempt,
    ),
    SessionSource(
        name="warp",
        roots=warp.ROOTS,
        kinds=(
            ArtifactKind.STRUCTURED_LOG,
            ArtifactKind.DOCUMENT,
            ArtifactKind.PLAIN_LOG,
        ),
        attempt=warp.attempt,
    ),
)


def get_source(name: str) -> SessionSource:
    """Look up a session source by name. Raises ``KeyError`` if unknown."""
    for source in SESSION_SOURCES:
        if source.name == name:
            return source
    raise KeyError(name)


def available_sources(repo_path: Path) -> list[str]:
    """Names of the sources with at least one storage root present."""
    return [s.name for s in SESSION_SOURCES if s.is_available(repo_path)]


def extract_from_sessions(
    repo_path: Path,
    sources: tuple[SessionSource, ...] = SESSION_SOURCES,
) -> ExtractedContext | None:
    """Return the first context with a non-blank task, or ``None``.

    Never raises: any failure inside a source is treated as "nothing here".
    """
    for source in sources:
        if not source.is_available(repo_path):
            logger.debug("Session source %s unavailable", source.name)
            continue
        try:
            result = source.attempt(repo_path)
        except Exception:  # graceful degradation
            logger.debug("Session source %s failed", source.name, exc_info=True)
            continue
        if result is not None and result.found:
            logger.debug("Context extracted from %s (%s)", source.name, result.source)
            return result
    return None
