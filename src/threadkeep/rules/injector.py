"""Push the current branch context into tool-local rule files.

Tools load their rule files at session start, so a context span there acts
as an automatic resume. Shared files (``CLAUDE.md``, ``AGENTS.md``, ...)
are committed to version control and never receive context.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from threadkeep.rules.engine import TargetError
from threadkeep.rules.registry import RULE_TARGETS, RuleTarget
from threadkeep.rules.sections import (
    CONTEXT_MARKERS,
    INSTRUCTION_MARKERS,
    remove_section,
    strip_markers,
    upsert_section,
    wrap,
)

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

CONTEXT_HEADING = "## Current threadkeep context (auto-updated, do not edit)"


@dataclass
class InjectResult:
    touched: list[str] = field(default_factory=list)
    errors: list[TargetError] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.touched)


def context_targets(repo_root: Path) -> list[RuleTarget]:
    """Non-shared targets whose rule file already exists."""
    return [t for t in RULE_TARGETS if not t.is_shared and (repo_root / t.file_path).is_file()]


def render_context_block(document: str) -> str:
    body = strip_markers(document, CONTEXT_MARKERS, INSTRUCTION_MARKERS).strip()
    return wrap(f"{CONTEXT_HEADING}\n\n{body}", CONTEXT_MARKERS)


def inject_context(repo_root: Path, document: str) -> InjectResult:
    """Upsert the context span (rendered from *document*) into each local rule file."""
    block = render_context_block(document)
    result = InjectResult()
    for target in context_targets(repo_root):
        try:
            upsert_section(repo_root / target.file_path, block, CONTEXT_MARKERS)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not inject context into %s: %s", target.file_path, exc)
            result.errors.append(TargetError(target.id, target.file_path, str(exc)))
            continue
        result.touched.append(target.file_path)
    return result


def clear_context(repo_root: Path) -> InjectResult:
    """Remove only the context span from each local rule file."""
    result = InjectResult()
    for target in context_targets(repo_root):
        try:
            removed = remove_section(repo_root / target.file_path, CONTEXT_MARKERS)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not clear context from %s: %s", target.file_path, exc)
            result.errors.append(TargetError(target.id, target.file_path, str(exc)))
            continue
        if removed:
            result.touched.append(target.file_path)
    return result
