"""Generate, remove and inspect rule files across all registered targets.

Failures are per target: an ``OSError`` while writing one target is
recorded as a :class:`TargetError` and the remaining targets still run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from threadkeep.rules.ignore_list import update_ignore_list
from threadkeep.rules.registry import RULE_TARGETS, select_targets
from threadkeep.rules.sections import (
    WrittenFile,
    remove_target,
    target_installed,
    write_target,
)
from threadkeep.rules.server_config import (
    has_server_config,
    merge_server_config,
    remove_server_config,
)

if TYPE_CHECKING:
    from pathlib import Path


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetError:
    target_id: str
    path: str
    message: str


@dataclass
class SyncResult:
    written: list[WrittenFile] = field(default_factory=list)
    errors: list[TargetError] = field(default_factory=list)
    ignored: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class RemoveResult:
    removed: list[str] = field(default_factory=list)
    errors: list[TargetError] = field(default_factory=list)


@dataclass(frozen=True)
class RuleStatus:
    target_id: str
    name: str
    file_path: str
    installed: bool
    has_server_config: bool


def write_rules(
    repo_root: Path,
    target_ids: list[str] | tuple[str, ...] | None = None,
    *,
    include_servers: bool = True,
) -> SyncResult:
    """Write instructions (and MCP config) for the selected targets.

    Raises ``KeyError`` for an unknown target id before touching any file.
    """
    targets = select_targets(target_ids)
    result = SyncResult()
    local_paths: list[str] = []

    for target in targets:
        try:
            result.written.append(write_target(repo_root, target))
        except OSError as exc:
            logger.warning("Could not write %s: %s", target.file_path, exc)
            result.errors.append(TargetError(target.id, target.file_path, str(exc)))
            continue
        if not target.is_shared:
            local_paths.append(target.file_path)

        fragment = target.render_config()
        if not include_servers or fragment is None or target.config_path is None:
            continue
        try:
            action = merge_server_config(repo_root / target.config_path, fragment)
        except OSError as exc:
            logger.warning("Could not write %s: %s", target.config_path, exc)
            result.errors.append(TargetError(target.id, target.config_path, str(exc)))
            continue
        result.written.append(WrittenFile(target.config_path, action, target.id))
        local_paths.append(target.config_path)

    if local_paths:
        try:
            result.ignored = update_ignore_list(repo_root, local_paths)
        except OSError as exc:
            logger.warning("Could not update .gitignore: %s", exc)
            result.errors.append(TargetError("gitignore", ".gitignore", str(exc)))
    return result


def remove_rules(repo_root: Path) -> RemoveResult:
    """Remove our sections, dedicated files and MCP entries from every target."""
    result = RemoveResult()
    for target in RULE_TARGETS:
        try:
            if remove_target(repo_root, target):
                result.removed.append(target.file_path)
        except OSError as exc:
            logger.warning("Could not remove %s: %s", target.file_path, exc)
            result.errors.append(TargetError(target.id, target.file_path, str(exc)))

        if target.config_path is None:
            continue
        try:
            if remove_server_config(repo_root / target.config_path):
                result.removed.append(target.config_path)
        except OSError as exc:
            logger.warning("Could not update %s: %s", target.config_path, exc)
            result.errors.append(TargetError(target.id, target.config_path, str(exc)))
    return result


def list_rules(repo_root: Path) -> list[RuleStatus]:
    """Installation status of every registered target."""
    return [
        RuleStatus(
            target_id=target.id,
            name=target.name,
            file_path=target.file_path,
            installed=target_installed(repo_root, target),
            has_server_config=(
                target.config_path is not None
                and has_server_config(repo_root / target.config_path)
            ),
        )
        for target in RULE_TARGETS
    ]
