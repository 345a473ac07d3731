"""Registry of rule targets: where each assistant reads project instructions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from threadkeep.rules import templates
from threadkeep.rules.sections import INSTRUCTION_MARKERS, Markers, MergeMode
from threadkeep.rules.server_config import server_fragment

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(frozen=True)
class RuleTarget:
    """One assistant's rule file and, optionally, its MCP configuration file."""

    id: str
    name: str
    file_path: str
    merge_mode: MergeMode
    is_shared: bool
    render: Callable[[], str]
    instruction_markers: Markers = INSTRUCTION_MARKERS
    config_path: str | None = None

    def render_config(self) -> dict[str, Any] | None:
        if self.config_path is None:
            return None
        return server_fragment()


APPEND = MergeMode.APPEND_WITHIN_MARKERS
DEDICATED = MergeMode.DEDICATED_FILE

RULE_TARGETS: tuple[RuleTarget, ...] = (
    RuleTarget(
        id="claude-code",
        name="Claude Code",
        file_path="CLAUDE.md",
        merge_mode=APPEND,
        is_shared=True,
        render=templates.claude_code_rules,
        config_path=".claude/settings.local.json",
    ),
    RuleTarget(
        id="cursor",
        name="Cursor",
        file_path=".cursor/rules/threadkeep.mdc",
        merge_mode=DEDICATED,
        is_shared=False,
        render=templates.cursor_rules,
        config_path=".cursor/mcp.json",
    ),
    RuleTarget(
        id="antigravity",
        name="Antigravity/Gemini",
        file_path="GEMINI.md",
        merge_mode=APPEND,
        is_shared=True,
        render=templates.antigravity_rules,
    ),
    RuleTarget(
        id="antigravity-dir",
        name="Antigravity (.gemini)",
        file_path=".gemini/threadkeep.md",
        merge_mode=DEDICATED,
        is_shared=False,
        render=templates.antigravity_dir_rules,
    ),
    RuleTarget(
        id="opencode",
        name="OpenCode",
        file_path="AGENTS.md",
        merge_mode=APPEND,
        is_shared=True,
        render=templates.opencode_rules,
    ),
    RuleTarget(
        id="trae",
        name="Trae",
        file_path=".trae/rules/threadkeep.md",
        merge_mode=DEDICATED,
        is_shared=False,
        render=templates.trae_rules,
    ),
    RuleTarget(
        id="warp",
        name="Warp",
        file_path=".warp/threadkeep.md",
        merge_mode=DEDICATED,
        is_shared=False,
        render=templates.warp_rules,
    ),
)

TARGET_IDS: tuple[str, ...] = tuple(t.id for t in RULE_TARGETS)


def get_target(target_id: str) -> RuleTarget:
    """Look up a target by id. Raises ``KeyError`` if unknown."""
    for target in RULE_TARGETS:
        if target.id == target_id:
            return target
    raise KeyError(target_id)


def select_targets(target_ids: list[str] | tuple[str, ...] | None) -> list[RuleTarget]:
    """Targets for *target_ids* in registry order; ``None`` or empty selects all."""
    if not target_ids:
        return list(RULE_TARGETS)
    unknown = sorted(set(target_ids) - set(TARGET_IDS))
    if unknown:
        raise KeyError(", ".join(unknown))
    return [t for t in RULE_TARGETS if t.id in target_ids]
