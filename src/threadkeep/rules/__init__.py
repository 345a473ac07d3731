"""Rule-file synchronization: idempotent marker sections, MCP config merge, ignore list."""

from threadkeep.rules.engine import (
    RemoveResult,
    RuleStatus,
    SyncResult,
    TargetError,
    list_rules,
    remove_rules,
    write_rules,
)
from threadkeep.rules.ignore_list import update_ignore_list
from threadkeep.rules.injector import InjectResult, clear_context, inject_context
from threadkeep.rules.registry import RULE_TARGETS, TARGET_IDS, RuleTarget, get_target
from threadkeep.rules.sections import (
    CONTEXT_MARKERS,
    INSTRUCTION_MARKERS,
    Markers,
    MergeMode,
    SectionAction,
    WrittenFile,
    remove_section,
    strip_section,
    upsert_section,
    write_dedicated,
)
from threadkeep.rules.server_config import (
    has_server_config,
    merge_server_config,
    remove_server_config,
)

__all__ = [
    "CONTEXT_MARKERS",
    "INSTRUCTION_MARKERS",
    "RULE_TARGETS",
    "TARGET_IDS",
    "InjectResult",
    "Markers",
    "MergeMode",
    "RemoveResult",
    "RuleStatus",
    "RuleTarget",
    "SectionAction",
    "SyncResult",
    "TargetError",
    "WrittenFile",
    "clear_context",
    "get_target",
    "has_server_config",
    "inject_context",
    "list_rules",
    "merge_server_config",
    "remove_rules",
    "remove_section",
    "remove_server_config",
    "strip_section",
    "update_ignore_list",
    "upsert_section",
    "write_dedicated",
    "write_rules",
]
