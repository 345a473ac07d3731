"""Context domain: per-branch history, briefing rendering, capture workflow."""

from threadkeep.context.capture import (
    SaveOutcome,
    build_entry,
    capture_auto,
    save_and_sync,
    split_list,
    sync_branch_context,
)
from threadkeep.context.prompt import format_log_line, render_prompt
from threadkeep.context.store import (
    ContextEntry,
    StoreError,
    init_store,
    is_initialized,
    load_all,
    load_branch,
    save_entry,
)

__all__ = [
    "ContextEntry",
    "SaveOutcome",
    "StoreError",
    "build_entry",
    "capture_auto",
    "format_log_line",
    "init_store",
    "is_initialized",
    "load_all",
    "load_branch",
    "render_prompt",
    "save_and_sync",
    "save_entry",
    "split_list",
    "sync_branch_context",
]
