"""Infrastructure domain: git access, hooks, configuration, file watching, LLM client.

``threadkeep.infrastructure.watcher`` and ``threadkeep.infrastructure.llm`` are
not re-exported; the commands that need them import them directly.
"""

from threadkeep.infrastructure.config import (
    Config,
    ConfigError,
    load_config,
    save_config,
    set_config_value,
)
from threadkeep.infrastructure.git import GitError, GitSnapshot, find_repo_root, read_snapshot
from threadkeep.infrastructure.hooks import install_hooks, remove_hooks

__all__ = [
    "Config",
    "ConfigError",
    "GitError",
    "GitSnapshot",
    "find_repo_root",
    "install_hooks",
    "load_config",
    "read_snapshot",
    "remove_hooks",
    "save_config",
    "set_config_value",
]
