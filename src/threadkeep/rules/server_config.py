"""Merge our MCP server entry into tools' JSON configuration files.

Only the ``mcpServers`` table is merged key-by-key; every other top-level
key and every sibling server entry is preserved.
"""

from __future__ import annotations

import json
import logging
import shutil
from typing import TYPE_CHECKING, Any

from threadkeep.rules.sections import SectionAction

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

SERVERS_KEY = "mcpServers"
SERVER_NAME = "threadkeep"
SERVE_ARGS = ("mcp-serve",)


def server_command() -> str:
    """Absolute path of the ``threadkeep`` executable when on ``PATH``."""
    return shutil.which("threadkeep") or "threadkeep"


def server_fragment(name: str = SERVER_NAME, command: str | None = None) -> dict[str, Any]:
    return {
        SERVERS_KEY: {
            name: {
                "command": command or server_command(),
                "args": list(SERVE_ARGS),
            }
        }
    }


def _dump(path: Path, data: dict[str, Any]) -> None:
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def load_document(path: Path) -> dict[str, Any] | None:
    """Parsed JSON object at *path*; ``None`` when absent, malformed or not an object."""
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("Malformed JSON in %s", path)
        return None
    if not isinstance(data, dict):
        logger.warning("Expected a JSON object in %s", path)
        return None
    return data


def merge_server_config(path: Path, fragment: dict[str, Any]) -> SectionAction:
    """Merge *fragment* into the document at *path*.

    A malformed existing document is treated as empty and rewritten.
    """
    existed = path.exists()
    existing = load_document(path) or {}

    merged = {**existing, **{k: v for k, v in fragment.items() if k != SERVERS_KEY}}
    servers = existing.get(SERVERS_KEY)
    merged[SERVERS_KEY] = {
        **(servers if isinstance(servers, dict) else {}),
        **fragment.get(SERVERS_KEY, {}),
    }

    path.parent.mkdir(parents=True, exist_ok=True)
    _dump(path, merged)
    return SectionAction.UPDATED if existed else SectionAction.CREATED


def has_server_config(path: Path, name: str = SERVER_NAME) -> bool:
    data = load_document(path)
    if data is None:
        return False
    servers = data.get(SERVERS_KEY)
    return isinstance(servers, dict) and name in servers


def remove_server_config(path: Path, name: str = SERVER_NAME) -> bool:
    """Drop our entry. A malformed document is left untouched.

    Returns ``True`` when an entry was removed.
    """
    data = load_document(path)
    if data is None:
        return False
    servers = data.get(SERVERS_KEY)
    if not isinstance(servers, dict) or name not in servers:
        return False

    del servers[name]
    if not servers:
        del data[SERVERS_KEY]
    if data:
        _dump(path, data)
    else:
        path.unlink()
    return True
