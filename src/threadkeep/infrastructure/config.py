"""Project configuration: ``.threadkeep/config.yml``."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

STORE_DIR = ".threadkeep"
CONFIG_FILE = "config.yml"
CONFIG_VERSION = 1


class ConfigError(Exception):
    """Unknown configuration key or a value of the wrong type."""


@dataclass
class Config:
    version: int = CONFIG_VERSION
    repo: str = ""
    created_at: str = ""
    inject_context: bool = True
    auto_save_guard_minutes: int = 5
    watch_interval_minutes: int = 5
    rule_targets: list[str] = field(default_factory=list)
    llm: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if data["llm"] is None:
            del data["llm"]
        return data


# Keys settable through ``threadkeep config set``, with their value types.
SETTABLE_KEYS: dict[str, type] = {
    "inject_context": bool,
    "auto_save_guard_minutes": int,
    "watch_interval_minutes": int,
    "rule_targets": list,
}

_TRUE = frozenset({"true", "yes", "on", "1"})
_FALSE = frozenset({"false", "no", "off", "0"})


def config_path(root: Path) -> Path:
    return root / STORE_DIR / CONFIG_FILE


def new_config(repo: str) -> Config:
    return Config(repo=repo, created_at=datetime.now(tz=timezone.utc).isoformat())


def load_config(root: Path) -> Config:
    """Read the config, falling back to defaults for anything missing or malformed."""
    path = config_path(root)
    if not path.is_file():
        return Config()

    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError):
        logger.warning("Failed to read %s, using defaults", path)
        return Config()

    if not isinstance(data, dict):
        return Config()

    config = Config()
    known = {f.name for f in fields(Config)}
    for key, value in data.items():
        if key not in known:
            logger.debug("Ignoring unknown config key %r", key)
            continue
        default = getattr(config, key)
        if default is not None and not isinstance(value, type(default)):
            logger.warning("Ignoring config key %r: expected %s", key, type(default).__name__)
            continue
        setattr(config, key, value)
    return config


def save_config(root: Path, config: Config) -> Path:
    path = config_path(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False, allow_unicode=True),
        encoding="utf-8",
    )
    return path


def _coerce(key: str, raw: str) -> Any:
    kind = SETTABLE_KEYS[key]
    if kind is bool:
        lowered = raw.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ConfigError(f"{key} expects true/false, got {raw!r}")
    if kind is int:
        try:
            value = int(raw)
        except ValueError:
            raise ConfigError(f"{key} expects an integer, got {raw!r}") from None
        if value < 0:
            raise ConfigError(f"{key} must not be negative")
        return value
    return [item.strip() for item in raw.split(",") if item.strip()]


def set_config_value(config: Config, key: str, raw: str) -> Any:
    """Parse *raw* for *key* and store it on *config*. Returns the parsed value."""
    if key not in SETTABLE_KEYS:
        raise ConfigError(f"Unknown or read-only key: {key}")
    value = _coerce(key, raw)
    setattr(config, key, value)
    return value


def get_config_value(config: Config, key: str) -> Any:
    known = {f.name for f in fields(Config)}
    if key not in known:
        raise ConfigError(f"Unknown key: {key}")
    return getattr(config, key)
