"""Configuration management for git-history-editor."""

import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .timestamps import DATE_FORMAT

logger = logging.getLogger(__name__)

ENV_PREFIX = "GIT_HISTORY_EDITOR_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class Config:
    """Settings shared by every run. CLI flags override them."""

    log_level: str = "WARNING"
    create_backup: bool = True
    include_tags: bool = False
    allow_duplicate_timestamps: bool = False
    spread: Literal["uniform", "random"] = "uniform"
    date_format: str = DATE_FORMAT


_BOOL_FIELDS = ("create_backup", "include_tags", "allow_duplicate_timestamps")
_STR_FIELDS = ("log_level", "spread", "date_format")


def config_paths() -> list[Path]:
    """Config files, highest priority first."""
    return [
        Path("./git-history-editor.json"),
        Path.home() / ".config" / "git-history-editor" / "config.json",
    ]


def load_config() -> Config:
    """
    Load configuration from multiple sources (in priority order):
    1. Environment variables (highest priority)
    2. Local config file (./git-history-editor.json)
    3. User config file (~/.config/git-history-editor/config.json)
    4. Default values (lowest priority)
    """
    config = Config()

    for config_path in reversed(config_paths()):  # Lower priority first
        if config_path.exists():
            try:
                with open(config_path) as f:
                    data = json.load(f)
                _apply_config_dict(config, data)
            except json.JSONDecodeError as e:
                logger.warning(f"Failed to parse config file {config_path}: {e}")
            except IOError as e:
                logger.warning(f"Failed to read config file {config_path}: {e}")

    _apply_env_vars(config)
    _check(config)
    return config


def _parse_bool(value: object) -> bool | None:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    return None


def _apply_config_dict(config: Config, data: dict) -> None:
    """Apply configuration from a dictionary."""
    if not isinstance(data, dict):
        logger.warning("Ignoring config that is not a JSON object")
        return
    for name in _STR_FIELDS:
        if name in data and data[name] is not None:
            setattr(config, name, str(data[name]))
    for name in _BOOL_FIELDS:
        if name in data:
            value = _parse_bool(data[name])
            if value is None:
                logger.warning(f"Ignoring invalid boolean for {name}: {data[name]!r}")
            else:
                setattr(config, name, value)


def _apply_env_vars(config: Config) -> None:
    """Apply GIT_HISTORY_EDITOR_* environment variables to config."""
    for name in _STR_FIELDS:
        if value := os.getenv(ENV_PREFIX + name.upper()):
            setattr(config, name, value)
    for name in _BOOL_FIELDS:
        if raw := os.getenv(ENV_PREFIX + name.upper()):
            value = _parse_bool(raw)
            if value is None:
                logger.warning(f"Ignoring invalid boolean in {ENV_PREFIX}{name.upper()}: {raw!r}")
            else:
                setattr(config, name, value)


def _check(config: Config) -> None:
    config.log_level = config.log_level.upper()
    if config.spread not in ("uniform", "random"):
        logger.warning(f"Unknown spread {config.spread!r}, using 'uniform'")
        config.spread = "uniform"


def create_default_config_file(path: Path | None = None) -> Path:
    """Create a default configuration file."""
    if path is None:
        path = config_paths()[-1]

    path.parent.mkdir(parents=True, exist_ok=True)

    default_config = {
        "log_level": "WARNING",
        "create_backup": True,
        "include_tags": False,
        "allow_duplicate_timestamps": False,
        "spread": "uniform",
        "date_format": DATE_FORMAT,
    }

    with open(path, "w") as f:
        json.dump(default_config, f, indent=2)

    return path


# Thread-safe global config instance
_config: Config | None = None
_config_lock = threading.Lock()


def get_config() -> Config:
    """Get the global configuration instance (thread-safe)."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from sources (thread-safe)."""
    global _config
    with _config_lock:
        _config = load_config()
        return _config
