"""Vault configuration (`.vaultcanvas/config.yml`)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

STATE_DIR_NAME = ".vaultcanvas"
CONFIG_FILE_NAME = "config.yml"


@dataclass
class VaultConfig:
    """Limits and locations used when building views."""

    preview_limit: int = 5  # recent notes listed on a folder node
    folder_limit: int = 500  # files shown directly in a folder view
    search_limit: int = 200
    tag_limit: int = 500
    max_scan_files: int = 200_000  # per-subfolder safety cap for summaries
    state_dir: str = STATE_DIR_NAME  # relative to the vault root

    def state_path(self, vault_path: Path) -> Path:
        return vault_path / self.state_dir


def get_config_path(vault_path: Path) -> Path:
    return vault_path / STATE_DIR_NAME / CONFIG_FILE_NAME


def load_config(vault_path: Path) -> VaultConfig:
    """Load config for a vault, falling back to defaults when no file exists.

    Raises:
        ConfigError: the file exists but is not a mapping or has wrong types
    """
    path = get_config_path(vault_path)
    if not path.is_file():
        return VaultConfig()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(raw).__name__}")

    known = {f.name: f for f in fields(VaultConfig)}
    values = {}
    for key, value in raw.items():
        if key not in known:
            logger.warning("Ignoring unknown config key %r in %s", key, path)
            continue
        expected = int if known[key].type in ("int", int) else str
        # bool is an int subclass; reject it for numeric limits
        if not isinstance(value, expected) or isinstance(value, bool):
            raise ConfigError(f"{path}: {key} must be {expected.__name__}, got {value!r}")
        if expected is int and value < 1:
            raise ConfigError(f"{path}: {key} must be positive, got {value}")
        values[key] = value

    return VaultConfig(**values)
