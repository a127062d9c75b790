"""
Configuration loader — reads hostplane.yml into a HostConfig.

Reads YAML, validates against the Pydantic schema, and returns a
typed config.  A host without any config file runs on the built-in
defaults, which describe a stock Arch-family layout.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from hostplane.core.models.host import HostConfig

logger = logging.getLogger(__name__)

CONFIG_FILE = "hostplane.yml"
ENV_CONFIG = "HOSTPLANE_CONFIG"
SYSTEM_CONFIG = Path("/etc") / CONFIG_FILE


class ConfigError(Exception):
    """Raised when host configuration is invalid or unreadable."""


def find_config_file() -> Path | None:
    """Locate the config file.

    Search order:
        1. ``$HOSTPLANE_CONFIG``
        2. ``$XDG_CONFIG_HOME/hostplane/hostplane.yml`` (or ``~/.config/...``)
        3. ``/etc/hostplane.yml``

    Returns:
        Path to the first existing candidate, or None.
    """
    env_path = os.environ.get(ENV_CONFIG)
    if env_path:
        return Path(env_path)

    xdg = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    candidates = [Path(xdg) / "hostplane" / CONFIG_FILE, SYSTEM_CONFIG]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def load_host_config(path: Path | None = None) -> HostConfig:
    """Load and validate host configuration.

    Args:
        path: Explicit path to hostplane.yml. If None, searches the
            standard locations and falls back to defaults.

    Returns:
        Validated HostConfig.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            logger.debug("No %s found — using built-in defaults", CONFIG_FILE)
            return HostConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading host config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Allow everything to sit under a top-level "host" key
    host_data = data.get("host", data)

    try:
        config = HostConfig.model_validate(host_data)
    except Exception as e:
        raise ConfigError(f"Invalid host configuration: {e}") from e

    logger.info("Loaded host config from %s", path)
    return config
