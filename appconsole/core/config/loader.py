"""
Configuration loader — reads appconsole.yml into a ConsoleConfig.

The file is optional. When no path is given the loader searches
upward from the working directory; finding nothing yields the
defaults. An explicit path that is missing or invalid is an error.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from appconsole.core.models.config import ConsoleConfig

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "appconsole.yml"


class ConfigError(Exception):
    """Raised when console configuration is invalid or missing."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for appconsole.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to appconsole.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path | None = None) -> ConsoleConfig:
    """Load and validate console configuration.

    Args:
        path: Explicit path to appconsole.yml. If None, searches upward
            and falls back to defaults when nothing is found.

    Returns:
        Validated ConsoleConfig model.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            logger.debug("No %s found, using defaults", CONFIG_FILE)
            return ConsoleConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading console config from %s", path)

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

    # The YAML may wrap everything under a "console" key or be flat
    if "console" in data:
        section = data["console"]
        if not isinstance(section, dict):
            raise ConfigError(f"Expected 'console' to be a mapping in {path}")
        data = section

    try:
        config = ConsoleConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid console configuration: {e}") from e

    logger.info("Loaded console config from %s (container=%s)", path, config.container or "-")
    return config


def config_root(config_path: Path | None) -> Path:
    """Directory relative paths in the config resolve against."""
    return config_path.parent.resolve() if config_path else Path.cwd()
