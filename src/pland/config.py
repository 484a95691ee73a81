"""Load optional task manager configuration from `.pland/config.yaml`."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .constants import CONFIG_FILE, STATE_DIR_NAME

VALID_PLATFORMS = {"frontend", "backend"}
VALID_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


def config_path(project_dir: Path) -> Path:
    return project_dir / STATE_DIR_NAME / CONFIG_FILE


def load_config(project_dir: Path) -> tuple[dict[str, Any], str | None]:
    """Load the optional config file.

    Args:
        project_dir: Directory that holds the `.pland/` state directory.

    Returns:
        A tuple of `(config, error_message)`. If the file is missing, returns `({}, None)`.
    """
    path = config_path(project_dir.resolve())
    if not path.exists():
        return {}, None
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except OSError as exc:
        return {}, f"{path.name}: {exc.__class__.__name__}: {exc}"
    except yaml.YAMLError as exc:
        return {}, f"{path.name}: YAMLError: {exc}"
    if data is None:
        return {}, None
    if not isinstance(data, dict):
        return {}, f"{path.name}: expected mapping, got {type(data).__name__}"
    return data, None


def get_platform_config(config: dict[str, Any]) -> str | None:
    """Extract the default platform, or None if unset or invalid."""
    raw = config.get("platform")
    if isinstance(raw, str) and raw in VALID_PLATFORMS:
        return raw
    return None


def get_framework_config(config: dict[str, Any]) -> str | None:
    raw = config.get("framework")
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return None


def get_log_level_config(config: dict[str, Any]) -> str | None:
    """Extract the log level, normalised to upper case."""
    raw = config.get("log_level")
    if isinstance(raw, str) and raw.upper() in VALID_LOG_LEVELS:
        return raw.upper()
    return None
