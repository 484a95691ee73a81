"""Shared constants for the task manager."""

from __future__ import annotations

STATE_DIR_NAME = ".pland"
CONFIG_FILE = "config.yaml"
TASK_FILE_SUFFIX = "-tasks.jsonl"

METADATA_KEY = "metadata"
STORE_VERSION = "1.0.0"

PLATFORM_PREFIXES = {
    "frontend": "fe",
    "backend": "be",
}
TASK_ID_WIDTH = 4

PRIORITY_WEIGHTS = {
    "critical": 4,
    "high": 3,
    "medium": 2,
    "low": 1,
}

DEFAULT_PLATFORM = "frontend"
DEFAULT_FRAMEWORK = "unknown"
DEFAULT_LOG_LEVEL = "INFO"
