from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from loguru import logger

from pland.task_engine.service import TaskService


@pytest.fixture(autouse=True)
def _reset_logger() -> Iterator[None]:
    """Drop sinks added during a test (the CLI reconfigures loguru globally)."""
    yield
    logger.remove()


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Collect loguru messages emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(lambda msg: messages.append(msg.record["message"]), level="DEBUG")
    try:
        yield messages
    finally:
        logger.remove(handler_id)


@pytest.fixture
def service(tmp_path: Path) -> TaskService:
    return TaskService("demo", "frontend", tmp_path)


@pytest.fixture
def task_data():
    """Factory for minimal valid create payloads."""

    def _make(task_id: str, blocked_by: list[str] | None = None, **fields: object) -> dict[str, object]:
        data: dict[str, object] = {
            "id": task_id,
            "name": f"Task {task_id}",
            "level": "medium",
            "component": "Core",
            "blockedBy": list(blocked_by or []),
        }
        data.update(fields)
        return data

    return _make
