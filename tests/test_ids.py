"""Tests for task id helpers (task_engine/ids.py)."""

from __future__ import annotations

import pytest

from pland.errors import ValidationError
from pland.task_engine.ids import (
    format_task_id,
    next_task_id,
    parse_task_id,
    prefix_for_platform,
    validate_task_id,
)
from pland.task_engine.model import Platform


def test_prefixes() -> None:
    assert prefix_for_platform("frontend") == "fe"
    assert prefix_for_platform(Platform.BACKEND) == "be"
    with pytest.raises(ValidationError):
        prefix_for_platform("mobile")


def test_format_and_parse() -> None:
    assert format_task_id("frontend", 7) == "fe-0007"
    assert format_task_id("backend", 12345) == "be-12345"
    assert parse_task_id("be-0042") == (Platform.BACKEND, 42)
    assert parse_task_id("task-1") is None


def test_next_id_on_empty_store() -> None:
    assert next_task_id("frontend", []) == "fe-0001"


def test_next_id_uses_highest_suffix_and_ignores_other_platform() -> None:
    ids = ["fe-0001", "fe-0009", "be-0050", "fe-0003"]
    assert next_task_id("frontend", ids) == "fe-0010"
    assert next_task_id("backend", ids) == "be-0051"


def test_next_id_counts_unparsable_prefixed_ids_as_zero() -> None:
    assert next_task_id("frontend", ["fe-custom"]) == "fe-0001"


def test_validate_task_id() -> None:
    validate_task_id("fe-0001")
    with pytest.raises(ValidationError):
        validate_task_id("fe-1")
