from __future__ import annotations

import pytest

from pland.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    TaskManagerError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (ValidationError("bad", "level"), "VALIDATION_ERROR"),
        (NotFoundError("Task", "fe-0001"), "NOT_FOUND"),
        (ConflictError("dup", "fe-0001"), "CONFLICT"),
        (DependencyError("cycle", ["a", "b", "a"]), "DEPENDENCY_ERROR"),
    ],
)
def test_codes(error: TaskManagerError, code: str) -> None:
    assert isinstance(error, TaskManagerError)
    assert error.code == code


def test_not_found_message() -> None:
    err = NotFoundError("Task", "fe-0042")
    assert str(err) == "Task not found: fe-0042"
    assert (err.resource, err.id) == ("Task", "fe-0042")


def test_dependency_error_copies_chain() -> None:
    chain = ["a", "b"]
    err = DependencyError("cycle", chain)
    chain.append("c")
    assert err.chain == ["a", "b"]
    assert DependencyError("cycle").chain == []
