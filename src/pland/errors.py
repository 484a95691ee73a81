"""Error hierarchy raised by the task engine.

Every error carries a stable ``code`` so callers (the CLI in particular) can
report failures as ``CODE: message`` without inspecting the class.
"""

from __future__ import annotations

from typing import Any, Optional


class TaskManagerError(Exception):
    """Base class for all task manager errors."""

    code = "TASK_MANAGER_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(TaskManagerError):
    """Input data does not match the task or metadata schema."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None, details: Any = None) -> None:
        super().__init__(message)
        self.field = field
        self.details = details


class NotFoundError(TaskManagerError):
    """An operation referenced an unknown resource."""

    code = "NOT_FOUND"

    def __init__(self, resource: str, id: str) -> None:
        super().__init__(f"{resource} not found: {id}")
        self.resource = resource
        self.id = id


class ConflictError(TaskManagerError):
    """A resource with the same identity already exists."""

    code = "CONFLICT"

    def __init__(self, message: str, conflicting_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.conflicting_id = conflicting_id


class DependencyError(TaskManagerError):
    """Hard dependency failure.

    Mutations never raise this; cycles and dangling references are reported
    by :func:`pland.task_engine.validator.validate_tasks` instead.
    """

    code = "DEPENDENCY_ERROR"

    def __init__(self, message: str, chain: Optional[list[str]] = None) -> None:
        super().__init__(message)
        self.chain = list(chain or [])
