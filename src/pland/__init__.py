"""Provide the public `pland` package exports."""

from __future__ import annotations

from .errors import ConflictError, DependencyError, NotFoundError, TaskManagerError, ValidationError
from .task_engine import TaskRepository, TaskService

__all__ = [
    "ConflictError",
    "DependencyError",
    "NotFoundError",
    "TaskManagerError",
    "TaskRepository",
    "TaskService",
    "ValidationError",
]

__version__ = "0.1.0"
