"""Task engine: model, NDJSON store, dependency engine, validator and service."""

from .model import Effort, Platform, Priority, StoreMetadata, Task, TaskCreate, TaskUpdate
from .repository import TaskRepository
from .service import DependencyChain, ProgressStats, TaskService

__all__ = [
    "DependencyChain",
    "Effort",
    "Platform",
    "Priority",
    "ProgressStats",
    "StoreMetadata",
    "Task",
    "TaskCreate",
    "TaskRepository",
    "TaskService",
    "TaskUpdate",
]
