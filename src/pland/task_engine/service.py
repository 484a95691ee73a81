"""Task service -- CRUD, queries and validation over one task store.

This is the primary entry-point for task manipulation.  A service instance
owns an explicit ``id -> Task`` map loaded from its (plan, platform) store.
Every mutation rebuilds all derived dependency fields and rewrites the whole
file before returning.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, TypeVar, Union

from loguru import logger

from ..constants import DEFAULT_FRAMEWORK
from ..errors import ConflictError, NotFoundError, ValidationError
from .dependencies import rebuild_dependencies
from .ids import next_task_id
from .model import Platform, Priority, StoreMetadata, Task, TaskCreate, TaskUpdate
from .ndjson import SkippedLine
from .repository import TaskRepository
from .validator import (
    FileIssue,
    ValidationIssue,
    validate_jsonl_file,
    validate_task_create,
    validate_task_update,
    validate_tasks,
)


# ---------------------------------------------------------------------------
# Query results
# ---------------------------------------------------------------------------

@dataclass
class ChainDependency:
    id: str
    name: str
    direct: bool


@dataclass
class ChainEntry:
    id: str
    name: str


@dataclass
class DependencyChain:
    """Predecessors (direct first) and direct successors of one task."""

    task_id: str
    dependencies: list[ChainDependency] = field(default_factory=list)
    dependents: list[ChainEntry] = field(default_factory=list)
    full_chain: list[str] = field(default_factory=list)


@dataclass
class ProgressStats:
    total: int = 0
    by_level: dict[str, int] = field(default_factory=lambda: {p.value: 0 for p in Priority})
    by_status: dict[str, int] = field(
        default_factory=lambda: {"done": 0, "pending": 0, "ready": 0, "blocked": 0}
    )
    foundation: int = 0
    blocked: int = 0
    completion_rate: str = "0"


_E = TypeVar("_E", bound=Enum)


def _coerce(enum_cls: type[_E], value: Any, field_name: str) -> _E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(str(member.value) for member in enum_cls)
        raise ValidationError(f"Invalid {field_name}: {value} (expected one of {allowed})", field_name) from None


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class TaskService:
    """Manage the tasks of one plan on one platform.

    Parameters
    ----------
    plan_name:
        Name of the plan; selects ``.pland/<plan_name>/``.
    platform:
        ``frontend`` or ``backend``; selects the store file and id prefix.
    project_dir:
        Directory containing ``.pland/``.
    """

    def __init__(
        self,
        plan_name: str,
        platform: Union[Platform, str],
        project_dir: Path = Path("."),
    ) -> None:
        self.plan_name = plan_name
        self.platform = _coerce(Platform, platform, "platform")
        self.repository = TaskRepository(plan_name, self.platform, project_dir)
        self.metadata: Optional[StoreMetadata] = None
        self.skipped_lines: list[SkippedLine] = []
        self._tasks: dict[str, Task] = {}
        self.load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @property
    def file_path(self) -> Path:
        return self.repository.file_path

    @property
    def tasks(self) -> list[Task]:
        """Snapshot of all tasks in file order."""
        return list(self._tasks.values())

    def load(self) -> None:
        loaded = self.repository.load()
        self._tasks = {}
        for task in loaded.tasks:
            if task.id in self._tasks:
                logger.warning("Duplicate task id {} in {}; keeping the later record", task.id, self.file_path)
            self._tasks[task.id] = task
        self.metadata = loaded.metadata
        self.skipped_lines = loaded.skipped
        if loaded.skipped:
            logger.warning(
                "Skipped {} unreadable line(s) in {}: {}",
                len(loaded.skipped),
                self.file_path,
                ", ".join(str(s.line_number) for s in loaded.skipped),
            )
        rebuild_dependencies(self._tasks)

    def save(self) -> None:
        self.repository.save(self.tasks, self.metadata)

    def _commit(self) -> None:
        rebuild_dependencies(self._tasks)
        self.save()

    def init(self, framework: Optional[str] = None, deps: Optional[list[str]] = None) -> bool:
        """Write store metadata for a new or empty store.

        Returns False (and changes nothing) if the store already has tasks.
        """
        if self.repository.exists() and self._tasks:
            logger.info("Task file already exists: {}", self.file_path)
            return False

        self.metadata = StoreMetadata(
            plan_name=self.plan_name,
            platform=self.platform,
            framework=framework or DEFAULT_FRAMEWORK,
            current_dependencies=list(deps or []),
        )
        self.save()
        logger.info("Initialized {} (plan={}, platform={})", self.file_path, self.plan_name, self.platform.value)
        return True

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(self, data: Union[TaskCreate, Mapping[str, Any]]) -> Task:
        """Validate *data*, add the task, and persist."""
        payload = validate_task_create(data)
        if self.repository.is_duplicate(self._tasks, payload.id):
            raise ConflictError(f"Task ID already exists: {payload.id}", payload.id)

        task = payload.to_task()
        self._tasks[task.id] = task
        self._commit()
        logger.info("Created task {}: {}", task.id, task.name)
        return task

    def get(self, task_id: str) -> Optional[Task]:
        return self.repository.find_by_id(self._tasks, task_id)

    def _require(self, task_id: str) -> Task:
        task = self.get(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    def update(self, task_id: str, patch: Union[TaskUpdate, Mapping[str, Any]]) -> Task:
        """Merge the set fields of *patch* into the task and persist."""
        task = self._require(task_id)
        changes = validate_task_update(patch).changes()
        for key, value in changes.items():
            setattr(task, key, list(value) if isinstance(value, list) else value)
        task.touch()
        self._commit()
        logger.info("Updated task {} ({})", task_id, ", ".join(sorted(changes)) or "no fields")
        return task

    def remove(self, task_id: str) -> list[Task]:
        """Delete a task without touching its dependents.

        Dependents keep their now dangling ``blocked_by`` entry; they are
        logged here and returned, and later show up in :meth:`validate`.
        """
        self._require(task_id)
        dependents = self.repository.find_dependents(self._tasks, task_id)
        if dependents:
            logger.warning(
                "{} task(s) depend on {}: {}",
                len(dependents),
                task_id,
                ", ".join(f"{d.id} ({d.name})" for d in dependents),
            )
        del self._tasks[task_id]
        self._commit()
        logger.info("Removed task {}", task_id)
        return dependents

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_tasks(
        self,
        *,
        level: Optional[Union[Priority, str]] = None,
        done: Optional[bool] = None,
        ready: Optional[bool] = None,
        foundation: bool = False,
    ) -> list[Task]:
        """Filter tasks, highest priority first, then by id."""
        wanted_level = _coerce(Priority, level, "level") if level else None
        out: list[Task] = []
        for t in self._tasks.values():
            if wanted_level is not None and t.level != wanted_level:
                continue
            if done is not None and t.done != done:
                continue
            if ready is not None and t.ready != ready:
                continue
            if foundation and not t.is_foundation:
                continue
            out.append(t)
        out.sort(key=lambda t: (-t.level.weight, t.id))
        return out

    def get_chain(self, task_id: str) -> DependencyChain:
        task = self._require(task_id)
        chain = DependencyChain(task_id=task.id, full_chain=list(task.dependency_chain))

        seen: set[str] = set()
        for dep_id, direct in [(d, True) for d in task.blocked_by] + [
            (d, False) for d in task.blocked_by_transitive
        ]:
            dep = self._tasks.get(dep_id)
            if dep is None or dep_id in seen:
                continue
            seen.add(dep_id)
            chain.dependencies.append(ChainDependency(dep.id, dep.name, direct))

        for succ_id in task.blocks:
            succ = self._tasks.get(succ_id)
            if succ is not None:
                chain.dependents.append(ChainEntry(succ.id, succ.name))
        return chain

    def get_progress(self) -> ProgressStats:
        stats = ProgressStats(total=len(self._tasks))
        for task in self._tasks.values():
            stats.by_level[task.level.value] += 1
            if task.done:
                stats.by_status["done"] += 1
            elif task.ready:
                stats.by_status["ready"] += 1
            else:
                stats.by_status["pending"] += 1

            if task.is_foundation:
                stats.foundation += 1
            else:
                stats.blocked += 1

        stats.by_status["blocked"] = stats.blocked
        if stats.total:
            stats.completion_rate = f"{stats.by_status['done'] / stats.total * 100:.1f}"
        return stats

    def get_next_id(self, platform: Optional[Union[Platform, str]] = None) -> str:
        return next_task_id(platform or self.platform, self._tasks.keys())

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> list[ValidationIssue]:
        """Advisory consistency check of the in-memory task set."""
        return validate_tasks(self._tasks.values())

    def validate_file(self) -> list[FileIssue]:
        """Line-level check of the backing file as it is on disk."""
        if not self.repository.exists():
            raise NotFoundError("Task file", str(self.file_path))
        return validate_jsonl_file(self.file_path.read_bytes())
