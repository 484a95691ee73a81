"""Task repository: store file location, load/save and lookups."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from ..constants import STATE_DIR_NAME, TASK_FILE_SUFFIX
from . import ndjson
from .model import Platform, StoreMetadata, Task
from .ndjson import SkippedLine


def store_path(project_dir: Path, plan_name: str, platform: Platform) -> Path:
    """``<project_dir>/.pland/<plan_name>/<platform>-tasks.jsonl``."""
    return project_dir / STATE_DIR_NAME / plan_name / f"{platform.value}{TASK_FILE_SUFFIX}"


@dataclass
class LoadedTasks:
    tasks: list[Task] = field(default_factory=list)
    metadata: Optional[StoreMetadata] = None
    skipped: list[SkippedLine] = field(default_factory=list)


class TaskRepository:
    """File I/O and linear lookups for one (plan, platform) store.

    Lookups take the task mapping explicitly; the repository holds no task
    state of its own.
    """

    def __init__(self, plan_name: str, platform: Platform, project_dir: Path = Path(".")) -> None:
        self.plan_name = plan_name
        self.platform = platform
        self.file_path = store_path(project_dir, plan_name, platform)

    # -- I/O ----------------------------------------------------------------

    def load(self) -> LoadedTasks:
        raw = ndjson.load(self.file_path)
        metadata = StoreMetadata.from_dict(raw.metadata) if raw.metadata is not None else None
        return LoadedTasks(
            tasks=[Task.from_dict(record) for record in raw.records],
            metadata=metadata,
            skipped=raw.skipped,
        )

    def save(self, tasks: list[Task], metadata: Optional[StoreMetadata] = None) -> None:
        ndjson.save(
            self.file_path,
            [t.to_dict() for t in tasks],
            metadata.to_dict() if metadata is not None else None,
        )

    def exists(self) -> bool:
        return self.file_path.exists()

    # -- lookups ------------------------------------------------------------

    @staticmethod
    def find_by_id(tasks: Mapping[str, Task], task_id: str) -> Optional[Task]:
        return tasks.get(task_id)

    @staticmethod
    def is_duplicate(tasks: Mapping[str, Task], task_id: str, exclude_id: Optional[str] = None) -> bool:
        return any(t.id == task_id and t.id != exclude_id for t in tasks.values())

    @staticmethod
    def find_dependents(tasks: Mapping[str, Task], task_id: str) -> list[Task]:
        """Tasks that list *task_id* in their ``blocked_by``."""
        return [t for t in tasks.values() if task_id in t.blocked_by]
