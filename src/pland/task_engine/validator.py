"""Validate task input and the consistency of a task set.

Two kinds of checks live here:

* input validation (:func:`validate_task_create` and friends) raises
  :class:`~pland.errors.ValidationError` before anything is written;
* consistency checks (:func:`validate_tasks`, :func:`validate_jsonl_file`)
  are advisory and return a list of issues.  Mutations never call them.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Optional, Union

import pydantic

from ..constants import METADATA_KEY
from ..errors import ValidationError
from ..utils import _parse_iso
from .model import MetadataInput, Task, TaskCreate, TaskRecord, TaskUpdate
from .ndjson import iter_lines

CYCLE_PATH_TAIL = 3
ARROW = " → "


@dataclass
class ValidationIssue:
    """An advisory finding about the task set."""

    type: str  # circular | invalid-reference | self-reference | timestamp
    severity: str  # error | warning
    message: str
    task_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class FileIssue:
    """A finding about a store file, located by line or task id."""

    type: str  # format | structure | dependency | data
    severity: str
    message: str
    line: Optional[int] = None
    task_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def _first_error(exc: pydantic.ValidationError) -> tuple[str, str]:
    errors = exc.errors()
    if not errors:
        return "", str(exc)
    first = errors[0]
    path = ".".join(str(part) for part in first.get("loc", ()))
    return path, str(first.get("msg", "invalid value"))


def _validate(model: type[pydantic.BaseModel], data: Any, label: str) -> Any:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        path, msg = _first_error(exc)
        where = f"{path}: " if path else ""
        raise ValidationError(
            f"Invalid {label}: {where}{msg}",
            path or None,
            exc.errors(include_url=False),
        ) from exc


def validate_task_create(data: Any) -> TaskCreate:
    return _validate(TaskCreate, data, "task data")


def validate_task_update(data: Any) -> TaskUpdate:
    return _validate(TaskUpdate, data, "update data")


def validate_metadata(data: Any) -> MetadataInput:
    return _validate(MetadataInput, data, "metadata")


def validate_task_record(data: Any) -> TaskRecord:
    """Check a complete stored task record."""
    return _validate(TaskRecord, data, "task")


# ---------------------------------------------------------------------------
# Graph checks
# ---------------------------------------------------------------------------

def find_cycles(graph: dict[str, list[str]]) -> list[tuple[str, list[str]]]:
    """Depth-first cycle search over ``blocked_by`` edges.

    Every node is tried as a root, but a global visited set means each edge
    is explored at most once.  Self-loops are skipped; they are reported as
    self-references instead.  Returns ``(root, path)`` for every back edge,
    where *path* is the DFS path followed by the repeated node.
    """
    found: list[tuple[str, list[str]]] = []
    visited: set[str] = set()
    on_stack: set[str] = set()

    def dfs(node: str, path: list[str]) -> None:
        if node in on_stack:
            found.append((path[0] if path else node, path + [node]))
            return
        if node in visited:
            return
        visited.add(node)
        on_stack.add(node)
        for dep in graph.get(node, []):
            if dep != node:
                dfs(dep, path + [node])
        on_stack.discard(node)

    for root in graph:
        if root not in visited:
            dfs(root, [])
    return found


def _cycle_message(path: list[str]) -> str:
    *walked, repeated = path
    return "Circular dependency: " + ARROW.join(walked[-CYCLE_PATH_TAIL:] + [repeated])


def validate_tasks(tasks: Iterable[Task]) -> list[ValidationIssue]:
    """Return advisory issues for *tasks*: cycles, bad references, timestamps."""
    task_list = list(tasks)
    graph = {t.id: list(t.blocked_by) for t in task_list}
    issues: list[ValidationIssue] = []

    for root, path in find_cycles(graph):
        issues.append(ValidationIssue("circular", "error", _cycle_message(path), root))

    for task in task_list:
        for dep_id in task.blocked_by:
            if dep_id == task.id:
                issues.append(
                    ValidationIssue("self-reference", "error", f"Task {task.id} cannot block itself", task.id)
                )
            elif dep_id not in graph:
                issues.append(
                    ValidationIssue(
                        "invalid-reference",
                        "warning",
                        f"Task {task.id} references non-existent {dep_id}",
                        task.id,
                    )
                )

    for task in task_list:
        issue = _timestamp_issue(task.created_at, task.updated_at)
        if issue:
            issues.append(ValidationIssue("timestamp", "warning", issue, task.id))

    return issues


def _timestamp_issue(created_at: str, updated_at: str) -> Optional[str]:
    created = _parse_iso(created_at)
    updated = _parse_iso(updated_at)
    if created and updated and created > updated:
        return f"createdAt ({created_at}) is after updatedAt ({updated_at})"
    return None


# ---------------------------------------------------------------------------
# File checks
# ---------------------------------------------------------------------------

def validate_jsonl_file(content: Union[str, bytes]) -> list[FileIssue]:
    """Check the raw content of a store file line by line.

    Unlike loading, nothing is skipped silently: every unparsable or
    malformed line is reported with its line number.
    """
    issues: list[FileIssue] = []
    tasks: dict[str, TaskRecord] = {}

    for line_no, line, decode_error in iter_lines(content):
        if decode_error:
            issues.append(FileIssue("format", "error", f"Invalid UTF-8: {decode_error}", line=line_no))
            continue
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError as exc:
            issues.append(FileIssue("format", "error", f"Invalid JSON: {exc.msg}", line=line_no))
            continue

        if isinstance(parsed, dict) and METADATA_KEY in parsed:
            try:
                validate_metadata(parsed[METADATA_KEY])
            except ValidationError as exc:
                issues.append(FileIssue("structure", "error", exc.message, line=line_no))
            continue

        try:
            record = validate_task_record(parsed)
        except ValidationError as exc:
            task_id = parsed.get("id") if isinstance(parsed, dict) else None
            issues.append(
                FileIssue(
                    "structure",
                    "error",
                    f"{exc.field or 'root'}: {_first_detail(exc)}",
                    line=line_no,
                    task_id=str(task_id) if task_id is not None else None,
                )
            )
            continue
        tasks[record.id] = record

    for task_id, record in tasks.items():
        for dep_id in record.blocked_by:
            if dep_id not in tasks:
                issues.append(
                    FileIssue(
                        "dependency",
                        "error",
                        f"blockedBy references non-existent task: {dep_id}",
                        task_id=task_id,
                    )
                )
            if dep_id == task_id:
                issues.append(FileIssue("dependency", "error", "Task cannot block itself", task_id=task_id))

    graph = {task_id: list(record.blocked_by) for task_id, record in tasks.items()}
    for root, path in find_cycles(graph):
        issues.append(
            FileIssue("dependency", "error", "Circular dependency: " + ARROW.join(path), task_id=root)
        )

    for task_id, record in tasks.items():
        issue = _timestamp_issue(record.created_at, record.updated_at)
        if issue:
            issues.append(FileIssue("data", "warning", issue, task_id=task_id))

    return issues


def _first_detail(exc: ValidationError) -> str:
    details = exc.details or []
    if details and isinstance(details[0], dict):
        return str(details[0].get("msg", exc.message))
    return exc.message
