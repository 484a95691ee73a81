"""Task model for the plan task store.

A :class:`Task` is the in-memory form of one line of a ``*-tasks.jsonl`` file.
Attributes are snake_case; :meth:`Task.to_dict` / :meth:`Task.from_dict` map
them to the camelCase keys used on disk.  The derived fields (``blocks``,
``blocked_by_transitive``) are rebuilt by the dependency engine and never
trusted from the file.

:class:`TaskCreate` and :class:`TaskUpdate` are the typed inputs accepted by
the service.  They are pydantic models so that malformed input is rejected
before anything is written.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..constants import DEFAULT_FRAMEWORK, PRIORITY_WEIGHTS, STORE_VERSION
from ..utils import _now_iso, _parse_iso


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Priority(str, Enum):
    """Task priority level."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def weight(self) -> int:
        return PRIORITY_WEIGHTS[self.value]


class Effort(str, Enum):
    """T-shirt size effort estimate."""

    S = "S"
    M = "M"
    L = "L"
    XL = "XL"


class Platform(str, Enum):
    FRONTEND = "frontend"
    BACKEND = "backend"


def _enum(enum_cls: type[Enum], raw: Any, default: Enum) -> Any:
    if raw is None:
        return default
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(raw))
    except (ValueError, KeyError):
        return default


def _str_list(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [str(item) for item in raw]


# ---------------------------------------------------------------------------
# Task dataclass
# ---------------------------------------------------------------------------

@dataclass
class Task:
    """A single work item in a plan."""

    id: str
    name: str
    level: Priority = Priority.MEDIUM
    component: str = ""
    files: str = ""
    tests_success: list[str] = field(default_factory=list)

    # Dependencies: ``blocked_by`` is user-authoritative, the rest is derived.
    blocked_by: list[str] = field(default_factory=list)
    blocked_by_transitive: list[str] = field(default_factory=list)
    dependency_chain: list[str] = field(default_factory=list)
    blocks: list[str] = field(default_factory=list)

    acceptance_criteria: list[str] = field(default_factory=list)
    estimated_effort: Effort = Effort.M
    implementation_notes: str = ""
    done: bool = False
    ready: bool = True
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase record written to the store."""
        return {
            "id": self.id,
            "name": self.name,
            "level": self.level.value,
            "component": self.component,
            "files": self.files,
            "testsSuccess": list(self.tests_success),
            "blockedBy": list(self.blocked_by),
            "blockedByTransitive": list(self.blocked_by_transitive),
            "dependencyChain": list(self.dependency_chain),
            "blocks": list(self.blocks),
            "acceptanceCriteria": list(self.acceptance_criteria),
            "estimatedEffort": self.estimated_effort.value,
            "implementationNotes": self.implementation_notes,
            "done": self.done,
            "ready": self.ready,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Deserialize a stored record, coercing enums and lists gracefully."""
        now = _now_iso()
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            level=_enum(Priority, data.get("level"), Priority.MEDIUM),
            component=str(data.get("component", "") or ""),
            files=str(data.get("files", "") or ""),
            tests_success=_str_list(data.get("testsSuccess")),
            blocked_by=_str_list(data.get("blockedBy")),
            blocked_by_transitive=_str_list(data.get("blockedByTransitive")),
            dependency_chain=_str_list(data.get("dependencyChain")),
            blocks=_str_list(data.get("blocks")),
            acceptance_criteria=_str_list(data.get("acceptanceCriteria")),
            estimated_effort=_enum(Effort, data.get("estimatedEffort"), Effort.M),
            implementation_notes=str(data.get("implementationNotes", "") or ""),
            done=bool(data.get("done", False)),
            ready=bool(data.get("ready", True)),
            created_at=str(data.get("createdAt") or now),
            updated_at=str(data.get("updatedAt") or now),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def touch(self) -> None:
        """Bump ``updated_at`` to now."""
        self.updated_at = _now_iso()

    @property
    def is_foundation(self) -> bool:
        """True when nothing has to finish before this task can start."""
        return not self.blocked_by


# ---------------------------------------------------------------------------
# Store metadata
# ---------------------------------------------------------------------------

@dataclass
class StoreMetadata:
    """The single ``{"metadata": {...}}`` record at the top of a store file."""

    plan_name: str
    platform: Platform = Platform.FRONTEND
    framework: str = DEFAULT_FRAMEWORK
    current_dependencies: list[str] = field(default_factory=list)
    created_at: str = field(default_factory=_now_iso)
    version: str = STORE_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "planName": self.plan_name,
            "platform": self.platform.value,
            "framework": self.framework,
            "currentDependencies": list(self.current_dependencies),
            "createdAt": self.created_at,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoreMetadata":
        return cls(
            plan_name=str(data.get("planName", "") or "unknown"),
            platform=_enum(Platform, data.get("platform"), Platform.FRONTEND),
            framework=str(data.get("framework", "") or DEFAULT_FRAMEWORK),
            current_dependencies=_str_list(data.get("currentDependencies")),
            created_at=str(data.get("createdAt") or _now_iso()),
            version=str(data.get("version", "") or STORE_VERSION),
        )


# ---------------------------------------------------------------------------
# Typed inputs
# ---------------------------------------------------------------------------

def _check_datetime(value: Optional[str]) -> Optional[str]:
    if value is not None and _parse_iso(value) is None:
        raise ValueError(f"invalid ISO-8601 datetime: {value!r}")
    return value


class _Input(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class TaskCreate(_Input):
    """Fields accepted when creating a task."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    level: Priority
    component: str = Field(min_length=1)
    files: Optional[str] = None
    tests_success: Optional[list[str]] = None
    blocked_by: Optional[list[str]] = None
    acceptance_criteria: Optional[list[str]] = None
    estimated_effort: Optional[Effort] = None
    implementation_notes: Optional[str] = None
    done: Optional[bool] = None
    ready: Optional[bool] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def check_timestamps(cls, value: Optional[str]) -> Optional[str]:
        return _check_datetime(value)

    def to_task(self) -> Task:
        """Assemble a fully defaulted :class:`Task`."""
        now = _now_iso()
        return Task(
            id=self.id,
            name=self.name,
            level=self.level,
            component=self.component,
            files=self.files if self.files is not None else "",
            tests_success=list(self.tests_success or []),
            blocked_by=list(self.blocked_by or []),
            acceptance_criteria=list(self.acceptance_criteria or []),
            estimated_effort=self.estimated_effort or Effort.M,
            implementation_notes=self.implementation_notes if self.implementation_notes is not None else "",
            done=self.done if self.done is not None else False,
            ready=self.ready if self.ready is not None else True,
            created_at=self.created_at or now,
            updated_at=self.updated_at or now,
        )


class TaskUpdate(_Input):
    """A partial update; only fields explicitly set are applied."""

    name: Optional[str] = Field(default=None, min_length=1)
    level: Optional[Priority] = None
    component: Optional[str] = Field(default=None, min_length=1)
    files: Optional[str] = None
    tests_success: Optional[list[str]] = None
    blocked_by: Optional[list[str]] = None
    acceptance_criteria: Optional[list[str]] = None
    estimated_effort: Optional[Effort] = None
    implementation_notes: Optional[str] = None
    done: Optional[bool] = None
    ready: Optional[bool] = None

    def changes(self) -> dict[str, Any]:
        """Return the explicitly set, non-null fields keyed by attribute name."""
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }


class MetadataInput(_Input):
    """Schema for the metadata record."""

    plan_name: str = Field(min_length=1)
    platform: Platform
    framework: str = Field(min_length=1)
    current_dependencies: list[str]
    created_at: str
    version: str = Field(min_length=1)

    @field_validator("created_at")
    @classmethod
    def check_created_at(cls, value: str) -> str:
        return _check_datetime(value)


class TaskRecord(_Input):
    """Schema for a complete task line as stored on disk."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    level: Priority
    component: str = Field(min_length=1)
    files: str
    tests_success: list[str]
    blocked_by: list[str]
    blocked_by_transitive: list[str]
    dependency_chain: list[str]
    blocks: list[str]
    acceptance_criteria: list[str]
    estimated_effort: Effort
    implementation_notes: str
    done: bool
    ready: bool
    created_at: str
    updated_at: str

    @field_validator("created_at", "updated_at")
    @classmethod
    def check_timestamps(cls, value: Optional[str]) -> Optional[str]:
        return _check_datetime(value)
