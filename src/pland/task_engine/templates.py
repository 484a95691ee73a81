"""Task templates for recurring kinds of work.

Template strings contain ``{Placeholder}`` markers which
:func:`apply_template` fills from caller supplied variables.  Unknown
placeholders are left as they are.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from ..errors import NotFoundError
from .model import Effort, Priority


@dataclass(frozen=True)
class TaskTemplate:
    level: Priority
    name: str
    component: str
    files: str
    tests_success: list[str] = field(default_factory=list)
    acceptance_criteria: list[str] = field(default_factory=list)
    estimated_effort: Effort = Effort.M
    implementation_notes: str = ""

    def to_create_data(self) -> dict[str, Any]:
        """Keyword data for :class:`~pland.task_engine.model.TaskCreate` (id not included)."""
        return {
            "name": self.name,
            "level": self.level,
            "component": self.component,
            "files": self.files,
            "tests_success": list(self.tests_success),
            "acceptance_criteria": list(self.acceptance_criteria),
            "estimated_effort": self.estimated_effort,
            "implementation_notes": self.implementation_notes,
        }


TEMPLATES: dict[str, TaskTemplate] = {
    "component": TaskTemplate(
        level=Priority.HIGH,
        name="Create {ComponentName} Component",
        component="{ComponentName}",
        files="src/components/{ComponentName}/{ComponentName}.{ext}",
        tests_success=["Renders correctly", "Handles user interactions", "Accessible with ARIA"],
        acceptance_criteria=[
            "Component renders without errors",
            "All interactions work",
            "WCAG 2.1 AA compliant",
        ],
        estimated_effort=Effort.M,
        implementation_notes="Use atomic design principles",
    ),
    "service": TaskTemplate(
        level=Priority.HIGH,
        name="Create {ServiceName} Service",
        component="{ServiceName}",
        files="src/services/{category}/{ServiceName}.{ext}",
        tests_success=["Unit tests pass", "Error handling works", "Edge cases covered"],
        acceptance_criteria=["All methods return correct results", "Error states handled properly"],
        estimated_effort=Effort.M,
        implementation_notes="Register in DI container",
    ),
    "hook": TaskTemplate(
        level=Priority.MEDIUM,
        name="Create use{HookName} Hook",
        component="use{HookName}",
        files="src/hooks/use{HookName}.{ext}",
        tests_success=["Hook returns expected values", "State updates work", "Cleanup runs correctly"],
        acceptance_criteria=["Follows React hooks rules", "Proper cleanup on unmount"],
        estimated_effort=Effort.S,
        implementation_notes="Include TypeScript types",
    ),
    "page": TaskTemplate(
        level=Priority.HIGH,
        name="Create {PageName} Page",
        component="{PageName}",
        files="src/pages/{PageName}/{PageName}.{ext}",
        tests_success=["Page renders", "Navigation works", "Data fetching works"],
        acceptance_criteria=["Full user flow functional", "Loading and error states handled"],
        estimated_effort=Effort.L,
        implementation_notes="Integrate with routing",
    ),
    "test": TaskTemplate(
        level=Priority.MEDIUM,
        name="Add Tests for {ComponentName}",
        component="{ComponentName}",
        files="{ComponentPath}.test.{ext}",
        tests_success=["All tests pass", "Coverage meets threshold"],
        acceptance_criteria=[
            "Unit tests cover happy path",
            "Edge cases tested",
            "Error scenarios covered",
        ],
        estimated_effort=Effort.M,
        implementation_notes="Use testing-library framework",
    ),
    "repository": TaskTemplate(
        level=Priority.HIGH,
        name="Create {Entity}Repository",
        component="{Entity}Repository",
        files="src/repositories/{entity}Repository.{ext}",
        tests_success=["CRUD operations", "Error handling", "Edge cases"],
        acceptance_criteria=["All CRUD methods work", "Database queries tested"],
        estimated_effort=Effort.M,
        implementation_notes="Use ORM of choice",
    ),
    "controller": TaskTemplate(
        level=Priority.HIGH,
        name="Create {Entity}Controller",
        component="{Entity}Controller",
        files="src/controllers/{entity}Controller.{ext}",
        tests_success=["Request parsing", "Response formatting", "Error responses"],
        acceptance_criteria=["All endpoints work", "Validation implemented"],
        estimated_effort=Effort.M,
        implementation_notes="Framework-specific patterns",
    ),
    "migration": TaskTemplate(
        level=Priority.CRITICAL,
        name="Create {Entity} Migration",
        component="{Entity}Migration",
        files="migrations/{timestamp}_create_{entity}.{ext}",
        tests_success=["Migration up/down", "Schema validation"],
        acceptance_criteria=["Table created correctly", "Indexes defined", "Migration reversible"],
        estimated_effort=Effort.S,
        implementation_notes="Include rollback",
    ),
    "middleware": TaskTemplate(
        level=Priority.MEDIUM,
        name="Create {MiddlewareName} Middleware",
        component="{MiddlewareName}Middleware",
        files="src/middleware/{middlewareName}.{ext}",
        tests_success=["Middleware execution", "Error cases", "Bypass conditions"],
        acceptance_criteria=["Middleware works correctly", "Errors handled"],
        estimated_effort=Effort.S,
        implementation_notes="Document execution order",
    ),
    "di-registration": TaskTemplate(
        level=Priority.MEDIUM,
        name="Register {ServiceName} in DI Container",
        component="DI Registration",
        files="src/di/registrations.{ext}",
        tests_success=["Service resolves correctly", "Singleton/scoped works"],
        acceptance_criteria=["Registered as correct lifetime", "Dependencies injected properly"],
        estimated_effort=Effort.S,
        implementation_notes="Use asClass().singleton() or .scoped()",
    ),
}

_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")


def _fill(text: str, variables: Mapping[str, Any]) -> str:
    def _sub(match: re.Match[str]) -> str:
        key = match.group(1)
        return str(variables[key]) if key in variables else match.group(0)

    return _PLACEHOLDER_RE.sub(_sub, text)


def apply_template(template: TaskTemplate, variables: Mapping[str, Any]) -> TaskTemplate:
    """Return a copy of *template* with placeholders replaced from *variables*."""
    return replace(
        template,
        name=_fill(template.name, variables),
        component=_fill(template.component, variables),
        files=_fill(template.files, variables),
        tests_success=[_fill(item, variables) for item in template.tests_success],
        acceptance_criteria=[_fill(item, variables) for item in template.acceptance_criteria],
        implementation_notes=_fill(template.implementation_notes, variables),
    )


def get_template(name: str) -> TaskTemplate:
    try:
        return TEMPLATES[name]
    except KeyError:
        raise NotFoundError("Template", name) from None
