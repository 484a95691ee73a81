"""Command line interface for plan task stores.

Usage::

    pland --plan-name <name> [--platform frontend|backend] task <command> ...
    pland --plan-name <name> project init|validate
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import get_framework_config, get_log_level_config, get_platform_config, load_config
from .constants import DEFAULT_LOG_LEVEL, DEFAULT_PLATFORM
from .errors import TaskManagerError, ValidationError
from .task_engine.model import Task
from .task_engine.service import DependencyChain, TaskService
from .task_engine.templates import TEMPLATES, apply_template, get_template
from .task_engine.validator import FileIssue, ValidationIssue

_LEVEL_STYLE = {"critical": "red", "high": "yellow", "medium": "blue", "low": "dim"}


def _configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure loguru logger with the specified level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<level>{level: <8}</level> | {message}",
    )


def _console() -> Console:
    return Console(highlight=False)


def _err_console() -> Console:
    return Console(stderr=True, highlight=False)


def _resolve_project_dir(project_dir: Optional[str]) -> Path:
    return Path(project_dir).expanduser().resolve() if project_dir else Path.cwd().resolve()


def _service(args: argparse.Namespace) -> TaskService:
    return TaskService(args.plan_name, args.platform, args.project_dir)


def _parse_vars(pairs: Optional[list[str]]) -> dict[str, str]:
    out: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValidationError(f"Template variable must be KEY=VALUE: {pair}", "var")
        out[key] = value
    return out


def _status_text(task: Task) -> str:
    if task.done:
        return "[green]✓ Done[/green]"
    if task.ready:
        return "[cyan]○ Ready[/cyan]"
    return "[red]✗ Pending[/red]"


# ---------------------------------------------------------------------------
# task commands
# ---------------------------------------------------------------------------

def _task_create(args: argparse.Namespace) -> int:
    service = _service(args)
    data: dict[str, Any] = {}
    if args.template:
        variables = _parse_vars(args.var)
        data.update(apply_template(get_template(args.template), variables).to_create_data())

    explicit = {
        "id": args.id,
        "name": args.name,
        "level": args.level,
        "component": args.component,
        "files": args.files,
        "estimated_effort": args.effort,
        "implementation_notes": args.notes,
        "blocked_by": args.blocked_by,
        "tests_success": args.tests,
        "acceptance_criteria": args.criteria,
    }
    data.update({key: value for key, value in explicit.items() if value is not None})
    if args.done:
        data["done"] = True
    if args.not_ready:
        data["ready"] = False
    if not data.get("id"):
        data["id"] = service.get_next_id()

    task = service.create(data)
    _console().print(f"[green]✓ Task created: {escape(task.id)}[/green]")
    return 0


def _task_update(args: argparse.Namespace) -> int:
    service = _service(args)
    patch: dict[str, Any] = {
        "name": args.name,
        "level": args.level,
        "component": args.component,
        "files": args.files,
        "estimated_effort": args.effort,
        "implementation_notes": args.notes,
        "blocked_by": args.blocked_by,
    }
    patch = {key: value for key, value in patch.items() if value is not None}
    if args.done:
        patch["done"] = True
    if args.not_done:
        patch["done"] = False
    if args.ready:
        patch["ready"] = True
    if args.not_ready:
        patch["ready"] = False

    service.update(args.task_id, patch)
    _console().print(f"[green]✓ Task updated: {escape(args.task_id)}[/green]")
    return 0


def _task_list(args: argparse.Namespace) -> int:
    service = _service(args)
    done: Optional[bool] = True if args.done else (False if args.pending else None)
    ready: Optional[bool] = True if args.ready else (False if args.not_ready else None)
    tasks = service.list_tasks(level=args.level, done=done, ready=ready, foundation=args.foundation)

    if args.json:
        sys.stdout.write(json.dumps({"tasks": [t.to_dict() for t in tasks]}, indent=2) + "\n")
        return 0

    console = _console()
    meta = service.metadata
    console.print(f"\n[bold]Tasks: {meta.plan_name if meta else service.plan_name}[/bold]")
    console.print(f"[dim]Platform: {service.platform.value}[/dim]\n")
    if not tasks:
        console.print("[dim]No tasks found.[/dim]")
        return 0

    table = Table(border_style="cyan")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Priority", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Blocked By")
    for t in tasks:
        style = _LEVEL_STYLE.get(t.level.value, "dim")
        table.add_row(
            t.id,
            escape(t.name),
            f"[{style}]{t.level.value}[/{style}]",
            _status_text(t),
            escape(", ".join(t.blocked_by)) or "-",
        )
    console.print(table)
    console.print(f"\n[dim]Total: {len(tasks)} task(s)[/dim]")
    return 0


def _task_detail(args: argparse.Namespace) -> int:
    service = _service(args)
    task = service.get(args.task_id)
    if task is None:
        _err_console().print(f"[red]Error: Task not found: {escape(args.task_id)}[/red]")
        return 1

    console = _console()
    console.print(f"\n[bold cyan]{escape(task.id)}[/bold cyan]: {escape(task.name)}\n")
    table = Table(show_header=False, border_style="cyan")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Component", escape(task.component))
    table.add_row("Level", f"[yellow]{task.level.value}[/yellow]")
    table.add_row("Effort", task.estimated_effort.value)
    table.add_row("Status", _status_text(task))
    if task.files:
        table.add_row("Files", escape(task.files))
    if task.blocked_by:
        table.add_row("Blocked by", ", ".join(task.blocked_by))
    if task.blocks:
        table.add_row("Blocks", ", ".join(task.blocks))
    if task.implementation_notes:
        table.add_row("Notes", escape(task.implementation_notes))
    console.print(table)

    if task.tests_success:
        console.print("\n[bold]Tests:[/bold]")
        for item in task.tests_success:
            console.print(f"  [green]✓[/green] {escape(item)}")
    if task.acceptance_criteria:
        console.print("\n[bold]Acceptance Criteria:[/bold]")
        for item in task.acceptance_criteria:
            console.print(f"  [cyan]◦[/cyan] {escape(item)}")
    return 0


def _render_chain(chain: DependencyChain) -> None:
    console = _console()
    console.print(f"\n[bold]Dependency Chain: {chain.task_id}[/bold]\n")
    if chain.dependencies:
        table = Table(border_style="cyan")
        table.add_column("Type", no_wrap=True)
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name")
        for dep in chain.dependencies:
            kind = "[green]→ Direct[/green]" if dep.direct else "[dim]◦ Transitive[/dim]"
            table.add_row(kind, escape(dep.id), escape(dep.name))
        console.print("[bold]Dependencies:[/bold]")
        console.print(table)
    else:
        console.print("[green]✓ No dependencies[/green]")

    if chain.dependents:
        table = Table(border_style="cyan")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name")
        for entry in chain.dependents:
            table.add_row(escape(entry.id), escape(entry.name))
        console.print("\n[bold]Dependents:[/bold]")
        console.print(table)


def _task_chain(args: argparse.Namespace) -> int:
    service = _service(args)
    _render_chain(service.get_chain(args.task_id))
    return 0


def _task_remove(args: argparse.Namespace) -> int:
    service = _service(args)
    dependents = service.remove(args.task_id)
    console = _console()
    if dependents:
        console.print(f"[yellow]Warning: {len(dependents)} task(s) depend on {escape(args.task_id)}:[/yellow]")
        for dep in dependents:
            console.print(f"[yellow]  - {escape(dep.id)}: {escape(dep.name)}[/yellow]")
    console.print(f"[green]✓ Task removed: {escape(args.task_id)}[/green]")
    return 0


def _task_status(args: argparse.Namespace) -> int:
    service = _service(args)
    stats = service.get_progress()
    console = _console()
    console.print("\n[bold]Task Progress Dashboard[/bold]\n")
    console.print(f"Completion: [green]{stats.completion_rate}%[/green] ({stats.by_status['done']}/{stats.total})")

    status_table = Table(border_style="cyan")
    for header, style in (("Total", "cyan"), ("Done", "green"), ("Ready", "yellow"), ("Pending", "red")):
        status_table.add_column(header, style=style)
    status_table.add_row(
        str(stats.total),
        str(stats.by_status["done"]),
        str(stats.by_status["ready"]),
        str(stats.by_status["pending"]),
    )
    console.print("\n[bold]By Status:[/bold]")
    console.print(status_table)

    level_table = Table(border_style="cyan")
    for level, style in _LEVEL_STYLE.items():
        level_table.add_column(level.capitalize(), style=style)
    level_table.add_row(*(str(stats.by_level[level]) for level in _LEVEL_STYLE))
    console.print("\n[bold]By Priority:[/bold]")
    console.print(level_table)

    dep_table = Table(border_style="cyan")
    dep_table.add_column("Type")
    dep_table.add_column("Count")
    dep_table.add_row("[green]✓ Foundation[/green]", str(stats.foundation))
    dep_table.add_row("[red]→ Blocked[/red]", str(stats.blocked))
    console.print("\n[bold]Dependencies:[/bold]")
    console.print(dep_table)

    ready = service.list_tasks(done=False, ready=True, foundation=True)
    if ready:
        ready_table = Table(border_style="cyan")
        ready_table.add_column("ID", style="cyan", no_wrap=True)
        ready_table.add_column("Priority", no_wrap=True)
        ready_table.add_column("Name")
        for t in ready[:5]:
            ready_table.add_row(t.id, escape(f"[{t.level.value}]"), escape(t.name))
        console.print("\n[green]★ Ready to start:[/green]")
        console.print(ready_table)
        if len(ready) > 5:
            console.print(f"[dim]... and {len(ready) - 5} more[/dim]")
    return 0


def _print_issues(issues: list[ValidationIssue]) -> int:
    console = _console()
    if not issues:
        console.print("[green]✓ No issues found![/green]")
        return 0
    for issue in issues:
        icon = "[red]✗" if issue.severity == "error" else "[yellow]◦"
        console.print(f"{icon} {issue.severity}: {escape(issue.message)}[/]")
    return 1 if any(i.severity == "error" for i in issues) else 0


def _task_validate(args: argparse.Namespace) -> int:
    return _print_issues(_service(args).validate())


def _task_validate_jsonl(args: argparse.Namespace) -> int:
    service = _service(args)
    console = _console()
    issues: list[FileIssue] = service.validate_file()
    if not issues:
        console.print("[green]✓ Validation passed![/green]")
        console.print(f"[dim]File: {service.file_path}[/dim]")
        return 0

    console.print("[red]✗ Validation failed![/red]")
    console.print(f"[dim]File: {service.file_path}[/dim]\n")
    for issue in issues:
        icon = "[red]✗[/red]" if issue.severity == "error" else "[yellow]◦[/yellow]"
        location = f" [{issue.task_id}]" if issue.task_id else (f" [Line {issue.line}]" if issue.line else "")
        console.print(f"{icon} {issue.type}{escape(location)}: {escape(issue.message)}")
    errors = sum(1 for i in issues if i.severity == "error")
    console.print(f"\n[dim]Summary:[/dim]\n  Errors: {errors}\n  Warnings: {len(issues) - errors}")
    return 1 if errors else 0


def _task_template(args: argparse.Namespace) -> int:
    console = _console()
    console.print("[bold]Available Templates:[/bold]\n")
    for name, tmpl in TEMPLATES.items():
        console.print(f"[cyan]{name}[/cyan]")
        console.print(f"  [dim]Level: {tmpl.level.value} | Effort: {tmpl.estimated_effort.value}[/dim]")
        console.print(f"  [dim]{tmpl.name}[/dim]\n")
    return 0


# ---------------------------------------------------------------------------
# project commands
# ---------------------------------------------------------------------------

def _project_init(args: argparse.Namespace) -> int:
    service = _service(args)
    framework = args.framework or args.config_framework
    console = _console()
    if not service.init(framework=framework, deps=args.deps):
        console.print("Task file already exists")
        return 0
    console.print(f"Initialized: {service.file_path}")
    console.print(f"  Plan: {service.plan_name} | Platform: {service.platform.value}")
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pland", description="Plan task manager")
    parser.add_argument("--project-dir", default=None, help="Directory containing .pland/ (default: cwd)")
    parser.add_argument("-p", "--plan-name", default=None, help="Plan name")
    parser.add_argument("--platform", default=None, choices=["frontend", "backend"], help="Platform")
    parser.add_argument("--log-level", default=None, help="Log level (default: INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    task = subparsers.add_parser("task", help="Task commands")
    task_sub = task.add_subparsers(dest="task_cmd", required=True)

    tcreate = task_sub.add_parser("create", help="Create a new task")
    tcreate.add_argument("--template", default=None, choices=sorted(TEMPLATES))
    tcreate.add_argument("--var", action="append", metavar="KEY=VALUE", help="Template variable")
    tcreate.add_argument("--id", default=None)
    tcreate.add_argument("--name", default=None)
    tcreate.add_argument("--level", default=None, choices=list(_LEVEL_STYLE))
    tcreate.add_argument("--component", default=None)
    tcreate.add_argument("--files", default=None)
    tcreate.add_argument("--effort", default=None, choices=["S", "M", "L", "XL"])
    tcreate.add_argument("--notes", default=None)
    tcreate.add_argument("--blocked-by", nargs="+", default=None)
    tcreate.add_argument("--tests", nargs="+", default=None)
    tcreate.add_argument("--criteria", nargs="+", default=None)
    tcreate.add_argument("--done", action="store_true")
    tcreate.add_argument("--not-ready", action="store_true")
    tcreate.set_defaults(func=_task_create)

    tupdate = task_sub.add_parser("update", help="Update an existing task")
    tupdate.add_argument("task_id")
    tupdate.add_argument("--name", default=None)
    tupdate.add_argument("--level", default=None, choices=list(_LEVEL_STYLE))
    tupdate.add_argument("--component", default=None)
    tupdate.add_argument("--files", default=None)
    tupdate.add_argument("--effort", default=None, choices=["S", "M", "L", "XL"])
    tupdate.add_argument("--notes", default=None)
    tupdate.add_argument("--blocked-by", nargs="*", default=None)
    done_group = tupdate.add_mutually_exclusive_group()
    done_group.add_argument("--done", action="store_true")
    done_group.add_argument("--not-done", action="store_true")
    ready_group = tupdate.add_mutually_exclusive_group()
    ready_group.add_argument("--ready", action="store_true")
    ready_group.add_argument("--not-ready", action="store_true")
    tupdate.set_defaults(func=_task_update)

    tlist = task_sub.add_parser("list", help="List tasks")
    tlist.add_argument("--level", default=None, choices=list(_LEVEL_STYLE))
    done_filter = tlist.add_mutually_exclusive_group()
    done_filter.add_argument("--done", action="store_true", help="Show only done")
    done_filter.add_argument("--pending", action="store_true", help="Show only pending")
    ready_filter = tlist.add_mutually_exclusive_group()
    ready_filter.add_argument("--ready", action="store_true", help="Show only ready")
    ready_filter.add_argument("--not-ready", action="store_true", help="Show only not ready")
    tlist.add_argument("--foundation", action="store_true", help="Show only foundation tasks")
    tlist.add_argument("--json", action="store_true", help="Emit JSON instead of a table")
    tlist.set_defaults(func=_task_list)

    for name, func, help_text in (
        ("detail", _task_detail, "Show task detail"),
        ("chain", _task_chain, "Show dependency chain"),
        ("remove", _task_remove, "Remove a task"),
    ):
        sub = task_sub.add_parser(name, help=help_text)
        sub.add_argument("task_id")
        sub.set_defaults(func=func)

    task_sub.add_parser("status", help="Show task status dashboard").set_defaults(func=_task_status)
    task_sub.add_parser("validate", help="Validate tasks").set_defaults(func=_task_validate)
    task_sub.add_parser("validate-jsonl", help="Validate the task file line by line").set_defaults(
        func=_task_validate_jsonl
    )
    task_sub.add_parser("template", help="List available templates").set_defaults(
        func=_task_template, needs_plan=False
    )

    project = subparsers.add_parser("project", help="Project commands")
    project_sub = project.add_subparsers(dest="project_cmd", required=True)
    pinit = project_sub.add_parser("init", help="Initialize the task file")
    pinit.add_argument("--framework", default=None)
    pinit.add_argument("--deps", nargs="+", default=None)
    pinit.set_defaults(func=_project_init)
    project_sub.add_parser("validate", help="Validate project").set_defaults(func=_task_validate)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    args.project_dir = _resolve_project_dir(args.project_dir)
    config, config_error = load_config(args.project_dir)
    _configure_logging(args.log_level or get_log_level_config(config) or DEFAULT_LOG_LEVEL)
    if config_error:
        logger.warning("Ignoring config: {}", config_error)
    args.platform = args.platform or get_platform_config(config) or DEFAULT_PLATFORM
    args.config_framework = get_framework_config(config)

    handler = getattr(args, "func", None)
    if handler is None:
        parser.print_help()
        return 1
    if getattr(args, "needs_plan", True) and not args.plan_name:
        _err_console().print("[red]Error: plan-name is required[/red]")
        _err_console().print("\nUsage: pland --plan-name <name> [--platform frontend|backend] <command> [options]")
        return 1
    try:
        return int(handler(args) or 0)
    except TaskManagerError as exc:
        _err_console().print(f"[red]{exc.code}: {escape(exc.message)}[/red]")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
