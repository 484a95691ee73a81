"""Tests for the task service (task_engine/service.py)."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from pland.errors import ConflictError, NotFoundError, ValidationError
from pland.task_engine.model import Priority, TaskCreate, TaskUpdate
from pland.task_engine.service import TaskService


def _read_lines(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


class TestCreate:
    def test_create_persists_defaults(self, service: TaskService, task_data) -> None:
        task = service.create(task_data("fe-0001"))
        assert task.done is False
        assert task.ready is True
        assert task.files == ""
        assert task.estimated_effort.value == "M"

        records = _read_lines(service.file_path)
        assert [r["id"] for r in records] == ["fe-0001"]
        assert records[0]["blocks"] == []

    def test_create_accepts_typed_input(self, service: TaskService) -> None:
        task = service.create(TaskCreate(id="fe-0001", name="Typed", level=Priority.HIGH, component="UI"))
        assert service.get("fe-0001") is task

    def test_duplicate_id_conflicts(self, service: TaskService, task_data) -> None:
        service.create(task_data("fe-0001"))
        with pytest.raises(ConflictError) as exc_info:
            service.create(task_data("fe-0001", name="Again"))
        assert exc_info.value.code == "CONFLICT"
        assert exc_info.value.conflicting_id == "fe-0001"
        assert service.get("fe-0001").name == "Task fe-0001"

    def test_invalid_input_writes_nothing(self, service: TaskService, task_data) -> None:
        with pytest.raises(ValidationError):
            service.create(task_data("fe-0001", level="urgent"))
        assert not service.file_path.exists()
        assert service.tasks == []

    def test_create_with_dangling_reference_succeeds(self, service: TaskService, task_data) -> None:
        task = service.create(task_data("fe-0002", ["fe-0001"]))
        assert task.blocked_by == ["fe-0001"]
        assert [i.type for i in service.validate()] == ["invalid-reference"]


class TestUpdate:
    def test_unknown_task(self, service: TaskService) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            service.update("fe-0404", {"done": True})
        assert str(exc_info.value) == "Task not found: fe-0404"

    def test_merges_only_given_fields(self, service: TaskService, task_data) -> None:
        original = service.create(task_data("fe-0001", implementationNotes="keep me"))
        created_at = original.created_at
        before = original.updated_at

        updated = service.update("fe-0001", {"done": True})
        assert updated.done is True
        assert updated.implementation_notes == "keep me"
        assert updated.created_at == created_at
        assert updated.updated_at >= before

    def test_update_rewires_derived_fields(self, service: TaskService, task_data) -> None:
        service.create(task_data("fe-0001"))
        service.create(task_data("fe-0002"))
        service.update("fe-0002", TaskUpdate(blocked_by=["fe-0001"]))

        assert service.get("fe-0001").blocks == ["fe-0002"]
        reloaded = TaskService("demo", "frontend", service.file_path.parents[2])
        assert reloaded.get("fe-0001").blocks == ["fe-0002"]

    def test_rejects_derived_field(self, service: TaskService, task_data) -> None:
        service.create(task_data("fe-0001"))
        with pytest.raises(ValidationError):
            service.update("fe-0001", {"blocks": ["fe-0002"]})


class TestRemove:
    def test_unknown_task(self, service: TaskService) -> None:
        with pytest.raises(NotFoundError):
            service.remove("fe-0001")

    def test_remove_leaves_dependents_dangling(self, service: TaskService, task_data, log_messages) -> None:
        service.create(task_data("fe-0001"))
        service.create(task_data("fe-0002", ["fe-0001"]))

        dependents = service.remove("fe-0001")

        assert [d.id for d in dependents] == ["fe-0002"]
        assert any("fe-0002" in m and "depend on fe-0001" in m for m in log_messages)
        assert service.get("fe-0001") is None
        assert service.get("fe-0002").blocked_by == ["fe-0001"]

        issues = service.validate()
        assert len(issues) == 1
        assert issues[0].type == "invalid-reference"
        assert issues[0].severity == "warning"
        assert issues[0].task_id == "fe-0002"
        assert "fe-0001" in issues[0].message


class TestQueries:
    def test_list_sorted_by_priority_then_id(self, service: TaskService, task_data) -> None:
        service.create(task_data("fe-0003", level="low"))
        service.create(task_data("fe-0002", level="critical"))
        service.create(task_data("fe-0001", level="low"))
        service.create(task_data("fe-0004", level="high"))

        assert [t.id for t in service.list_tasks()] == ["fe-0002", "fe-0004", "fe-0001", "fe-0003"]

    def test_list_filters(self, service: TaskService, task_data) -> None:
        service.create(task_data("fe-0001", level="high", done=True))
        service.create(task_data("fe-0002", ["fe-0001"], ready=False))
        service.create(task_data("fe-0003"))

        assert [t.id for t in service.list_tasks(level="high")] == ["fe-0001"]
        assert [t.id for t in service.list_tasks(done=False)] == ["fe-0002", "fe-0003"]
        assert [t.id for t in service.list_tasks(ready=False)] == ["fe-0002"]
        assert [t.id for t in service.list_tasks(foundation=True)] == ["fe-0001", "fe-0003"]
        assert service.list_tasks(level="critical") == []

    def test_unknown_level_filter_is_a_validation_error(self, service: TaskService) -> None:
        with pytest.raises(ValidationError) as exc_info:
            service.list_tasks(level="urgent")
        assert exc_info.value.code == "VALIDATION_ERROR"
        assert exc_info.value.field == "level"

    def test_chain_scenario(self, service: TaskService, task_data) -> None:
        service.create(task_data("A"))
        service.create(task_data("B", ["A"]))
        service.create(task_data("C", ["B"]))

        assert service.get("C").blocked_by_transitive == ["A"]
        assert service.get("A").blocks == ["B"]
        assert service.get("B").blocks == ["C"]

        chain = service.get_chain("C")
        assert [(d.id, d.direct) for d in chain.dependencies] == [("B", True), ("A", False)]
        assert chain.dependents == []
        assert [e.id for e in service.get_chain("A").dependents] == ["B"]

    def test_chain_unknown_task(self, service: TaskService) -> None:
        with pytest.raises(NotFoundError):
            service.get_chain("nope")

    def test_progress(self, service: TaskService, task_data) -> None:
        assert service.get_progress().completion_rate == "0"

        service.create(task_data("fe-0001", level="critical", done=True))
        service.create(task_data("fe-0002", ["fe-0001"]))
        service.create(task_data("fe-0003", ["fe-0001"], ready=False))

        stats = service.get_progress()
        assert stats.total == 3
        assert stats.by_level == {"critical": 1, "high": 0, "medium": 2, "low": 0}
        assert stats.by_status == {"done": 1, "pending": 1, "ready": 1, "blocked": 2}
        assert stats.foundation == 1
        assert stats.completion_rate == "33.3"

    def test_next_id_sequence(self, service: TaskService, task_data) -> None:
        assert service.get_next_id() == "fe-0001"
        service.create(task_data(service.get_next_id()))
        assert service.get_next_id() == "fe-0002"
        assert service.get_next_id("backend") == "be-0001"


class TestPersistence:
    def test_round_trip(self, tmp_path: Path, service: TaskService, task_data) -> None:
        service.init(framework="react", deps=["react", "zustand"])
        service.create(task_data("fe-0001", testsSuccess=["renders"], acceptanceCriteria=["works"]))
        service.create(task_data("fe-0002", ["fe-0001"], estimatedEffort="XL"))

        reloaded = TaskService("demo", "frontend", tmp_path)
        assert [t.to_dict() for t in reloaded.tasks] == [t.to_dict() for t in service.tasks]
        assert reloaded.metadata is not None
        assert reloaded.metadata.framework == "react"
        assert reloaded.metadata.current_dependencies == ["react", "zustand"]

        first = service.file_path.read_text(encoding="utf-8").splitlines()[0]
        assert json.loads(first)["metadata"]["planName"] == "demo"

    def test_platforms_use_separate_files(self, tmp_path: Path, task_data) -> None:
        fe = TaskService("demo", "frontend", tmp_path)
        be = TaskService("demo", "backend", tmp_path)
        fe.create(task_data("fe-0001"))
        be.create(task_data("be-0001"))

        assert fe.file_path.name == "frontend-tasks.jsonl"
        assert be.file_path.name == "backend-tasks.jsonl"
        assert [t.id for t in TaskService("demo", "backend", tmp_path).tasks] == ["be-0001"]

    def test_skipped_lines_are_reported(self, tmp_path: Path, task_data, log_messages) -> None:
        path = tmp_path / ".pland" / "demo" / "frontend-tasks.jsonl"
        path.parent.mkdir(parents=True)
        good = json.dumps({"id": "fe-0001", "name": "ok", "level": "low", "component": "C"})
        path.write_text(good + "\nnot json\n[1, 2]\n", encoding="utf-8")

        svc = TaskService("demo", "frontend", tmp_path)
        assert [t.id for t in svc.tasks] == ["fe-0001"]
        assert [s.line_number for s in svc.skipped_lines] == [2, 3]
        assert any("Skipped 2 unreadable line(s)" in m for m in log_messages)

    def test_stale_derived_fields_are_recomputed(self, tmp_path: Path) -> None:
        path = tmp_path / ".pland" / "demo" / "frontend-tasks.jsonl"
        path.parent.mkdir(parents=True)
        records = [
            {"id": "A", "name": "A", "level": "low", "component": "C", "blocks": ["Z"]},
            {"id": "B", "name": "B", "level": "low", "component": "C", "blockedBy": ["A"],
             "blockedByTransitive": ["Q"]},
        ]
        path.write_text("\n".join(json.dumps(r) for r in records) + "\n", encoding="utf-8")

        svc = TaskService("demo", "frontend", tmp_path)
        assert svc.get("A").blocks == ["B"]
        assert svc.get("B").blocked_by_transitive == []

    def test_init_refuses_populated_store(self, service: TaskService, task_data) -> None:
        assert service.init(framework="vue") is True
        service.create(task_data("fe-0001"))
        assert service.init(framework="svelte") is False
        assert service.metadata.framework == "vue"

    def test_line_separators_in_text_round_trip(self, tmp_path: Path, service: TaskService, task_data) -> None:
        service.create(task_data("fe-0001", name="Header\u2028Footer", implementationNotes="a\x85b"))
        service.create(task_data("fe-0002", ["fe-0001"]))

        reloaded = TaskService("demo", "frontend", tmp_path)
        assert reloaded.skipped_lines == []
        assert [t.id for t in reloaded.tasks] == ["fe-0001", "fe-0002"]
        assert reloaded.get("fe-0001").name == "Header\u2028Footer"
        assert reloaded.get("fe-0001").implementation_notes == "a\x85b"
        assert reloaded.get("fe-0001").blocks == ["fe-0002"]

    def test_invalid_utf8_line_does_not_block_loading(self, tmp_path: Path, service: TaskService, task_data) -> None:
        service.init()
        service.create(task_data("fe-0001"))
        with open(service.file_path, "ab") as fh:
            fh.write(b'{"id": "\xff\xfe"}\n')

        reloaded = TaskService("demo", "frontend", tmp_path)
        assert [t.id for t in reloaded.tasks] == ["fe-0001"]
        assert [s.line_number for s in reloaded.skipped_lines] == [3]
        assert [(i.type, i.line) for i in reloaded.validate_file()] == [("format", 3)]

    def test_validate_file(self, service: TaskService, task_data) -> None:
        with pytest.raises(NotFoundError):
            service.validate_file()
        service.init()
        service.create(task_data("fe-0001"))
        assert service.validate_file() == []


def test_unknown_platform_is_a_validation_error(tmp_path: Path) -> None:
    with pytest.raises(ValidationError) as exc_info:
        TaskService("demo", "mobile", tmp_path)
    assert exc_info.value.field == "platform"
    assert "frontend, backend" in exc_info.value.message
