"""Tests for TaskRepository: sorting, grouping and minimal in-place updates."""

import stat
from dataclasses import replace
from pathlib import Path
from textwrap import dedent
from unittest.mock import patch

import pytest

from kaiban.errors import FileSystemError, TaskNotFoundError
from kaiban.tasks.models import TASK_STATUSES, Task, TaskPriority, TaskStatus
from kaiban.tasks.repository import TaskRepository, group_by_status, sort_tasks
from kaiban.tasks.store import WorkspaceDir

TASK_FILE = dedent("""\
    ## Task: Add dark mode

    **ID:** task-004
    **Label:** Add dark mode
    **Type:** Feature
    **Status:** Backlog
    **Priority:** High
    **Created:** 2024-01-19T10:00:00Z
    **Updated:** 2024-01-19T10:00:00Z
    **GitHub:** [Issue #42](https://github.com/org/repo/issues/42)
    **Custom-Field:** hand written

    ---

    ## Details
    Dark mode implementation

    <!-- reviewer notes -->
""")

ORDERED_TASK_FILE = TASK_FILE.replace(
    "**Priority:** High\n", "**Priority:** High\n**Order:** 3\n"
)


def _make(task_id: str, **kwargs) -> Task:
    path = Path(f"/{task_id}.md")
    return Task(id=task_id, label=task_id, file_path=path, project="p", **kwargs)


@pytest.fixture
def repo(tmp_path: Path, tasks_dir: Path) -> TaskRepository:
    (tasks_dir / "dark-mode.md").write_text(TASK_FILE)
    repository = TaskRepository([WorkspaceDir(path=tmp_path, name="proj")])
    repository.refresh()
    return repository


class TestSortTasks:
    def test_order_first_then_priority(self):
        tasks = [
            _make("o2", order=2),
            _make("o1", order=1),
            _make("low", priority=TaskPriority.low),
            _make("high", priority=TaskPriority.high),
        ]
        assert [t.id for t in sort_tasks(tasks)] == ["o1", "o2", "high", "low"]

    def test_ordered_precede_high_priority(self):
        tasks = [
            _make("high", priority=TaskPriority.high),
            _make("ordered-low", priority=TaskPriority.low, order=9),
        ]
        assert [t.id for t in sort_tasks(tasks)] == ["ordered-low", "high"]

    def test_ties_keep_discovery_order(self):
        tasks = [_make(f"m{i}", priority=TaskPriority.medium) for i in range(5)]
        assert [t.id for t in sort_tasks(tasks)] == ["m0", "m1", "m2", "m3", "m4"]

    def test_does_not_mutate_input(self):
        tasks = [_make("b", order=2), _make("a", order=1)]
        sort_tasks(tasks)
        assert [t.id for t in tasks] == ["b", "a"]


class TestGroupByStatus:
    def test_every_status_has_a_bucket(self):
        grouped = group_by_status([])
        assert list(grouped) == TASK_STATUSES
        assert all(bucket == [] for bucket in grouped.values())

    def test_preserves_input_order_within_bucket(self):
        tasks = [
            _make("a", status=TaskStatus.done),
            _make("b", status=TaskStatus.backlog),
            _make("c", status=TaskStatus.done),
        ]
        grouped = group_by_status(tasks)
        assert [t.id for t in grouped[TaskStatus.done]] == ["a", "c"]
        assert [t.id for t in grouped[TaskStatus.backlog]] == ["b"]


class TestGetTask:
    def test_found(self, repo: TaskRepository):
        task = repo.get_task("task-004")
        assert task is not None
        assert task.label == "Add dark mode"

    def test_missing_returns_none(self, repo: TaskRepository):
        assert repo.get_task("nope") is None

    def test_before_refresh_returns_none(self, tmp_path: Path):
        repository = TaskRepository([WorkspaceDir(path=tmp_path, name="proj")])
        assert repository.get_task("task-004") is None


class TestUpdateTaskStatus:
    def test_round_trip_changes_only_status(
        self, repo: TaskRepository, tasks_dir: Path
    ):
        before = repo.get_task("task-004")
        repo.update_task_status("task-004", TaskStatus.ai_review)

        path = tasks_dir / "dark-mode.md"
        assert path.read_text() == TASK_FILE.replace(
            "**Status:** Backlog", "**Status:** AI Review"
        )

        repo.refresh()
        after = repo.get_task("task-004")
        assert after == replace(before, status=TaskStatus.ai_review)

    def test_status_with_order_inserts_order_after_priority(
        self, repo: TaskRepository, tasks_dir: Path
    ):
        repo.update_task_status("task-004", TaskStatus.planning, order=2)
        content = (tasks_dir / "dark-mode.md").read_text()
        assert "**Status:** Planning\n**Priority:** High\n**Order:** 2\n" in content

        repo.refresh()
        task = repo.get_task("task-004")
        assert task.status == TaskStatus.planning
        assert task.order == 2

    def test_unrecognized_sections_survive(self, repo: TaskRepository, tasks_dir: Path):
        repo.update_task_status("task-004", TaskStatus.done)
        content = (tasks_dir / "dark-mode.md").read_text()
        assert "**Custom-Field:** hand written" in content
        assert "**GitHub:** [Issue #42](https://github.com/org/repo/issues/42)" in (
            content
        )
        assert "<!-- reviewer notes -->" in content

    def test_unknown_id_raises_and_writes_nothing(
        self, repo: TaskRepository, tasks_dir: Path
    ):
        with pytest.raises(TaskNotFoundError, match="ghost"):
            repo.update_task_status("ghost", TaskStatus.done)
        assert (tasks_dir / "dark-mode.md").read_text() == TASK_FILE

    def test_updates_in_memory_task(self, repo: TaskRepository):
        returned = repo.update_task_status("task-004", TaskStatus.blocked)
        assert returned.status == TaskStatus.blocked
        assert repo.get_task("task-004").status == TaskStatus.blocked

    def test_crlf_file_round_trip(self, tmp_path: Path, tasks_dir: Path):
        crlf = TASK_FILE.replace("\n", "\r\n")
        path = tasks_dir / "crlf.md"
        path.write_bytes(crlf.encode("utf-8"))
        repository = TaskRepository([WorkspaceDir(path=tmp_path, name="proj")])
        repository.refresh()

        repository.update_task_status("task-004", TaskStatus.done)
        expected = crlf.replace("**Status:** Backlog", "**Status:** Done")
        assert path.read_bytes() == expected.encode("utf-8")

    def test_no_temp_file_left_behind(self, repo: TaskRepository, tasks_dir: Path):
        repo.update_task_status("task-004", TaskStatus.done)
        assert sorted(p.name for p in tasks_dir.iterdir()) == ["dark-mode.md"]

    def test_keeps_file_permissions(self, repo: TaskRepository, tasks_dir: Path):
        path = tasks_dir / "dark-mode.md"
        path.chmod(0o600)
        repo.update_task_status("task-004", TaskStatus.done)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_failed_write_leaves_file_intact(
        self, repo: TaskRepository, tasks_dir: Path
    ):
        path = tasks_dir / "dark-mode.md"
        before = path.read_bytes()
        with patch("kaiban.tasks.repository.os.replace") as mock_replace:
            mock_replace.side_effect = OSError("disk full")
            with pytest.raises(FileSystemError, match="disk full"):
                repo.update_task_status("task-004", TaskStatus.done)

        assert path.read_bytes() == before
        assert not (tasks_dir / ".dark-mode.md.tmp").exists()
        assert repo.get_task("task-004").status == TaskStatus.backlog

    def test_touch_updated_stamps_timestamp(
        self, repo: TaskRepository, tasks_dir: Path
    ):
        task = repo.update_task_status("task-004", TaskStatus.done, touch_updated=True)
        content = (tasks_dir / "dark-mode.md").read_text()
        assert task.updated != "2024-01-19T10:00:00Z"
        assert f"**Updated:** {task.updated}" in content

    def test_updated_untouched_by_default(self, repo: TaskRepository):
        task = repo.update_task_status("task-004", TaskStatus.done)
        assert task.updated == "2024-01-19T10:00:00Z"


class TestUpdateTaskOrder:
    def test_replaces_existing_order(self, tmp_path: Path, tasks_dir: Path):
        path = tasks_dir / "ordered.md"
        path.write_text(ORDERED_TASK_FILE)
        repository = TaskRepository([WorkspaceDir(path=tmp_path, name="proj")])
        repository.refresh()

        repository.update_task_order("task-004", 7)
        assert path.read_text() == ORDERED_TASK_FILE.replace(
            "**Order:** 3", "**Order:** 7"
        )

    def test_leaves_status_alone(self, repo: TaskRepository):
        task = repo.update_task_order("task-004", 5)
        assert task.order == 5
        assert task.status == TaskStatus.backlog

    def test_negative_order_rejected(self, repo: TaskRepository, tasks_dir: Path):
        with pytest.raises(ValueError):
            repo.update_task_order("task-004", -1)
        assert (tasks_dir / "dark-mode.md").read_text() == TASK_FILE

    def test_unknown_id_raises(self, repo: TaskRepository):
        with pytest.raises(TaskNotFoundError):
            repo.update_task_order("ghost", 1)
