"""TaskRepository: in-memory task collection with minimal in-place file updates."""

import logging
import os
import shutil
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from kaiban.errors import FileSystemError, ParseError, TaskNotFoundError
from kaiban.tasks import markdown
from kaiban.tasks.models import (
    PRIORITY_RANK,
    TASK_STATUSES,
    Task,
    TaskStatus,
)
from kaiban.tasks.store import (
    DEFAULT_TASKS_SUBDIR,
    ScanResult,
    WorkspaceDir,
    parse_tasks,
)

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _sort_key(task: Task) -> tuple[int, int]:
    if task.order is not None:
        return (0, task.order)
    return (1, PRIORITY_RANK[task.priority])


def sort_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Ordered tasks first (ascending), then the rest by priority rank.

    The sort is stable, so equal keys keep discovery order.
    """
    return sorted(tasks, key=_sort_key)


def group_by_status(tasks: Iterable[Task]) -> dict[TaskStatus, list[Task]]:
    """Bucket tasks per status, preserving the input order within each bucket."""
    grouped: dict[TaskStatus, list[Task]] = {status: [] for status in TASK_STATUSES}
    for task in tasks:
        grouped[task.status].append(task)
    return grouped


@dataclass(frozen=True)
class _IndexEntry:
    path: Path
    project: str


def _write_atomic(path: Path, content: str) -> None:
    """Write content via a sibling temp file so the task file is never half-written.

    The temp file takes the original's permission bits before it replaces it.
    """
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        tmp_path.write_bytes(content.encode("utf-8"))
        shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise FileSystemError(f"Cannot write task file {path}: {e}") from e


class TaskRepository:
    """Holds the last scan of a workspace and rewrites single fields in place.

    Updates go through the id -> file index built by ``refresh()``; only the
    targeted field lines change, so hand-written notes and unknown fields
    survive.
    """

    def __init__(
        self,
        workspace_dirs: Sequence[WorkspaceDir],
        tasks_subdir: Path = DEFAULT_TASKS_SUBDIR,
    ) -> None:
        self._workspace_dirs = list(workspace_dirs)
        self._tasks_subdir = tasks_subdir
        self._tasks: list[Task] = []
        self._errors: list[ParseError] = []
        self._index: dict[str, _IndexEntry] = {}

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def errors(self) -> list[ParseError]:
        return list(self._errors)

    def refresh(self) -> ScanResult:
        """Rescan the workspace directories and rebuild the index."""
        result = parse_tasks(self._workspace_dirs, self._tasks_subdir)
        self._tasks = result.tasks
        self._errors = result.errors
        self._index = {
            task.id: _IndexEntry(path=task.file_path, project=task.project)
            for task in result.tasks
        }
        return result

    def get_task(self, task_id: str) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def update_task_status(
        self,
        task_id: str,
        new_status: TaskStatus,
        order: int | None = None,
        touch_updated: bool = False,
    ) -> Task:
        """Rewrite the Status line (and Order, if given) of one task file."""
        changes = [(markdown.STATUS, str(TaskStatus(new_status)), ())]
        if order is not None:
            changes.append(self._order_change(order))
        return self._rewrite(task_id, changes, touch_updated)

    def update_task_order(
        self, task_id: str, order: int, touch_updated: bool = False
    ) -> Task:
        """Rewrite only the Order line of one task file."""
        return self._rewrite(task_id, [self._order_change(order)], touch_updated)

    @staticmethod
    def _order_change(order: int) -> tuple[str, str, tuple[str, ...]]:
        if order < 0:
            raise ValueError(f"Order must be non-negative, got {order}")
        return (markdown.ORDER, str(order), (markdown.PRIORITY, markdown.STATUS))

    def _rewrite(
        self,
        task_id: str,
        changes: list[tuple[str, str, tuple[str, ...]]],
        touch_updated: bool,
    ) -> Task:
        entry = self._index.get(task_id)
        if entry is None:
            raise TaskNotFoundError(task_id)

        try:
            content = entry.path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FileSystemError(f"Cannot read task file {entry.path}: {e}") from e

        if touch_updated:
            changes = [*changes, (markdown.UPDATED, _now_iso(), ())]

        updated = content
        try:
            for marker, value, after in changes:
                updated = markdown.set_field(updated, marker, value, after)
        except ValueError as e:
            raise ParseError(entry.path, str(e)) from e

        task = markdown.parse_task(updated, entry.path, entry.project)
        if task.id != task_id:
            raise ParseError(entry.path, f"file no longer declares task id {task_id!r}")

        _write_atomic(entry.path, updated)
        logger.info(
            "Updated task %s (%s)",
            task_id,
            ", ".join(f"{marker} {value}" for marker, value, _ in changes),
        )

        self._tasks = [task if t.id == task_id else t for t in self._tasks]
        return task
