"""Markdown task store: discovery, parsing, sorting and in-place updates."""

from kaiban.tasks.models import (
    PRIORITY_RANK,
    TASK_STATUSES,
    GitHubInfo,
    Task,
    TaskPriority,
    TaskStatus,
    WorktreeInfo,
)
from kaiban.tasks.repository import TaskRepository, group_by_status, sort_tasks
from kaiban.tasks.store import (
    ScanResult,
    TaskFile,
    WorkspaceDir,
    find_task_files,
    parse_tasks,
)

__all__ = [
    "PRIORITY_RANK",
    "TASK_STATUSES",
    "GitHubInfo",
    "ScanResult",
    "Task",
    "TaskFile",
    "TaskPriority",
    "TaskRepository",
    "TaskStatus",
    "WorkspaceDir",
    "WorktreeInfo",
    "find_task_files",
    "group_by_status",
    "parse_tasks",
    "sort_tasks",
]
