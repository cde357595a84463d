"""Task model, status and priority enums."""

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any


class TaskStatus(StrEnum):
    backlog = "Backlog"
    planning = "Planning"
    in_progress = "In Progress"
    ai_review = "AI Review"
    human_review = "Human Review"
    done = "Done"
    archived = "Archived"
    blocked = "Blocked"


class TaskPriority(StrEnum):
    high = "High"
    medium = "Medium"
    low = "Low"


# Board column order; StrEnum iteration already follows declaration order.
TASK_STATUSES: list[TaskStatus] = list(TaskStatus)

PRIORITY_RANK: dict[TaskPriority, int] = {
    TaskPriority.high: 0,
    TaskPriority.medium: 1,
    TaskPriority.low: 2,
}


@dataclass(frozen=True)
class WorktreeInfo:
    """Optional git worktree metadata carried by a task file."""

    enabled: bool
    path: str | None = None
    branch: str | None = None
    base_branch: str | None = None
    created_at: str | None = None
    status: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "worktreeEnabled": self.enabled,
            "worktreePath": self.path,
            "worktreeBranch": self.branch,
            "worktreeBaseBranch": self.base_branch,
            "worktreeCreatedAt": self.created_at,
            "worktreeStatus": self.status,
        }


@dataclass(frozen=True)
class GitHubInfo:
    """Linked GitHub issue and pull request, as recorded in the task file."""

    issue_url: str | None = None
    issue_number: int | None = None
    repository: str | None = None
    pr_url: str | None = None
    pr_number: int | None = None
    last_synced: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "issueUrl": self.issue_url,
            "issueNumber": self.issue_number,
            "repository": self.repository,
            "prUrl": self.pr_url,
            "prNumber": self.pr_number,
            "lastSynced": self.last_synced,
        }


@dataclass
class Task:
    """One structured markdown task file, parsed."""

    id: str
    label: str
    file_path: Path
    project: str
    description: str = ""
    type: str = "Task"
    status: TaskStatus = TaskStatus.backlog
    priority: TaskPriority = TaskPriority.medium
    created: str = ""
    updated: str = ""
    prd_path: str = ""
    order: int | None = None
    claimed_by: str = ""
    claimed_at: str = ""
    completed_at: str = ""
    rejection_count: int = 0
    agent_notes: str = ""
    assigned_agent: str | None = None
    worktree: WorktreeInfo | None = None
    github: GitHubInfo | None = None

    @property
    def completed(self) -> bool:
        return self.status == TaskStatus.done

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "description": self.description,
            "type": self.type,
            "status": str(self.status),
            "priority": str(self.priority),
            "created": self.created,
            "updated": self.updated,
            "prdPath": self.prd_path,
            "filePath": str(self.file_path),
            "completed": self.completed,
            "project": self.project,
            "order": self.order,
            "claimedBy": self.claimed_by,
            "claimedAt": self.claimed_at,
            "completedAt": self.completed_at,
            "rejectionCount": self.rejection_count,
            "agentNotes": self.agent_notes,
            "assignedAgent": self.assigned_agent,
            "worktree": self.worktree.to_dict() if self.worktree else None,
            "github": self.github.to_dict() if self.github else None,
        }
