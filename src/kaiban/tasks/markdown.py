"""Structured markdown task format: parse fields and rewrite single field lines.

A task file starts with ``## Task: <title>`` and carries ``**Field:** value``
lines. The metadata region runs from the heading to the first ``---`` line
after ``**ID:**``; everything past it is free-form and never touched.

Rewrites are line-indexed: the first line carrying a field marker is replaced
and every other byte (including ``\\r`` line endings and unknown fields) is
kept as-is.
"""

import re
from collections.abc import Sequence
from pathlib import Path

from kaiban.errors import ParseError
from kaiban.tasks.models import (
    GitHubInfo,
    Task,
    TaskPriority,
    TaskStatus,
    WorktreeInfo,
)

ID = "**ID:**"
LABEL = "**Label:**"
DESCRIPTION = "**Description:**"
TYPE = "**Type:**"
STATUS = "**Status:**"
PRIORITY = "**Priority:**"
CREATED = "**Created:**"
UPDATED = "**Updated:**"
PRD = "**PRD:**"
ORDER = "**Order:**"
CLAIMED_BY = "**Claimed-By:**"
CLAIMED_AT = "**Claimed-At:**"
COMPLETED_AT = "**Completed-At:**"
REJECTION_COUNT = "**Rejection-Count:**"
AGENT_NOTES = "**Agent-Notes:**"
ASSIGNED_AGENT = "**Assigned-Agent:**"
WORKTREE_ENABLED = "**Worktree-Enabled:**"
WORKTREE_PATH = "**Worktree-Path:**"
WORKTREE_BRANCH = "**Worktree-Branch:**"
WORKTREE_BASE_BRANCH = "**Worktree-Base-Branch:**"
WORKTREE_CREATED_AT = "**Worktree-Created-At:**"
WORKTREE_STATUS = "**Worktree-Status:**"
GITHUB = "**GitHub:**"
GITHUB_PR = "**GitHub-PR:**"
GITHUB_SYNCED = "**GitHub-Synced:**"

FIELD_MARKERS: tuple[str, ...] = (
    ID,
    LABEL,
    DESCRIPTION,
    TYPE,
    STATUS,
    PRIORITY,
    CREATED,
    UPDATED,
    PRD,
    ORDER,
    CLAIMED_BY,
    CLAIMED_AT,
    COMPLETED_AT,
    REJECTION_COUNT,
    AGENT_NOTES,
    ASSIGNED_AGENT,
    WORKTREE_ENABLED,
    WORKTREE_PATH,
    WORKTREE_BRANCH,
    WORKTREE_BASE_BRANCH,
    WORKTREE_CREATED_AT,
    WORKTREE_STATUS,
    GITHUB,
    GITHUB_PR,
    GITHUB_SYNCED,
)

_TITLE_PATTERN = re.compile(r"^## Task:\s*(.+)$")
# Accepts both [Link](path) and [Any Text](path)
_LINK_PATTERN = re.compile(r"^\[([^\]]*)\]\((.+)\)$")
_INT_PATTERN = re.compile(r"^\d+$")
_ISSUE_NUMBER_PATTERN = re.compile(r"/issues/(\d+)")
_PR_NUMBER_PATTERN = re.compile(r"/pull/(\d+)")
_REPOSITORY_PATTERN = re.compile(r"github\.com/([^/]+/[^/]+)/")
_SEPARATOR = "---"


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line


def _line_ending(line: str) -> str:
    return "\r" if line.endswith("\r") else ""


def _metadata_end(lines: list[str]) -> int:
    """Index of the first ``---`` line after the ID line, or len(lines)."""
    seen_id = False
    for index, line in enumerate(lines):
        if line.startswith(ID):
            seen_id = True
        elif seen_id and line.startswith(_SEPARATOR):
            return index
    return len(lines)


def _marker_of(line: str) -> str | None:
    for marker in FIELD_MARKERS:
        if line.startswith(marker):
            return marker
    return None


def _collect_notes(lines: list[str], start: int, end: int, first: str) -> str:
    """Agent notes continue until the next ``**`` field or ``---`` line."""
    notes = [first] if first else []
    for line in lines[start + 1 : end]:
        line = _strip_cr(line)
        if line.startswith("**") or line.startswith(_SEPARATOR):
            break
        if line.strip():
            notes.append(line.strip())
    return "\n".join(notes)


def read_fields(content: str) -> tuple[str | None, dict[str, str]]:
    """Return the heading title and the raw value of each field marker.

    When a marker appears more than once, the first occurrence wins.
    """
    lines = content.split("\n")
    match = _TITLE_PATTERN.match(_strip_cr(lines[0]))
    title = match.group(1).strip() if match else None

    fields: dict[str, str] = {}
    end = _metadata_end(lines)
    for index in range(1, end):
        line = _strip_cr(lines[index])
        marker = _marker_of(line)
        if marker is None or marker in fields:
            continue
        value = line[len(marker) :].strip()
        if marker == AGENT_NOTES:
            value = _collect_notes(lines, index, end, value)
        fields[marker] = value
    return title, fields


def _parse_int(value: str | None) -> int | None:
    if value and _INT_PATTERN.match(value):
        return int(value)
    return None


def _link_target(value: str | None) -> str | None:
    match = _LINK_PATTERN.match(value or "")
    return match.group(2).strip() if match else None


def _search_int(pattern: re.Pattern[str], text: str | None) -> int | None:
    match = pattern.search(text or "")
    return int(match.group(1)) if match else None


def _parse_worktree(fields: dict[str, str]) -> WorktreeInfo | None:
    """Worktree metadata exists only when Worktree-Enabled is present."""
    if WORKTREE_ENABLED not in fields:
        return None
    return WorktreeInfo(
        enabled=fields[WORKTREE_ENABLED].lower() == "true",
        path=fields.get(WORKTREE_PATH) or None,
        branch=fields.get(WORKTREE_BRANCH) or None,
        base_branch=fields.get(WORKTREE_BASE_BRANCH) or None,
        created_at=fields.get(WORKTREE_CREATED_AT) or None,
        status=fields.get(WORKTREE_STATUS) or None,
    )


def _parse_github(fields: dict[str, str]) -> GitHubInfo | None:
    issue_url = _link_target(fields.get(GITHUB))
    pr_url = _link_target(fields.get(GITHUB_PR))
    if issue_url is None and pr_url is None:
        return None
    repository = _REPOSITORY_PATTERN.search(issue_url or "")
    return GitHubInfo(
        issue_url=issue_url,
        issue_number=_search_int(_ISSUE_NUMBER_PATTERN, issue_url),
        repository=repository.group(1) if repository else None,
        pr_url=pr_url,
        pr_number=_search_int(_PR_NUMBER_PATTERN, pr_url),
        last_synced=fields.get(GITHUB_SYNCED) or None,
    )


def parse_task(content: str, file_path: Path, project: str) -> Task:
    """Parse one task file. Raises ParseError if it is not a structured task."""
    title, fields = read_fields(content)
    if title is None:
        raise ParseError(file_path, "missing '## Task:' heading")

    task_id = fields.get(ID, "")
    if not task_id:
        raise ParseError(file_path, "missing **ID:** field")

    raw_status = fields.get(STATUS) or TaskStatus.backlog
    try:
        status = TaskStatus(raw_status)
    except ValueError:
        raise ParseError(file_path, f"unknown status {raw_status!r}") from None

    raw_priority = fields.get(PRIORITY) or TaskPriority.medium
    try:
        priority = TaskPriority(raw_priority)
    except ValueError:
        raise ParseError(file_path, f"unknown priority {raw_priority!r}") from None

    return Task(
        id=task_id,
        label=fields.get(LABEL) or title,
        file_path=file_path,
        project=project,
        description=fields.get(DESCRIPTION, ""),
        type=fields.get(TYPE) or "Task",
        status=status,
        priority=priority,
        created=fields.get(CREATED, ""),
        updated=fields.get(UPDATED, ""),
        prd_path=_link_target(fields.get(PRD)) or "",
        order=_parse_int(fields.get(ORDER)),
        claimed_by=fields.get(CLAIMED_BY, ""),
        claimed_at=fields.get(CLAIMED_AT, ""),
        completed_at=fields.get(COMPLETED_AT, ""),
        rejection_count=_parse_int(fields.get(REJECTION_COUNT)) or 0,
        agent_notes=fields.get(AGENT_NOTES, ""),
        assigned_agent=fields.get(ASSIGNED_AGENT) or None,
        worktree=_parse_worktree(fields),
        github=_parse_github(fields),
    )


def set_field(
    content: str, marker: str, value: str, after: Sequence[str] = ()
) -> str:
    """Return content with the first ``marker`` line set to ``value``.

    If the metadata region has no such line, a new one is inserted right
    after the first anchor found in ``after``, falling back to the ID line.
    Raises ValueError when there is nowhere to put it.
    """
    lines = content.split("\n")
    end = _metadata_end(lines)
    new_line = f"{marker} {value}"

    for index in range(1, end):
        if lines[index].startswith(marker):
            lines[index] = new_line + _line_ending(lines[index])
            return "\n".join(lines)

    for anchor in (*after, ID):
        for index in range(1, end):
            if lines[index].startswith(anchor):
                lines.insert(index + 1, new_line + _line_ending(lines[index]))
                return "\n".join(lines)

    raise ValueError(f"no {ID} line to anchor {marker}")
