"""TaskFileStore: discover task files under workspace directories and parse them."""

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from kaiban.errors import FileSystemError, ParseError
from kaiban.tasks.markdown import parse_task
from kaiban.tasks.models import Task

logger = logging.getLogger(__name__)

DEFAULT_TASKS_SUBDIR = Path(".agent") / "TASKS"

_SKIPPED_NAMES = {"README.md"}


@dataclass(frozen=True)
class WorkspaceDir:
    """A workspace root whose tasks subtree is scanned; name becomes Task.project."""

    path: Path
    name: str

    @classmethod
    def from_path(cls, path: Path) -> "WorkspaceDir":
        resolved = path.resolve()
        return cls(path=resolved, name=resolved.name)


@dataclass(frozen=True)
class TaskFile:
    path: Path
    project: str


@dataclass
class ScanResult:
    """Parsed tasks in discovery order, plus the files that were skipped."""

    tasks: list[Task] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)


def _scan_directory(directory: Path, project: str) -> Iterator[TaskFile]:
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as e:
        raise FileSystemError(f"Cannot read directory {directory}: {e}") from e

    for entry in entries:
        # symlinked directories are skipped, not followed
        if entry.is_symlink() and entry.is_dir():
            logger.debug("Not following symlinked directory %s", entry)
            continue
        if entry.is_dir():
            yield from _scan_directory(entry, project)
        elif (
            entry.is_file()
            and entry.suffix == ".md"
            and entry.name not in _SKIPPED_NAMES
        ):
            yield TaskFile(path=entry, project=project)


def find_task_files(
    workspace_dirs: Sequence[WorkspaceDir],
    tasks_subdir: Path = DEFAULT_TASKS_SUBDIR,
) -> list[TaskFile]:
    """Recursively list markdown task files without parsing them.

    A workspace without a tasks subtree contributes nothing; a workspace root
    that does not exist raises FileSystemError.
    """
    found: list[TaskFile] = []
    for workspace in workspace_dirs:
        if not workspace.path.is_dir():
            raise FileSystemError(f"Workspace directory not found: {workspace.path}")
        tasks_dir = workspace.path / tasks_subdir
        if not tasks_dir.is_dir():
            continue
        found.extend(_scan_directory(tasks_dir, workspace.name))
    return found


def parse_tasks(
    workspace_dirs: Sequence[WorkspaceDir],
    tasks_subdir: Path = DEFAULT_TASKS_SUBDIR,
) -> ScanResult:
    """Parse every discoverable task file; malformed files are skipped.

    When two files declare the same task id, the first one discovered wins
    and the later file is reported as an error.
    """
    result = ScanResult()
    seen: dict[str, Path] = {}

    for task_file in find_task_files(workspace_dirs, tasks_subdir):
        try:
            content = task_file.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            error = ParseError(task_file.path, f"unreadable: {e}")
            logger.warning("Skipping task file %s", error)
            result.errors.append(error)
            continue

        try:
            task = parse_task(content, task_file.path.resolve(), task_file.project)
        except ParseError as error:
            logger.warning("Skipping task file %s", error)
            result.errors.append(error)
            continue

        if task.id in seen:
            error = ParseError(
                task_file.path,
                f"duplicate task id {task.id!r} (already defined in {seen[task.id]})",
            )
            logger.warning("Skipping task file %s", error)
            result.errors.append(error)
            continue

        seen[task.id] = task.file_path
        result.tasks.append(task)

    logger.debug(
        "Scanned %d task(s), skipped %d file(s)", len(result.tasks), len(result.errors)
    )
    return result
