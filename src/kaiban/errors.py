"""Error taxonomy shared by the task store, provider detection and execution."""

from pathlib import Path


class KaibanError(Exception):
    """Base class for all errors raised by kaiban."""


class FileSystemError(KaibanError):
    """A workspace root is missing or a task file cannot be read or written."""


class ParseError(KaibanError):
    """A single task file is malformed and was skipped."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class TaskNotFoundError(KaibanError):
    """Raised when an update names a task id that the last scan did not see."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with ID {task_id} not found")
        self.task_id = task_id


class CLIUnavailableError(KaibanError):
    """No provider executable could be resolved."""


class ProcessSpawnError(KaibanError):
    """The provider process could not be started."""


class ProcessExitError(KaibanError):
    """The provider process exited with a non-zero code."""

    def __init__(self, exit_code: int) -> None:
        super().__init__(f"CLI exited with code {exit_code}")
        self.exit_code = exit_code
