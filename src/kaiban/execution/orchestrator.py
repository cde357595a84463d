"""ExecutionOrchestrator: select a provider, mark the task, run one process."""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path

from kaiban.errors import (
    CLIUnavailableError,
    KaibanError,
    ProcessExitError,
    ProcessSpawnError,
)
from kaiban.execution.launcher import ProcessLauncher
from kaiban.providers.detection import CLIDetectionCache
from kaiban.providers.models import AUTO
from kaiban.providers.selector import get_cli_availability_status
from kaiban.tasks.models import Task, TaskStatus
from kaiban.tasks.repository import TaskRepository

logger = logging.getLogger(__name__)


class ExecutionState(Enum):
    IDLE = auto()
    SELECTING = auto()
    DISPATCHING = auto()
    RUNNING = auto()
    SUCCEEDED = auto()
    FAILED = auto()


# FAILED is reachable from every non-terminal state except IDLE.
_TRANSITIONS: dict[ExecutionState, set[ExecutionState]] = {
    ExecutionState.IDLE: {ExecutionState.SELECTING},
    ExecutionState.SELECTING: {ExecutionState.DISPATCHING, ExecutionState.FAILED},
    ExecutionState.DISPATCHING: {ExecutionState.RUNNING, ExecutionState.FAILED},
    ExecutionState.RUNNING: {ExecutionState.SUCCEEDED, ExecutionState.FAILED},
    ExecutionState.SUCCEEDED: set(),
    ExecutionState.FAILED: set(),
}


def valid_transition(current: ExecutionState, target: ExecutionState) -> bool:
    """Check if transitioning from current to target is allowed."""
    return target in _TRANSITIONS.get(current, set())


def is_terminal(state: ExecutionState) -> bool:
    return state in (ExecutionState.SUCCEEDED, ExecutionState.FAILED)


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""


@dataclass
class ExecutionResult:
    """Outcome of one execution request."""

    success: bool
    state: ExecutionState
    provider: str | None = None
    command: list[str] = field(default_factory=list)
    exit_code: int | None = None
    failure: KaibanError | None = None

    @property
    def error(self) -> str | None:
        return str(self.failure) if self.failure is not None else None


class ExecutionOrchestrator:
    """Runs a task through one provider process.

    The task is marked In Progress before the process starts, regardless of
    how the process later ends. Concurrent requests are not serialized.
    """

    def __init__(
        self,
        repository: TaskRepository,
        cache: CLIDetectionCache,
        launcher: ProcessLauncher,
        workspace_root: Path,
    ) -> None:
        self._repository = repository
        self._cache = cache
        self._launcher = launcher
        self._workspace_root = workspace_root
        self._state = ExecutionState.IDLE
        self._history: list[ExecutionState] = [ExecutionState.IDLE]

    @property
    def state(self) -> ExecutionState:
        return self._state

    @property
    def history(self) -> list[ExecutionState]:
        return list(self._history)

    def _transition(self, target: ExecutionState) -> None:
        if not valid_transition(self._state, target):
            raise InvalidTransitionError(
                f"Cannot transition from {self._state.name} to {target.name}"
            )
        self._state = target
        self._history.append(target)

    def _fail(
        self,
        failure: KaibanError,
        provider: str | None = None,
        command: list[str] | None = None,
        exit_code: int | None = None,
    ) -> ExecutionResult:
        self._transition(ExecutionState.FAILED)
        logger.info("Execution failed: %s", failure)
        return ExecutionResult(
            success=False,
            state=self._state,
            provider=provider,
            command=command or [],
            exit_code=exit_code,
            failure=failure,
        )

    def execute(
        self, task: Task, provider: str = AUTO, mark_in_progress: bool = True
    ) -> ExecutionResult:
        """Select a provider and run it on the task file; blocks until exit.

        ``mark_in_progress=False`` leaves the task file untouched (dry runs).
        """
        self._state = ExecutionState.IDLE
        self._history = [ExecutionState.IDLE]

        self._transition(ExecutionState.SELECTING)
        try:
            status = get_cli_availability_status(provider, self._cache)
        except ValueError as e:
            return self._fail(CLIUnavailableError(str(e)))
        if not status.has_available_cli or status.selected_provider is None:
            return self._fail(CLIUnavailableError(status.error or "No CLI available."))

        selected = status.selected_provider
        config = self._cache.providers.get(selected)
        detection = self._cache.get_cached_result(selected)
        executable = detection.executable_path if detection else config.executable_path
        args = [config.render_prompt(str(task.file_path)), *config.flags()]
        command = [executable, *args]

        self._transition(ExecutionState.DISPATCHING)
        if mark_in_progress:
            try:
                self._repository.update_task_status(task.id, TaskStatus.in_progress)
            except KaibanError as e:
                return self._fail(e, provider=selected, command=command)

        self._transition(ExecutionState.RUNNING)
        logger.info("Executing task %s with %s", task.id, selected)
        try:
            exit_code = self._launcher.run(executable, args, self._workspace_root)
        except ProcessSpawnError as e:
            return self._fail(e, provider=selected, command=command)

        if exit_code != 0:
            return self._fail(
                ProcessExitError(exit_code),
                provider=selected,
                command=command,
                exit_code=exit_code,
            )

        self._transition(ExecutionState.SUCCEEDED)
        return ExecutionResult(
            success=True,
            state=self._state,
            provider=selected,
            command=command,
            exit_code=exit_code,
        )
