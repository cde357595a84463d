"""Task execution through an external provider process."""

from kaiban.execution.launcher import (
    DryRunProcessLauncher,
    MockProcessLauncher,
    ProcessLauncher,
    RealProcessLauncher,
    render_command,
)
from kaiban.execution.orchestrator import (
    ExecutionOrchestrator,
    ExecutionResult,
    ExecutionState,
    InvalidTransitionError,
)

__all__ = [
    "DryRunProcessLauncher",
    "ExecutionOrchestrator",
    "ExecutionResult",
    "ExecutionState",
    "InvalidTransitionError",
    "MockProcessLauncher",
    "ProcessLauncher",
    "RealProcessLauncher",
    "render_command",
]
