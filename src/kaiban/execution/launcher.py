"""ProcessLauncher protocol and implementations (Real, Mock, DryRun)."""

import logging
import shlex
import subprocess
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from kaiban.errors import ProcessSpawnError

logger = logging.getLogger(__name__)


def render_command(
    executable: str, args: list[str], platform: str | None = None
) -> str:
    """Join argv into one shell command line, quoting each argument."""
    argv = [executable, *args]
    if (platform or sys.platform) == "win32":
        return subprocess.list2cmdline(argv)
    return shlex.join(argv)


@runtime_checkable
class ProcessLauncher(Protocol):
    """Protocol for running one provider process to completion."""

    def run(self, executable: str, args: list[str], cwd: Path) -> int:
        """Run the process and return its exit code.

        Raises ProcessSpawnError if the process could not be started.
        """
        ...


class RealProcessLauncher:
    """Runs the command through the shell with the caller's terminal attached."""

    def run(self, executable: str, args: list[str], cwd: Path) -> int:
        cmd = render_command(executable, args)
        logger.info("Launching %s in %s", executable, cwd)
        try:
            # stdin/stdout/stderr are inherited, not captured
            completed = subprocess.run(cmd, shell=True, cwd=str(cwd))
        except OSError as e:
            raise ProcessSpawnError(str(e)) from e
        return completed.returncode


@dataclass
class MockProcessLauncher:
    """Returns canned exit codes for testing."""

    launched: list[tuple[str, list[str], Path]] = field(default_factory=list)
    exit_code: int = 0
    spawn_error: str | None = None
    on_launch: Callable[[], None] | None = None

    def run(self, executable: str, args: list[str], cwd: Path) -> int:
        if self.spawn_error is not None:
            raise ProcessSpawnError(self.spawn_error)
        self.launched.append((executable, list(args), cwd))
        if self.on_launch is not None:
            self.on_launch()
        return self.exit_code


class DryRunProcessLauncher:
    """Records the commands that would be run without executing them."""

    def __init__(self) -> None:
        self.commands: list[str] = []

    def run(self, executable: str, args: list[str], cwd: Path) -> int:
        command = render_command(executable, args)
        self.commands.append(f"cd {shlex.quote(str(cwd))} && {command}")
        return 0
