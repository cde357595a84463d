"""CLIProbe protocol and implementations (Real, Mock), plus per-provider detection."""

import logging
import os
import re
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from kaiban.providers.models import CLIDetectionResult, ProviderTable

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 5.0

_VERSION_PATTERN = re.compile(r"\d+\.\d+(?:\.\d+)?")

# Providers that may be installed outside PATH (app bundles) or exist only as
# shell functions: check these paths, then try running the bare name.
_FALLBACK_PATHS: dict[str, list[str]] = {
    "cursor": [
        "/Applications/Cursor.app/Contents/Resources/app/bin/cursor",
        "~/Applications/Cursor.app/Contents/Resources/app/bin/cursor",
    ],
}


def extract_version(output: str) -> str | None:
    """Return the first dotted version token in free-form ``--version`` output."""
    match = _VERSION_PATTERN.search(output)
    return match.group(0) if match else None


@runtime_checkable
class CLIProbe(Protocol):
    """Protocol for locating an executable and asking it for its version."""

    def locate(self, executable: str) -> str | None:
        """Return the resolved path of executable, or None if not found."""
        ...

    def version(self, executable: str) -> str | None:
        """Return the raw ``--version`` output, or None if the call failed."""
        ...

    def is_executable(self, path: str) -> bool:
        """Check if a concrete file path exists and is executable."""
        ...


class RealCLIProbe:
    """Runs ``which``/``where`` and ``<exe> --version`` via subprocess."""

    def __init__(
        self, timeout: float = DEFAULT_PROBE_TIMEOUT, platform: str | None = None
    ) -> None:
        self._timeout = timeout
        self._platform = platform or sys.platform

    def _locate_command(self, executable: str) -> list[str]:
        if self._platform == "win32":
            return ["where", executable]
        return ["which", executable]

    def _run(self, cmd: list[str]) -> subprocess.CompletedProcess[str] | None:
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("Probe command %s failed: %s", cmd, e)
            return None

    def locate(self, executable: str) -> str | None:
        result = self._run(self._locate_command(executable))
        if result is None or result.returncode != 0:
            return None
        lines = result.stdout.strip().splitlines()
        return lines[0].strip() if lines else None

    def version(self, executable: str) -> str | None:
        result = self._run([executable, "--version"])
        if result is None or result.returncode != 0:
            return None
        return result.stdout or result.stderr

    def is_executable(self, path: str) -> bool:
        candidate = Path(path).expanduser()
        return candidate.is_file() and os.access(candidate, os.X_OK)


@dataclass
class MockCLIProbe:
    """Returns canned probe outcomes for testing.

    ``locations`` maps executable name to resolved path; ``versions`` maps
    executable (name or resolved path) to raw ``--version`` output.
    """

    locations: dict[str, str] = field(default_factory=dict)
    versions: dict[str, str] = field(default_factory=dict)
    executables: set[str] = field(default_factory=set)
    calls: list[tuple[str, str]] = field(default_factory=list)

    def locate(self, executable: str) -> str | None:
        self.calls.append(("locate", executable))
        return self.locations.get(executable)

    def version(self, executable: str) -> str | None:
        self.calls.append(("version", executable))
        return self.versions.get(executable)

    def is_executable(self, path: str) -> bool:
        self.calls.append(("is_executable", path))
        return path in self.executables


def _fallback_locate(name: str, executable: str, probe: CLIProbe) -> tuple[bool, str]:
    for path in _FALLBACK_PATHS.get(name, []):
        if probe.is_executable(path):
            return True, path
    if name in _FALLBACK_PATHS and probe.version(executable) is not None:
        return True, executable
    return False, executable


def detect_cli(
    name: str,
    providers: ProviderTable,
    probe: CLIProbe,
    path_override: str | None = None,
) -> CLIDetectionResult:
    """Probe one provider. Never raises for a missing executable.

    An unresolved executable keeps its raw name in ``executable_path`` so a
    later spawn still has something to try. A failed version probe leaves
    ``available`` untouched.
    """
    executable = path_override or providers.get(name).executable_path
    result = CLIDetectionResult(name=name, available=False, executable_path=executable)

    resolved = probe.locate(executable)
    if resolved:
        result.available = True
        result.executable_path = resolved
    else:
        result.available, result.executable_path = _fallback_locate(
            name, executable, probe
        )

    if not result.available:
        result.error = f"{executable} not found"
        logger.debug("Provider %s not available (%s)", name, executable)
        return result

    output = probe.version(result.executable_path)
    if output is not None:
        result.version = extract_version(output)
    logger.debug(
        "Provider %s available at %s (version %s)",
        name,
        result.executable_path,
        result.version,
    )
    return result
