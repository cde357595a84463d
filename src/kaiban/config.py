"""Workspace configuration loaded from .agent/kaiban.json."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from kaiban.errors import FileSystemError
from kaiban.providers.detection import DEFAULT_CACHE_TTL_SECONDS
from kaiban.providers.models import AUTO, ProviderTable, default_providers
from kaiban.tasks.store import DEFAULT_TASKS_SUBDIR, WorkspaceDir

CONFIG_FILENAME = "kaiban.json"


def config_path(workspace: Path) -> Path:
    return workspace / ".agent" / CONFIG_FILENAME


@dataclass
class KaibanConfig:
    """Everything the store, detection cache and orchestrator need."""

    workspace_dirs: list[WorkspaceDir]
    tasks_subdir: Path = DEFAULT_TASKS_SUBDIR
    cli_provider: str = AUTO
    cache_ttl_seconds: float | None = DEFAULT_CACHE_TTL_SECONDS
    providers: ProviderTable = field(default_factory=default_providers)

    @property
    def workspace_root(self) -> Path:
        return self.workspace_dirs[0].path


def _read_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise FileSystemError(f"Cannot read config {path}: {e}") from e
    if not isinstance(data, dict):
        raise FileSystemError(f"Config {path} must contain a JSON object")
    return data


def load_config(workspace: Path, cli_provider: str | None = None) -> KaibanConfig:
    """Build the configuration for one workspace.

    Values from the optional JSON file override the defaults; an explicit
    ``cli_provider`` argument overrides the file.
    """
    root = workspace.resolve()
    data = _read_json(config_path(root))

    providers = default_providers().with_overrides(data.get("providers", {}))
    ttl = data.get("cacheTtlSeconds", DEFAULT_CACHE_TTL_SECONDS)

    config = KaibanConfig(
        workspace_dirs=[WorkspaceDir.from_path(root)],
        tasks_subdir=Path(data.get("tasksDir", DEFAULT_TASKS_SUBDIR)),
        cli_provider=cli_provider or data.get("cliProvider", AUTO),
        cache_ttl_seconds=float(ttl) if ttl is not None else None,
        providers=providers,
    )
    if config.cli_provider != AUTO:
        # raises ValueError for an unknown provider name
        providers.get(config.cli_provider)
    return config
