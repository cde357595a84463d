"""Provider configuration table and detection result types."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

AUTO = "auto"

DEFAULT_PROMPT_TEMPLATE = (
    "Read the task file at {taskFile} and implement it. "
    "The task contains a link to the PRD with full requirements. "
    "Update the task status to Done when complete."
)


@dataclass(frozen=True)
class ProviderConfig:
    """How to find and invoke one external AI command-line tool."""

    name: str
    display_name: str
    executable_path: str
    install_instructions: str
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE
    additional_flags: str = ""
    supports_ralph_loop: bool = False

    def render_prompt(self, task_file: str) -> str:
        return self.prompt_template.replace("{taskFile}", task_file)

    def flags(self) -> list[str]:
        return self.additional_flags.split()


class ProviderTable:
    """Known providers in preference order, keyed by name.

    Built once and passed by reference to detection, selection and execution.
    """

    def __init__(self, providers: list[ProviderConfig]) -> None:
        names = [p.name for p in providers]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate provider names: {names}")
        if AUTO in names:
            raise ValueError(f"'{AUTO}' is reserved and cannot name a provider")
        self._providers = {p.name: p for p in providers}

    def __iter__(self) -> Iterator[ProviderConfig]:
        return iter(self._providers.values())

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    @property
    def names(self) -> list[str]:
        return list(self._providers)

    def get(self, name: str) -> ProviderConfig:
        try:
            return self._providers[name]
        except KeyError:
            known = ", ".join(self._providers)
            raise ValueError(f"Unknown provider '{name}' (known: {known})") from None

    def with_overrides(
        self, overrides: Mapping[str, Mapping[str, Any]]
    ) -> "ProviderTable":
        """Return a new table with per-provider field overrides applied.

        Keys are provider names; values map ``executablePath``,
        ``promptTemplate`` and ``additionalFlags`` to new strings.
        """
        updated: list[ProviderConfig] = []
        for provider in self:
            values = overrides.get(provider.name, {})
            changes = {
                attr: str(values[key])
                for key, attr in _OVERRIDE_KEYS.items()
                if values.get(key) is not None
            }
            updated.append(replace(provider, **changes))
        return ProviderTable(updated)

    def install_guidance(self) -> str:
        names = ", ".join(p.display_name for p in self)
        steps = "; ".join(p.install_instructions for p in self)
        return f"No CLI available. Install one of: {names}. {steps}"


_OVERRIDE_KEYS: dict[str, str] = {
    "executablePath": "executable_path",
    "promptTemplate": "prompt_template",
    "additionalFlags": "additional_flags",
}


def default_providers() -> ProviderTable:
    return ProviderTable(
        [
            ProviderConfig(
                name="claude",
                display_name="Claude CLI",
                executable_path="claude",
                install_instructions=(
                    "Install Claude CLI: npm install -g @anthropic-ai/claude-code"
                ),
                supports_ralph_loop=True,
            ),
            ProviderConfig(
                name="codex",
                display_name="Codex CLI",
                executable_path="codex",
                install_instructions="Install Codex CLI: npm install -g @openai/codex",
            ),
            ProviderConfig(
                name="cursor",
                display_name="Cursor CLI",
                executable_path="cursor",
                install_instructions="Cursor CLI is included with Cursor IDE",
            ),
        ]
    )


@dataclass
class CLIDetectionResult:
    """Outcome of one probe for one provider."""

    name: str
    available: bool
    executable_path: str
    version: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "available": self.available,
            "executable_path": self.executable_path,
            "version": self.version,
            "error": self.error,
        }


@dataclass
class CLIAvailabilityStatus:
    """Provider selection outcome, computed fresh on each call."""

    has_available_cli: bool
    selected_provider: str | None
    selection_mode: str
    clis: list[CLIDetectionResult] = field(default_factory=list)
    error: str | None = None
