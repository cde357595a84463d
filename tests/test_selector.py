"""Tests for provider selection."""

import pytest

from kaiban.providers.detection import CLIDetectionCache
from kaiban.providers.models import AUTO, default_providers
from kaiban.providers.probe import MockCLIProbe
from kaiban.providers.selector import cli_status, get_cli_availability_status


def _cache(*available: str) -> CLIDetectionCache:
    probe = MockCLIProbe(
        locations={name: f"/usr/bin/{name}" for name in available},
        versions={f"/usr/bin/{name}": f"{name} 1.2.3" for name in available},
    )
    return CLIDetectionCache(default_providers(), probe)


class TestAutoSelection:
    def test_first_available_in_preference_order(self):
        status = get_cli_availability_status(AUTO, _cache("codex", "claude"))
        assert status.has_available_cli is True
        assert status.selected_provider == "claude"
        assert status.selection_mode == AUTO
        assert status.error is None

    def test_skips_unavailable(self):
        status = get_cli_availability_status(AUTO, _cache("cursor"))
        assert status.selected_provider == "cursor"

    def test_reports_every_provider(self):
        status = get_cli_availability_status(AUTO, _cache("codex"))
        assert [c.name for c in status.clis] == ["claude", "codex", "cursor"]


class TestExplicitSelection:
    def test_available_explicit_provider(self):
        status = get_cli_availability_status("codex", _cache("claude", "codex"))
        assert status.selected_provider == "codex"
        assert status.selection_mode == "codex"

    def test_unavailable_explicit_falls_back_to_auto(self):
        status = get_cli_availability_status("cursor", _cache("codex"))
        assert status.has_available_cli is True
        assert status.selected_provider == "codex"
        assert status.selection_mode == AUTO

    def test_unknown_provider_raises(self):
        with pytest.raises(ValueError, match="gemini"):
            get_cli_availability_status("gemini", _cache("claude"))


class TestNothingAvailable:
    def test_error_lists_install_guidance(self):
        status = get_cli_availability_status(AUTO, _cache())
        assert status.has_available_cli is False
        assert status.selected_provider is None
        assert status.selection_mode == AUTO
        assert "Claude CLI" in status.error
        assert "npm install -g @openai/codex" in status.error

    def test_explicit_request_with_nothing_available(self):
        status = get_cli_availability_status("claude", _cache())
        assert status.has_available_cli is False
        assert status.error is not None


class TestCliStatus:
    def test_available(self):
        assert cli_status(_cache("codex")) == (True, "codex", "1.2.3")

    def test_none_available(self):
        assert cli_status(_cache()) == (False, None, None)

    def test_explicit(self):
        assert cli_status(_cache("claude", "cursor"), "cursor") == (
            True,
            "cursor",
            "1.2.3",
        )
