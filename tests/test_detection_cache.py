"""Tests for CLIDetectionCache."""

from kaiban.providers.detection import CLIDetectionCache
from kaiban.providers.models import default_providers
from kaiban.providers.probe import MockCLIProbe


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _probe() -> MockCLIProbe:
    return MockCLIProbe(
        locations={"claude": "/usr/bin/claude"},
        versions={"/usr/bin/claude": "1.0.0"},
    )


def _locate_calls(probe: MockCLIProbe) -> list[str]:
    return [arg for kind, arg in probe.calls if kind == "locate"]


class TestDetectAllClis:
    def test_one_result_per_provider_in_order(self):
        cache = CLIDetectionCache(default_providers(), _probe())
        results = cache.detect_all_clis()
        assert [r.name for r in results] == ["claude", "codex", "cursor"]
        assert [r.available for r in results] == [True, False, False]

    def test_second_call_does_not_probe(self):
        probe = _probe()
        cache = CLIDetectionCache(default_providers(), probe)
        first = cache.detect_all_clis()
        calls = len(probe.calls)

        second = cache.detect_all_clis()
        assert len(probe.calls) == calls
        assert second == first

    def test_force_refresh_picks_up_changes(self):
        probe = _probe()
        cache = CLIDetectionCache(default_providers(), probe)
        cache.detect_all_clis()

        probe.versions["/usr/bin/claude"] = "2.0.0"
        probe.locations["codex"] = "/usr/bin/codex"
        assert cache.detect_all_clis()[0].version == "1.0.0"

        refreshed = cache.detect_all_clis(force_refresh=True)
        assert refreshed[0].version == "2.0.0"
        assert refreshed[1].available is True

    def test_only_empty_slots_are_probed(self):
        probe = _probe()
        cache = CLIDetectionCache(default_providers(), probe)
        cache.detect_cli("claude")
        probe.calls.clear()

        cache.detect_all_clis()
        assert _locate_calls(probe) == ["codex", "cursor"]


class TestSlots:
    def test_detect_cli_stores_result(self):
        cache = CLIDetectionCache(default_providers(), _probe())
        assert cache.get_cached_result("claude") is None
        result = cache.detect_cli("claude")
        assert cache.get_cached_result("claude") is result

    def test_refreshing_one_slot_keeps_others(self):
        probe = _probe()
        cache = CLIDetectionCache(default_providers(), probe)
        cache.detect_all_clis()
        codex = cache.get_cached_result("codex")

        cache.detect_cli("claude")
        assert cache.get_cached_result("codex") is codex

    def test_clear_cache(self):
        probe = _probe()
        cache = CLIDetectionCache(default_providers(), probe)
        cache.detect_all_clis()
        cache.clear_cache()
        assert cache.get_cached_result("claude") is None

        probe.calls.clear()
        cache.detect_all_clis()
        assert _locate_calls(probe) == ["claude", "codex", "cursor"]


class TestTtl:
    def test_expired_slots_are_reprobed(self):
        clock = FakeClock()
        probe = _probe()
        cache = CLIDetectionCache(
            default_providers(), probe, ttl_seconds=60, clock=clock
        )
        cache.detect_all_clis()
        probe.calls.clear()

        clock.now += 59
        cache.detect_all_clis()
        assert probe.calls == []

        clock.now += 1
        cache.detect_all_clis()
        assert _locate_calls(probe) == ["claude", "codex", "cursor"]

    def test_no_ttl_never_expires(self):
        clock = FakeClock()
        probe = _probe()
        cache = CLIDetectionCache(
            default_providers(), probe, ttl_seconds=None, clock=clock
        )
        cache.detect_all_clis()
        probe.calls.clear()

        clock.now += 10**9
        cache.detect_all_clis()
        assert probe.calls == []
