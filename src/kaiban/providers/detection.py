"""CLIDetectionCache: memoized per-provider probe results."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from kaiban.providers.models import CLIDetectionResult, ProviderTable
from kaiban.providers.probe import CLIProbe, detect_cli

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 5 * 60


@dataclass
class _Slot:
    result: CLIDetectionResult
    probed_at: float


class CLIDetectionCache:
    """Caches one detection result per known provider.

    Each provider owns its own slot, so refreshing one never disturbs another.
    Slots older than ``ttl_seconds`` count as empty; ``ttl_seconds=None``
    keeps results until cleared or force-refreshed.
    """

    def __init__(
        self,
        providers: ProviderTable,
        probe: CLIProbe,
        ttl_seconds: float | None = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._providers = providers
        self._probe = probe
        self._ttl = ttl_seconds
        self._clock = clock
        self._slots: dict[str, _Slot] = {}

    @property
    def providers(self) -> ProviderTable:
        return self._providers

    def _is_fresh(self, slot: _Slot) -> bool:
        if self._ttl is None:
            return True
        return self._clock() - slot.probed_at < self._ttl

    def detect_cli(
        self, name: str, path_override: str | None = None
    ) -> CLIDetectionResult:
        """Probe one provider now and store the result in its slot."""
        result = detect_cli(name, self._providers, self._probe, path_override)
        self._slots[name] = _Slot(result=result, probed_at=self._clock())
        return result

    def detect_all_clis(self, force_refresh: bool = False) -> list[CLIDetectionResult]:
        """Return exactly one result per known provider, in preference order.

        Populated, fresh slots are returned without probing unless
        ``force_refresh`` is set, in which case every slot is replaced.
        """
        results: list[CLIDetectionResult] = []
        for provider in self._providers:
            slot = self._slots.get(provider.name)
            if slot is not None and not force_refresh and self._is_fresh(slot):
                results.append(slot.result)
                continue
            results.append(self.detect_cli(provider.name))
        return results

    def clear_cache(self) -> None:
        self._slots.clear()
        logger.debug("Cleared CLI detection cache")

    def get_cached_result(self, name: str) -> CLIDetectionResult | None:
        slot = self._slots.get(name)
        return slot.result if slot is not None else None
