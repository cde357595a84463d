"""Provider selection: honor an explicit request, else fall back to preference order."""

from kaiban.providers.detection import CLIDetectionCache
from kaiban.providers.models import AUTO, CLIAvailabilityStatus, CLIDetectionResult


def _first_available(clis: list[CLIDetectionResult]) -> str | None:
    # clis arrive in the table's preference order
    for cli in clis:
        if cli.available:
            return cli.name
    return None


def get_cli_availability_status(
    requested: str, cache: CLIDetectionCache
) -> CLIAvailabilityStatus:
    """Pick a provider for ``requested`` ("auto" or a provider name).

    An available explicit provider is selected under its own name. Otherwise
    the first available provider in preference order is chosen and the mode
    becomes "auto". Results come from the cache; only empty or expired slots
    are probed.
    """
    if requested != AUTO and requested not in cache.providers:
        # raises ValueError listing the known names
        cache.providers.get(requested)

    clis = cache.detect_all_clis()

    if requested != AUTO:
        for cli in clis:
            if cli.name == requested and cli.available:
                return CLIAvailabilityStatus(
                    has_available_cli=True,
                    selected_provider=requested,
                    selection_mode=requested,
                    clis=clis,
                )

    selected = _first_available(clis)
    if selected is None:
        return CLIAvailabilityStatus(
            has_available_cli=False,
            selected_provider=None,
            selection_mode=AUTO,
            clis=clis,
            error=cache.providers.install_guidance(),
        )

    return CLIAvailabilityStatus(
        has_available_cli=True,
        selected_provider=selected,
        selection_mode=AUTO,
        clis=clis,
    )


def cli_status(
    cache: CLIDetectionCache, requested: str = AUTO
) -> tuple[bool, str | None, str | None]:
    """Summarize selection as (available, provider, version) for status lines."""
    status = get_cli_availability_status(requested, cache)
    if status.selected_provider is None:
        return False, None, None
    result = cache.get_cached_result(status.selected_provider)
    return True, status.selected_provider, result.version if result else None
