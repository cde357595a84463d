"""AI command-line provider detection, caching and selection."""

from kaiban.providers.detection import CLIDetectionCache
from kaiban.providers.models import (
    AUTO,
    CLIAvailabilityStatus,
    CLIDetectionResult,
    ProviderConfig,
    ProviderTable,
    default_providers,
)
from kaiban.providers.probe import (
    CLIProbe,
    MockCLIProbe,
    RealCLIProbe,
    detect_cli,
    extract_version,
)
from kaiban.providers.selector import cli_status, get_cli_availability_status

__all__ = [
    "AUTO",
    "CLIAvailabilityStatus",
    "CLIDetectionCache",
    "CLIDetectionResult",
    "CLIProbe",
    "MockCLIProbe",
    "ProviderConfig",
    "ProviderTable",
    "RealCLIProbe",
    "cli_status",
    "default_providers",
    "detect_cli",
    "extract_version",
    "get_cli_availability_status",
]
