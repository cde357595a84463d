"""Configure test path so kaiban packages are importable."""

import sys
from pathlib import Path

import pytest

# Add src/ to path so `from kaiban.tasks.models import ...` works
src_dir = Path(__file__).resolve().parent.parent / "src"
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))


@pytest.fixture
def tasks_dir(tmp_path: Path) -> Path:
    """A workspace rooted at tmp_path with an empty .agent/TASKS directory."""
    path = tmp_path / ".agent" / "TASKS"
    path.mkdir(parents=True)
    return path
