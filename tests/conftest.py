from __future__ import annotations

from pathlib import Path

import pytest

from prefixcalc.logging.events import reset_project_dir
from prefixcalc.project import scaffold_project


@pytest.fixture(autouse=True)
def _detach_event_sink():
    """Each test starts and ends with no module-level event sink."""
    reset_project_dir()
    yield
    reset_project_dir()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create a scaffolded project directory."""
    return scaffold_project(tmp_path / "proj")
