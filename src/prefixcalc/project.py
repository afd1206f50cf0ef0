"""Project-level configuration and scaffolding."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "prefixcalc.yaml"

DEFAULT_CONFIG = {
    "logging_enabled": True,
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
    "logging_max_days": None,
    "output_precision": None,
    "batch_max_workers": 1,
    "batch_stop_on_error": False,
}

DEFAULT_CONFIG_YAML = """\
# prefixcalc project config
logging_enabled: true
logging_fsync: false
logging_max_days: 30

# Round displayed results to this many digits (null = shortest repr)
output_precision: null

batch_max_workers: 1
batch_stop_on_error: false
"""


def load_project_config(project_dir: Path) -> dict[str, Any]:
    """Load project configuration from ``prefixcalc.yaml``, with defaults.

    Args:
        project_dir: Root of the prefixcalc project.

    Returns:
        Merged configuration dict.  Unknown keys are kept.

    Raises:
        ValueError: If the config file does not contain a mapping.
    """
    config = dict(DEFAULT_CONFIG)
    config_path = project_dir / CONFIG_FILENAME
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path}: expected a mapping, got {type(user_config).__name__}")
        config.update(user_config)
    return config


def scaffold_project(target_dir: Path) -> Path:
    """Create a new project directory with a default config and logs dir.

    Args:
        target_dir: Directory to create.

    Returns:
        The created project directory.

    Raises:
        FileExistsError: If *target_dir* already holds a ``prefixcalc.yaml``.
    """
    config_path = target_dir / CONFIG_FILENAME
    if config_path.exists():
        raise FileExistsError(f"Project already exists: {target_dir}")

    target_dir.mkdir(parents=True, exist_ok=True)
    (target_dir / "logs").mkdir(exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG_YAML)
    return target_dir
