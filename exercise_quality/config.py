"""
Config loader for the Exercise Quality project.

All configuration lives in the configs/ directory as YAML files.
The pipeline script and the tests load their settings through this module
so there's one place to look when a value needs changing.

Usage:

    from exercise_quality.config import load_config

    cfg = load_config("pipeline")
    training_csv = cfg["data"]["training_csv"]

    model_cfg = load_config("model_training")
    ensemble_size = model_cfg["random_forest"]["ensemble_size"]
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

# Resolve the configs/ directory relative to this file so the package works
# regardless of the working directory the caller uses.
_CONFIGS_DIR = Path(__file__).parent.parent / "configs"


def load_config(name: str, configs_dir: Path | str | None = None) -> dict[str, Any]:
    """
    Load a named YAML config file from the configs/ directory.

    Args:
        name: Config file name without the .yaml extension.
              Valid options: "pipeline", "model_training".
        configs_dir: Directory to read from instead of the project's configs/.

    Returns:
        The parsed YAML contents as a nested dictionary (empty if the file is empty).

    Raises:
        FileNotFoundError: If <configs_dir>/<name>.yaml does not exist.
        yaml.YAMLError: If the file contains invalid YAML.
    """
    base = Path(configs_dir) if configs_dir is not None else _CONFIGS_DIR
    path = base / f"{name}.yaml"
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            f"Expected one of: {[p.stem for p in base.glob('*.yaml')]}"
        )
    with path.open(encoding="utf-8") as f:
        return yaml.safe_load(f) or {}
