"""
YAML Configuration Loader

Loads the packaged YAML tables (heatmap presets, priority rulebook) without
hardcoded defaults. Paths can be overridden with environment variables for
deployments that ship their own tables.
"""

import functools
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from heatcore.utils.constants import ENV_PRESETS_PATH, ENV_RULEBOOK_PATH

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


def presets_path() -> Path:
    return Path(os.getenv(ENV_PRESETS_PATH) or CONFIG_DIR / "heatmap_presets.yml")


def rulebook_path() -> Path:
    return Path(os.getenv(ENV_RULEBOOK_PATH) or CONFIG_DIR / "priority_rulebook.yml")


@functools.lru_cache(maxsize=8)
def load_yaml(path: str) -> Dict[str, Any]:
    """
    Load and cache a YAML mapping.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the document is not a mapping
    """
    p = Path(path)
    if not p.exists():
        logger.error(f"Config file not found at {p.absolute()}")
        raise FileNotFoundError(f"Config file not found at {p}")

    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"{p.name} must contain a YAML mapping at top level")
    logger.info(f"Loaded {p.name} (version {data.get('version', 'unversioned')})")
    return data


def load_presets(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load heatmap_presets.yml.

    Returns:
        dict: preset name -> {"label", "description", "config", "filters"}
    """
    data = load_yaml(str(path or presets_path()))
    presets = data.get("presets")
    if not isinstance(presets, dict) or not presets:
        raise ValueError("heatmap_presets.yml missing required field: presets")
    return presets


def load_rulebook(path: Optional[str] = None) -> Dict[str, Any]:
    """Load priority_rulebook.yml as a raw mapping."""
    return load_yaml(str(path or rulebook_path()))
