"""
Config/Preset Resolver

Resolves a HeatmapConfig from a named preset (heatmap_presets.yml), a custom
parameter mapping, or both (preset first, then overrides). Unknown preset
names, unknown keys and out-of-range values raise InvalidConfig naming the
field; a config is either fully valid or not returned at all.
"""

from __future__ import annotations

import logging
from dataclasses import fields, replace
from typing import Any, Dict, List, Mapping, Optional, Union

from heatcore.common.config import load_presets
from heatcore.core.filters import build_filters
from heatcore.core.models import HeatmapConfig, HeatmapFilters
from heatcore.core.validation import InvalidConfig, validate_config

logger = logging.getLogger(__name__)

CONFIG_FIELDS = tuple(f.name for f in fields(HeatmapConfig))

# Client-side (camelCase) names accepted alongside the canonical ones
CONFIG_ALIASES = {
    "timeDecayFactor": "time_decay_factor",
    "severityWeightMultiplier": "severity_weight_multiplier",
    "gridSize": "grid_size_meters",
    "gridSizeMeters": "grid_size_meters",
    "clusterRadius": "cluster_radius_meters",
    "clusterRadiusMeters": "cluster_radius_meters",
    "minClusterSize": "min_cluster_size",
    "normalizeWeights": "normalize_weights",
}


def list_presets() -> List[Dict[str, Any]]:
    """Name, label and description of every preset, in file order."""
    return [
        {"name": name, "label": body.get("label", name), "description": body.get("description", "")}
        for name, body in load_presets().items()
    ]


def _preset(name: str) -> Mapping[str, Any]:
    presets = load_presets()
    key = str(name).strip().lower()
    if key not in presets:
        raise InvalidConfig(
            f"Unknown preset '{name}'. Must be one of: {list(presets)}",
            field="preset",
        )
    return presets[key] or {}


def _canonical_keys(params: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in params.items():
        name = CONFIG_ALIASES.get(key, key)
        if name not in CONFIG_FIELDS:
            raise InvalidConfig(f"Unknown config key '{key}'", field=key)
        out[name] = value
    return out


def resolve_config(
    preset: Optional[str] = None,
    custom: Union[HeatmapConfig, Mapping[str, Any], None] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> HeatmapConfig:
    """
    Resolve and validate a HeatmapConfig.

    Args:
        preset: Preset name (emergency, maintenance, overview, zone, custom)
        custom: Full config or partial parameter mapping applied over the preset
        overrides: Further parameter mapping applied last

    Returns:
        HeatmapConfig: Validated configuration

    Raises:
        InvalidConfig: Naming the offending field, preset or key
    """
    config = HeatmapConfig()
    if preset:
        config = replace(config, **_canonical_keys(_preset(preset).get("config") or {}))

    if isinstance(custom, HeatmapConfig):
        config = custom
    elif custom:
        config = replace(config, **_canonical_keys(custom))

    if overrides:
        config = replace(config, **_canonical_keys(overrides))

    validate_config(config)
    logger.debug(f"Resolved config (preset={preset}): {config.to_dict()}")
    return config


def resolve_preset_filters(name: str) -> HeatmapFilters:
    """Default filters attached to a preset."""
    return build_filters(_preset(name).get("filters") or {})
