"""
Spatial Aggregator

Three interchangeable strategies producing HeatPoints:
- raw.py     - one point per issue
- grid.py    - fixed-size grid binning
- cluster.py - greedy weight-ordered radius clustering
"""

import logging
from typing import List, Sequence

from heatcore.core.models import HeatmapConfig, HeatPoint, WeightedIssue
from heatcore.core.spatial.cluster import aggregate_clustered, build_clusters
from heatcore.core.spatial.grid import aggregate_grid, build_grid_cells
from heatcore.core.spatial.points import normalize_intensity
from heatcore.core.spatial.raw import aggregate_raw
from heatcore.core.validation import InvalidConfig
from heatcore.utils.constants import MODE_ALIASES, MODE_CLUSTERED, MODE_GRID, MODE_RAW

logger = logging.getLogger(__name__)

__all__ = [
    "aggregate",
    "resolve_mode",
    "aggregate_raw",
    "aggregate_grid",
    "aggregate_clustered",
    "build_grid_cells",
    "build_clusters",
    "normalize_intensity",
]


def resolve_mode(mode: str) -> str:
    """
    Map a mode name (or alias) onto raw / grid / clustered.

    Raises:
        InvalidConfig: For an unknown mode
    """
    key = str(mode or "").strip().lower()
    if key not in MODE_ALIASES:
        raise InvalidConfig(
            f"Invalid mode '{mode}'. Must be one of: {[MODE_RAW, MODE_GRID, MODE_CLUSTERED]}",
            field="mode",
        )
    return MODE_ALIASES[key]


def aggregate(weighted: Sequence[WeightedIssue], config: HeatmapConfig, mode: str) -> List[HeatPoint]:
    """Run the selected strategy and apply output normalisation."""
    mode = resolve_mode(mode)
    if mode == MODE_RAW:
        points = aggregate_raw(weighted)
    elif mode == MODE_GRID:
        points = aggregate_grid(weighted, config.grid_size_meters)
    elif not config.clustering_enabled:
        logger.debug("No cluster radius configured; clustered mode emits raw points")
        points = aggregate_raw(weighted)
    else:
        points = aggregate_clustered(weighted, config.cluster_radius_meters, config.min_cluster_size)
    logger.debug(f"{mode} aggregation produced {len(points)} points")
    return normalize_intensity(points, config.normalize_weights)
