"""
heatcore - issue heatmap aggregation and priority scoring.

Turns geotagged, timestamped issue reports into density heat points (raw,
grid or clustered), zone/category risk scores and summary statistics.
"""

from heatcore.core.models import (
    Category,
    HeatmapConfig,
    HeatmapFilters,
    HeatPoint,
    Issue,
    IssuePriority,
    IssueStatus,
    Layer,
    RiskLevel,
    RiskScore,
    StatsReport,
)
from heatcore.core.pipeline import build_heatmap, build_priorities, build_stats, to_geojson
from heatcore.core.presets import list_presets, resolve_config
from heatcore.core.validation import HeatmapError, InvalidConfig, InvalidIssue

__version__ = "1.0.0"

__all__ = [
    "Category",
    "HeatmapConfig",
    "HeatmapFilters",
    "HeatPoint",
    "Issue",
    "IssuePriority",
    "IssueStatus",
    "Layer",
    "RiskLevel",
    "RiskScore",
    "StatsReport",
    "build_heatmap",
    "build_priorities",
    "build_stats",
    "to_geojson",
    "list_presets",
    "resolve_config",
    "HeatmapError",
    "InvalidConfig",
    "InvalidIssue",
]
