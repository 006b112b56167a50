"""
Heatmap Pipeline

Entry points tying the stages together:

    filters -> weights -> spatial aggregation -> HeatPoint[]
                       -> stats summary
    filters -> risk scoring -> RiskScore[]

Configuration, mode and filters are all resolved before any computation, so
an InvalidConfig never leaves partial output behind. Every call is pure:
identical inputs give identical outputs.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from heatcore.core.filters import build_filters, filter_issues
from heatcore.core.models import HeatmapConfig, HeatmapFilters, HeatPoint, Issue, RiskScore, StatsReport, as_utc, to_iso
from heatcore.core.presets import resolve_config, resolve_preset_filters
from heatcore.core.priority import score_risks
from heatcore.core.spatial import aggregate, resolve_mode
from heatcore.core.stats import summarize
from heatcore.core.validation import InvalidIssue, validate_issue
from heatcore.core.weights import weigh_issues
from heatcore.utils.constants import GROUP_BY_ZONE_CATEGORY, MODE_GRID

logger = logging.getLogger(__name__)

FiltersInput = Union[HeatmapFilters, Mapping[str, Any], None]
ConfigInput = Union[HeatmapConfig, Mapping[str, Any], None]


def _now(now: Optional[datetime]) -> datetime:
    return as_utc(now) if now is not None else datetime.now(timezone.utc)


def _resolve_filters(filters: FiltersInput, preset: Optional[str]) -> Optional[HeatmapFilters]:
    """Explicit filters win; otherwise the preset's default filters apply."""
    if isinstance(filters, HeatmapFilters):
        return filters
    if filters:
        return build_filters(filters)
    if preset:
        return resolve_preset_filters(preset)
    return None


def _valid_issues(issues: Iterable[Issue]) -> List[Issue]:
    """Drop records that fail validation so filters only see well-formed issues."""
    valid = []
    for issue in issues:
        try:
            validate_issue(issue)
        except InvalidIssue as e:
            logger.warning(f"Skipping invalid issue: {e.message}")
            continue
        valid.append(issue)
    return valid


def _weighted(issues, filters, config, preset, now):
    cfg = resolve_config(preset=preset, custom=config)
    flt = _resolve_filters(filters, preset)
    issues = list(issues)
    selected = filter_issues(_valid_issues(issues), flt, now)
    weighted = weigh_issues(selected, now, cfg)
    logger.info(f"Pipeline: {len(issues)} issues -> {len(selected)} filtered -> {len(weighted)} weighted")
    return cfg, weighted


def build_heatmap(
    issues: Iterable[Issue],
    filters: FiltersInput = None,
    config: ConfigInput = None,
    preset: Optional[str] = None,
    mode: str = MODE_GRID,
    now: Optional[datetime] = None,
) -> List[HeatPoint]:
    """
    Filter, weigh and aggregate issues into HeatPoints.

    Args:
        issues: Issue records
        filters: HeatmapFilters or a filter mapping; defaults to the preset's filters
        config: HeatmapConfig or parameter mapping applied over the preset
        preset: Preset name
        mode: "raw" (alias "data"), "grid" or "clustered"
        now: Evaluation time (defaults to current UTC time)

    Raises:
        InvalidConfig: For bad config, filters, preset or mode
    """
    mode = resolve_mode(mode)
    now = _now(now)
    cfg, weighted = _weighted(issues, filters, config, preset, now)
    points = aggregate(weighted, cfg, mode)
    logger.info(f"Heatmap ({mode}): {len(points)} points emitted")
    return points


def build_stats(
    issues: Iterable[Issue],
    filters: FiltersInput = None,
    config: ConfigInput = None,
    preset: Optional[str] = None,
    mode: Optional[str] = None,
    now: Optional[datetime] = None,
) -> StatsReport:
    """
    Summarize the weighted issue set, or the aggregate when ``mode`` is given.
    """
    if mode is not None:
        mode = resolve_mode(mode)
    now = _now(now)
    cfg, weighted = _weighted(issues, filters, config, preset, now)
    if mode is None:
        return summarize(weighted)
    return summarize(aggregate(weighted, cfg, mode))


def build_priorities(
    issues: Iterable[Issue],
    filters: FiltersInput = None,
    preset: Optional[str] = None,
    group_by: str = GROUP_BY_ZONE_CATEGORY,
    now: Optional[datetime] = None,
    window_start: Optional[datetime] = None,
    window_end: Optional[datetime] = None,
) -> List[RiskScore]:
    """Filter issues and rank zone/category groups by risk."""
    now = _now(now)
    flt = _resolve_filters(filters, preset)
    selected = filter_issues(_valid_issues(issues), flt, now)
    return score_risks(selected, now, group_by=group_by, window_start=window_start, window_end=window_end)


def to_geojson(
    points: Sequence[HeatPoint],
    config: Optional[HeatmapConfig] = None,
    generated_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Render HeatPoints as a GeoJSON FeatureCollection (coordinates are
    ``[lng, lat]``) with run metadata for mapping clients.
    """
    cfg = config or HeatmapConfig()
    features = []
    for p in points:
        properties = p.to_dict()
        properties.pop("lat")
        properties.pop("lng")
        features.append({
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [p.lng, p.lat]},
            "properties": properties,
        })

    oldest = [p.oldest_issue for p in points if p.oldest_issue is not None]
    newest = [p.newest_issue for p in points if p.newest_issue is not None]
    return {
        "type": "FeatureCollection",
        "features": features,
        "metadata": {
            "totalIssues": sum(p.issue_count for p in points),
            "dateRange": {
                "start": to_iso(min(oldest)) if oldest else None,
                "end": to_iso(max(newest)) if newest else None,
            },
            "timeDecayFactor": cfg.time_decay_factor,
            "severityWeightMultiplier": cfg.severity_weight_multiplier,
            "gridSizeMeters": cfg.grid_size_meters,
            "clusterRadius": cfg.cluster_radius_meters,
            "generatedAt": to_iso(_now(generated_at)),
        },
    }
