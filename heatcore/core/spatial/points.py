"""
Shared HeatPoint builders used by all three aggregation modes.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from heatcore.core.models import HeatPoint, WeightedIssue


def category_breakdown(members: Sequence[WeightedIssue]) -> Dict[str, int]:
    """Category -> issue count, keys in first-seen order."""
    out: Dict[str, int] = {}
    for wi in members:
        key = str(wi.issue.category)
        out[key] = out.get(key, 0) + 1
    return out


def build_point(
    members: Sequence[WeightedIssue],
    lat: float,
    lng: float,
    kind: str,
    cluster_id: Optional[str] = None,
) -> HeatPoint:
    """
    Build an un-normalised HeatPoint (intensity == aggregated weight) from a
    non-empty member list. Member order drives ``categories`` and ``issue_ids``.
    """
    count = len(members)
    weight = sum(wi.weight for wi in members)
    breakdown = category_breakdown(members)
    created = [wi.issue.created_at for wi in members]
    return HeatPoint(
        lat=lat,
        lng=lng,
        intensity=weight,
        weight=weight,
        issue_count=count,
        avg_severity=sum(wi.issue.severity for wi in members) / count,
        categories=list(breakdown),
        issue_ids=[wi.issue_id for wi in members],
        category_breakdown=breakdown,
        kind=kind,
        oldest_issue=min(created),
        newest_issue=max(created),
        avg_age_days=sum(wi.age_days for wi in members) / count,
        cluster_id=cluster_id,
    )


def normalize_intensity(points: List[HeatPoint], enabled: bool) -> List[HeatPoint]:
    """
    Scale intensities to [0, 1] by the batch maximum aggregated weight.

    A maximum of 0 (or normalisation disabled) leaves raw weights unchanged.
    """
    if not enabled or not points:
        return points
    max_weight = max(p.weight for p in points)
    if max_weight <= 0:
        return points
    return [replace(p, intensity=p.weight / max_weight) for p in points]
