"""
Stats Summarizer

Reduces either a weighted issue set or an aggregate (HeatPoints) to a
StatsReport: weight min/max/avg, priority-bucket counts, bounding box,
category counts and age statistics. Priority buckets reuse the rulebook's
risk-level thresholds on each item's weight relative to the batch maximum.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Union

from heatcore.core.geo import bounds
from heatcore.core.models import HeatPoint, StatsReport, WeightedIssue
from heatcore.rulebook import PriorityRulebook, classify_risk, get_rulebook

logger = logging.getLogger(__name__)

StatsInput = Union[WeightedIssue, HeatPoint]


def _value(item: StatsInput) -> float:
    return item.intensity if isinstance(item, HeatPoint) else item.weight


def _coords(item: StatsInput):
    if isinstance(item, HeatPoint):
        return item.lat, item.lng
    return item.latitude, item.longitude


def summarize(items: Sequence[StatsInput], rulebook: Optional[PriorityRulebook] = None) -> StatsReport:
    """
    Summarize weighted issues or HeatPoints.

    Empty input yields a zero-valued report with no timestamps.
    """
    items = list(items)
    if not items:
        return StatsReport()

    rb = rulebook or get_rulebook()
    values = [_value(item) for item in items]
    max_value = max(values)

    distribution = {"critical": 0, "high": 0, "medium": 0, "low": 0}
    for v in values:
        relative = v / max_value if max_value > 0 else 0.0
        distribution[str(classify_risk(relative, rb.thresholds))] += 1

    categories: Dict[str, int] = {}
    total_issues = 0
    age_sum = 0.0
    created: List[datetime] = []
    for item in items:
        if isinstance(item, HeatPoint):
            total_issues += item.issue_count
            age_sum += item.avg_age_days * item.issue_count
            for name, count in item.category_breakdown.items():
                categories[name] = categories.get(name, 0) + count
            created.extend(t for t in (item.oldest_issue, item.newest_issue) if t is not None)
        else:
            total_issues += 1
            age_sum += item.age_days
            name = str(item.issue.category)
            categories[name] = categories.get(name, 0) + 1
            created.append(item.issue.created_at)

    south, west, north, east = bounds(_coords(item) for item in items)
    report = StatsReport(
        total_points=len(items),
        total_issues=total_issues,
        avg_weight=sum(values) / len(values),
        max_weight=max_value,
        min_weight=min(values),
        weight_distribution=distribution,
        geographic_bounds={"north": north, "south": south, "east": east, "west": west},
        category_breakdown=categories,
        avg_age_days=age_sum / total_issues if total_issues else 0.0,
        oldest_issue=min(created) if created else None,
        newest_issue=max(created) if created else None,
    )
    logger.debug(f"Summarized {report.total_points} points covering {report.total_issues} issues")
    return report
