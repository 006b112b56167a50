"""
Weight Calculator

Turns an issue into a decayed, severity-weighted scalar:

    weight = (severity / 10) * severity_weight_multiplier * exp(-decay * age_days)

A decay factor of 0 disables decay. Batch normalisation divides every weight
by the batch maximum, so it needs all raw weights first (two passes).
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Iterable, List

from heatcore.core.models import HeatmapConfig, Issue, WeightedIssue, as_utc
from heatcore.core.validation import InvalidIssue, validate_issue
from heatcore.utils.constants import MAX_SEVERITY, SECONDS_PER_DAY

logger = logging.getLogger(__name__)


def age_in_days(issue: Issue, now: datetime) -> float:
    """Fractional age in days; clock skew (future timestamps) clamps to 0."""
    delta = (as_utc(now) - issue.created_at).total_seconds() / SECONDS_PER_DAY
    return max(0.0, delta)


def decay_multiplier(age_days: float, time_decay_factor: float) -> float:
    if time_decay_factor <= 0:
        return 1.0
    return math.exp(-time_decay_factor * age_days)


def compute_weight(issue: Issue, now: datetime, config: HeatmapConfig) -> float:
    """
    Compute the un-normalised weight of a single issue.

    Raises:
        InvalidIssue: If severity or coordinates are out of range
    """
    validate_issue(issue)
    severity_norm = issue.severity / float(MAX_SEVERITY)
    decay = decay_multiplier(age_in_days(issue, now), config.time_decay_factor)
    return severity_norm * config.severity_weight_multiplier * decay


def weigh_issues(
    issues: Iterable[Issue],
    now: datetime,
    config: HeatmapConfig,
) -> List[WeightedIssue]:
    """
    Weigh a batch of issues, skipping invalid records.

    Pass 1 computes raw weights (log-and-skip on InvalidIssue). Pass 2 divides by
    the batch maximum when ``normalize_weights`` is set; a maximum of 0 leaves
    the raw weights unchanged.
    """
    raw: List[WeightedIssue] = []
    skipped = 0
    for issue in issues:
        try:
            w = compute_weight(issue, now, config)
        except InvalidIssue as e:
            skipped += 1
            logger.warning(f"Skipping invalid issue: {e.message}")
            continue
        raw.append(WeightedIssue(issue=issue, weight=w, raw_weight=w, age_days=age_in_days(issue, now)))

    if skipped:
        logger.info(f"Weighted {len(raw)} issues ({skipped} skipped as invalid)")

    if not config.normalize_weights or not raw:
        return raw

    max_weight = max(wi.raw_weight for wi in raw)
    if max_weight <= 0:
        logger.debug("Batch max weight is 0; normalization not applied")
        return raw

    return [
        WeightedIssue(issue=wi.issue, weight=wi.raw_weight / max_weight, raw_weight=wi.raw_weight, age_days=wi.age_days)
        for wi in raw
    ]
