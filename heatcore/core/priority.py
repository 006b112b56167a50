"""
Priority/Risk Scorer

Ranks zones and categories for remediation. Issues are grouped (zone,
category, or zone x category) and each group is scored as

    risk = w_count * (count / max_count)
         + w_severity * (avg_severity / 10)
         + w_recurrence * recurrence

where ``recurrence`` is the share of day-buckets in the observation window
that contain at least one issue. Weights, level thresholds and activity
windows come from the priority rulebook.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from heatcore.core.models import Issue, RiskScore, as_utc
from heatcore.core.validation import InvalidConfig, InvalidIssue, validate_issue
from heatcore.rulebook import PriorityRulebook, classify_activity, classify_risk, get_rulebook
from heatcore.utils.constants import (
    GROUP_BY_CATEGORY,
    GROUP_BY_ZONE,
    GROUP_BY_ZONE_CATEGORY,
    MAX_SEVERITY,
    SECONDS_PER_DAY,
    VALID_GROUP_BY,
)

logger = logging.getLogger(__name__)

GROUP_COLUMNS = {
    GROUP_BY_ZONE: ["zone_id"],
    GROUP_BY_CATEGORY: ["category"],
    GROUP_BY_ZONE_CATEGORY: ["zone_id", "category"],
}


def _issues_frame(issues: Iterable[Issue]) -> pd.DataFrame:
    rows = []
    for issue in issues:
        try:
            validate_issue(issue)
        except InvalidIssue as e:
            logger.warning(f"Skipping invalid issue: {e.message}")
            continue
        rows.append({
            "issue_id": issue.issue_id,
            "zone_id": issue.zone_id,
            "category": str(issue.category),
            "severity": issue.severity,
            "created_at": issue.created_at,
        })
    df = pd.DataFrame(rows, columns=["issue_id", "zone_id", "category", "severity", "created_at"])
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True)
    return df


def _bucket_count(start: datetime, end: datetime, bucket_days: float) -> int:
    span_days = max(0.0, (end - start).total_seconds() / SECONDS_PER_DAY)
    return max(1, int(math.ceil(span_days / bucket_days)))


def score_risks(
    issues: Iterable[Issue],
    now: Optional[datetime] = None,
    group_by: str = GROUP_BY_ZONE_CATEGORY,
    window_start: Optional[datetime] = None,
    window_end: Optional[datetime] = None,
    rulebook: Optional[PriorityRulebook] = None,
) -> List[RiskScore]:
    """
    Score issue groups by frequency, severity and recurrence.

    Args:
        issues: Issues to score (typically the filtered set)
        now: Evaluation time (defaults to current UTC time)
        group_by: "zone", "category" or "zone_category"
        window_start: Start of the recurrence window (defaults to earliest issue)
        window_end: End of the recurrence window (defaults to ``now``)
        rulebook: Policy override (defaults to priority_rulebook.yml)

    Returns:
        RiskScores sorted by risk desc, count desc, last issue desc, then key

    Raises:
        InvalidConfig: For an unknown ``group_by``
    """
    if group_by not in VALID_GROUP_BY:
        raise InvalidConfig(
            f"Invalid group_by '{group_by}'. Must be one of: {list(VALID_GROUP_BY)}",
            field="group_by",
        )
    rb = rulebook or get_rulebook()
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)

    df = _issues_frame(issues)
    keys = GROUP_COLUMNS[group_by]
    if "zone_id" in keys:
        df = df[df["zone_id"].notna()]
    if df.empty:
        return []

    start = as_utc(window_start) if window_start is not None else df["created_at"].min().to_pydatetime()
    end = as_utc(window_end) if window_end is not None else now
    total_buckets = _bucket_count(start, end, rb.recurrence_bucket_days)

    # Day-bucket index per issue; issues outside the window don't count towards recurrence
    offset_days = (df["created_at"] - pd.Timestamp(start)).dt.total_seconds() / SECONDS_PER_DAY
    bucket = np.floor(offset_days / rb.recurrence_bucket_days)
    in_window = (offset_days >= 0) & (df["created_at"] <= pd.Timestamp(end))
    df = df.assign(
        bucket=bucket.clip(upper=total_buckets - 1).where(in_window),
        recent=df["created_at"] >= pd.Timestamp(now - timedelta(days=rb.activity.recent_days)),
    )

    grouped = (df.groupby(keys, dropna=False)
                 .agg(issue_count=("issue_id", "size"),
                      avg_severity=("severity", "mean"),
                      last_issue_at=("created_at", "max"),
                      recent_issue_count=("recent", "sum"),
                      active_buckets=("bucket", "nunique"))
                 .reset_index())
    grouped = grouped[grouped["issue_count"] >= rb.min_group_size]
    if grouped.empty:
        return []

    w = rb.weights
    max_count = grouped["issue_count"].max()
    grouped["recurrence"] = (grouped["active_buckets"] / total_buckets).clip(upper=1.0)
    grouped["risk_score"] = (
        w.issue_count * grouped["issue_count"] / max_count
        + w.avg_severity * grouped["avg_severity"] / MAX_SEVERITY
        + w.recurrence * grouped["recurrence"]
    )

    for col in ("zone_id", "category"):
        if col not in grouped:
            grouped[col] = None
    grouped["zone_key"] = grouped["zone_id"].fillna("").astype(str)
    grouped["category_key"] = grouped["category"].fillna("").astype(str)
    grouped = grouped.sort_values(
        ["risk_score", "issue_count", "last_issue_at", "zone_key", "category_key"],
        ascending=[False, False, False, True, True],
        kind="mergesort",
    )

    scores: List[RiskScore] = []
    for row in grouped.itertuples(index=False):
        last = row.last_issue_at.to_pydatetime()
        days_since = max(0.0, (now - last).total_seconds() / SECONDS_PER_DAY)
        scores.append(RiskScore(
            zone_id=row.zone_id,
            category=row.category,
            issue_count=int(row.issue_count),
            avg_severity=float(row.avg_severity),
            recurrence_probability=float(row.recurrence),
            risk_score=float(row.risk_score),
            risk_level=classify_risk(row.risk_score, rb.thresholds),
            last_issue_at=last,
            recent_issue_count=int(row.recent_issue_count),
            activity_status=classify_activity(days_since, rb.activity),
        ))

    logger.info(f"Scored {len(scores)} {group_by} groups over {total_buckets} recurrence buckets")
    return scores
