# heatcore/rulebook.py
"""
Single Source of Truth (SSOT) for risk scoring policy.

This module is the ONLY place that interprets priority_rulebook.yml: risk
weights, risk-level thresholds and activity windows. The priority scorer and
the stats summarizer both bucket through ``classify_risk`` so the two never
disagree.
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from heatcore.common.config import load_rulebook, rulebook_path
from heatcore.core.models import RiskLevel

logger = logging.getLogger(__name__)

# ---------- Data Models ----------

@dataclass(frozen=True)
class RiskWeights:
    """Blend weights for the risk score components."""
    issue_count: float = 0.4
    avg_severity: float = 0.4
    recurrence: float = 0.2


@dataclass(frozen=True)
class RiskThresholds:
    """Lower bounds (inclusive) for each risk level."""
    critical: float = 0.75
    high: float = 0.50
    medium: float = 0.25


@dataclass(frozen=True)
class ActivityWindows:
    active_days: float = 7.0
    recent_days: float = 30.0


@dataclass(frozen=True)
class PriorityRulebook:
    version: str
    weights: RiskWeights
    thresholds: RiskThresholds
    activity: ActivityWindows
    min_group_size: int = 1
    recurrence_bucket_days: float = 1.0


# ---------- Loader ----------

def get_rulebook(path: Optional[str] = None) -> PriorityRulebook:
    """Rulebook at ``path``, else HEATCORE_RULEBOOK_PATH, else the packaged file."""
    return _rulebook_at(str(path or rulebook_path()))


@functools.lru_cache(maxsize=4)
def _rulebook_at(path: str) -> PriorityRulebook:
    """Build the PriorityRulebook from YAML (cached)."""
    return rulebook_from_dict(load_rulebook(path))


def rulebook_from_dict(data: Dict[str, Any]) -> PriorityRulebook:
    if "risk" not in data:
        logger.warning("Rulebook has no 'risk' section; using default weights and thresholds")
    risk = data.get("risk", {}) or {}
    weights_cfg = risk.get("weights", {}) or {}
    levels_cfg = risk.get("levels", {}) or {}
    activity_cfg = data.get("activity", {}) or {}

    weights = RiskWeights(
        issue_count=float(weights_cfg.get("issue_count", 0.4)),
        avg_severity=float(weights_cfg.get("avg_severity", 0.4)),
        recurrence=float(weights_cfg.get("recurrence", 0.2)),
    )
    total = weights.issue_count + weights.avg_severity + weights.recurrence
    if abs(total - 1.0) > 1e-6:
        logger.warning(f"Risk weights sum to {total:.3f}, not 1.0; scores may exceed [0, 1]")

    thresholds = RiskThresholds(
        critical=float(levels_cfg.get("critical", 0.75)),
        high=float(levels_cfg.get("high", 0.5)),
        medium=float(levels_cfg.get("medium", 0.25)),
    )
    if not thresholds.critical >= thresholds.high >= thresholds.medium:
        raise ValueError("Rulebook risk levels must satisfy critical >= high >= medium")

    bucket_days = float(risk.get("recurrence_bucket_days", 1.0))
    if bucket_days <= 0:
        raise ValueError(f"recurrence_bucket_days must be positive (got {bucket_days})")

    return PriorityRulebook(
        version=str(data.get("version", "unversioned")),
        weights=weights,
        thresholds=thresholds,
        activity=ActivityWindows(
            active_days=float(activity_cfg.get("active_days", 7)),
            recent_days=float(activity_cfg.get("recent_days", 30)),
        ),
        min_group_size=int(risk.get("min_group_size", 1)),
        recurrence_bucket_days=bucket_days,
    )

# ---------- Classification ----------

def classify_risk(score: float, thresholds: RiskThresholds) -> RiskLevel:
    """
    Bucket a 0-1 score into a risk level.

    Uses lower-bound classification, highest level first.
    """
    s = max(0.0, float(score or 0.0))
    if s >= thresholds.critical: return RiskLevel.CRITICAL
    if s >= thresholds.high: return RiskLevel.HIGH
    if s >= thresholds.medium: return RiskLevel.MEDIUM
    return RiskLevel.LOW


def classify_activity(days_since_last: float, windows: ActivityWindows) -> str:
    """ACTIVE / RECENT / HISTORICAL from the age of the most recent issue."""
    if days_since_last <= windows.active_days:
        return "ACTIVE"
    if days_since_last <= windows.recent_days:
        return "RECENT"
    return "HISTORICAL"
