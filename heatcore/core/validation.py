"""
Heatmap Engine Validation Module

Provides the error types surfaced by the engine and the validation functions
for issues and configuration. Errors carry a machine-readable ``kind`` and,
where one applies, the offending ``field`` so callers can map them to their
own transport (HTTP status codes are owned by the web layer).
"""

import math
from typing import Any, Dict, Optional

from heatcore.core.models import HeatmapConfig, Issue
from heatcore.utils.constants import MAX_SEVERITY, MIN_SEVERITY


class HeatmapError(Exception):
    """Base engine error with kind, message and optional field."""

    kind = "HeatmapError"

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "field": self.field}


class InvalidConfig(HeatmapError):
    """Malformed or out-of-range configuration; rejected before computation."""

    kind = "InvalidConfig"


class InvalidIssue(HeatmapError):
    """Issue record with out-of-range severity or invalid coordinates."""

    kind = "InvalidIssue"

    def __init__(self, message: str, field: Optional[str] = None, issue_id: Optional[str] = None):
        self.issue_id = issue_id
        super().__init__(message, field)

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["issueId"] = self.issue_id
        return out


def validate_issue(issue: Issue) -> None:
    """
    Validate coordinate and severity ranges for a single issue.

    Raises:
        InvalidIssue: If latitude, longitude or severity is out of range
    """
    lat, lng = issue.latitude, issue.longitude
    if lat is None or not _is_finite(lat) or lat < -90 or lat > 90:
        raise InvalidIssue(
            f"Issue '{issue.issue_id}' has invalid latitude {lat}; must be within [-90, 90]",
            field="latitude",
            issue_id=issue.issue_id,
        )
    if lng is None or not _is_finite(lng) or lng < -180 or lng > 180:
        raise InvalidIssue(
            f"Issue '{issue.issue_id}' has invalid longitude {lng}; must be within [-180, 180]",
            field="longitude",
            issue_id=issue.issue_id,
        )
    severity = issue.severity
    if isinstance(severity, bool) or not isinstance(severity, int):
        raise InvalidIssue(
            f"Issue '{issue.issue_id}' severity must be an integer, got {type(severity).__name__}",
            field="severity",
            issue_id=issue.issue_id,
        )
    if severity < MIN_SEVERITY or severity > MAX_SEVERITY:
        raise InvalidIssue(
            f"Issue '{issue.issue_id}' severity {severity} must be between {MIN_SEVERITY} and {MAX_SEVERITY}",
            field="severity",
            issue_id=issue.issue_id,
        )


def validate_config(config: HeatmapConfig) -> HeatmapConfig:
    """
    Validate a HeatmapConfig and return it unchanged.

    Raises:
        InvalidConfig: Naming the first offending field
    """
    _require_number(config.time_decay_factor, "time_decay_factor")
    if config.time_decay_factor < 0:
        raise InvalidConfig(
            f"time_decay_factor must be >= 0 (got {config.time_decay_factor})",
            field="time_decay_factor",
        )

    _require_number(config.severity_weight_multiplier, "severity_weight_multiplier")
    if config.severity_weight_multiplier <= 0:
        raise InvalidConfig(
            f"severity_weight_multiplier must be > 0 (got {config.severity_weight_multiplier})",
            field="severity_weight_multiplier",
        )

    _require_number(config.grid_size_meters, "grid_size_meters")
    if config.grid_size_meters <= 0:
        raise InvalidConfig(
            f"grid_size_meters must be > 0 (got {config.grid_size_meters})",
            field="grid_size_meters",
        )

    if config.cluster_radius_meters is not None:
        _require_number(config.cluster_radius_meters, "cluster_radius_meters")
        if config.cluster_radius_meters < 0:
            raise InvalidConfig(
                f"cluster_radius_meters must be >= 0 (got {config.cluster_radius_meters})",
                field="cluster_radius_meters",
            )

    if isinstance(config.min_cluster_size, bool) or not isinstance(config.min_cluster_size, int):
        raise InvalidConfig(
            f"min_cluster_size must be an integer, got {type(config.min_cluster_size).__name__}",
            field="min_cluster_size",
        )
    if config.min_cluster_size < 2:
        raise InvalidConfig(
            f"min_cluster_size must be >= 2 (got {config.min_cluster_size})",
            field="min_cluster_size",
        )

    if not isinstance(config.normalize_weights, bool):
        raise InvalidConfig(
            f"normalize_weights must be a boolean, got {type(config.normalize_weights).__name__}",
            field="normalize_weights",
        )
    return config


def _require_number(value: Any, field: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not _is_finite(value):
        raise InvalidConfig(f"{field} must be a finite number (got {value!r})", field=field)


def _is_finite(value: Any) -> bool:
    try:
        return math.isfinite(value)
    except TypeError:
        return False
