"""
Heatmap Engine Data Models

Defines the core data structures for issues, configuration, filters and the
aggregate outputs (grid cells, clusters, heat points, stats and risk scores).

All derived entities are created fresh per call from the current issue set and
configuration. Nothing here is mutated in place once built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from heatcore.utils.constants import (
    DEFAULT_GRID_SIZE_METERS,
    DEFAULT_MIN_CLUSTER_SIZE,
    DEFAULT_NORMALIZE_WEIGHTS,
    DEFAULT_SEVERITY_WEIGHT_MULTIPLIER,
    DEFAULT_TIME_DECAY_FACTOR,
)


class Category(str, Enum):
    """
    Issue category taxonomy.

    Values match the labels stored on issue records. Parsing via
    ``Category.parse`` is case-insensitive against both values and names.
    """
    STRUCTURAL = "Structural"
    ELECTRICAL = "Electrical"
    PLUMBING = "Plumbing"
    HVAC = "HVAC"
    SAFETY = "Safety"
    MAINTENANCE = "Maintenance"
    CLEANLINESS = "Cleanliness"
    NETWORK = "Network"
    FURNITURE = "Furniture"
    OTHER = "Other"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value) -> "Category":
        """Resolve a category from an enum member or a case-insensitive label."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == key or member.name.lower() == key:
                return member
        raise ValueError(f"Unknown category '{value}'. Must be one of: {[c.value for c in cls]}")


class Layer(str, Enum):
    """Map layers shown to operators; each expands to a fixed category set."""
    WATER = "water"
    POWER = "power"
    WIFI = "wifi"

    def __str__(self) -> str:
        return self.value


# Static layer -> category table, checked at filter validation time
LAYER_CATEGORIES: Dict[Layer, FrozenSet[Category]] = {
    Layer.WATER: frozenset({Category.PLUMBING}),
    Layer.POWER: frozenset({Category.ELECTRICAL}),
    Layer.WIFI: frozenset({Category.NETWORK}),
}


class IssueStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"

    def __str__(self) -> str:
        return self.value


class IssuePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def __str__(self) -> str:
        return self.value


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def __str__(self) -> str:
        return self.value


def as_utc(value: datetime) -> datetime:
    """Return a tz-aware UTC datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Issue:
    """
    A single geotagged incident report.

    Attributes:
        issue_id: Unique identifier
        latitude: Degrees, [-90, 90]
        longitude: Degrees, [-180, 180]
        category: Category taxonomy member
        severity: Integer 1-10
        status: Lifecycle status
        created_at: Report timestamp (UTC)
        zone_id: Optional zone / building reference
        priority: Optional triage priority
    """
    issue_id: str
    latitude: float
    longitude: float
    category: Category
    severity: int
    status: IssueStatus
    created_at: datetime
    zone_id: Optional[str] = None
    priority: Optional[IssuePriority] = None

    def __post_init__(self):
        """Normalize timestamp to UTC."""
        object.__setattr__(self, "created_at", as_utc(self.created_at))


@dataclass(frozen=True)
class WeightedIssue:
    """An issue with its decayed, severity-weighted scalar for one evaluation."""
    issue: Issue
    weight: float
    raw_weight: float
    age_days: float

    @property
    def issue_id(self) -> str:
        return self.issue.issue_id

    @property
    def latitude(self) -> float:
        return self.issue.latitude

    @property
    def longitude(self) -> float:
        return self.issue.longitude


def clustering_radius_enabled(radius_m: Optional[float]) -> bool:
    """A cluster radius of None or 0 turns clustering off."""
    return bool(radius_m) and radius_m > 0


@dataclass(frozen=True)
class HeatmapConfig:
    """Tunable parameters for weighting and spatial aggregation."""
    time_decay_factor: float = DEFAULT_TIME_DECAY_FACTOR
    severity_weight_multiplier: float = DEFAULT_SEVERITY_WEIGHT_MULTIPLIER
    grid_size_meters: float = DEFAULT_GRID_SIZE_METERS
    cluster_radius_meters: Optional[float] = None
    min_cluster_size: int = DEFAULT_MIN_CLUSTER_SIZE
    normalize_weights: bool = DEFAULT_NORMALIZE_WEIGHTS

    @property
    def clustering_enabled(self) -> bool:
        return clustering_radius_enabled(self.cluster_radius_meters)

    def to_dict(self) -> Dict[str, object]:
        return {
            "time_decay_factor": self.time_decay_factor,
            "severity_weight_multiplier": self.severity_weight_multiplier,
            "grid_size_meters": self.grid_size_meters,
            "cluster_radius_meters": self.cluster_radius_meters,
            "min_cluster_size": self.min_cluster_size,
            "normalize_weights": self.normalize_weights,
        }


@dataclass(frozen=True)
class HeatmapFilters:
    """
    Selection criteria for the filter pipeline. Empty collections and None
    values mean "no predicate".
    """
    categories: Tuple[Category, ...] = ()
    statuses: Tuple[IssueStatus, ...] = ()
    priorities: Tuple[IssuePriority, ...] = ()
    zone_ids: Tuple[str, ...] = ()
    layers: Tuple[Layer, ...] = ()
    min_severity: Optional[int] = None
    max_age_days: Optional[float] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    time_range: Optional[str] = None


@dataclass(frozen=True)
class GridCell:
    row: int
    col: int
    south: float
    west: float
    north: float
    east: float
    latitude: float  # centroid
    longitude: float
    aggregated_weight: float
    issue_count: int
    avg_severity: float
    category_breakdown: Dict[str, int]
    member_issue_ids: List[str]  # weight descending


@dataclass(frozen=True)
class Cluster:
    cluster_id: str
    latitude: float  # weighted centroid
    longitude: float
    radius_meters: float
    member_issue_ids: List[str]
    aggregated_weight: float
    issue_count: int
    avg_severity: float
    category_breakdown: Dict[str, int]


@dataclass(frozen=True)
class HeatPoint:
    """Unified output record for all three aggregation modes."""
    lat: float
    lng: float
    intensity: float
    weight: float
    issue_count: int
    avg_severity: float
    categories: List[str]
    issue_ids: List[str]
    category_breakdown: Dict[str, int]
    kind: str
    oldest_issue: Optional[datetime] = None
    newest_issue: Optional[datetime] = None
    avg_age_days: float = 0.0
    cluster_id: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "intensity": self.intensity,
            "weight": self.weight,
            "issueCount": self.issue_count,
            "avgSeverity": self.avg_severity,
            "categories": list(self.categories),
            "issueIds": list(self.issue_ids),
            "categoryBreakdown": dict(self.category_breakdown),
            "kind": self.kind,
            "clusterId": self.cluster_id,
            "oldestIssue": to_iso(self.oldest_issue),
            "newestIssue": to_iso(self.newest_issue),
            "avgAgeDays": self.avg_age_days,
        }


@dataclass(frozen=True)
class StatsReport:
    total_points: int = 0
    total_issues: int = 0
    avg_weight: float = 0.0
    max_weight: float = 0.0
    min_weight: float = 0.0
    weight_distribution: Dict[str, int] = field(
        default_factory=lambda: {"critical": 0, "high": 0, "medium": 0, "low": 0}
    )
    geographic_bounds: Dict[str, float] = field(
        default_factory=lambda: {"north": 0.0, "south": 0.0, "east": 0.0, "west": 0.0}
    )
    category_breakdown: Dict[str, int] = field(default_factory=dict)
    avg_age_days: float = 0.0
    oldest_issue: Optional[datetime] = None
    newest_issue: Optional[datetime] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "totalPoints": self.total_points,
            "totalIssues": self.total_issues,
            "avgWeight": self.avg_weight,
            "maxWeight": self.max_weight,
            "minWeight": self.min_weight,
            "weightDistribution": dict(self.weight_distribution),
            "geographicBounds": dict(self.geographic_bounds),
            "categoryBreakdown": dict(self.category_breakdown),
            "timeDecayStats": {
                "avgAgeDays": self.avg_age_days,
                "oldestIssue": to_iso(self.oldest_issue),
                "newestIssue": to_iso(self.newest_issue),
            },
        }


@dataclass(frozen=True)
class RiskScore:
    zone_id: Optional[str]
    category: Optional[str]
    issue_count: int
    avg_severity: float
    recurrence_probability: float
    risk_score: float
    risk_level: RiskLevel
    last_issue_at: datetime
    recent_issue_count: int = 0
    activity_status: str = "HISTORICAL"

    def to_dict(self) -> Dict[str, object]:
        return {
            "zoneId": self.zone_id,
            "category": self.category,
            "issueCount": self.issue_count,
            "avgSeverity": self.avg_severity,
            "recurrenceProbability": self.recurrence_probability,
            "riskScore": self.risk_score,
            "riskLevel": str(self.risk_level),
            "lastIssueAt": to_iso(self.last_issue_at),
            "recentIssueCount": self.recent_issue_count,
            "activityStatus": self.activity_status,
        }


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


def parse_timestamp(value) -> datetime:
    """Parse a datetime or ISO-8601 string (a trailing ``Z`` is accepted) into UTC."""
    if isinstance(value, datetime):
        return as_utc(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))
