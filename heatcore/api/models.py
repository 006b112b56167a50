"""
Pydantic Models for the heatmap request envelope

Defines the transport-agnostic request and response shapes accepted by
heatcore.api.handlers. Issue records are validated one at a time so a single
malformed report can be skipped without rejecting the whole request.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from heatcore.core.models import Category, Issue, IssuePriority, IssueStatus, as_utc
from heatcore.utils.constants import GROUP_BY_ZONE_CATEGORY, MAX_SEVERITY, MIN_SEVERITY, MODE_GRID


class IssuePayload(BaseModel):
    """
    A single issue record as received from a client.

    Attributes:
        id: Issue identifier
        latitude: Degrees, [-90, 90]
        longitude: Degrees, [-180, 180]
        category: Category label (case-insensitive)
        severity: Integer 1-10
        status: open, in_progress, resolved or closed
        created_at: ISO-8601 timestamp (``createdAt`` accepted)
        zone_id: Optional zone reference (``zoneId`` accepted)
        priority: Optional low/medium/high/critical
    """
    id: str = Field(..., description="Issue identifier")
    latitude: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in degrees")
    category: str = Field(..., description="Issue category")
    severity: int = Field(..., ge=MIN_SEVERITY, le=MAX_SEVERITY, description="Severity 1-10")
    status: str = Field(default="open", description="Lifecycle status")
    created_at: datetime = Field(..., alias="createdAt", description="Report timestamp")
    zone_id: Optional[str] = Field(default=None, alias="zoneId", description="Zone reference")
    priority: Optional[str] = Field(default=None, description="Triage priority")

    model_config = {"populate_by_name": True}

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v: Any) -> str:
        """Accept numeric ids."""
        return str(v)

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        """Normalize to the canonical category label."""
        return Category.parse(v).value

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        """Normalize status to lowercase."""
        return IssueStatus(v.strip().lower()).value

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: Optional[str]) -> Optional[str]:
        """Normalize priority to lowercase."""
        if v is None:
            return None
        return IssuePriority(v.strip().lower()).value

    def to_issue(self) -> Issue:
        return Issue(
            issue_id=self.id,
            latitude=self.latitude,
            longitude=self.longitude,
            category=Category.parse(self.category),
            severity=self.severity,
            status=IssueStatus(self.status),
            created_at=as_utc(self.created_at),
            zone_id=self.zone_id,
            priority=IssuePriority(self.priority) if self.priority else None,
        )


class HeatmapRequest(BaseModel):
    """
    Request model for heatmap and stats calls.

    Attributes:
        issues: Raw issue records (validated individually)
        filters: Filter mapping (camelCase or snake_case keys)
        config: Config parameter mapping applied over the preset
        preset: Preset name
        mode: raw (alias data), grid or clustered
        now: Evaluation time; defaults to the current UTC time
        geojson: Return a GeoJSON FeatureCollection instead of a point list
    """
    issues: List[Any] = Field(default_factory=list, description="Issue records (validated individually)")
    filters: Optional[Dict[str, Any]] = Field(default=None, description="Filter criteria")
    config: Optional[Dict[str, Any]] = Field(default=None, description="Heatmap parameters")
    preset: Optional[str] = Field(default=None, description="Preset name")
    mode: str = Field(default=MODE_GRID, description="Aggregation mode")
    now: Optional[datetime] = Field(default=None, description="Evaluation time")
    geojson: bool = Field(default=False, description="Return GeoJSON")

    model_config = {
        "json_schema_extra": {
            "example": {
                "issues": [
                    {
                        "id": "iss-001",
                        "latitude": 40.7128,
                        "longitude": -74.0060,
                        "category": "Plumbing",
                        "severity": 8,
                        "status": "open",
                        "createdAt": "2025-01-15T08:30:00Z",
                        "zoneId": "bldg-a",
                    }
                ],
                "preset": "maintenance",
                "mode": "clustered",
            }
        }
    }


class StatsRequest(HeatmapRequest):
    """Stats call; ``mode`` is optional (None summarizes the weighted set)."""
    mode: Optional[str] = Field(default=None, description="Aggregation mode to summarize")


class PriorityRequest(BaseModel):
    """Request model for risk scoring calls."""
    issues: List[Any] = Field(default_factory=list, description="Issue records (validated individually)")
    filters: Optional[Dict[str, Any]] = Field(default=None, description="Filter criteria")
    preset: Optional[str] = Field(default=None, description="Preset name (filters only)")
    group_by: str = Field(default=GROUP_BY_ZONE_CATEGORY, alias="groupBy", description="Grouping")
    now: Optional[datetime] = Field(default=None, description="Evaluation time")
    window_start: Optional[datetime] = Field(default=None, alias="windowStart", description="Recurrence window start")
    window_end: Optional[datetime] = Field(default=None, alias="windowEnd", description="Recurrence window end")

    model_config = {"populate_by_name": True}


class ErrorDetail(BaseModel):
    kind: str = Field(..., description="InvalidConfig or InvalidIssue")
    message: str = Field(..., description="Error message")
    field: Optional[str] = Field(default=None, description="Offending field")


class ErrorResponse(BaseModel):
    """Error envelope: {"error": {"kind", "message", "field"}}."""
    error: ErrorDetail
