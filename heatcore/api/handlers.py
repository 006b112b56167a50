"""
Request handlers

Transport-agnostic entry points: each takes a JSON-like dict, runs the
pipeline and returns a JSON-ready dict. Failures come back as an error
envelope ``{"error": {"kind", "message", "field"}}``; mapping kinds to HTTP
status codes is left to the web layer.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from heatcore.api.models import ErrorDetail, ErrorResponse, HeatmapRequest, IssuePayload, PriorityRequest, StatsRequest
from heatcore.core.models import Issue
from heatcore.core.pipeline import build_heatmap, build_priorities, build_stats, to_geojson
from heatcore.core.presets import resolve_config
from heatcore.core.spatial import resolve_mode
from heatcore.core.validation import HeatmapError, InvalidConfig, InvalidIssue

logger = logging.getLogger(__name__)


def _first_error(e: ValidationError) -> Dict[str, Any]:
    err = e.errors()[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return {"field": loc or None, "message": err.get("msg", str(e))}


def _error(kind: str, message: str, field: Optional[str] = None) -> Dict[str, Any]:
    return ErrorResponse(error=ErrorDetail(kind=kind, message=message, field=field)).model_dump()


def parse_issue(record: Any) -> Issue:
    """
    Validate a single issue record.

    Raises:
        InvalidIssue: If the record fails validation
    """
    try:
        return IssuePayload.model_validate(record).to_issue()
    except ValidationError as e:
        detail = _first_error(e)
        issue_id = record.get("id") if isinstance(record, Mapping) else None
        raise InvalidIssue(
            f"Issue '{issue_id}' rejected: {detail['message']}",
            field=detail["field"],
            issue_id=None if issue_id is None else str(issue_id),
        )


def parse_issues(records: Iterable[Any]) -> List[Issue]:
    """Validate issue records, logging and skipping the invalid ones."""
    issues: List[Issue] = []
    skipped = 0
    for record in records:
        try:
            issues.append(parse_issue(record))
        except InvalidIssue as e:
            skipped += 1
            logger.warning(f"Skipping invalid issue: {e.message}")
    if skipped:
        logger.info(f"Parsed {len(issues)} issues ({skipped} skipped as invalid)")
    return issues


def _parse_request(model, payload: Mapping[str, Any]):
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        detail = _first_error(e)
        raise InvalidConfig(detail["message"], field=detail["field"])


def handle_heatmap(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Heatmap call.

    Returns:
        {"mode", "count", "points"} or a GeoJSON FeatureCollection when
        ``geojson`` is set; an error envelope on failure
    """
    try:
        request = _parse_request(HeatmapRequest, payload)
        points = build_heatmap(
            parse_issues(request.issues),
            filters=request.filters,
            config=request.config,
            preset=request.preset,
            mode=request.mode,
            now=request.now,
        )
        if request.geojson:
            config = resolve_config(preset=request.preset, custom=request.config)
            return to_geojson(points, config, generated_at=request.now)
        return {
            "mode": resolve_mode(request.mode),
            "count": len(points),
            "points": [p.to_dict() for p in points],
        }
    except HeatmapError as e:
        logger.warning(f"Heatmap request rejected ({e.kind}): {e.message}")
        return _error(e.kind, e.message, e.field)


def handle_stats(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Stats call: {"stats": StatsReport} or an error envelope."""
    try:
        request = _parse_request(StatsRequest, payload)
        report = build_stats(
            parse_issues(request.issues),
            filters=request.filters,
            config=request.config,
            preset=request.preset,
            mode=request.mode,
            now=request.now,
        )
        return {"stats": report.to_dict()}
    except HeatmapError as e:
        logger.warning(f"Stats request rejected ({e.kind}): {e.message}")
        return _error(e.kind, e.message, e.field)


def handle_priorities(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Priority call: {"count", "priorities": [RiskScore]} or an error envelope."""
    try:
        request = _parse_request(PriorityRequest, payload)
        scores = build_priorities(
            parse_issues(request.issues),
            filters=request.filters,
            preset=request.preset,
            group_by=request.group_by,
            now=request.now,
            window_start=request.window_start,
            window_end=request.window_end,
        )
        return {"count": len(scores), "priorities": [s.to_dict() for s in scores]}
    except HeatmapError as e:
        logger.warning(f"Priority request rejected ({e.kind}): {e.message}")
        return _error(e.kind, e.message, e.field)
