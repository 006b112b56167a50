"""
Filter Pipeline

Selects the subset of issues matching category / layer / status / priority /
zone / severity / age / date-range criteria. All predicates AND together; an
empty or missing predicate lets every issue through. Order is preserved.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set

from heatcore.core.models import (
    LAYER_CATEGORIES,
    Category,
    HeatmapFilters,
    Issue,
    IssuePriority,
    IssueStatus,
    Layer,
    as_utc,
    parse_timestamp,
)
from heatcore.core.validation import InvalidConfig
from heatcore.utils.constants import TIME_RANGE_DAYS

logger = logging.getLogger(__name__)


def resolve_time_range_days(time_range: Optional[str]) -> Optional[float]:
    """
    Convert a relative window label ("24h", "7d", "30d") into days.

    Raises:
        InvalidConfig: For an unknown label
    """
    if time_range is None or time_range == "":
        return None
    key = str(time_range).strip().lower()
    if key in ("all", "custom"):
        return None
    if key not in TIME_RANGE_DAYS:
        raise InvalidConfig(
            f"Invalid time_range '{time_range}'. Must be one of: {sorted(TIME_RANGE_DAYS)}",
            field="time_range",
        )
    return TIME_RANGE_DAYS[key]


def allowed_categories(filters: HeatmapFilters) -> FrozenSet[Category]:
    """Union of explicit categories and the categories behind selected layers."""
    out: Set[Category] = set(filters.categories)
    for layer in filters.layers:
        out |= LAYER_CATEGORIES[layer]
    return frozenset(out)


def filter_issues(
    issues: Iterable[Issue],
    filters: Optional[HeatmapFilters],
    now: datetime,
) -> List[Issue]:
    """Return the issues matching every active predicate, in input order."""
    issues = list(issues)
    if filters is None:
        return issues

    now = as_utc(now)
    categories = allowed_categories(filters)
    statuses = frozenset(filters.statuses)
    priorities = frozenset(filters.priorities)
    zone_ids = frozenset(filters.zone_ids)

    # Relative windows collapse into a single earliest-allowed timestamp
    cutoff: Optional[datetime] = None
    for days in (filters.max_age_days, resolve_time_range_days(filters.time_range)):
        if days is None:
            continue
        candidate = now - timedelta(days=float(days))
        cutoff = candidate if cutoff is None else max(cutoff, candidate)

    start = as_utc(filters.start_date) if filters.start_date else None
    end = as_utc(filters.end_date) if filters.end_date else None

    def keep(issue: Issue) -> bool:
        if categories and issue.category not in categories:
            return False
        if statuses and issue.status not in statuses:
            return False
        if priorities and issue.priority not in priorities:
            return False
        if zone_ids and issue.zone_id not in zone_ids:
            return False
        if filters.min_severity is not None and issue.severity < filters.min_severity:
            return False
        if cutoff is not None and issue.created_at < cutoff:
            return False
        if start is not None and issue.created_at < start:
            return False
        if end is not None and issue.created_at > end:
            return False
        return True

    selected = [issue for issue in issues if keep(issue)]
    logger.debug(f"Filter pipeline kept {len(selected)} of {len(issues)} issues")
    return selected


def build_filters(payload: Optional[Dict[str, Any]]) -> HeatmapFilters:
    """
    Build HeatmapFilters from a plain dict (camelCase or snake_case keys).

    Raises:
        InvalidConfig: For unknown enum values or an unknown time range
    """
    if not payload:
        return HeatmapFilters()

    def pick(*keys: str) -> Any:
        for key in keys:
            if key in payload and payload[key] is not None:
                return payload[key]
        return None

    categories = tuple(_parse_each(_as_list(pick("categories")), Category.parse, "categories"))
    statuses = tuple(_parse_each(_as_list(pick("statuses")), _enum_parser(IssueStatus), "statuses"))
    priorities = tuple(_parse_each(_as_list(pick("priorities")), _enum_parser(IssuePriority), "priorities"))
    layers = tuple(_parse_each(_as_list(pick("layers")), _enum_parser(Layer), "layers"))
    zone_ids = tuple(str(z) for z in _as_list(pick("zone_ids", "zoneIds")))

    time_range = pick("time_range", "timeRange")
    resolve_time_range_days(time_range)

    return HeatmapFilters(
        categories=categories,
        statuses=statuses,
        priorities=priorities,
        zone_ids=zone_ids,
        layers=layers,
        min_severity=_coerce(pick("min_severity", "minSeverity"), int, "min_severity"),
        max_age_days=_coerce(pick("max_age_days", "maxAge", "max_age"), float, "max_age_days"),
        start_date=_coerce(pick("start_date", "startDate"), parse_timestamp, "start_date"),
        end_date=_coerce(pick("end_date", "endDate"), parse_timestamp, "end_date"),
        time_range=time_range,
    )


def _as_list(value: Any) -> List[Any]:
    """A single value (such as one category name) is a one-item list."""
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _coerce(value: Any, convert, field: str) -> Any:
    if value is None:
        return None
    try:
        return convert(value)
    except (TypeError, ValueError):
        raise InvalidConfig(f"Invalid value '{value}' for filter '{field}'", field=field)


def _enum_parser(enum_cls):
    def parse(value):
        if isinstance(value, enum_cls):
            return value
        return enum_cls(str(value).strip().lower())
    return parse


def _parse_each(values: Iterable[Any], parse, field: str) -> List[Any]:
    out = []
    for value in values:
        try:
            out.append(parse(value))
        except ValueError:
            raise InvalidConfig(f"Invalid value '{value}' in filter '{field}'", field=field)
    return out
