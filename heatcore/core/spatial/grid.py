"""
Grid mode: fixed-size spatial binning.

Cell size in degrees comes from the metre size:

    lat_delta = meters / 111000
    lng_delta = meters / (111000 * cos(lat * pi / 180))

Keys are ``(floor(lat / lat_delta), floor(lng / lng_delta))`` in a batch-local
frame anchored at the batch's south-west corner, so data narrower than one
cell always lands in exactly one cell. ``lng_delta`` is evaluated once per row
at the row's poleward edge; every cell in a row has the same width.

The frame is batch-relative: the same coordinate can land in a differently
placed cell when the batch's south-west corner moves, so cell keys and edges
from separate calls are not comparable. Callers that diff grids over time
should aggregate the combined batch in one call.

Key computation is vectorised with numpy; accumulation is a single pass over
the members of each occupied cell.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Sequence, Tuple

import numpy as np

from heatcore.core.geo import lat_delta_deg
from heatcore.core.models import GridCell, HeatPoint, WeightedIssue
from heatcore.core.spatial.points import build_point, category_breakdown
from heatcore.utils.constants import MAX_GRID_LATITUDE, METERS_PER_DEGREE_LAT

logger = logging.getLogger(__name__)

KIND_GRID = "grid"


@dataclass(frozen=True)
class _Frame:
    lat0: float
    lng0: float
    lat_delta: float
    meters: float

    def row_bounds(self, row: int) -> Tuple[float, float]:
        south = self.lat0 + row * self.lat_delta
        return south, south + self.lat_delta

    def lng_delta(self, row: int) -> float:
        south, north = self.row_bounds(row)
        poleward = min(max(abs(south), abs(north)), MAX_GRID_LATITUDE)
        return self.meters / (METERS_PER_DEGREE_LAT * np.cos(np.radians(poleward)))


def _assign_keys(weighted: Sequence[WeightedIssue], grid_size_meters: float) -> Tuple[_Frame, np.ndarray, np.ndarray]:
    """Vectorised (row, col) assignment for every weighted issue."""
    lats = np.fromiter((wi.latitude for wi in weighted), dtype=np.float64, count=len(weighted))
    lngs = np.fromiter((wi.longitude for wi in weighted), dtype=np.float64, count=len(weighted))

    frame = _Frame(
        lat0=float(lats.min()),
        lng0=float(lngs.min()),
        lat_delta=lat_delta_deg(grid_size_meters),
        meters=float(grid_size_meters),
    )

    rows = np.floor((lats - frame.lat0) / frame.lat_delta).astype(np.int64)
    south = frame.lat0 + rows * frame.lat_delta
    north = south + frame.lat_delta
    poleward = np.minimum(np.maximum(np.abs(south), np.abs(north)), MAX_GRID_LATITUDE)
    lng_deltas = frame.meters / (METERS_PER_DEGREE_LAT * np.cos(np.radians(poleward)))
    cols = np.floor((lngs - frame.lng0) / lng_deltas).astype(np.int64)
    return frame, rows, cols


def _bin(weighted: Sequence[WeightedIssue], grid_size_meters: float) -> List[Tuple[GridCell, List[WeightedIssue]]]:
    if not weighted:
        return []

    frame, rows, cols = _assign_keys(weighted, grid_size_meters)

    # Cells keep first-seen order; members keep input order
    buckets: Dict[Tuple[int, int], List[int]] = {}
    for idx, key in enumerate(zip(rows.tolist(), cols.tolist())):
        buckets.setdefault(key, []).append(idx)

    out: List[Tuple[GridCell, List[WeightedIssue]]] = []
    for (row, col), indices in buckets.items():
        members = [weighted[i] for i in indices]
        south, north = frame.row_bounds(row)
        width = float(frame.lng_delta(row))
        west = frame.lng0 + col * width
        east = west + width

        total = sum(wi.weight for wi in members)
        if total > 0:
            lat = sum(wi.weight * wi.latitude for wi in members) / total
            lng = sum(wi.weight * wi.longitude for wi in members) / total
        else:
            lat, lng = (south + north) / 2.0, (west + east) / 2.0

        by_weight = sorted(members, key=lambda wi: -wi.weight)
        cell = GridCell(
            row=row,
            col=col,
            south=south,
            west=west,
            north=north,
            east=east,
            latitude=lat,
            longitude=lng,
            aggregated_weight=total,
            issue_count=len(members),
            avg_severity=sum(wi.issue.severity for wi in members) / len(members),
            category_breakdown=category_breakdown(members),
            member_issue_ids=[wi.issue_id for wi in by_weight],
        )
        out.append((cell, members))

    logger.debug(f"Grid binning at {grid_size_meters} m: {len(weighted)} issues -> {len(out)} cells")
    return out


def build_grid_cells(weighted: Sequence[WeightedIssue], grid_size_meters: float) -> List[GridCell]:
    """Bin weighted issues into GridCells (first-seen cell order)."""
    return [cell for cell, _ in _bin(weighted, grid_size_meters)]


def aggregate_grid(weighted: Sequence[WeightedIssue], grid_size_meters: float) -> List[HeatPoint]:
    """Grid mode output: one un-normalised HeatPoint per occupied cell."""
    points: List[HeatPoint] = []
    for cell, members in _bin(weighted, grid_size_meters):
        point = build_point(members, cell.latitude, cell.longitude, KIND_GRID)
        points.append(replace(point, issue_ids=list(cell.member_issue_ids)))
    return points
