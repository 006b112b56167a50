"""
Clustered mode: greedy, weight-ordered radius linkage.

Weighted issues are visited by weight descending so the most significant
reports seed clusters. Each issue joins the nearest cluster whose centroid lies
within ``cluster_radius_meters`` (haversine), and that centroid is updated as
the running weighted mean; otherwise the issue seeds a new cluster. Clusters
that end with fewer than ``min_cluster_size`` members are dissolved and their
members emitted as raw points; they are never merged into a neighbour.

This is a single-pass heuristic, not DBSCAN. Neighbour search is bounded by a
pre-bucketing grid whose cells are at least one radius wide, so only the 3x3
block of buckets around an issue is checked.

Longitude columns wrap around the antimeridian, and member longitudes are
unwrapped around the running centroid before averaging, so issues either side
of +/-180 degrees link and their centroid is folded back into [-180, 180].
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from heatcore.core.geo import haversine_m, lat_delta_deg, lng_delta_deg, unwrap_longitude, wrap_longitude
from heatcore.core.models import Cluster, HeatPoint, WeightedIssue, clustering_radius_enabled
from heatcore.core.spatial.points import build_point, category_breakdown
from heatcore.core.spatial.raw import raw_point

logger = logging.getLogger(__name__)

KIND_CLUSTER = "cluster"

BucketKey = Tuple[int, int]


class _ClusterState:
    """Mutable accumulator used only while clustering one batch."""

    def __init__(self, index: int):
        self.index = index
        self.members: List[WeightedIssue] = []
        self.positions: List[int] = []
        self.sum_w = 0.0
        self.sum_w_lat = 0.0
        self.sum_w_lng = 0.0
        self.sum_lat = 0.0
        self.sum_lng = 0.0
        self.lat = 0.0
        self.lng = 0.0
        self.mean_lng = 0.0

    def add(self, wi: WeightedIssue, position: int) -> None:
        lng = unwrap_longitude(wi.longitude, self.mean_lng) if self.members else wi.longitude
        self.members.append(wi)
        self.positions.append(position)
        self.sum_w += wi.weight
        self.sum_w_lat += wi.weight * wi.latitude
        self.sum_w_lng += wi.weight * lng
        self.sum_lat += wi.latitude
        self.sum_lng += lng
        if self.sum_w > 0:
            self.lat = self.sum_w_lat / self.sum_w
            self.mean_lng = self.sum_w_lng / self.sum_w
        else:
            n = len(self.members)
            self.lat = self.sum_lat / n
            self.mean_lng = self.sum_lng / n
        self.lng = wrap_longitude(self.mean_lng)


class _BucketIndex:
    """Spatial hash of cluster centroids with cells at least one radius wide."""

    def __init__(self, radius_m: float, max_abs_lat: float):
        self.lat_size = lat_delta_deg(radius_m)
        # Whole number of columns around the globe so the last one meets the first
        self.n_cols = max(1, math.floor(360.0 / lng_delta_deg(radius_m, max_abs_lat)))
        self.lng_size = 360.0 / self.n_cols
        self.buckets: Dict[BucketKey, List[int]] = {}

    def key(self, lat: float, lng: float) -> BucketKey:
        return math.floor(lat / self.lat_size), math.floor((lng + 180.0) / self.lng_size) % self.n_cols

    def add(self, key: BucketKey, index: int) -> None:
        self.buckets.setdefault(key, []).append(index)

    def move(self, old: BucketKey, new: BucketKey, index: int) -> None:
        if old == new:
            return
        self.buckets[old].remove(index)
        if not self.buckets[old]:
            del self.buckets[old]
        self.add(new, index)

    def neighbours(self, key: BucketKey) -> List[int]:
        row, col = key
        cols = sorted({(col + dc) % self.n_cols for dc in (-1, 0, 1)})
        out: List[int] = []
        for dr in (-1, 0, 1):
            for c in cols:
                out.extend(self.buckets.get((row + dr, c), ()))
        return out


def _link(weighted: Sequence[WeightedIssue], radius_m: float) -> List[_ClusterState]:
    max_abs_lat = max(abs(wi.latitude) for wi in weighted)
    index = _BucketIndex(radius_m, max_abs_lat)
    states: List[_ClusterState] = []
    keys: List[BucketKey] = []

    order = sorted(range(len(weighted)), key=lambda i: -weighted[i].weight)
    for i in order:
        wi = weighted[i]
        best: Optional[Tuple[float, int]] = None
        for ci in index.neighbours(index.key(wi.latitude, wi.longitude)):
            state = states[ci]
            d = haversine_m(wi.latitude, wi.longitude, state.lat, state.lng)
            if d <= radius_m and (best is None or (d, ci) < best):
                best = (d, ci)

        if best is None:
            state = _ClusterState(len(states))
            state.add(wi, i)
            states.append(state)
            keys.append(index.key(state.lat, state.lng))
            index.add(keys[-1], state.index)
        else:
            state = states[best[1]]
            state.add(wi, i)
            new_key = index.key(state.lat, state.lng)
            index.move(keys[state.index], new_key, state.index)
            keys[state.index] = new_key

    return states


def build_clusters(
    weighted: Sequence[WeightedIssue],
    radius_m: Optional[float],
    min_cluster_size: int,
) -> Tuple[List[Tuple[Cluster, List[WeightedIssue]]], List[WeightedIssue]]:
    """
    Run greedy linkage and split the result into qualifying clusters (with
    their members in join order) and leftover issues (input order).

    A radius of None or 0 disables clustering: every issue is a leftover.
    """
    if not weighted:
        return [], []
    if not clustering_radius_enabled(radius_m):
        return [], list(weighted)

    states = _link(weighted, radius_m)

    clusters: List[Tuple[Cluster, List[WeightedIssue]]] = []
    dissolved: set = set()
    for state in states:
        if len(state.members) < min_cluster_size:
            dissolved.update(state.positions)
            continue
        members = state.members
        cluster = Cluster(
            cluster_id=f"cluster_{len(clusters)}",
            latitude=state.lat,
            longitude=state.lng,
            radius_meters=float(radius_m),
            member_issue_ids=[wi.issue_id for wi in members],
            aggregated_weight=state.sum_w,
            issue_count=len(members),
            avg_severity=sum(wi.issue.severity for wi in members) / len(members),
            category_breakdown=category_breakdown(members),
        )
        clusters.append((cluster, members))

    leftovers = [weighted[i] for i in sorted(dissolved)]
    logger.debug(
        f"Clustering at {radius_m} m: {len(states)} groups, {len(clusters)} kept, "
        f"{len(leftovers)} issues dissolved to raw points"
    )
    return clusters, leftovers


def aggregate_clustered(
    weighted: Sequence[WeightedIssue],
    radius_m: Optional[float],
    min_cluster_size: int,
) -> List[HeatPoint]:
    """Clustered mode output: cluster points first, then dissolved raw points."""
    clusters, leftovers = build_clusters(weighted, radius_m, min_cluster_size)
    points = [
        build_point(members, cluster.latitude, cluster.longitude, KIND_CLUSTER, cluster_id=cluster.cluster_id)
        for cluster, members in clusters
    ]
    points.extend(raw_point(wi) for wi in leftovers)
    return points
