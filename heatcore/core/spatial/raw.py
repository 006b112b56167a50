"""
Raw mode: one HeatPoint per weighted issue, for client-side heat layers at
high zoom.
"""

from typing import Iterable, List

from heatcore.core.models import HeatPoint, WeightedIssue
from heatcore.core.spatial.points import build_point

KIND_RAW = "raw"


def raw_point(wi: WeightedIssue) -> HeatPoint:
    return build_point([wi], wi.latitude, wi.longitude, KIND_RAW)


def aggregate_raw(weighted: Iterable[WeightedIssue]) -> List[HeatPoint]:
    return [raw_point(wi) for wi in weighted]
