"""
Unit Tests for grid aggregation

Tests cell assignment, weight conservation, centroids, member ordering
and the single-cell property for grids wider than the data.
"""

import pytest

from heatcore.core.models import Category, HeatmapConfig, WeightedIssue
from heatcore.core.spatial import aggregate
from heatcore.core.spatial.grid import aggregate_grid, build_grid_cells
from heatcore.core.weights import weigh_issues
from heatcore.utils.constants import METERS_PER_DEGREE_LAT


def _weighted(issue, weight):
    return WeightedIssue(issue=issue, weight=weight, raw_weight=weight, age_days=0.0)


@pytest.mark.fast
class TestGridBinning:
    """Tests for build_grid_cells."""

    def test_same_coordinate_single_cell(self, make_issue, now):
        """Three co-located issues (severities 10, 5, 1) give one cell of weight 1.6."""
        config = HeatmapConfig(time_decay_factor=0.0, severity_weight_multiplier=1.0, normalize_weights=False)
        issues = [make_issue(lat=51.5, lng=-0.12, severity=s) for s in (10, 5, 1)]

        cells = build_grid_cells(weigh_issues(issues, now, config), config.grid_size_meters)

        assert len(cells) == 1
        assert cells[0].aggregated_weight == pytest.approx(1.6)
        assert cells[0].issue_count == 3
        assert cells[0].avg_severity == pytest.approx(16 / 3)

    def test_weight_conserved(self, make_issue, now):
        """Sum of cell weights equals the sum of issue weights."""
        config = HeatmapConfig(time_decay_factor=0.2, grid_size_meters=50, normalize_weights=False)
        issues = [
            make_issue(lat=40.0 + i * 0.0003, lng=-74.0 + (i % 5) * 0.0004, severity=1 + i % 10, age_days=i * 0.3)
            for i in range(40)
        ]
        weighted = weigh_issues(issues, now, config)

        cells = build_grid_cells(weighted, config.grid_size_meters)

        assert len(cells) > 1
        assert sum(c.aggregated_weight for c in cells) == pytest.approx(sum(wi.weight for wi in weighted))
        assert sum(c.issue_count for c in cells) == len(weighted)

    def test_huge_grid_single_cell(self, make_issue, now):
        """A grid much larger than the data spread yields exactly one cell."""
        issues = [make_issue(lat=40.0 + d, lng=-74.0 - d) for d in (0.0, 0.5, 1.0, 2.0)]
        weighted = weigh_issues(issues, now, HeatmapConfig())

        cells = build_grid_cells(weighted, 5_000_000)

        assert len(cells) == 1
        assert cells[0].issue_count == 4

    def test_distant_points_separate_cells(self, make_issue, now):
        issues = [make_issue(lat=40.0, lng=-74.0), make_issue(lat=40.01, lng=-74.0)]

        cells = build_grid_cells(weigh_issues(issues, now, HeatmapConfig()), 100)

        assert len(cells) == 2
        assert cells[0].member_issue_ids == [issues[0].issue_id]

    def test_frame_anchored_at_batch_south_west(self, make_issue):
        """Cell edges follow the batch corner, so one issue's cell moves with its batch."""
        issue = make_issue(lat=40.0, lng=-74.0, issue_id="anchor")
        outlier = make_issue(lat=39.99, lng=-74.01, issue_id="outlier")

        alone = build_grid_cells([_weighted(issue, 1.0)], 100)
        together = build_grid_cells([_weighted(issue, 1.0), _weighted(outlier, 1.0)], 100)

        assert (alone[0].row, alone[0].col) == (0, 0)
        assert (alone[0].south, alone[0].west) == (40.0, -74.0)
        anchor_cell = next(c for c in together if c.member_issue_ids == ["anchor"])
        assert anchor_cell.south != 40.0
        assert anchor_cell.south <= 40.0 < anchor_cell.north

    def test_weighted_centroid(self, make_issue):
        a = make_issue(lat=10.0, lng=20.0)
        b = make_issue(lat=10.0003, lng=20.0003)

        cell = build_grid_cells([_weighted(a, 3.0), _weighted(b, 1.0)], 1000)[0]

        assert cell.latitude == pytest.approx(10.0 + 0.0003 / 4)
        assert cell.longitude == pytest.approx(20.0 + 0.0003 / 4)

    def test_zero_weight_falls_back_to_cell_centre(self, make_issue):
        cell = build_grid_cells([_weighted(make_issue(lat=10.0, lng=20.0), 0.0)], 100)[0]

        assert cell.latitude == pytest.approx(10.0 + (100 / METERS_PER_DEGREE_LAT) / 2)
        assert cell.south <= cell.latitude <= cell.north
        assert cell.west <= cell.longitude <= cell.east

    def test_members_ordered_by_weight(self, make_issue):
        low = make_issue(issue_id="low")
        high = make_issue(issue_id="high")
        mid = make_issue(issue_id="mid")

        cell = build_grid_cells([_weighted(low, 0.1), _weighted(high, 0.9), _weighted(mid, 0.5)], 100)[0]

        assert cell.member_issue_ids == ["high", "mid", "low"]

    def test_category_breakdown(self, make_issue, now):
        issues = [
            make_issue(category=Category.PLUMBING),
            make_issue(category=Category.ELECTRICAL),
            make_issue(category=Category.PLUMBING),
        ]

        cell = build_grid_cells(weigh_issues(issues, now, HeatmapConfig()), 100)[0]

        assert cell.category_breakdown == {"Plumbing": 2, "Electrical": 1}

    def test_empty_input(self):
        assert build_grid_cells([], 100) == []
        assert aggregate_grid([], 100) == []


@pytest.mark.fast
class TestGridHeatPoints:
    """Tests for grid mode HeatPoints."""

    def test_grid_points_normalised(self, make_issue, now):
        config = HeatmapConfig(time_decay_factor=0.0, normalize_weights=True)
        issues = [
            make_issue(lat=40.0, lng=-74.0, severity=8),
            make_issue(lat=40.0, lng=-74.0, severity=8),
            make_issue(lat=40.05, lng=-74.0, severity=4),
        ]

        points = aggregate(weigh_issues(issues, now, config), config, "grid")

        assert [p.kind for p in points] == ["grid", "grid"]
        assert max(p.intensity for p in points) == pytest.approx(1.0)
        assert points[1].intensity == pytest.approx(0.25)
        assert points[0].issue_count == 2
        assert points[0].categories == ["Plumbing"]
