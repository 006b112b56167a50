"""
Unit Tests for the Priority/Risk Scorer

Tests the risk formula, grouping modes, recurrence estimation, ordering,
risk levels and activity status.
"""

from datetime import timedelta

import pytest

from heatcore.core.models import Category, RiskLevel
from heatcore.core.priority import score_risks
from heatcore.core.validation import InvalidConfig
from heatcore.rulebook import rulebook_from_dict


@pytest.fixture
def two_zones(make_issue):
    """Zone A: three recent plumbing issues. Zone B: one older electrical issue."""
    return [
        make_issue(zone_id="A", category=Category.PLUMBING, severity=8, age_days=0.5),
        make_issue(zone_id="A", category=Category.PLUMBING, severity=8, age_days=1.5),
        make_issue(zone_id="A", category=Category.PLUMBING, severity=8, age_days=2.5),
        make_issue(zone_id="B", category=Category.ELECTRICAL, severity=4, age_days=10),
    ]


@pytest.mark.fast
class TestScoreRisks:
    """Tests for score_risks."""

    def test_risk_formula(self, two_zones, now):
        """risk = 0.4 * count/max + 0.4 * severity/10 + 0.2 * recurrence."""
        scores = score_risks(two_zones, now)

        a, b = scores
        assert (a.zone_id, a.category) == ("A", "Plumbing")
        assert a.issue_count == 3
        assert a.avg_severity == pytest.approx(8.0)
        # Window is the 10 days since the earliest issue; A hits 3 of 10 day-buckets
        assert a.recurrence_probability == pytest.approx(0.3)
        assert a.risk_score == pytest.approx(0.4 + 0.32 + 0.06)
        assert a.risk_level == RiskLevel.CRITICAL

        assert (b.zone_id, b.category) == ("B", "Electrical")
        assert b.recurrence_probability == pytest.approx(0.1)
        assert b.risk_score == pytest.approx(0.4 / 3 + 0.16 + 0.02)
        assert b.risk_level == RiskLevel.MEDIUM

    def test_activity_status(self, two_zones, now):
        a, b = score_risks(two_zones, now)

        assert a.activity_status == "ACTIVE"
        assert a.recent_issue_count == 3
        assert b.activity_status == "RECENT"
        assert b.last_issue_at == now - timedelta(days=10)

    def test_historical_activity(self, make_issue, now):
        scores = score_risks([make_issue(zone_id="Z", age_days=45)], now)

        assert scores[0].activity_status == "HISTORICAL"
        assert scores[0].recent_issue_count == 0

    def test_unzoned_excluded_from_zone_grouping(self, make_issue, now):
        issues = [make_issue(zone_id="A"), make_issue(zone_id=None), make_issue(zone_id=None)]

        by_zone = score_risks(issues, now, group_by="zone")
        by_category = score_risks(issues, now, group_by="category")

        assert [(s.zone_id, s.issue_count) for s in by_zone] == [("A", 1)]
        assert [(s.category, s.zone_id, s.issue_count) for s in by_category] == [("Plumbing", None, 3)]

    def test_zone_grouping_merges_categories(self, make_issue, now):
        issues = [
            make_issue(zone_id="A", category=Category.PLUMBING),
            make_issue(zone_id="A", category=Category.HVAC),
        ]

        scores = score_risks(issues, now, group_by="zone")

        assert len(scores) == 1
        assert scores[0].category is None
        assert scores[0].issue_count == 2

    def test_sorted_descending(self, make_issue, now):
        issues = [
            make_issue(zone_id=z, severity=s, age_days=a)
            for z, s, a in [("low", 1, 20), ("high", 9, 1), ("high", 9, 2), ("mid", 5, 3)]
        ]

        scores = score_risks(issues, now, group_by="zone")

        assert [s.zone_id for s in scores] == ["high", "mid", "low"]
        assert [s.risk_score for s in scores] == sorted((s.risk_score for s in scores), reverse=True)

    def test_ties_broken_by_recency_then_key(self, make_issue, now):
        """Equal risk and count: most recent first, then zone id ascending."""
        start, end = now - timedelta(days=10), now
        issues = [
            make_issue(zone_id="b", severity=5, age_days=3.5),
            make_issue(zone_id="a", severity=5, age_days=3.5),
            make_issue(zone_id="c", severity=5, age_days=1.5),
        ]

        scores = score_risks(issues, now, group_by="zone", window_start=start, window_end=end)

        assert [s.zone_id for s in scores] == ["c", "a", "b"]

    def test_explicit_window(self, make_issue, now):
        """Issues before the window count toward totals but not recurrence."""
        issues = [make_issue(zone_id="A", age_days=a) for a in (0.5, 1.5, 40)]

        scores = score_risks(issues, now, group_by="zone", window_start=now - timedelta(days=4), window_end=now)

        assert scores[0].issue_count == 3
        assert scores[0].recurrence_probability == pytest.approx(2 / 4)

    def test_min_group_size(self, two_zones, now):
        rulebook = rulebook_from_dict({"risk": {"min_group_size": 2}})

        scores = score_risks(two_zones, now, rulebook=rulebook)

        assert [s.zone_id for s in scores] == ["A"]

    def test_custom_weights(self, two_zones, now):
        rulebook = rulebook_from_dict({"risk": {"weights": {"issue_count": 1.0, "avg_severity": 0.0, "recurrence": 0.0}}})

        a, b = score_risks(two_zones, now, rulebook=rulebook)

        assert a.risk_score == pytest.approx(1.0)
        assert b.risk_score == pytest.approx(1 / 3)

    def test_empty_input(self, now):
        assert score_risks([], now) == []

    def test_invalid_group_by(self, two_zones, now):
        with pytest.raises(InvalidConfig) as exc:
            score_risks(two_zones, now, group_by="building")
        assert exc.value.field == "group_by"

    def test_invalid_issue_skipped(self, make_issue, now):
        issues = [make_issue(zone_id="A", severity=5), make_issue(zone_id="A", severity=42)]

        scores = score_risks(issues, now, group_by="zone")

        assert scores[0].issue_count == 1

    def test_to_dict(self, two_zones, now):
        data = score_risks(two_zones, now)[0].to_dict()

        assert data["zoneId"] == "A"
        assert data["riskLevel"] == "critical"
        assert data["lastIssueAt"].endswith("Z")
