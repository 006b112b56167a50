"""
Unit Tests for the Weight Calculator

Tests severity weighting, exponential time decay, clock-skew clamping,
log-and-skip of invalid issues and batch normalisation.
"""

import math
from datetime import timedelta

import pytest

from heatcore.core.models import HeatmapConfig
from heatcore.core.validation import InvalidIssue
from heatcore.core.weights import age_in_days, compute_weight, weigh_issues


@pytest.mark.fast
class TestComputeWeight:
    """Tests for single-issue weights."""

    def test_fresh_issue_weight(self, make_issue, now):
        """Age 0: weight is severity/10 times the multiplier."""
        config = HeatmapConfig(time_decay_factor=0.5, severity_weight_multiplier=2.0)
        issue = make_issue(severity=8, age_days=0)

        assert compute_weight(issue, now, config) == pytest.approx(1.6)

    def test_no_decay_ignores_age(self, make_issue, now):
        """Decay factor 0: weight is independent of age."""
        config = HeatmapConfig(time_decay_factor=0.0)
        weights = {compute_weight(make_issue(severity=6, age_days=age), now, config) for age in (0, 1, 30, 365)}

        assert len(weights) == 1
        assert weights.pop() == pytest.approx(0.6 * 2.0)

    def test_weight_non_increasing_with_age(self, make_issue, now):
        """Decay factor > 0: older issues never weigh more."""
        config = HeatmapConfig(time_decay_factor=0.3)
        weights = [compute_weight(make_issue(severity=7, age_days=age), now, config) for age in (0, 0.5, 1, 7, 30)]

        assert weights == sorted(weights, reverse=True)

    def test_thirty_day_old_issue_with_fast_decay(self, make_issue, now):
        """Decay 2.0 over 30 days shrinks the weight by e^-60."""
        config = HeatmapConfig(time_decay_factor=2.0, severity_weight_multiplier=1.0)
        issue = make_issue(severity=10, age_days=30)

        w = compute_weight(issue, now, config)

        assert w == pytest.approx(math.exp(-60), rel=1e-9)
        assert w < 1e-25

    def test_future_timestamp_clamped(self, make_issue, now):
        """Clock skew: a created_at in the future counts as age 0."""
        config = HeatmapConfig(time_decay_factor=1.0)
        issue = make_issue(severity=5, age_days=-2)

        assert age_in_days(issue, now) == 0.0
        assert compute_weight(issue, now, config) == pytest.approx(0.5 * 2.0)

    def test_invalid_severity_raises(self, make_issue, now):
        """Out-of-range severity fails fast."""
        with pytest.raises(InvalidIssue) as exc:
            compute_weight(make_issue(severity=11), now, HeatmapConfig())
        assert exc.value.field == "severity"

    def test_invalid_latitude_raises(self, make_issue, now):
        with pytest.raises(InvalidIssue) as exc:
            compute_weight(make_issue(lat=91.0), now, HeatmapConfig())
        assert exc.value.field == "latitude"


@pytest.mark.fast
class TestWeighIssues:
    """Tests for batch weighting."""

    def test_invalid_issue_skipped(self, make_issue, now, caplog):
        """Invalid issues are logged and skipped, the batch continues."""
        issues = [make_issue(severity=5), make_issue(severity=0, issue_id="bad"), make_issue(severity=9)]

        weighted = weigh_issues(issues, now, HeatmapConfig(normalize_weights=False))

        assert [wi.issue.severity for wi in weighted] == [5, 9]
        assert "bad" in caplog.text

    def test_normalisation_scales_to_max(self, make_issue, now):
        """Normalised weights divide by the batch maximum; raw weights are kept."""
        config = HeatmapConfig(time_decay_factor=0.0, normalize_weights=True)
        weighted = weigh_issues([make_issue(severity=4), make_issue(severity=8)], now, config)

        assert [wi.weight for wi in weighted] == pytest.approx([0.5, 1.0])
        assert [wi.raw_weight for wi in weighted] == pytest.approx([0.8, 1.6])

    def test_normalisation_all_zero_weights(self, make_issue, now):
        """A zero batch maximum leaves weights unchanged (no NaN)."""
        config = HeatmapConfig(time_decay_factor=5.0, normalize_weights=True)
        issues = [make_issue(severity=3, age_days=400), make_issue(severity=3, age_days=500)]

        weighted = weigh_issues(issues, now, config)

        assert all(wi.weight == 0.0 for wi in weighted)

    def test_ages_recorded(self, make_issue, now):
        weighted = weigh_issues([make_issue(age_days=2.5)], now, HeatmapConfig())

        assert weighted[0].age_days == pytest.approx(2.5)

    def test_naive_now_treated_as_utc(self, make_issue, now):
        issue = make_issue(age_days=1)
        naive = now.replace(tzinfo=None) + timedelta(days=1)

        assert age_in_days(issue, naive) == pytest.approx(2.0)
