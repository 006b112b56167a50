"""
Pytest configuration for heatcore tests.

Shared fixtures: a fixed evaluation clock and an issue factory.
"""

from datetime import datetime, timedelta, timezone

import pytest

from heatcore.core.models import Category, Issue, IssueStatus

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed evaluation time so ages are deterministic."""
    return NOW


@pytest.fixture
def make_issue():
    """Factory for Issue records; ``age_days`` is measured back from NOW."""
    counter = {"n": 0}

    def _make(
        lat=40.0,
        lng=-74.0,
        severity=5,
        age_days=0.0,
        category=Category.PLUMBING,
        status=IssueStatus.OPEN,
        zone_id=None,
        priority=None,
        issue_id=None,
    ):
        counter["n"] += 1
        return Issue(
            issue_id=issue_id or f"iss-{counter['n']}",
            latitude=lat,
            longitude=lng,
            category=category,
            severity=severity,
            status=status,
            created_at=NOW - timedelta(days=age_days),
            zone_id=zone_id,
            priority=priority,
        )

    return _make

