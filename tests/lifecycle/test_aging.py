"""Tests for the aging policy: thresholds, overdue arithmetic, buckets."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import pytest

from stridetrack.aging import (
    age_bucket,
    alert_severity,
    is_aging,
    merge_thresholds,
    parse_iso,
    threshold_for,
)

NOW = datetime(2026, 3, 31, 12, 0, tzinfo=UTC)


class TestThresholds:
    @pytest.mark.parametrize(
        ("state", "days"),
        [("S1", 14), ("S4", 14), ("H-INT-2", 60), ("H-DES-3", 90), ("H-DOE-1", 45), ("X-1", 30)],
    )
    def test_threshold_by_prefix(self, state: str, days: int) -> None:
        assert threshold_for(state) == days

    def test_overrides_merge(self) -> None:
        merged = merge_thresholds({"S": 7})
        assert merged["S"] == 7
        assert merged["H-DOE"] == 45
        assert threshold_for("S2", merged) == 7

    def test_invalid_overrides_ignored(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="stridetrack.aging"):
            merged = merge_thresholds({"S": 0, "H-INT": "ten", "Q": 5, "H-DES": True})
        assert merged == merge_thresholds(None)
        assert "unknown prefix 'Q'" in caplog.text


class TestIsAging:
    def test_within_threshold(self) -> None:
        result = is_aging("S2", NOW - timedelta(days=10), NOW)
        assert not result.aging
        assert result.days_in_phase == 10
        assert result.threshold == 14
        assert result.overdue_by == 0

    def test_exactly_at_threshold_is_not_aging(self) -> None:
        assert not is_aging("S2", NOW - timedelta(days=14), NOW).aging

    def test_past_threshold(self) -> None:
        result = is_aging("H-DOE-2", NOW - timedelta(days=50), NOW)
        assert result.aging
        assert result.overdue_by == 5

    def test_partial_days_are_floored(self) -> None:
        result = is_aging("S1", NOW - timedelta(days=14, hours=23), NOW)
        assert result.days_in_phase == 14
        assert not result.aging

    def test_terminal_state_never_ages(self) -> None:
        result = is_aging("H-DOE-5", NOW - timedelta(days=400), NOW)
        assert not result.aging
        assert result.days_in_phase == 400
        assert result.overdue_by == 0

    def test_future_reference_clamps_to_zero(self) -> None:
        result = is_aging("S1", NOW + timedelta(days=3), NOW)
        assert result.days_in_phase == 0
        assert not result.aging

    def test_accepts_iso_string(self) -> None:
        result = is_aging("S1", (NOW - timedelta(days=20)).isoformat(), NOW)
        assert result.days_in_phase == 20

    def test_naive_timestamp_treated_as_utc(self) -> None:
        assert parse_iso("2026-03-01T00:00:00").tzinfo is UTC

    def test_naive_datetime_reference(self) -> None:
        result = is_aging("S1", datetime(2020, 1, 1))
        assert result.aging
        assert result.days_in_phase > 2000

    def test_naive_now(self) -> None:
        naive_now = datetime(2026, 3, 31, 12, 0)
        result = is_aging("S2", NOW - timedelta(days=20), naive_now)
        assert result.days_in_phase == 20
        assert result.overdue_by == 6

    def test_custom_thresholds(self) -> None:
        result = is_aging("S1", NOW - timedelta(days=10), NOW, thresholds=merge_thresholds({"S": 7}))
        assert result.aging
        assert result.overdue_by == 3

    def test_to_dict(self) -> None:
        data = is_aging("S1", NOW, NOW).to_dict()
        assert data == {"aging": False, "days_in_phase": 0, "threshold": 14, "overdue_by": 0}


class TestSeverityAndBuckets:
    @pytest.mark.parametrize(
        ("overdue", "severity"),
        [(1, "notice"), (14, "notice"), (15, "warning"), (30, "warning"), (31, "critical")],
    )
    def test_alert_severity(self, overdue: int, severity: str) -> None:
        assert alert_severity(overdue) == severity

    @pytest.mark.parametrize(
        ("days", "bucket"),
        [(0, "<7d"), (6, "<7d"), (7, "7-14d"), (13, "7-14d"), (14, "14-30d"), (29, "14-30d"), (30, "30d+")],
    )
    def test_age_bucket(self, days: int, bucket: str) -> None:
        assert age_bucket(days) == bucket
