"""Tests for pure derived-value functions."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from cleansteps.recovery.calculations import (
    Periodicity,
    accrued_savings,
    as_utc,
    clean_time_seconds,
    milestone_dates,
    milestone_progress,
    milestone_progress_pct,
)
from tests.conftest import NOW


class TestCleanTime:
    def test_unset_is_zero(self):
        assert clean_time_seconds(None) == 0.0

    def test_fixed_now(self):
        assert clean_time_seconds(NOW - timedelta(hours=1), NOW) == 3600.0

    def test_naive_treated_as_utc(self):
        naive = (NOW - timedelta(days=1)).replace(tzinfo=None)
        assert clean_time_seconds(naive, NOW) == 86_400.0

    def test_other_offset(self):
        plus_two = timezone(timedelta(hours=2))
        start = datetime(2026, 10, 19, 13, 0, tzinfo=plus_two)  # 11:00 UTC
        assert clean_time_seconds(start, NOW) == 3600.0

    def test_future_date_is_negative(self):
        assert clean_time_seconds(NOW + timedelta(minutes=1), NOW) == -60.0

    def test_as_utc(self):
        assert as_utc(datetime(2026, 1, 1)).tzinfo == timezone.utc


class TestAccruedSavings:
    def test_per_day(self):
        assert accrued_savings(10.0, Periodicity.per_day, 3 * 86_400) == pytest.approx(30.0)

    def test_per_week(self):
        assert accrued_savings(70.0, Periodicity.per_week, 86_400) == pytest.approx(10.0)

    def test_partial_day(self):
        assert accrued_savings(24.0, Periodicity.per_day, 3_600) == pytest.approx(1.0)

    def test_no_clean_time(self):
        assert accrued_savings(10.0, Periodicity.per_day, 0) == 0.0
        assert accrued_savings(10.0, Periodicity.per_day, -500) == 0.0

    def test_period_lengths(self):
        assert Periodicity.per_day.seconds == 86_400
        assert Periodicity.per_week.seconds == 604_800


class TestMilestoneProgress:
    def test_before_first(self):
        assert milestone_progress(3_600) == (None, 86_400)

    def test_exactly_on_threshold(self):
        assert milestone_progress(604_800) == (604_800, 2_592_000)

    def test_between(self):
        assert milestone_progress(10 * 86_400) == (604_800, 2_592_000)

    def test_past_last(self):
        assert milestone_progress(800_000_000) == (788_400_000, None)

    def test_custom_thresholds(self):
        assert milestone_progress(50, [100, 10]) == (10, 100)

    def test_dates(self):
        start = NOW - timedelta(days=10)
        last, upcoming = milestone_dates(start, NOW)
        assert last == start + timedelta(weeks=1)
        assert upcoming == start + timedelta(days=30)

    def test_dates_without_sobriety_date(self):
        assert milestone_dates(None, NOW) == (None, None)

    def test_pct_midway(self):
        # halfway from 1 day to 3 days
        assert milestone_progress_pct(2 * 86_400) == pytest.approx(50.0)

    def test_pct_from_zero(self):
        assert milestone_progress_pct(43_200) == pytest.approx(50.0)

    def test_pct_past_last(self):
        assert milestone_progress_pct(900_000_000) is None
