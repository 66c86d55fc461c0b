"""Tests for zero-filled playtime series."""

from datetime import date

from soundstats.domain.analytics import daily_series, hourly_series
from tests.fixtures.builders import utc


class TestDailySeries:
    """Test one bucket per day."""

    def test_missing_days_are_zero(self):
        series = daily_series(
            {date(2024, 1, 1): 60_000, date(2024, 1, 3): 120_000},
            date(2024, 1, 1),
            date(2024, 1, 4),
        )

        assert [(b.start, b.playtime_ms) for b in series] == [
            (utc(2024, 1, 1), 60_000),
            (utc(2024, 1, 2), 0),
            (utc(2024, 1, 3), 120_000),
            (utc(2024, 1, 4), 0),
        ]

    def test_days_outside_range_are_ignored(self):
        series = daily_series(
            {date(2023, 12, 31): 60_000}, date(2024, 1, 1), date(2024, 1, 1)
        )

        assert [b.playtime_ms for b in series] == [0]


class TestHourlySeries:
    """Test twenty-four buckets for one day."""

    def test_every_hour_present(self):
        series = hourly_series({0: 30_000, 23: 90_000}, date(2024, 2, 29))

        assert len(series) == 24
        assert series[0].start == utc(2024, 2, 29, 0)
        assert series[-1].start == utc(2024, 2, 29, 23)
        assert [b.playtime_ms for b in series if b.playtime_ms] == [30_000, 90_000]
