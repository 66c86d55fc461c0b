"""Zero-filled playtime series for charting."""

from collections.abc import Mapping
from datetime import UTC, date, datetime, time, timedelta

from soundstats.domain.entities import PlaytimeBucket


def day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def daily_series(
    totals: Mapping[date, int], start: date, end: date
) -> list[PlaytimeBucket]:
    """One bucket per day from `start` to `end` inclusive.

    Days without plays are present with zero playtime.
    """
    days = (start + timedelta(days=offset) for offset in range((end - start).days + 1))
    return [
        PlaytimeBucket(start=day_start(day), playtime_ms=totals.get(day, 0))
        for day in days
    ]


def hourly_series(totals: Mapping[int, int], day: date) -> list[PlaytimeBucket]:
    """Twenty-four hourly buckets for a single day."""
    midnight = day_start(day)
    return [
        PlaytimeBucket(
            start=midnight + timedelta(hours=hour), playtime_ms=totals.get(hour, 0)
        )
        for hour in range(24)
    ]
