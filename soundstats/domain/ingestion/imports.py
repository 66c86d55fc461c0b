"""Pure helpers for reconciling export files with the ledger."""

from collections.abc import Iterable
from datetime import datetime, timedelta

from toolz import unique

TRACK_URI_PREFIX = "spotify:track:"


def track_id_from_uri(uri: str | None) -> str | None:
    """Extract the catalog ID from a `spotify:track:<id>` URI."""
    if not uri or not uri.startswith(TRACK_URI_PREFIX):
        return None
    track_id = uri[len(TRACK_URI_PREFIX) :]
    return track_id or None


def covered_span(instants: Iterable[datetime]) -> tuple[datetime, datetime] | None:
    """Inclusive [min, max] span of a file's timestamps, or None when empty."""
    instants = list(instants)
    if not instants:
        return None
    return min(instants), max(instants)


def legacy_played_at(end_time: datetime, ms_played: int) -> datetime:
    """Legacy exports record when a listen ended; the ledger keys on its start."""
    return end_time - timedelta(milliseconds=ms_played)


def is_before_floor(played_at: datetime, floor: datetime | None) -> bool:
    """Whether a legacy listen predates live tracking for the user."""
    return floor is None or played_at < floor


def distinct_in_order[T](items: Iterable[T]) -> list[T]:
    """Distinct items, first occurrence wins."""
    return list(unique(items))
