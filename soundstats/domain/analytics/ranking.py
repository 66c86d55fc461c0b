"""Ranking, pagination and period-over-period comparison."""

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
import math

from soundstats.domain.entities import (
    DateRange,
    EntityPlays,
    LeaderboardEntry,
    PeriodTotal,
    RankedValue,
    Streak,
    Timeframe,
    TopEntity,
)


def window_for(timeframe: Timeframe, now: datetime) -> DateRange:
    """Current window for a timeframe, ending at `now`."""
    duration = timeframe.duration
    if duration is None:
        return DateRange(start=None, end=now)
    return DateRange(start=now - duration, end=now)


def previous_window(window: DateRange) -> DateRange | None:
    """Window of equal length immediately preceding `window`.

    Unbounded windows have no predecessor.
    """
    if window.start is None:
        return None
    length = window.end - window.start
    return DateRange(start=window.start - length, end=window.start)


def total_pages(member_count: int, limit: int) -> int:
    """Number of pages needed; an empty leaderboard still has one page."""
    return max(1, math.ceil(member_count / limit))


def clamp_page(page: int, pages: int) -> int:
    return min(max(page, 1), pages)


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def sort_key(user_id: str, value: int, descending: bool) -> tuple[int, str]:
    """Order by value in the chosen direction, then by user ID."""
    return (-value if descending else value, user_id)


def rank_values(
    values: Mapping[str, int], descending: bool = True
) -> list[RankedValue]:
    """Rank members by value with 1-based positions."""
    ordered = sorted(
        values.items(), key=lambda item: sort_key(item[0], item[1], descending)
    )
    return [
        RankedValue(user_id=user_id, value=value, rank=position)
        for position, (user_id, value) in enumerate(ordered, start=1)
    ]


def rank_streaks(
    streaks: Mapping[str, Streak], descending: bool = True
) -> list[RankedValue]:
    """Rank members by the length of their overall streak."""
    return rank_values(
        {user_id: streak.length for user_id, streak in streaks.items()}, descending
    )


def paginate[T](items: list[T], page: int, limit: int) -> list[T]:
    offset = page_offset(page, limit)
    return items[offset : offset + limit]


def percent_change(current: int, previous: int | None) -> float | None:
    """Relative change in percent; None when there is no usable baseline."""
    if previous is None or previous == 0:
        return None
    return (current - previous) / previous * 100


def compare_rankings(
    current: Iterable[RankedValue],
    previous: Iterable[RankedValue] | None,
    current_user_id: str | None = None,
) -> list[LeaderboardEntry]:
    """Attach previous-window rank and value deltas to current rows.

    Ranks are global positions, so the current rows may be a single page
    while `previous` holds the full previous ranking.

    Args:
        current: Ranked rows to report (typically one page)
        previous: Complete ranking for the previous window, or None when the
            metric has no previous-window analogue
        current_user_id: Member to flag as the viewer

    Returns:
        Leaderboard entries in the order of `current`
    """
    previous_by_user = (
        {row.user_id: row for row in previous} if previous is not None else {}
    )

    entries = []
    for row in current:
        prior = previous_by_user.get(row.user_id)
        entries.append(
            LeaderboardEntry(
                user_id=row.user_id,
                rank=row.rank,
                value=row.value,
                previous_rank=prior.rank if prior else None,
                previous_value=prior.value if prior else None,
                rank_change=prior.rank - row.rank if prior else None,
                percent_change=percent_change(
                    row.value, prior.value if prior else None
                ),
                is_current_user=row.user_id == current_user_id,
            )
        )
    return entries


def compare_top_entities(
    current: Sequence[EntityPlays], previous: Sequence[EntityPlays] | None
) -> list[TopEntity]:
    """Number top-entity rows by position and attach previous-window deltas.

    Both sequences are already ordered best first; an entity missing from
    `previous` has no deltas.
    """

    def ranked(rows: Sequence[EntityPlays]) -> list[RankedValue]:
        return [
            RankedValue(user_id=row.entity_id, value=row.count, rank=position)
            for position, row in enumerate(rows, start=1)
        ]

    compared = compare_rankings(
        ranked(current), ranked(previous) if previous is not None else None
    )
    return [
        TopEntity(
            entity_id=row.entity_id,
            name=row.name,
            rank=entry.rank,
            count=row.count,
            playtime_ms=row.playtime_ms,
            image_url=row.image_url,
            previous_rank=entry.previous_rank,
            previous_count=entry.previous_value,
            rank_change=entry.rank_change,
            percent_change=entry.percent_change,
        )
        for row, entry in zip(current, compared, strict=True)
    ]


def compare_totals(current: int, previous: int | None) -> PeriodTotal:
    return PeriodTotal(
        value=current,
        previous_value=previous,
        percent_change=percent_change(current, previous),
    )
