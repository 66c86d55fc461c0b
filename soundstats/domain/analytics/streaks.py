"""Consecutive-day streak detection (gap-and-island).

Each entity's qualifying dates are numbered 1..n in ascending order.
`date - n days` is constant across one run of consecutive calendar days and
changes between runs, so grouping on it yields the runs directly.
"""

from collections.abc import Iterable
from datetime import date, timedelta

from attrs import define
from toolz import groupby

from soundstats.domain.entities import Streak

DateRow = tuple[str, date]


@define(frozen=True, slots=True)
class Run:
    """Maximal run of consecutive dates for one entity."""

    entity_id: str
    start_date: date
    end_date: date
    length: int


def island_key(day: date, sequence_number: int) -> date:
    """Group key shared by every date in one run of consecutive days."""
    return day - timedelta(days=sequence_number)


def find_runs(rows: Iterable[DateRow]) -> list[Run]:
    """Collapse (entity_id, date) rows into maximal consecutive-day runs.

    Duplicate rows are ignored.
    """
    runs = []
    for entity_id, entity_rows in groupby(lambda row: row[0], set(rows)).items():
        dates = sorted(day for _, day in entity_rows)
        islands = groupby(
            lambda numbered: island_key(numbered[1], numbered[0]),
            enumerate(dates, start=1),
        )
        for members in islands.values():
            run_dates = [day for _, day in members]
            runs.append(
                Run(
                    entity_id=entity_id,
                    start_date=min(run_dates),
                    end_date=max(run_dates),
                    length=len(run_dates),
                )
            )
    return runs


def is_alive(run: Run, as_of: date) -> bool:
    """A run is alive if it was extended today or yesterday."""
    return run.end_date in (as_of, as_of - timedelta(days=1))


def find_active_streaks(
    rows: Iterable[DateRow],
    as_of: date,
    limit: int | None = None,
) -> list[Streak]:
    """Longest currently-alive streaks as of a date.

    Rows after `as_of` are ignored. Results are ordered by length descending,
    end date descending, then entity ID ascending.

    Args:
        rows: Distinct qualifying (entity_id, date) pairs
        as_of: Effective "today"
        limit: Maximum number of streaks to return (all when None)

    Returns:
        Alive streaks; empty when there are no qualifying rows
    """
    runs = [
        run
        for run in find_runs(row for row in rows if row[1] <= as_of)
        if is_alive(run, as_of)
    ]
    runs.sort(key=lambda run: (-run.length, -run.end_date.toordinal(), run.entity_id))
    if limit is not None:
        runs = runs[:limit]

    return [
        Streak(
            entity_id=run.entity_id,
            length=run.length,
            start_date=run.start_date,
            end_date=run.end_date,
            is_extended_today=run.end_date == as_of,
        )
        for run in runs
    ]


def streaks_by_entity(rows: Iterable[DateRow], as_of: date) -> dict[str, Streak]:
    """Alive streak per entity; entities without one are omitted.

    Only one run per entity can end today or yesterday, so the mapping is exact.
    """
    return {streak.entity_id: streak for streak in find_active_streaks(rows, as_of)}
