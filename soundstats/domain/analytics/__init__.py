"""Pure analytics over the listening ledger: streaks, rankings and series."""

from .ranking import (
    clamp_page,
    compare_rankings,
    compare_top_entities,
    compare_totals,
    page_offset,
    paginate,
    percent_change,
    previous_window,
    rank_streaks,
    rank_values,
    total_pages,
    window_for,
)
from .series import daily_series, day_start, hourly_series
from .streaks import (
    Run,
    find_active_streaks,
    find_runs,
    island_key,
    is_alive,
    streaks_by_entity,
)

__all__ = [
    "Run",
    "clamp_page",
    "compare_rankings",
    "compare_top_entities",
    "compare_totals",
    "daily_series",
    "day_start",
    "find_active_streaks",
    "find_runs",
    "hourly_series",
    "is_alive",
    "island_key",
    "page_offset",
    "paginate",
    "percent_change",
    "previous_window",
    "rank_streaks",
    "rank_values",
    "streaks_by_entity",
    "total_pages",
    "window_for",
]
