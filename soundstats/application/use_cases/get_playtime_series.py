"""Playtime series for charting a user's listening over a date range."""

from datetime import date

from attrs import define, field

from soundstats.application.utilities.result_cache import (
    AnalyticsCache,
    analytics_cache,
)
from soundstats.config import get_logger, settings
from soundstats.domain.analytics import daily_series, hourly_series
from soundstats.domain.entities import PlaytimeBucket
from soundstats.domain.repositories import UnitOfWorkFactory

logger = get_logger(__name__)


@define(slots=True)
class GetPlaytimeSeriesUseCase:
    """Qualifying playtime per day, or per hour when the range is one day."""

    uow_factory: UnitOfWorkFactory
    cache: AnalyticsCache = field(factory=lambda: analytics_cache)
    qualifying_ms: int = field(factory=lambda: settings.analytics.qualifying_ms)

    async def execute(
        self, user_id: str, start: date, end: date
    ) -> list[PlaytimeBucket]:
        """Zero-filled buckets covering `start` to `end` inclusive (UTC days).

        Raises:
            ValueError: If `end` is before `start`
        """
        if end < start:
            raise ValueError(f"end {end} is before start {start}")
        key = ("playtime", user_id, start, end)
        return await self.cache.get_or_compute(
            key, lambda: self._compute(user_id, start, end)
        )

    async def _compute(
        self, user_id: str, start: date, end: date
    ) -> list[PlaytimeBucket]:
        async with self.uow_factory() as uow:
            ledger = uow.get_listening_history_repository()
            if start == end:
                hours = await ledger.get_hourly_playtime(
                    user_id, start, self.qualifying_ms
                )
                return hourly_series(hours, start)
            days = await ledger.get_daily_playtime(
                user_id, start, end, self.qualifying_ms
            )

        logger.debug(f"Playtime on {len(days)} days", user_id=user_id)
        return daily_series(days, start, end)
