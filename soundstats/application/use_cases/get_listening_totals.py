"""Period totals for one user: playtime, distinct artists and distinct tracks."""

from datetime import UTC, datetime

from attrs import define, field

from soundstats.application.utilities.result_cache import (
    AnalyticsCache,
    analytics_cache,
)
from soundstats.config import settings
from soundstats.domain.analytics import compare_totals, previous_window, window_for
from soundstats.domain.entities import ListeningTotals, Timeframe, ensure_utc
from soundstats.domain.repositories import UnitOfWorkFactory


@define(slots=True)
class GetListeningTotalsUseCase:
    """Totals for a window, each compared with the preceding window.

    Playtime sums every entry; the distinct counts use qualifying plays only.
    """

    uow_factory: UnitOfWorkFactory
    cache: AnalyticsCache = field(factory=lambda: analytics_cache)
    qualifying_ms: int = field(factory=lambda: settings.analytics.qualifying_ms)

    async def execute(
        self, user_id: str, timeframe: Timeframe, now: datetime | None = None
    ) -> ListeningTotals:
        now = ensure_utc(now) or datetime.now(UTC).replace(second=0, microsecond=0)
        key = ("totals", user_id, str(timeframe), now)
        return await self.cache.get_or_compute(
            key, lambda: self._compute(user_id, timeframe, now)
        )

    async def _compute(
        self, user_id: str, timeframe: Timeframe, now: datetime
    ) -> ListeningTotals:
        window = window_for(timeframe, now)
        prior = previous_window(window)
        async with self.uow_factory() as uow:
            ledger = uow.get_listening_history_repository()
            current = await ledger.get_window_totals(
                user_id, window, self.qualifying_ms
            )
            previous = (
                await ledger.get_window_totals(user_id, prior, self.qualifying_ms)
                if prior is not None
                else None
            )

        return ListeningTotals(
            timeframe=timeframe,
            playtime_ms=compare_totals(
                current.playtime_ms, previous.playtime_ms if previous else None
            ),
            artists=compare_totals(
                current.artists, previous.artists if previous else None
            ),
            tracks=compare_totals(current.tracks, previous.tracks if previous else None),
        )
