"""Top tracks, artists and albums for one user with period-over-period deltas."""

from datetime import UTC, datetime

from attrs import define, field

from soundstats.application.utilities.result_cache import (
    AnalyticsCache,
    analytics_cache,
)
from soundstats.config import get_logger, settings
from soundstats.domain.analytics import (
    compare_top_entities,
    previous_window,
    window_for,
)
from soundstats.domain.entities import EntityKind, Timeframe, TopEntities, ensure_utc
from soundstats.domain.repositories import UnitOfWorkFactory

logger = get_logger(__name__)


@define(slots=True)
class GetTopEntitiesUseCase:
    """Ranks a user's most played entities by qualifying play count.

    The previous window is read twice as deep as the current one so that
    entities just outside the current table still get a previous rank.
    """

    uow_factory: UnitOfWorkFactory
    cache: AnalyticsCache = field(factory=lambda: analytics_cache)
    qualifying_ms: int = field(factory=lambda: settings.analytics.qualifying_ms)

    async def execute(
        self,
        user_id: str,
        kind: EntityKind,
        timeframe: Timeframe,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> TopEntities:
        """The user's top entities of one kind.

        Args:
            user_id: Listener
            kind: Tracks, artists (primary credits only) or albums
            timeframe: Window length ending at `now`
            limit: Maximum rows (configured default when None)
            now: End of the current window (current minute when None)
        """
        limit = limit if limit is not None else settings.analytics.default_limit
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        now = ensure_utc(now) or datetime.now(UTC).replace(second=0, microsecond=0)
        key = ("top", user_id, str(kind), str(timeframe), limit, now)
        return await self.cache.get_or_compute(
            key, lambda: self._compute(user_id, kind, timeframe, limit, now)
        )

    async def _compute(
        self,
        user_id: str,
        kind: EntityKind,
        timeframe: Timeframe,
        limit: int,
        now: datetime,
    ) -> TopEntities:
        window = window_for(timeframe, now)
        prior = previous_window(window)
        async with self.uow_factory() as uow:
            ledger = uow.get_listening_history_repository()
            current = await ledger.top_entities(
                user_id, kind, window, self.qualifying_ms, limit
            )
            previous = (
                await ledger.top_entities(
                    user_id, kind, prior, self.qualifying_ms, limit * 2
                )
                if prior is not None
                else None
            )

        logger.debug(
            f"Ranked {len(current)} top {kind}s",
            user_id=user_id,
            timeframe=str(timeframe),
        )
        return TopEntities(
            kind=kind,
            timeframe=timeframe,
            entries=compare_top_entities(current, previous),
        )
