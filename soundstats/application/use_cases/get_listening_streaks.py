"""Listening streaks: consecutive days with a qualifying play."""

from collections.abc import Sequence
from datetime import date

from attrs import define, evolve, field

from soundstats.application.utilities.result_cache import (
    AnalyticsCache,
    analytics_cache,
)
from soundstats.config import get_logger, settings
from soundstats.domain.analytics import find_active_streaks, streaks_by_entity
from soundstats.domain.entities import Streak, StreakType, utc_today
from soundstats.domain.repositories import UnitOfWorkFactory

logger = get_logger(__name__)


@define(slots=True)
class GetListeningStreaksUseCase:
    """Currently alive streaks per track, artist, album or overall.

    A streak is alive when its last qualifying day is the effective date or
    the day before it.
    """

    uow_factory: UnitOfWorkFactory
    cache: AnalyticsCache = field(factory=lambda: analytics_cache)
    qualifying_ms: int = field(factory=lambda: settings.analytics.qualifying_ms)

    async def execute(
        self,
        user_id: str,
        streak_type: StreakType,
        limit: int | None = None,
        as_of: date | None = None,
    ) -> list[Streak]:
        """Top alive streaks for a user.

        Args:
            user_id: Listener
            streak_type: Entity kind the streak is measured over
            limit: Maximum streaks returned (configured default when None)
            as_of: Effective date (current UTC date when None)

        Returns:
            Streaks ordered by length, end date, then entity ID; empty when the
            user has no qualifying plays
        """
        limit = limit if limit is not None else settings.analytics.default_limit
        as_of = as_of or utc_today()
        key = ("streaks", user_id, str(streak_type), limit, as_of)
        return await self.cache.get_or_compute(
            key, lambda: self._compute(user_id, streak_type, limit, as_of)
        )

    async def _compute(
        self, user_id: str, streak_type: StreakType, limit: int, as_of: date
    ) -> list[Streak]:
        async with self.uow_factory() as uow:
            rows = await uow.get_listening_history_repository().get_qualifying_dates(
                user_id, streak_type, as_of, self.qualifying_ms
            )
            streaks = find_active_streaks(rows, as_of, limit)
            if streak_type is StreakType.OVERALL or not streaks:
                return streaks
            names = await uow.get_catalog_repository().get_entity_names(
                streak_type, (s.entity_id for s in streaks)
            )

        logger.debug(
            f"Found {len(streaks)} {streak_type} streaks", user_id=user_id
        )
        return [evolve(s, entity_name=names.get(s.entity_id)) for s in streaks]

    async def get_overall_streak(
        self, user_id: str, as_of: date | None = None
    ) -> Streak | None:
        """The user's alive overall streak, if any."""
        return (await self.get_overall_streaks([user_id], as_of)).get(user_id)

    async def get_overall_streaks(
        self, user_ids: Sequence[str], as_of: date | None = None
    ) -> dict[str, Streak]:
        """Alive overall streaks for several users in one query.

        Returns:
            Mapping of user ID to streak; users without one are omitted
        """
        if not user_ids:
            return {}
        as_of = as_of or utc_today()
        async with self.uow_factory() as uow:
            rows = await uow.get_listening_history_repository().get_overall_qualifying_dates(
                list(user_ids), as_of, self.qualifying_ms
            )
        return streaks_by_entity(rows, as_of)
