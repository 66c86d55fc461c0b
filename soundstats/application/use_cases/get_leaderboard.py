"""Friend-group leaderboards with period-over-period comparison."""

from datetime import UTC, datetime

from attrs import define, field

from soundstats.application.use_cases.get_listening_streaks import (
    GetListeningStreaksUseCase,
)
from soundstats.application.utilities.result_cache import (
    AnalyticsCache,
    analytics_cache,
)
from soundstats.config import get_logger, settings
from soundstats.domain.analytics import (
    clamp_page,
    compare_rankings,
    page_offset,
    paginate,
    previous_window,
    rank_streaks,
    total_pages,
    window_for,
)
from soundstats.domain.entities import (
    LeaderboardPage,
    Metric,
    Timeframe,
    ensure_utc,
)
from soundstats.domain.repositories import UnitOfWorkFactory

logger = get_logger(__name__)


@define(slots=True)
class GetLeaderboardUseCase:
    """Ranks a user and their accepted friends by a listening metric.

    PLAYTIME and COUNT are ranked and paged by the database; STREAK ranks the
    members' overall streaks in memory and has no previous-period deltas.
    """

    uow_factory: UnitOfWorkFactory
    cache: AnalyticsCache = field(factory=lambda: analytics_cache)
    qualifying_ms: int = field(factory=lambda: settings.analytics.qualifying_ms)
    streaks: GetListeningStreaksUseCase | None = None

    def __attrs_post_init__(self) -> None:
        if self.streaks is None:
            self.streaks = GetListeningStreaksUseCase(
                uow_factory=self.uow_factory,
                cache=self.cache,
                qualifying_ms=self.qualifying_ms,
            )

    async def execute(
        self,
        user_id: str,
        metric: Metric,
        timeframe: Timeframe,
        page: int = 1,
        limit: int | None = None,
        descending: bool = True,
        now: datetime | None = None,
    ) -> LeaderboardPage:
        """One page of the leaderboard for the user's social group.

        Args:
            user_id: Viewing user; the group is this user plus accepted friends
            metric: Value to rank by
            timeframe: Window length (ignored for STREAK)
            page: 1-based page, clamped to the available pages
            limit: Page size (configured default when None)
            descending: Highest value first when True
            now: End of the current window (current time when None)
        """
        limit = limit if limit is not None else settings.analytics.default_limit
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        # Keyed on the window end itself; by default the current minute
        now = ensure_utc(now) or datetime.now(UTC).replace(second=0, microsecond=0)
        key = (
            "leaderboard",
            user_id,
            str(metric),
            str(timeframe),
            page,
            limit,
            "desc" if descending else "asc",
            now,
        )
        return await self.cache.get_or_compute(
            key,
            lambda: self._compute(
                user_id, metric, timeframe, page, limit, descending, now
            ),
        )

    async def _compute(
        self,
        user_id: str,
        metric: Metric,
        timeframe: Timeframe,
        page: int,
        limit: int,
        descending: bool,
        now: datetime,
    ) -> LeaderboardPage:
        async with self.uow_factory() as uow:
            group = await uow.get_user_repository().get_social_group(user_id)

        if metric is Metric.STREAK:
            return await self._streak_page(
                user_id, group, timeframe, page, limit, descending, now
            )

        window = window_for(timeframe, now)
        prior = previous_window(window)
        async with self.uow_factory() as uow:
            ledger = uow.get_listening_history_repository()
            member_count = await ledger.count_ranked_members(
                group, metric, window, self.qualifying_ms
            )
            pages = total_pages(member_count, limit)
            page = clamp_page(page, pages)
            current = await ledger.rank_members(
                group,
                metric,
                window,
                self.qualifying_ms,
                descending=descending,
                limit=limit,
                offset=page_offset(page, limit),
            )
            previous = (
                await ledger.rank_members(
                    group, metric, prior, self.qualifying_ms, descending=descending
                )
                if prior is not None
                else None
            )

        logger.debug(
            f"Ranked {member_count} members by {metric}",
            user_id=user_id,
            timeframe=str(timeframe),
            page=page,
        )
        return LeaderboardPage(
            metric=metric,
            timeframe=timeframe,
            page=page,
            total_pages=pages,
            limit=limit,
            entries=compare_rankings(current, previous, user_id),
        )

    async def _streak_page(
        self,
        user_id: str,
        group: list[str],
        timeframe: Timeframe,
        page: int,
        limit: int,
        descending: bool,
        now: datetime,
    ) -> LeaderboardPage:
        streaks = await self.streaks.get_overall_streaks(group, now.date())
        ranked = rank_streaks(streaks, descending)
        pages = total_pages(len(ranked), limit)
        page = clamp_page(page, pages)
        return LeaderboardPage(
            metric=Metric.STREAK,
            timeframe=timeframe,
            page=page,
            total_pages=pages,
            limit=limit,
            entries=compare_rankings(paginate(ranked, page, limit), None, user_id),
        )
