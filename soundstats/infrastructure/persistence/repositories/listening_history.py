"""Ledger repository: live reconciliation writes, import overrides and analytics reads."""

from collections.abc import Sequence
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from attrs import define
from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from soundstats.config import get_logger
from soundstats.domain.analytics import day_start
from soundstats.domain.entities import (
    DateRange,
    EntityKind,
    EntityPlays,
    ListeningHistoryEntry,
    Metric,
    RankedValue,
    StreakType,
    WindowTotals,
    ensure_utc,
    to_date,
)
from soundstats.infrastructure.persistence.database.db_models import (
    DBAlbum,
    DBArtist,
    DBArtistTrack,
    DBListeningHistory,
    DBTrack,
)
from soundstats.infrastructure.persistence.repositories.base_repo import (
    BaseModelMapper,
    BaseRepository,
)
from soundstats.infrastructure.persistence.repositories.repo_decorator import (
    db_operation,
)

logger = get_logger(__name__)


@define(frozen=True, slots=True)
class ListeningHistoryMapper(BaseModelMapper[DBListeningHistory, ListeningHistoryEntry]):
    """Maps between DBListeningHistory and ListeningHistoryEntry domain models."""

    @staticmethod
    def to_domain(db_model: DBListeningHistory) -> ListeningHistoryEntry:
        return ListeningHistoryEntry(
            id=db_model.id,
            user_id=db_model.user_id,
            track_id=db_model.track_id,
            played_at=db_model.played_at,
            progress_ms=db_model.progress_ms,
            device_name=db_model.device_name,
            device_type=db_model.device_type,
            imported=db_model.imported,
        )

    @staticmethod
    def to_row(domain_model: ListeningHistoryEntry) -> dict[str, Any]:
        return {
            "user_id": domain_model.user_id,
            "track_id": domain_model.track_id,
            "played_at": ensure_utc(domain_model.played_at),
            "progress_ms": domain_model.progress_ms,
            "device_name": domain_model.device_name,
            "device_type": domain_model.device_type,
            "imported": domain_model.imported,
        }


def end_of_day(day: date) -> datetime:
    """Exclusive upper bound covering all of `day` in UTC."""
    return datetime.combine(day + timedelta(days=1), time.min, tzinfo=UTC)


def in_window(window: DateRange) -> list[ColumnElement[bool]]:
    """Conditions selecting entries with `played_at` in a half-open window."""
    conditions = [DBListeningHistory.played_at < ensure_utc(window.end)]
    if window.start is not None:
        conditions.append(DBListeningHistory.played_at >= ensure_utc(window.start))
    return conditions


class ListeningHistoryRepository(
    BaseRepository[DBListeningHistory, ListeningHistoryEntry]
):
    """Repository for the listening ledger."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(
            session=session,
            model_class=DBListeningHistory,
            mapper=ListeningHistoryMapper(),
        )

    # -------------------------------------------------------------------------
    # LIVE RECONCILIATION
    # -------------------------------------------------------------------------

    @db_operation("get_latest_entry")
    async def get_latest_entry(self, user_id: str) -> ListeningHistoryEntry | None:
        """Most recent entry for a user by `played_at`."""
        return await self._find_one_by(
            [DBListeningHistory.user_id == user_id],
            order_by=[DBListeningHistory.played_at.desc(), DBListeningHistory.id.desc()],
        )

    @db_operation("add_entry")
    async def add_entry(self, entry: ListeningHistoryEntry) -> int:
        """Insert one entry; an identical (user, track, played_at) row is left as is."""
        return await self._insert_ignore([self.mapper.to_row(entry)])

    @db_operation("update_progress")
    async def update_progress(self, entry_id: int, progress_ms: int) -> int:
        return await self._update_where(
            [DBListeningHistory.id == entry_id], {"progress_ms": progress_ms}
        )

    @db_operation("delete_entry")
    async def delete_entry(self, entry_id: int) -> int:
        return await self._delete_where([DBListeningHistory.id == entry_id])

    # -------------------------------------------------------------------------
    # BULK IMPORT
    # -------------------------------------------------------------------------

    @db_operation("delete_live_entries_in_span")
    async def delete_live_entries_in_span(
        self, user_id: str, start: datetime, end: datetime
    ) -> int:
        """Delete a user's live-tracked entries with `played_at` in [start, end]."""
        return await self._delete_where([
            DBListeningHistory.user_id == user_id,
            DBListeningHistory.imported.is_(False),
            DBListeningHistory.played_at >= ensure_utc(start),
            DBListeningHistory.played_at <= ensure_utc(end),
        ])

    @db_operation("insert_imported_entries")
    async def insert_imported_entries(
        self, entries: Sequence[ListeningHistoryEntry]
    ) -> int:
        """Insert entries, ignoring rows already present.

        Returns:
            Number of new rows
        """
        return await self._insert_ignore([self.mapper.to_row(e) for e in entries])

    @db_operation("get_first_live_played_at")
    async def get_first_live_played_at(self, user_id: str) -> datetime | None:
        """Start of live tracking for a user, if any."""
        first = await self.session.scalar(
            select(func.min(DBListeningHistory.played_at)).where(
                DBListeningHistory.user_id == user_id,
                DBListeningHistory.imported.is_(False),
            )
        )
        if isinstance(first, str):
            first = datetime.fromisoformat(first)
        return ensure_utc(first)

    @db_operation("get_entries")
    async def get_entries(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ListeningHistoryEntry]:
        """A user's entries in chronological order, optionally within [start, end)."""
        conditions: list[ColumnElement[bool]] = [DBListeningHistory.user_id == user_id]
        if start is not None:
            conditions.append(DBListeningHistory.played_at >= ensure_utc(start))
        if end is not None:
            conditions.append(DBListeningHistory.played_at < ensure_utc(end))
        return await self._find_by(
            conditions,
            order_by=[DBListeningHistory.played_at, DBListeningHistory.id],
        )

    # -------------------------------------------------------------------------
    # STREAKS
    # -------------------------------------------------------------------------

    def _qualifying_dates_stmt(
        self, streak_type: StreakType, as_of: date, min_progress_ms: int
    ) -> Select:
        """Distinct (entity_id, date) rows for qualifying plays up to `as_of`."""
        play_date = func.date(DBListeningHistory.played_at)

        match streak_type:
            case StreakType.TRACK:
                stmt = select(DBListeningHistory.track_id, play_date)
            case StreakType.ALBUM:
                stmt = (
                    select(DBTrack.album_id, play_date)
                    .select_from(DBListeningHistory)
                    .join(DBTrack, DBTrack.id == DBListeningHistory.track_id)
                )
            case StreakType.ARTIST:
                stmt = (
                    select(DBArtistTrack.artist_id, play_date)
                    .select_from(DBListeningHistory)
                    .join(
                        DBArtistTrack,
                        (DBArtistTrack.track_id == DBListeningHistory.track_id)
                        & DBArtistTrack.is_primary_artist.is_(True),
                    )
                )
            case StreakType.OVERALL:
                stmt = select(DBListeningHistory.user_id, play_date)

        return stmt.where(
            DBListeningHistory.progress_ms >= min_progress_ms,
            DBListeningHistory.played_at < end_of_day(as_of),
        ).distinct()

    @db_operation("get_qualifying_dates")
    async def get_qualifying_dates(
        self,
        user_id: str,
        streak_type: StreakType,
        as_of: date,
        min_progress_ms: int,
    ) -> list[tuple[str, date]]:
        """Distinct (entity_id, date) pairs with a qualifying play by the user.

        For OVERALL the entity is the user.
        """
        stmt = self._qualifying_dates_stmt(streak_type, as_of, min_progress_ms).where(
            DBListeningHistory.user_id == user_id
        )
        result = await self.session.execute(stmt)
        return [(entity_id, to_date(day)) for entity_id, day in result.all()]

    @db_operation("get_overall_qualifying_dates")
    async def get_overall_qualifying_dates(
        self, user_ids: Sequence[str], as_of: date, min_progress_ms: int
    ) -> list[tuple[str, date]]:
        """Distinct (user_id, date) pairs with any qualifying play, for many users."""
        if not user_ids:
            return []
        stmt = self._qualifying_dates_stmt(
            StreakType.OVERALL, as_of, min_progress_ms
        ).where(DBListeningHistory.user_id.in_(list(user_ids)))
        result = await self.session.execute(stmt)
        return [(user_id, to_date(day)) for user_id, day in result.all()]

    # -------------------------------------------------------------------------
    # RANKINGS
    # -------------------------------------------------------------------------

    def _metric_stmt(
        self,
        user_ids: Sequence[str],
        metric: Metric,
        window: DateRange,
        min_progress_ms: int,
    ) -> Select:
        """Per-user metric values within a window."""
        if metric is Metric.PLAYTIME:
            value = func.sum(DBListeningHistory.progress_ms)
        elif metric is Metric.COUNT:
            value = func.count(DBListeningHistory.id)
        else:
            raise ValueError(f"Metric {metric} is not computed from the ledger")

        stmt = (
            select(DBListeningHistory.user_id, value.label("value"))
            .where(
                DBListeningHistory.user_id.in_(list(user_ids)),
                *in_window(window),
            )
            .group_by(DBListeningHistory.user_id)
        )
        if metric is Metric.COUNT:
            stmt = stmt.where(DBListeningHistory.progress_ms >= min_progress_ms)
        return stmt

    @db_operation("count_ranked_members")
    async def count_ranked_members(
        self,
        user_ids: Sequence[str],
        metric: Metric,
        window: DateRange,
        min_progress_ms: int,
    ) -> int:
        """Number of members with a value for the metric in the window."""
        if not user_ids:
            return 0
        metric_values = self._metric_stmt(
            user_ids, metric, window, min_progress_ms
        ).subquery()
        return await self.session.scalar(
            select(func.count()).select_from(metric_values)
        ) or 0

    @db_operation("rank_members")
    async def rank_members(
        self,
        user_ids: Sequence[str],
        metric: Metric,
        window: DateRange,
        min_progress_ms: int,
        descending: bool = True,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[RankedValue]:
        """Rank members by metric within a window, optionally one page of it.

        Ranks are positions in the full ordering (value, then user ID), so a
        page keeps global ranks.
        """
        if not user_ids:
            return []

        metric_values = self._metric_stmt(
            user_ids, metric, window, min_progress_ms
        ).subquery()
        ordering = (
            metric_values.c.value.desc() if descending else metric_values.c.value.asc(),
            metric_values.c.user_id.asc(),
        )
        stmt = select(
            metric_values.c.user_id,
            metric_values.c.value,
            func.row_number().over(order_by=ordering).label("rank"),
        ).order_by(*ordering)
        if limit is not None:
            stmt = stmt.limit(limit).offset(offset)

        result = await self.session.execute(stmt)
        return [
            RankedValue(user_id=user_id, value=int(value), rank=int(rank))
            for user_id, value, rank in result.all()
        ]

    # -------------------------------------------------------------------------
    # LISTENING SUMMARIES
    # -------------------------------------------------------------------------

    @db_operation("top_entities")
    async def top_entities(
        self,
        user_id: str,
        kind: EntityKind,
        window: DateRange,
        min_progress_ms: int,
        limit: int,
    ) -> list[EntityPlays]:
        """A user's most played tracks, artists or albums in a window.

        Only qualifying plays count. Rows are ordered by play count, then
        playtime, then name. An artist is credited only for tracks on which it
        is the primary artist.
        """
        match kind:
            case EntityKind.TRACK:
                entity = (DBTrack.id, DBTrack.name, DBAlbum.image_url)
            case EntityKind.ALBUM:
                entity = (DBAlbum.id, DBAlbum.name, DBAlbum.image_url)
            case EntityKind.ARTIST:
                entity = (DBArtist.id, DBArtist.name, DBArtist.image_url)

        plays = func.count(DBListeningHistory.id)
        playtime = func.sum(DBListeningHistory.progress_ms)
        stmt = select(*entity, plays, playtime).select_from(DBListeningHistory)

        if kind is EntityKind.ARTIST:
            stmt = stmt.join(
                DBArtistTrack,
                (DBArtistTrack.track_id == DBListeningHistory.track_id)
                & DBArtistTrack.is_primary_artist.is_(True),
            ).join(DBArtist, DBArtist.id == DBArtistTrack.artist_id)
        else:
            stmt = stmt.join(DBTrack, DBTrack.id == DBListeningHistory.track_id).join(
                DBAlbum, DBAlbum.id == DBTrack.album_id
            )

        entity_id, name, _ = entity
        stmt = (
            stmt.where(
                DBListeningHistory.user_id == user_id,
                DBListeningHistory.progress_ms >= min_progress_ms,
                *in_window(window),
            )
            .group_by(*entity)
            .order_by(plays.desc(), playtime.desc(), name.asc(), entity_id.asc())
            .limit(limit)
        )

        result = await self.session.execute(stmt)
        return [
            EntityPlays(
                entity_id=row_id,
                name=row_name,
                count=int(count),
                playtime_ms=int(total or 0),
                image_url=image_url,
            )
            for row_id, row_name, image_url, count, total in result.all()
        ]

    @db_operation("get_window_totals")
    async def get_window_totals(
        self, user_id: str, window: DateRange, min_progress_ms: int
    ) -> WindowTotals:
        """Playtime of every entry, plus distinct tracks and artists played.

        Distinct counts use qualifying plays and every credited artist.
        """
        in_scope = [DBListeningHistory.user_id == user_id, *in_window(window)]
        qualifying = DBListeningHistory.progress_ms >= min_progress_ms

        playtime = await self.session.scalar(
            select(func.sum(DBListeningHistory.progress_ms)).where(*in_scope)
        )
        tracks = await self.session.scalar(
            select(func.count(func.distinct(DBListeningHistory.track_id))).where(
                *in_scope, qualifying
            )
        )
        artists = await self.session.scalar(
            select(func.count(func.distinct(DBArtistTrack.artist_id)))
            .select_from(DBListeningHistory)
            .join(DBArtistTrack, DBArtistTrack.track_id == DBListeningHistory.track_id)
            .where(*in_scope, qualifying)
        )
        return WindowTotals(
            playtime_ms=int(playtime or 0), artists=artists or 0, tracks=tracks or 0
        )

    @db_operation("get_daily_playtime")
    async def get_daily_playtime(
        self, user_id: str, start: date, end: date, min_progress_ms: int
    ) -> dict[date, int]:
        """Qualifying playtime per UTC day from `start` to `end` inclusive."""
        play_date = func.date(DBListeningHistory.played_at)
        stmt = (
            select(play_date, func.sum(DBListeningHistory.progress_ms))
            .where(
                DBListeningHistory.user_id == user_id,
                DBListeningHistory.progress_ms >= min_progress_ms,
                DBListeningHistory.played_at >= day_start(start),
                DBListeningHistory.played_at < end_of_day(end),
            )
            .group_by(play_date)
        )
        result = await self.session.execute(stmt)
        return {to_date(day): int(total) for day, total in result.all()}

    @db_operation("get_hourly_playtime")
    async def get_hourly_playtime(
        self, user_id: str, day: date, min_progress_ms: int
    ) -> dict[int, int]:
        """Qualifying playtime per UTC hour of one day."""
        hour = func.strftime("%H", DBListeningHistory.played_at)
        stmt = (
            select(hour, func.sum(DBListeningHistory.progress_ms))
            .where(
                DBListeningHistory.user_id == user_id,
                DBListeningHistory.progress_ms >= min_progress_ms,
                DBListeningHistory.played_at >= day_start(day),
                DBListeningHistory.played_at < end_of_day(day),
            )
            .group_by(hour)
        )
        result = await self.session.execute(stmt)
        return {int(h): int(total) for h, total in result.all()}
