"""Catalog repository: insert-or-ignore writes for tracks, artists and albums."""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from attrs import define
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from soundstats.config import get_logger
from soundstats.domain.entities import Album, Artist, StreakType, Track
from soundstats.infrastructure.persistence.database.db_models import (
    DBAlbum,
    DBArtist,
    DBArtistAlbum,
    DBArtistTrack,
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

# Keeps IN (...) lists under SQLite's bound-parameter limit
LOOKUP_CHUNK_SIZE = 900


def _timestamps() -> dict[str, datetime]:
    now = datetime.now(UTC)
    return {"created_at": now, "updated_at": now}


@define(frozen=True, slots=True)
class TrackMapper(BaseModelMapper[DBTrack, Track]):
    """Maps between DBTrack and Track domain models."""

    @staticmethod
    def to_domain(db_model: DBTrack) -> Track:
        return Track(
            id=db_model.id,
            name=db_model.name,
            album_id=db_model.album_id,
            duration_ms=db_model.duration_ms,
            popularity=db_model.popularity,
        )

    @staticmethod
    def to_row(domain_model: Track) -> dict[str, Any]:
        return {
            "id": domain_model.id,
            "name": domain_model.name,
            "album_id": domain_model.album_id,
            "duration_ms": domain_model.duration_ms,
            "popularity": domain_model.popularity,
            **_timestamps(),
        }


def _artist_row(artist: Artist) -> dict[str, Any]:
    return {
        "id": artist.id,
        "name": artist.name,
        "image_url": artist.image_url,
        **_timestamps(),
    }


def _album_row(album: Album) -> dict[str, Any]:
    return {
        "id": album.id,
        "name": album.name,
        "album_type": album.album_type,
        "release_date": album.release_date,
        "total_tracks": album.total_tracks,
        "image_url": album.image_url,
        **_timestamps(),
    }


class CatalogRepository(BaseRepository[DBTrack, Track]):
    """Repository for catalog entities and their artist credits.

    Writes never overwrite existing rows; the catalog is append-only here.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model_class=DBTrack, mapper=TrackMapper())

    # -------------------------------------------------------------------------
    # WRITES
    # -------------------------------------------------------------------------

    @db_operation("insert_artists")
    async def insert_artists(self, artists: list[Artist]) -> int:
        return await self._insert_ignore([_artist_row(a) for a in artists], DBArtist)

    @db_operation("insert_albums")
    async def insert_albums(self, albums: list[Album]) -> int:
        inserted = await self._insert_ignore([_album_row(a) for a in albums], DBAlbum)
        credits = [
            {"artist_id": artist_id, "album_id": album.id}
            for album in albums
            for artist_id in album.artist_ids
        ]
        await self._insert_ignore(credits, DBArtistAlbum)
        return inserted

    @db_operation("insert_tracks")
    async def insert_tracks(self, tracks: list[Track]) -> int:
        """Insert tracks and their artist credits.

        The first credited artist of each track is flagged primary.
        """
        inserted = await self._insert_ignore([self.mapper.to_row(t) for t in tracks])
        credits = [
            {
                "artist_id": artist_id,
                "track_id": track.id,
                "is_primary_artist": index == 0,
            }
            for track in tracks
            for index, artist_id in enumerate(track.artist_ids)
        ]
        await self._insert_ignore(credits, DBArtistTrack)
        return inserted

    # -------------------------------------------------------------------------
    # READS
    # -------------------------------------------------------------------------

    @db_operation("get_existing_track_ids")
    async def get_existing_track_ids(self, track_ids: Iterable[str]) -> set[str]:
        """Subset of `track_ids` already present in the catalog."""
        wanted = list(set(track_ids))
        existing: set[str] = set()
        for start in range(0, len(wanted), LOOKUP_CHUNK_SIZE):
            chunk = wanted[start : start + LOOKUP_CHUNK_SIZE]
            result = await self.session.scalars(
                select(DBTrack.id).where(DBTrack.id.in_(chunk))
            )
            existing.update(result.all())
        return existing

    @db_operation("get_track")
    async def get_track(self, track_id: str) -> Track | None:
        return await self._find_one_by([DBTrack.id == track_id])

    @db_operation("get_track_duration")
    async def get_track_duration(self, track_id: str) -> int | None:
        return await self.session.scalar(
            select(DBTrack.duration_ms).where(DBTrack.id == track_id)
        )

    @db_operation("find_tracks_by_names")
    async def find_tracks_by_names(
        self, pairs: Iterable[tuple[str, str]]
    ) -> dict[tuple[str, str], str]:
        """Resolve (artist name, track name) pairs to catalog track IDs.

        Matching is case-insensitive against the track name and its primary
        artist's name.

        Returns:
            Mapping of the requested pairs (as given) to track IDs; unresolved
            pairs are omitted
        """
        requested: dict[tuple[str, str], list[tuple[str, str]]] = {}
        for artist, title in pairs:
            requested.setdefault((artist.lower(), title.lower()), []).append(
                (artist, title)
            )
        if not requested:
            return {}

        titles = sorted({title for _, title in requested})
        resolved: dict[tuple[str, str], str] = {}
        for start in range(0, len(titles), LOOKUP_CHUNK_SIZE):
            chunk = titles[start : start + LOOKUP_CHUNK_SIZE]
            stmt = (
                select(DBArtist.name, DBTrack.name, DBTrack.id)
                .join(DBArtistTrack, DBArtistTrack.track_id == DBTrack.id)
                .join(DBArtist, DBArtist.id == DBArtistTrack.artist_id)
                .where(
                    DBArtistTrack.is_primary_artist.is_(True),
                    func.lower(DBTrack.name).in_(chunk),
                )
                .order_by(DBTrack.id)
            )
            for artist_name, track_name, track_id in (
                await self.session.execute(stmt)
            ).all():
                for original in requested.get(
                    (artist_name.lower(), track_name.lower()), []
                ):
                    resolved.setdefault(original, track_id)
        return resolved

    @db_operation("get_entity_names")
    async def get_entity_names(
        self, streak_type: StreakType, entity_ids: Iterable[str]
    ) -> dict[str, str]:
        """Display names for streak entities of the given type."""
        model = {
            StreakType.TRACK: DBTrack,
            StreakType.ARTIST: DBArtist,
            StreakType.ALBUM: DBAlbum,
        }.get(streak_type)
        ids = list(set(entity_ids))
        if model is None or not ids:
            return {}

        result = await self.session.execute(
            select(model.id, model.name).where(model.id.in_(ids))
        )
        return {entity_id: name for entity_id, name in result.all()}
