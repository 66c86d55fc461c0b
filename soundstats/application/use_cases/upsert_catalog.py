"""Catalog upserts from catalog track objects.

The catalog is append-only: rows are written with insert-or-ignore so that
concurrent reconcilers can offer the same track without conflicts, and
existing rows are never overwritten.
"""

from collections.abc import Iterable
from typing import Any

from attrs import define

from soundstats.config import get_logger
from soundstats.domain.entities import Album, Artist, CatalogUpsertResult, Track
from soundstats.domain.repositories import UnitOfWorkProtocol
from soundstats.infrastructure.connectors.spotify import (
    SpotifyConnector,
    convert_spotify_track,
)

logger = get_logger(__name__)


@define(slots=True)
class UpsertCatalogUseCase:
    """Writes artists, albums, tracks and their credits in dependency order."""

    async def execute(
        self,
        track_payloads: Iterable[dict[str, Any] | None],
        uow: UnitOfWorkProtocol,
    ) -> CatalogUpsertResult:
        """Insert the catalog rows described by full track objects.

        Args:
            track_payloads: Track objects; None marks an ID the catalog did not
                know
            uow: Unit of work for the writes

        Returns:
            Rows written per table and payloads skipped
        """
        artists: dict[str, Artist] = {}
        albums: dict[str, Album] = {}
        tracks: dict[str, Track] = {}
        skipped = 0

        for payload in track_payloads:
            # Local files carry no ID
            if not payload or not payload.get("id") or not payload.get("album"):
                skipped += 1
                continue
            track, album, credited = convert_spotify_track(payload)
            tracks.setdefault(track.id, track)
            albums.setdefault(album.id, album)
            for artist in credited:
                artists.setdefault(artist.id, artist)

        if not tracks:
            return CatalogUpsertResult(skipped=skipped)

        catalog = uow.get_catalog_repository()
        artist_count = await catalog.insert_artists(list(artists.values()))
        album_count = await catalog.insert_albums(list(albums.values()))
        track_count = await catalog.insert_tracks(list(tracks.values()))

        logger.debug(
            "Upserted catalog",
            artists=artist_count,
            albums=album_count,
            tracks=track_count,
            skipped=skipped,
        )
        return CatalogUpsertResult(
            artists=artist_count,
            albums=album_count,
            tracks=track_count,
            skipped=skipped,
        )

    async def upsert_missing(
        self,
        track_ids: Iterable[str],
        spotify: SpotifyConnector,
        uow: UnitOfWorkProtocol,
    ) -> CatalogUpsertResult:
        """Fetch and insert tracks not yet in the catalog.

        Args:
            track_ids: Candidate track IDs, duplicates allowed
            spotify: Catalog connector used for the lookups
            uow: Unit of work for the existence check and the writes
        """
        wanted = set(track_ids)
        existing = await uow.get_catalog_repository().get_existing_track_ids(wanted)
        missing = sorted(wanted - existing)
        if not missing:
            return CatalogUpsertResult()

        logger.info(f"Fetching {len(missing)} uncatalogued tracks")
        payloads = await spotify.get_several_tracks(missing)
        return await self.execute(
            (payloads.get(track_id) for track_id in missing), uow
        )
