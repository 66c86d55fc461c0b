"""Spotify service connector with domain model conversion.

This module wraps the spotipy library (https://spotipy.readthedocs.io/) for
the two kinds of calls the engine makes:

- Per-user playback polling, authenticated with the user's OAuth token
- Catalog lookups (tracks and search), authenticated with the
  application's client-credentials token

spotipy's own retry adapter is disabled so that the backoff decorators below
are the only retry policy.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

from attrs import define, field
import backoff
import spotipy
from spotipy.oauth2 import SpotifyClientCredentials
from toolz import partition_all

from soundstats.config import get_logger, resilient_operation, settings
from soundstats.domain.entities import Album, Artist, NowPlaying, Track
from soundstats.infrastructure.connectors.retry import (
    NETWORK_ERRORS,
    is_not_rate_limited,
    retry_after_seconds,
    spotify_max_tries,
)

# Get contextual logger with service binding
logger = get_logger(__name__).bind(service="spotify")


def _spotify_client(**kwargs: Any) -> spotipy.Spotify:
    return spotipy.Spotify(
        requests_timeout=settings.api.request_timeout,
        retries=0,
        status_retries=0,
        status_forcelist=(),
        **kwargs,
    )


@define(slots=True)
class SpotifyConnector:
    """Thin async wrapper around spotipy.

    The catalog client is created on first use, so constructing a connector
    never requires credentials.
    """

    market: str = field(factory=lambda: settings.api.spotify_market)
    _catalog_client: spotipy.Spotify | None = field(
        default=None, init=False, repr=False
    )

    @property
    def catalog_client(self) -> spotipy.Spotify:
        """Client-credentials client for catalog endpoints."""
        if self._catalog_client is None:
            logger.debug("Initializing Spotify catalog client")
            self._catalog_client = _spotify_client(
                client_credentials_manager=SpotifyClientCredentials(
                    client_id=settings.credentials.spotify_client_id,
                    client_secret=settings.credentials.spotify_client_secret,
                    requests_timeout=settings.api.request_timeout,
                )
            )
        return self._catalog_client

    @resilient_operation("get_spotify_current_playback")
    @backoff.on_exception(
        backoff.runtime,
        spotipy.SpotifyException,
        value=retry_after_seconds,
        giveup=is_not_rate_limited,
        max_tries=spotify_max_tries,
        jitter=None,
    )
    @backoff.on_exception(
        backoff.expo,
        NETWORK_ERRORS,
        max_tries=spotify_max_tries,
        jitter=backoff.full_jitter,
    )
    async def get_current_playback(self, token: str) -> dict[str, Any] | None:
        """Fetch the user's current playback state.

        Args:
            token: The user's OAuth access token

        Returns:
            Playback payload, or None when nothing is active
        """
        client = _spotify_client(auth=token)
        return await asyncio.to_thread(
            client.current_playback,
            market=self.market,
            additional_types="episode",
        )

    @resilient_operation("get_spotify_several_tracks")
    @backoff.on_exception(
        backoff.runtime,
        spotipy.SpotifyException,
        value=retry_after_seconds,
        giveup=is_not_rate_limited,
        max_tries=spotify_max_tries,
        jitter=None,
    )
    @backoff.on_exception(
        backoff.expo,
        NETWORK_ERRORS,
        max_tries=spotify_max_tries,
        jitter=backoff.full_jitter,
    )
    async def get_several_tracks(
        self, track_ids: list[str]
    ) -> dict[str, dict[str, Any] | None]:
        """Fetch full track objects in bulk.

        Args:
            track_ids: Catalog track IDs

        Returns:
            Mapping of each requested ID to its track object, or None when the
            catalog does not know it. Keys are the requested IDs even when the
            catalog relinks a track to a new ID.
        """
        results: dict[str, dict[str, Any] | None] = {}
        for batch in partition_all(settings.api.spotify_tracks_batch_size, track_ids):
            response = await asyncio.to_thread(
                self.catalog_client.tracks, list(batch), market=self.market
            )
            for requested_id, track in zip(
                batch, (response or {}).get("tracks", []), strict=False
            ):
                results[requested_id] = track
        logger.debug(
            "Fetched catalog tracks",
            requested=len(track_ids),
            found=sum(1 for track in results.values() if track),
        )
        return results

    @resilient_operation("search_spotify_track")
    @backoff.on_exception(
        backoff.runtime,
        spotipy.SpotifyException,
        value=retry_after_seconds,
        giveup=is_not_rate_limited,
        max_tries=spotify_max_tries,
        jitter=None,
    )
    @backoff.on_exception(
        backoff.expo,
        NETWORK_ERRORS,
        max_tries=spotify_max_tries,
        jitter=backoff.full_jitter,
    )
    async def search_track(
        self, artist: str, title: str, limit: int = 5
    ) -> list[dict[str, Any]]:
        """Search for candidate tracks by artist and title.

        Returns:
            Candidate track objects in the catalog's relevance order
        """
        query = f"artist:{artist} track:{title}"
        results = await asyncio.to_thread(
            self.catalog_client.search,
            query,
            type="track",
            limit=limit,
            market=self.market,
        )
        return [
            item
            for item in (results or {}).get("tracks", {}).get("items", [])
            if item and item.get("id")
        ]


# -----------------------------------------------------------------------------
# Payload conversion
# -----------------------------------------------------------------------------


def largest_image(images: list[dict[str, Any]] | None) -> str | None:
    """URL of the widest image; missing widths count as 0."""
    if not images:
        return None
    return max(images, key=lambda image: image.get("width") or 0).get("url")


def to_now_playing(payload: dict[str, Any] | None) -> NowPlaying | None:
    """Convert a playback payload to a snapshot, if a track is playing.

    Paused playback, empty items and non-track items (podcast episodes) give
    None.
    """
    if not payload or not payload.get("is_playing"):
        return None

    item = payload.get("item")
    if not item or not item.get("id"):
        return None
    if payload.get("currently_playing_type", "track") != "track":
        return None
    if item.get("type", "track") != "track":
        return None

    device = payload.get("device") or {}
    return NowPlaying(
        track_id=item["id"],
        played_at=datetime.fromtimestamp(payload["timestamp"] / 1000, tz=UTC),
        progress_ms=payload.get("progress_ms") or 0,
        duration_ms=item.get("duration_ms"),
        device_name=device.get("name"),
        device_type=device.get("type"),
        track_payload=item,
    )


def convert_spotify_artist(payload: dict[str, Any]) -> Artist:
    return Artist(
        id=payload["id"],
        name=payload.get("name") or "",
        image_url=largest_image(payload.get("images")),
    )


def convert_spotify_album(payload: dict[str, Any]) -> Album:
    return Album(
        id=payload["id"],
        name=payload.get("name") or "",
        album_type=payload.get("album_type"),
        release_date=payload.get("release_date"),
        total_tracks=payload.get("total_tracks"),
        image_url=largest_image(payload.get("images")),
        artist_ids=[a["id"] for a in payload.get("artists", []) if a.get("id")],
    )


def convert_spotify_track(
    payload: dict[str, Any],
) -> tuple[Track, Album, list[Artist]]:
    """Split a full track object into catalog domain models.

    Returns:
        The track, its album and every artist credited on either of them
    """
    album_payload = payload["album"]
    album = convert_spotify_album(album_payload)

    artist_payloads = [
        *payload.get("artists", []),
        *album_payload.get("artists", []),
    ]
    artists = {
        a["id"]: convert_spotify_artist(a) for a in artist_payloads if a.get("id")
    }

    track = Track(
        id=payload["id"],
        name=payload.get("name") or "",
        album_id=album.id,
        duration_ms=payload.get("duration_ms"),
        popularity=payload.get("popularity"),
        artist_ids=[a["id"] for a in payload.get("artists", []) if a.get("id")],
    )
    return track, album, list(artists.values())
