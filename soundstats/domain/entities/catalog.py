"""Catalog domain entities.

Tracks, artists and albums keyed by the external catalog's opaque IDs.
"""

from attrs import define, field, validators


@define(frozen=True, slots=True)
class Artist:
    """Artist as known to the external catalog."""

    id: str = field(validator=validators.instance_of(str))
    name: str = field(validator=validators.instance_of(str))
    image_url: str | None = None


@define(frozen=True, slots=True)
class Album:
    """Album with its primary (widest) image chosen at write time."""

    id: str = field(validator=validators.instance_of(str))
    name: str = field(validator=validators.instance_of(str))
    album_type: str | None = None
    release_date: str | None = None  # Catalog may only know the year
    total_tracks: int | None = None
    image_url: str | None = None
    artist_ids: list[str] = field(factory=list)


@define(frozen=True, slots=True)
class Track:
    """Catalog track.

    `artist_ids` keeps the catalog's credit order; the first artist is the
    primary artist.
    """

    id: str = field(validator=validators.instance_of(str))
    name: str = field(validator=validators.instance_of(str))
    album_id: str = field(validator=validators.instance_of(str))
    duration_ms: int | None = None
    popularity: int | None = None
    artist_ids: list[str] = field(
        factory=list,
        validator=validators.deep_iterable(
            member_validator=validators.instance_of(str),
        ),
    )

    @property
    def primary_artist_id(self) -> str | None:
        """First credited artist, if any."""
        return self.artist_ids[0] if self.artist_ids else None
