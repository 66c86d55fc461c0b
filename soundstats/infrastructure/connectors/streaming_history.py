"""Spotify streaming history export parser.

Two export formats exist:

- Extended history (`Streaming_History_Audio_*.json`): one object per play with
  an ISO `ts`, catalog URIs and `ms_played`
- Legacy account data (`StreamingHistory*.json`): `endTime`, `artistName`,
  `trackName` and `msPlayed`, without catalog IDs

A file must be a non-empty JSON array in exactly one of these formats.
Elements of the extended format are classified as track plays, episode plays,
or unknown entries (plays with neither URI, e.g. local files).
"""

from datetime import UTC, datetime
import json
from typing import Annotated

from attrs import define, field
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from soundstats.config import get_logger
from soundstats.domain.entities import ensure_utc
from soundstats.domain.exceptions import InvalidUploadError
from soundstats.domain.ingestion import legacy_played_at

logger = get_logger(__name__)

LEGACY_TIME_FORMAT = "%Y-%m-%d %H:%M"


class _ExportEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class _ExtendedEntry(_ExportEntry):
    ts: datetime

    @field_validator("ts")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class TrackPlay(_ExtendedEntry):
    """Extended-format play of a catalog track."""

    ms_played: int
    master_metadata_track_name: str | None = None
    master_metadata_album_artist_name: str | None = None
    master_metadata_album_album_name: str | None = None
    spotify_track_uri: str
    platform: str | None = None


class EpisodePlay(_ExtendedEntry):
    """Extended-format play of a podcast episode."""

    ms_played: int
    episode_name: str | None = None
    episode_show_name: str | None = None
    spotify_episode_uri: str


class UnknownEntry(_ExtendedEntry):
    """Extended-format entry with no catalog reference."""


class LegacyPlay(_ExportEntry):
    """Legacy-format play; `endTime` is in UTC at minute precision."""

    end_time: datetime = Field(alias="endTime")
    artist_name: str = Field(alias="artistName")
    track_name: str = Field(alias="trackName")
    ms_played: int = Field(alias="msPlayed")

    @field_validator("end_time", mode="before")
    @classmethod
    def _parse_end_time(cls, value: object) -> object:
        if isinstance(value, str):
            return datetime.strptime(value, LEGACY_TIME_FORMAT).replace(tzinfo=UTC)
        return value

    @property
    def played_at(self) -> datetime:
        return legacy_played_at(ensure_utc(self.end_time), self.ms_played)


# Order matters: the first model that validates wins
ExportEntry = Annotated[
    TrackPlay | EpisodePlay | LegacyPlay | UnknownEntry,
    Field(union_mode="left_to_right"),
]

_history_adapter = TypeAdapter(Annotated[list[ExportEntry], Field(min_length=1)])


@define(frozen=True, slots=True)
class ParsedHistory:
    """Classified contents of one export file."""

    tracks: list[TrackPlay] = field(factory=list)
    episodes: list[EpisodePlay] = field(factory=list)
    unknown: list[UnknownEntry] = field(factory=list)
    legacy: list[LegacyPlay] = field(factory=list)

    @property
    def is_legacy(self) -> bool:
        return bool(self.legacy)

    @property
    def timestamps(self) -> list[datetime]:
        """Play instants of every entry in the file."""
        if self.is_legacy:
            return [play.played_at for play in self.legacy]
        return [entry.ts for entry in (*self.tracks, *self.episodes, *self.unknown)]


def parse_streaming_history(raw: bytes | str) -> ParsedHistory:
    """Validate and classify an export file.

    Args:
        raw: File contents

    Returns:
        Entries grouped by kind

    Raises:
        InvalidUploadError: If the document is not a non-empty array of entries
            in a single supported format
    """
    try:
        entries = _history_adapter.validate_python(json.loads(raw))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidUploadError(f"Upload is not valid JSON: {e}") from e
    except ValidationError as e:
        raise InvalidUploadError(
            f"Upload does not match a streaming history format "
            f"({e.error_count()} errors)"
        ) from e

    tracks, episodes, unknown, legacy = [], [], [], []
    for entry in entries:
        match entry:
            case TrackPlay():
                tracks.append(entry)
            case EpisodePlay():
                episodes.append(entry)
            case LegacyPlay():
                legacy.append(entry)
            case _:
                unknown.append(entry)

    if legacy and (tracks or episodes or unknown):
        raise InvalidUploadError("Upload mixes legacy and extended history entries")

    logger.debug(
        "Parsed streaming history",
        tracks=len(tracks),
        episodes=len(episodes),
        unknown=len(unknown),
        legacy=len(legacy),
    )
    return ParsedHistory(
        tracks=tracks, episodes=episodes, unknown=unknown, legacy=legacy
    )
