"""Listening ledger domain entities.

Ledger rows, the users they belong to, live playback snapshots and uploaded
export files.
"""

from datetime import datetime
from typing import Any

import attrs
from attrs import define, field

from .shared import ensure_utc


@define(frozen=True, slots=True)
class ListeningHistoryEntry:
    """One listen in a user's ledger.

    `imported` marks rows written from a verified export; live-tracked rows
    are never imported.
    """

    user_id: str
    track_id: str
    played_at: datetime = field(converter=ensure_utc)
    progress_ms: int
    device_name: str | None = None
    device_type: str | None = None
    imported: bool = False
    id: int | None = None

    def with_progress(self, progress_ms: int) -> "ListeningHistoryEntry":
        """Create a copy with updated progress."""
        return attrs.evolve(self, progress_ms=progress_ms)


@define(frozen=True, slots=True)
class User:
    """Tracked identity.

    Disabled users are never polled; premium users are polled on the faster tier.
    """

    id: str
    spotify_id: str | None = None
    premium_user: bool = False
    enabled: bool = True


@define(frozen=True, slots=True)
class NowPlaying:
    """Snapshot of a user's current playback of a track."""

    track_id: str
    played_at: datetime = field(converter=ensure_utc)
    progress_ms: int
    duration_ms: int | None = None
    device_name: str | None = None
    device_type: str | None = None
    # Raw catalog track object, needed to upsert the catalog before the ledger
    track_payload: dict[str, Any] = field(factory=dict, repr=False)


@define(frozen=True, slots=True)
class StreamingUpload:
    """Export file uploaded by a user, waiting to be reconciled."""

    id: int
    user_id: str
    file_url: str
    file_name: str | None = None
    processed: bool = False
    invalid_file: bool = False
    created_at: datetime | None = field(default=None, converter=ensure_utc)
