"""Domain exception hierarchy."""


class SoundStatsError(Exception):
    """Base class for all engine errors."""


class TokenUnavailableError(SoundStatsError):
    """The identity provider holds no music-provider token for a user."""

    def __init__(self, user_id: str, reason: str = "no oauth token") -> None:
        super().__init__(f"Spotify token unavailable for user {user_id}: {reason}")
        self.user_id = user_id


class InvalidUploadError(SoundStatsError):
    """An uploaded export file does not match any supported format."""


class LedgerIntegrityError(SoundStatsError):
    """A ledger write referenced a track missing from the catalog."""

    def __init__(self, missing_track_ids: set[str]) -> None:
        preview = ", ".join(sorted(missing_track_ids)[:5])
        super().__init__(
            f"Ledger write references {len(missing_track_ids)} uncatalogued "
            f"track(s): {preview}"
        )
        self.missing_track_ids = missing_track_ids
