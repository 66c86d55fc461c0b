"""Operation result entities returned by the reconcilers and catalog writes."""

from datetime import datetime

from attrs import define, field

from .shared import ensure_utc


@define(frozen=True, slots=True)
class CatalogUpsertResult:
    """Counts of catalog rows offered for insert-or-ignore writes."""

    artists: int = 0
    albums: int = 0
    tracks: int = 0
    skipped: int = 0


@define(slots=True)
class NowPlayingResult:
    """Outcome of one live ingestion run across users."""

    processed: int = 0
    inserted: int = 0
    updated: int = 0
    finalized_deleted: int = 0
    finalized_clamped: int = 0
    skipped: int = 0
    failed: list[str] = field(factory=list)
    lease_held: bool = True

    @property
    def failed_count(self) -> int:
        return len(self.failed)


@define(slots=True)
class UploadBatchResult:
    """Outcome of one bulk import run over pending uploads."""

    processed: int = 0
    invalid: int = 0
    failed: int = 0
    inserted: int = 0
    deleted: int = 0
    unresolved: int = 0
    lease_held: bool = True


@define(frozen=True, slots=True)
class UploadOutcome:
    """Outcome of reconciling a single upload file."""

    upload_id: int
    inserted: int = 0
    deleted: int = 0
    unresolved: int = 0
    tracks: int = 0
    episodes: int = 0
    unknown: int = 0
    legacy: bool = False


@define(frozen=True, slots=True)
class TaskLease:
    """Exclusive right to run a scheduled task until `expires_at`."""

    name: str
    holder: str
    expires_at: datetime = field(converter=ensure_utc)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
