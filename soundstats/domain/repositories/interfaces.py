"""Domain repository interfaces.

These protocols define the data-access contracts the use cases depend on,
without depending on the SQLAlchemy implementations.
"""

from collections.abc import Awaitable, Iterable, Sequence
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Protocol, Self

if TYPE_CHECKING:
    from datetime import date, datetime

    from soundstats.domain.entities import (
        Album,
        Artist,
        DateRange,
        EntityKind,
        EntityPlays,
        ListeningHistoryEntry,
        Metric,
        RankedValue,
        StreakType,
        StreamingUpload,
        TaskLease,
        Track,
        User,
        WindowTotals,
    )


class CatalogRepositoryProtocol(Protocol):
    """Insert-or-ignore catalog writes and lookups."""

    def insert_artists(self, artists: list["Artist"]) -> Awaitable[int]: ...

    def insert_albums(self, albums: list["Album"]) -> Awaitable[int]: ...

    def insert_tracks(self, tracks: list["Track"]) -> Awaitable[int]: ...

    def get_existing_track_ids(self, track_ids: Iterable[str]) -> Awaitable[set[str]]: ...

    def get_track_duration(self, track_id: str) -> Awaitable[int | None]: ...

    def find_tracks_by_names(
        self, pairs: Iterable[tuple[str, str]]
    ) -> Awaitable[dict[tuple[str, str], str]]:
        """Resolve (artist name, track name) pairs already in the catalog."""
        ...

    def get_entity_names(
        self, streak_type: "StreakType", entity_ids: Iterable[str]
    ) -> Awaitable[dict[str, str]]: ...


class ListeningHistoryRepositoryProtocol(Protocol):
    """Ledger reads and writes."""

    def get_latest_entry(
        self, user_id: str
    ) -> Awaitable["ListeningHistoryEntry | None"]: ...

    def add_entry(self, entry: "ListeningHistoryEntry") -> Awaitable[int]: ...

    def update_progress(self, entry_id: int, progress_ms: int) -> Awaitable[int]: ...

    def delete_entry(self, entry_id: int) -> Awaitable[int]: ...

    def delete_live_entries_in_span(
        self, user_id: str, start: "datetime", end: "datetime"
    ) -> Awaitable[int]:
        """Delete non-imported entries with played_at in [start, end]."""
        ...

    def insert_imported_entries(
        self, entries: Sequence["ListeningHistoryEntry"]
    ) -> Awaitable[int]: ...

    def get_first_live_played_at(self, user_id: str) -> Awaitable["datetime | None"]: ...

    def get_qualifying_dates(
        self,
        user_id: str,
        streak_type: "StreakType",
        as_of: "date",
        min_progress_ms: int,
    ) -> Awaitable[list[tuple[str, "date"]]]: ...

    def get_overall_qualifying_dates(
        self, user_ids: Sequence[str], as_of: "date", min_progress_ms: int
    ) -> Awaitable[list[tuple[str, "date"]]]: ...

    def count_ranked_members(
        self,
        user_ids: Sequence[str],
        metric: "Metric",
        window: "DateRange",
        min_progress_ms: int,
    ) -> Awaitable[int]: ...

    def rank_members(
        self,
        user_ids: Sequence[str],
        metric: "Metric",
        window: "DateRange",
        min_progress_ms: int,
        descending: bool = True,
        limit: int | None = None,
        offset: int = 0,
    ) -> Awaitable[list["RankedValue"]]: ...

    def top_entities(
        self,
        user_id: str,
        kind: "EntityKind",
        window: "DateRange",
        min_progress_ms: int,
        limit: int,
    ) -> Awaitable[list["EntityPlays"]]: ...

    def get_window_totals(
        self, user_id: str, window: "DateRange", min_progress_ms: int
    ) -> Awaitable["WindowTotals"]: ...

    def get_daily_playtime(
        self, user_id: str, start: "date", end: "date", min_progress_ms: int
    ) -> Awaitable[dict["date", int]]: ...

    def get_hourly_playtime(
        self, user_id: str, day: "date", min_progress_ms: int
    ) -> Awaitable[dict[int, int]]: ...


class UserRepositoryProtocol(Protocol):
    """Tracked users and friendships."""

    def get_users_to_poll(self, premium_only: bool = False) -> Awaitable[list["User"]]: ...

    def get_social_group(self, user_id: str) -> Awaitable[list[str]]: ...


class StreamingUploadRepositoryProtocol(Protocol):
    """Queue of uploaded export files."""

    def add_upload(
        self,
        user_id: str,
        file_url: str,
        file_name: str | None = None,
        created_at: "datetime | None" = None,
    ) -> Awaitable["StreamingUpload"]: ...

    def get_pending_uploads(self, limit: int) -> Awaitable[list["StreamingUpload"]]: ...

    def mark_processed(self, upload_id: int) -> Awaitable[None]: ...

    def mark_invalid(self, upload_id: int) -> Awaitable[None]: ...


class TaskLeaseRepositoryProtocol(Protocol):
    """Scheduled-task mutual exclusion."""

    def try_acquire(
        self, name: str, holder: str, ttl_seconds: int, now: "datetime | None" = None
    ) -> Awaitable[bool]: ...

    def release(self, name: str, holder: str) -> Awaitable[None]: ...

    def get_lease(self, name: str) -> Awaitable["TaskLease | None"]: ...


class UnitOfWorkProtocol(Protocol):
    """Transaction boundary handing out repositories that share it."""

    async def __aenter__(self) -> Self: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...

    def get_catalog_repository(self) -> CatalogRepositoryProtocol: ...

    def get_listening_history_repository(self) -> ListeningHistoryRepositoryProtocol: ...

    def get_user_repository(self) -> UserRepositoryProtocol: ...

    def get_upload_repository(self) -> StreamingUploadRepositoryProtocol: ...

    def get_lease_repository(self) -> TaskLeaseRepositoryProtocol: ...


class UnitOfWorkFactory(Protocol):
    """Opens a fresh unit of work (one transaction) per call."""

    def __call__(self) -> AbstractAsyncContextManager[UnitOfWorkProtocol]: ...
