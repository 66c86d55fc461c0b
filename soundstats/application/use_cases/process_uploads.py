"""Bulk import: reconcile uploaded export files into the ledger.

A verified export overrides live tracking for the period it covers: live
entries inside the file's span are deleted and the file's plays are inserted
as imported entries, in one transaction per file.
"""

from datetime import datetime
from typing import Any

from attrs import define, field
import requests
import spotipy

from soundstats.application.use_cases.upsert_catalog import UpsertCatalogUseCase
from soundstats.config import get_logger, settings
from soundstats.domain.entities import (
    ListeningHistoryEntry,
    StreamingUpload,
    UploadBatchResult,
    UploadOutcome,
)
from soundstats.domain.exceptions import InvalidUploadError
from soundstats.domain.ingestion import (
    best_candidate,
    covered_span,
    distinct_in_order,
    is_before_floor,
    track_id_from_uri,
)
from soundstats.domain.repositories import UnitOfWorkFactory
from soundstats.infrastructure.connectors.spotify import SpotifyConnector
from soundstats.infrastructure.connectors.streaming_history import (
    ParsedHistory,
    parse_streaming_history,
)
from soundstats.infrastructure.connectors.upload_storage import UploadStorage

logger = get_logger(__name__)


def _primary_artist_name(payload: dict[str, Any]) -> str:
    artists = payload.get("artists") or []
    return (artists[0].get("name") or "") if artists else ""


@define(slots=True)
class ProcessUploadsUseCase:
    """Processes the oldest pending uploads one file at a time.

    Invalid files are flagged and never retried. Any other failure leaves the
    upload pending for the next run.
    """

    uow_factory: UnitOfWorkFactory
    spotify: SpotifyConnector
    storage: UploadStorage = field(factory=UploadStorage)
    batch_size: int = field(factory=lambda: settings.ingestion.upload_batch_size)
    min_listen_ms: int = field(factory=lambda: settings.ingestion.min_listen_ms)
    fuzzy_min_score: float = field(factory=lambda: settings.ingestion.fuzzy_min_score)
    catalog: UpsertCatalogUseCase = field(factory=UpsertCatalogUseCase)

    async def execute(self) -> UploadBatchResult:
        """Process one batch of pending uploads.

        Returns:
            File and entry counts for the batch
        """
        async with self.uow_factory() as uow:
            uploads = await uow.get_upload_repository().get_pending_uploads(
                self.batch_size
            )

        result = UploadBatchResult()
        with logger.contextualize(operation="process_uploads"):
            logger.info(f"Processing {len(uploads)} pending uploads")
            for upload in uploads:
                await self._process_one(upload, result)
            logger.info(
                "Upload batch complete",
                processed=result.processed,
                invalid=result.invalid,
                failed=result.failed,
                inserted=result.inserted,
                deleted=result.deleted,
                unresolved=result.unresolved,
            )
        return result

    async def _process_one(
        self, upload: StreamingUpload, result: UploadBatchResult
    ) -> None:
        upload_logger = logger.bind(upload_id=upload.id, user_id=upload.user_id)
        try:
            outcome = await self.process_upload(upload)
        except InvalidUploadError as e:
            upload_logger.warning(f"Invalid upload file: {e}")
            async with self.uow_factory() as uow:
                await uow.get_upload_repository().mark_invalid(upload.id)
            result.invalid += 1
        except Exception as e:
            upload_logger.opt(exception=e).error("Failed to process upload")
            result.failed += 1
        else:
            result.processed += 1
            result.inserted += outcome.inserted
            result.deleted += outcome.deleted
            result.unresolved += outcome.unresolved

    async def process_upload(self, upload: StreamingUpload) -> UploadOutcome:
        """Fetch, parse and reconcile a single upload.

        Raises:
            InvalidUploadError: The file is not a supported export
        """
        raw = await self.storage.fetch(upload.file_url)
        history = parse_streaming_history(raw)

        if history.is_legacy:
            entries, unresolved = await self._legacy_entries(upload.user_id, history)
            # Legacy plays all predate the floor, so their own span is overridden
            span = covered_span(e.played_at for e in entries)
        else:
            entries, unresolved = await self._extended_entries(upload.user_id, history)
            span = covered_span(history.timestamps)

        deleted, inserted = await self._replace_span(upload, entries, span)

        if unresolved:
            logger.info(
                f"Dropped {unresolved} unresolved entries from upload {upload.id}"
            )
        return UploadOutcome(
            upload_id=upload.id,
            inserted=inserted,
            deleted=deleted,
            unresolved=unresolved,
            tracks=len(history.tracks),
            episodes=len(history.episodes),
            unknown=len(history.unknown),
            legacy=history.is_legacy,
        )

    async def _replace_span(
        self,
        upload: StreamingUpload,
        entries: list[ListeningHistoryEntry],
        span: tuple[datetime, datetime] | None,
    ) -> tuple[int, int]:
        """Override the span and mark the upload processed, atomically."""
        async with self.uow_factory() as uow:
            ledger = uow.get_listening_history_repository()
            deleted = (
                await ledger.delete_live_entries_in_span(upload.user_id, *span)
                if span is not None
                else 0
            )
            inserted = await ledger.insert_imported_entries(entries)
            await uow.get_upload_repository().mark_processed(upload.id)
        return deleted, inserted

    async def _extended_entries(
        self, user_id: str, history: ParsedHistory
    ) -> tuple[list[ListeningHistoryEntry], int]:
        """Ledger entries for an extended file and the count of unresolved plays."""
        unresolved = 0
        resolved_plays = []
        for play in history.tracks:
            track_id = track_id_from_uri(play.spotify_track_uri)
            if track_id is None:
                unresolved += 1
                continue
            resolved_plays.append((track_id, play))

        track_ids = distinct_in_order(track_id for track_id, _ in resolved_plays)
        async with self.uow_factory() as uow:
            await self.catalog.upsert_missing(track_ids, self.spotify, uow)
        async with self.uow_factory() as uow:
            known = await uow.get_catalog_repository().get_existing_track_ids(track_ids)

        entries = []
        for track_id, play in resolved_plays:
            if play.ms_played < self.min_listen_ms:
                continue
            if track_id not in known:
                unresolved += 1
                continue
            entries.append(
                ListeningHistoryEntry(
                    user_id=user_id,
                    track_id=track_id,
                    played_at=play.ts,
                    progress_ms=play.ms_played,
                    device_name=play.platform,
                    imported=True,
                )
            )
        return entries, unresolved

    async def _legacy_entries(
        self, user_id: str, history: ParsedHistory
    ) -> tuple[list[ListeningHistoryEntry], int]:
        """Ledger entries for a legacy file and the count of unresolved plays.

        Only qualifying plays earlier than the user's first live-tracked entry
        are considered.
        """
        async with self.uow_factory() as uow:
            floor = await uow.get_listening_history_repository().get_first_live_played_at(
                user_id
            )
        plays = [
            play
            for play in history.legacy
            if play.ms_played >= self.min_listen_ms
            and is_before_floor(play.played_at, floor)
        ]
        if len(plays) < len(history.legacy):
            logger.debug(
                "Skipped short or post-floor legacy plays",
                user_id=user_id,
                skipped=len(history.legacy) - len(plays),
            )

        pairs = distinct_in_order((play.artist_name, play.track_name) for play in plays)
        async with self.uow_factory() as uow:
            resolved = await uow.get_catalog_repository().find_tracks_by_names(pairs)

        misses = [pair for pair in pairs if pair not in resolved]
        if misses:
            logger.debug(f"Searching catalog for {len(misses)} legacy tracks")
        found_payloads = []
        # One search in flight at a time
        for artist, title in misses:
            try:
                candidates = await self.spotify.search_track(artist, title)
            except (spotipy.SpotifyException, requests.RequestException) as e:
                logger.warning(
                    f"Catalog search failed, leaving track unresolved: {e}",
                    user_id=user_id,
                    artist=artist,
                    title=title,
                )
                continue
            index = best_candidate(
                artist,
                title,
                [(_primary_artist_name(c), c.get("name") or "") for c in candidates],
                self.fuzzy_min_score,
            )
            if index is not None:
                resolved[(artist, title)] = candidates[index]["id"]
                found_payloads.append(candidates[index])

        if found_payloads:
            async with self.uow_factory() as uow:
                await self.catalog.execute(found_payloads, uow)

        entries, unresolved = [], 0
        for play in plays:
            track_id = resolved.get((play.artist_name, play.track_name))
            if track_id is None:
                unresolved += 1
                continue
            entries.append(
                ListeningHistoryEntry(
                    user_id=user_id,
                    track_id=track_id,
                    played_at=play.played_at,
                    progress_ms=play.ms_played,
                    imported=True,
                )
            )
        return entries, unresolved
