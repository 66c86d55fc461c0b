"""Live ingestion: poll users' playback and reconcile it into the ledger.

Each poll is one sample of an ongoing listen. Consecutive polls of the same
track update the same ledger row; a track change finalizes the previous row
and starts a new one.
"""

import asyncio
import zlib

from attrs import define, field

from soundstats.application.use_cases.upsert_catalog import UpsertCatalogUseCase
from soundstats.application.utilities.user_locks import UserLockRegistry, user_locks
from soundstats.config import get_logger, settings
from soundstats.domain.entities import (
    ListeningHistoryEntry,
    NowPlaying,
    NowPlayingResult,
    User,
)
from soundstats.domain.exceptions import LedgerIntegrityError
from soundstats.domain.ingestion import (
    Finalization,
    LedgerAction,
    ReconciliationRules,
    decide_reconciliation,
)
from soundstats.domain.repositories import UnitOfWorkFactory, UnitOfWorkProtocol
from soundstats.infrastructure.connectors.clerk import ClerkTokenProvider
from soundstats.infrastructure.connectors.spotify import (
    SpotifyConnector,
    to_now_playing,
)

logger = get_logger(__name__)


def user_start_delay_ms(user_id: str, max_delay_ms: int) -> int:
    """Deterministic per-user start offset spreading provider load."""
    if max_delay_ms <= 0:
        return 0
    return zlib.crc32(user_id.encode()) % max_delay_ms


def default_rules() -> ReconciliationRules:
    return ReconciliationRules(
        min_listen_ms=settings.ingestion.min_listen_ms,
        finished_ratio=settings.ingestion.finished_ratio,
        short_track_ms=settings.ingestion.short_track_ms,
    )


@define(slots=True)
class UpdateNowPlayingUseCase:
    """Polls every enabled user once and reconciles their ledger.

    A failure for one user is logged and recorded in the result; it never
    stops the other users.
    """

    uow_factory: UnitOfWorkFactory
    spotify: SpotifyConnector
    token_provider: ClerkTokenProvider
    rules: ReconciliationRules = field(factory=default_rules)
    locks: UserLockRegistry = field(factory=lambda: user_locks)
    concurrency: int = field(factory=lambda: settings.ingestion.live_concurrency)
    max_delay_ms: int = field(factory=lambda: settings.ingestion.user_delay_max_ms)
    catalog: UpsertCatalogUseCase = field(factory=UpsertCatalogUseCase)

    async def execute(self, premium_only: bool = False) -> NowPlayingResult:
        """Run one polling pass.

        Args:
            premium_only: Only poll premium users (fast tier)

        Returns:
            Per-action counts and the IDs of users that failed
        """
        async with self.uow_factory() as uow:
            users = await uow.get_user_repository().get_users_to_poll(premium_only)

        result = NowPlayingResult()
        semaphore = asyncio.Semaphore(self.concurrency)

        with logger.contextualize(
            operation="update_now_playing", premium_only=premium_only
        ):
            logger.info(f"Polling playback for {len(users)} users")
            await asyncio.gather(
                *(self._poll_user(user, semaphore, result) for user in users)
            )
            logger.info(
                "Polling pass complete",
                processed=result.processed,
                inserted=result.inserted,
                updated=result.updated,
                skipped=result.skipped,
                failed=result.failed_count,
            )
        return result

    async def _poll_user(
        self,
        user: User,
        semaphore: asyncio.Semaphore,
        result: NowPlayingResult,
    ) -> None:
        delay_ms = user_start_delay_ms(user.id, self.max_delay_ms)
        if delay_ms:
            await asyncio.sleep(delay_ms / 1000)

        async with semaphore:
            try:
                await self._process_user(user, result)
            except Exception as e:
                logger.opt(exception=e).bind(user_id=user.id).error(
                    "Failed to update now playing"
                )
                result.failed.append(user.id)
            finally:
                result.processed += 1

    async def _process_user(self, user: User, result: NowPlayingResult) -> None:
        token = await self.token_provider.get_spotify_token(user.id)
        playback = await self.spotify.get_current_playback(token)

        now_playing = to_now_playing(playback)
        if now_playing is None:
            result.skipped += 1
            return

        async with self.uow_factory() as uow:
            known = await uow.get_catalog_repository().get_existing_track_ids(
                [now_playing.track_id]
            )
            if not known:
                await self.catalog.execute([now_playing.track_payload], uow)

        async with self.locks.lock_for(user.id), self.uow_factory() as uow:
            await self._reconcile(user.id, now_playing, uow, result)

    async def _reconcile(
        self,
        user_id: str,
        current: NowPlaying,
        uow: UnitOfWorkProtocol,
        result: NowPlayingResult,
    ) -> None:
        catalog = uow.get_catalog_repository()
        ledger = uow.get_listening_history_repository()

        if not await catalog.get_existing_track_ids([current.track_id]):
            raise LedgerIntegrityError({current.track_id})

        previous = await ledger.get_latest_entry(user_id)
        previous_duration = (
            await catalog.get_track_duration(previous.track_id)
            if previous is not None and previous.track_id != current.track_id
            else None
        )
        plan = decide_reconciliation(previous, current, previous_duration, self.rules)

        if plan.action is LedgerAction.UPDATE_PROGRESS:
            await ledger.update_progress(previous.id, current.progress_ms)
            result.updated += 1
            return

        if plan.action is LedgerAction.FINALIZE_AND_INSERT:
            if plan.finalization is Finalization.DELETE:
                await ledger.delete_entry(previous.id)
                result.finalized_deleted += 1
            elif plan.finalization is Finalization.CLAMP:
                await ledger.update_progress(previous.id, plan.clamp_to_ms)
                result.finalized_clamped += 1

        await ledger.add_entry(
            ListeningHistoryEntry(
                user_id=user_id,
                track_id=current.track_id,
                played_at=current.played_at,
                progress_ms=current.progress_ms,
                device_name=current.device_name,
                device_type=current.device_type,
                imported=False,
            )
        )
        result.inserted += 1
