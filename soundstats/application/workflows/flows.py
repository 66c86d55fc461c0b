"""Prefect v3 flows and schedules for the reconcilers.

Each run holds a database task lease for its duration, so overlapping runs
(from either schedule tier or from several scheduler processes) skip instead
of racing on the ledger. The lease-holding runners are plain coroutines so the
CLI can trigger a run without a Prefect server.
"""

from prefect import flow, serve
from prefect.logging import get_run_logger

from soundstats.application.use_cases import (
    ProcessUploadsUseCase,
    UpdateNowPlayingUseCase,
)
from soundstats.application.utilities.task_lease import (
    PROCESS_UPLOADS_LEASE,
    UPDATE_NOW_PLAYING_LEASE,
    hold_lease,
)
from soundstats.config import configure_prefect_logging, get_logger, settings
from soundstats.domain.entities import NowPlayingResult, UploadBatchResult
from soundstats.domain.repositories import UnitOfWorkFactory
from soundstats.infrastructure.connectors import (
    ClerkTokenProvider,
    SpotifyConnector,
    UploadStorage,
)
from soundstats.infrastructure.persistence.unit_of_work import unit_of_work_factory

logger = get_logger(__name__)


async def run_update_now_playing(
    premium_only: bool = False,
    uow_factory: UnitOfWorkFactory | None = None,
    spotify: SpotifyConnector | None = None,
    token_provider: ClerkTokenProvider | None = None,
) -> NowPlayingResult:
    """One live ingestion pass under the shared now-playing lease."""
    uow_factory = uow_factory or unit_of_work_factory()

    async with hold_lease(UPDATE_NOW_PLAYING_LEASE, uow_factory) as acquired:
        if not acquired:
            return NowPlayingResult(lease_held=False)

        use_case = UpdateNowPlayingUseCase(
            uow_factory=uow_factory,
            spotify=spotify or SpotifyConnector(),
            token_provider=token_provider or ClerkTokenProvider(),
        )
        return await use_case.execute(premium_only=premium_only)


async def run_process_uploads(
    uow_factory: UnitOfWorkFactory | None = None,
    spotify: SpotifyConnector | None = None,
    storage: UploadStorage | None = None,
) -> UploadBatchResult:
    """One bulk import batch under the uploads lease."""
    uow_factory = uow_factory or unit_of_work_factory()

    async with hold_lease(PROCESS_UPLOADS_LEASE, uow_factory) as acquired:
        if not acquired:
            return UploadBatchResult(lease_held=False)

        use_case = ProcessUploadsUseCase(
            uow_factory=uow_factory,
            spotify=spotify or SpotifyConnector(),
            storage=storage or UploadStorage(),
        )
        return await use_case.execute()


@flow(name="update-now-playing")
async def update_now_playing_flow(premium_only: bool = False) -> NowPlayingResult:
    """Poll current playback for every enabled (or every premium) user."""
    run_logger = get_run_logger()
    result = await run_update_now_playing(premium_only=premium_only)

    if not result.lease_held:
        run_logger.info("Another now-playing run holds the lease")
    else:
        run_logger.info(
            f"Now playing: {result.processed} users, {result.inserted} inserted, "
            f"{result.updated} updated, {result.failed_count} failed"
        )
    return result


@flow(name="process-uploads")
async def process_uploads_flow() -> UploadBatchResult:
    """Reconcile the oldest pending export uploads."""
    run_logger = get_run_logger()
    result = await run_process_uploads()

    if not result.lease_held:
        run_logger.info("Another upload run holds the lease")
    else:
        run_logger.info(
            f"Uploads: {result.processed} processed, {result.invalid} invalid, "
            f"{result.failed} failed, {result.inserted} entries inserted"
        )
    return result


def serve_schedules() -> None:
    """Serve the three scheduled deployments until interrupted.

    - Premium users' playback every `premium_interval_seconds`
    - All users' playback every `standard_interval_seconds`
    - Pending uploads on `uploads_cron`
    """
    configure_prefect_logging()
    scheduler = settings.scheduler

    premium = update_now_playing_flow.to_deployment(
        name="now-playing-premium",
        interval=scheduler.premium_interval_seconds,
        parameters={"premium_only": True},
    )
    everyone = update_now_playing_flow.to_deployment(
        name="now-playing-all",
        interval=scheduler.standard_interval_seconds,
        parameters={"premium_only": False},
    )
    uploads = process_uploads_flow.to_deployment(
        name="process-uploads",
        cron=scheduler.uploads_cron,
    )

    logger.info("Serving scheduled deployments")
    serve(premium, everyone, uploads)
