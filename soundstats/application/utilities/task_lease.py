"""Database-backed mutual exclusion for scheduled tasks."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import os
import socket
import uuid

from soundstats.config import get_logger, settings
from soundstats.domain.repositories import UnitOfWorkFactory

logger = get_logger(__name__)

UPDATE_NOW_PLAYING_LEASE = "update-now-playing"
PROCESS_UPLOADS_LEASE = "process-uploads"


def new_holder_id() -> str:
    """Identity of one scheduled run: host, process and a random suffix."""
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


@asynccontextmanager
async def hold_lease(
    name: str,
    uow_factory: UnitOfWorkFactory,
    ttl_seconds: int | None = None,
) -> AsyncGenerator[bool]:
    """Try to take the named lease for the duration of the block.

    Yields:
        True when this run holds the lease; False when another holder does, in
        which case the block should do nothing
    """
    holder = new_holder_id()
    ttl = ttl_seconds if ttl_seconds is not None else settings.scheduler.lease_ttl_seconds

    async with uow_factory() as uow:
        acquired = await uow.get_lease_repository().try_acquire(name, holder, ttl)

    if not acquired:
        logger.info(f"Lease {name} is held by another run, skipping")
        yield False
        return

    logger.debug(f"Acquired lease {name}", holder=holder)
    try:
        yield True
    finally:
        async with uow_factory() as uow:
            await uow.get_lease_repository().release(name, holder)
        logger.debug(f"Released lease {name}", holder=holder)
