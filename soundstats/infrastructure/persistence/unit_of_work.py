"""Database Unit of Work implementation for transaction boundary management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Self

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from soundstats.domain.repositories import (
    CatalogRepositoryProtocol,
    ListeningHistoryRepositoryProtocol,
    StreamingUploadRepositoryProtocol,
    TaskLeaseRepositoryProtocol,
    UserRepositoryProtocol,
)
from soundstats.infrastructure.persistence.database.db_connection import (
    get_session_factory,
)
from soundstats.infrastructure.persistence.repositories import (
    CatalogRepository,
    ListeningHistoryRepository,
    StreamingUploadRepository,
    TaskLeaseRepository,
    UserRepository,
)


class DatabaseUnitOfWork:
    """Database implementation of the Unit of Work pattern.

    Repositories handed out share this unit's session and transaction. The
    transaction commits on a clean exit unless committed explicitly, and rolls
    back when the block raises.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._committed = False

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        if exc_type is not None:
            await self.rollback()
        elif not self._committed:
            await self.commit()

    async def commit(self) -> None:
        """Explicitly commit the current transaction."""
        await self._session.commit()
        self._committed = True

    async def rollback(self) -> None:
        """Explicitly rollback the current transaction."""
        await self._session.rollback()

    def get_catalog_repository(self) -> CatalogRepositoryProtocol:
        return CatalogRepository(self._session)

    def get_listening_history_repository(self) -> ListeningHistoryRepositoryProtocol:
        return ListeningHistoryRepository(self._session)

    def get_user_repository(self) -> UserRepositoryProtocol:
        return UserRepository(self._session)

    def get_upload_repository(self) -> StreamingUploadRepositoryProtocol:
        return StreamingUploadRepository(self._session)

    def get_lease_repository(self) -> TaskLeaseRepositoryProtocol:
        return TaskLeaseRepository(self._session)


def unit_of_work_factory(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
):
    """Build a factory that opens one unit of work per call.

    Args:
        session_factory: Session factory to use (global factory when None)
    """

    @asynccontextmanager
    async def open_unit_of_work() -> AsyncGenerator[DatabaseUnitOfWork]:
        factory = session_factory or get_session_factory()
        async with factory() as session, DatabaseUnitOfWork(session) as uow:
            yield uow

    return open_unit_of_work
