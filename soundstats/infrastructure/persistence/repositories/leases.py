"""Repository for scheduled-task leases."""

from datetime import UTC, datetime, timedelta
from typing import Any

from attrs import define
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from soundstats.config import get_logger
from soundstats.domain.entities import TaskLease, ensure_utc
from soundstats.infrastructure.persistence.database.db_models import DBTaskLease
from soundstats.infrastructure.persistence.repositories.base_repo import (
    BaseModelMapper,
    BaseRepository,
)
from soundstats.infrastructure.persistence.repositories.repo_decorator import (
    db_operation,
)

logger = get_logger(__name__)


@define(frozen=True, slots=True)
class TaskLeaseMapper(BaseModelMapper[DBTaskLease, TaskLease]):
    """Maps between DBTaskLease and TaskLease domain models."""

    @staticmethod
    def to_domain(db_model: DBTaskLease) -> TaskLease:
        return TaskLease(
            name=db_model.name,
            holder=db_model.holder,
            expires_at=db_model.expires_at,
        )

    @staticmethod
    def to_row(domain_model: TaskLease) -> dict[str, Any]:
        return {
            "name": domain_model.name,
            "holder": domain_model.holder,
            "expires_at": ensure_utc(domain_model.expires_at),
        }


class TaskLeaseRepository(BaseRepository[DBTaskLease, TaskLease]):
    """Mutual exclusion between scheduler instances, backed by a table row."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(
            session=session, model_class=DBTaskLease, mapper=TaskLeaseMapper()
        )

    @db_operation("try_acquire_lease")
    async def try_acquire(
        self,
        name: str,
        holder: str,
        ttl_seconds: int,
        now: datetime | None = None,
    ) -> bool:
        """Take the lease if it is free, expired or already ours.

        Returns:
            True when `holder` now owns the lease
        """
        now = ensure_utc(now) or datetime.now(UTC)
        lease = TaskLease(
            name=name, holder=holder, expires_at=now + timedelta(seconds=ttl_seconds)
        )

        if await self._insert_ignore([self.mapper.to_row(lease)]):
            return True

        taken_over = await self._update_where(
            [
                DBTaskLease.name == name,
                or_(DBTaskLease.expires_at <= now, DBTaskLease.holder == holder),
            ],
            {"holder": holder, "expires_at": lease.expires_at},
        )
        return taken_over == 1

    @db_operation("release_lease")
    async def release(self, name: str, holder: str) -> None:
        await self._delete_where([DBTaskLease.name == name, DBTaskLease.holder == holder])

    @db_operation("get_lease")
    async def get_lease(self, name: str) -> TaskLease | None:
        return await self._find_one_by([DBTaskLease.name == name])
