"""Repository base classes for database operations with SQLAlchemy 2.0."""

from collections.abc import Iterable, Sequence
from typing import Any, Protocol

from attrs import define
from sqlalchemy import ColumnElement, Select, delete, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from toolz import partition_all

from soundstats.config import get_logger
from soundstats.infrastructure.persistence.database.db_models import SoundStatsDBBase

logger = get_logger(__name__)

# Keeps multi-row VALUES statements under SQLite's bound-parameter limit
INSERT_CHUNK_SIZE = 500


class ModelMapper[TDBModel: SoundStatsDBBase, TDomainModel](Protocol):
    """Protocol for bidirectional mapping between models."""

    @staticmethod
    def to_domain(db_model: TDBModel) -> TDomainModel:
        """Convert database model to domain model."""
        ...

    @staticmethod
    def to_row(domain_model: TDomainModel) -> dict[str, Any]:
        """Convert domain model to a column mapping for bulk writes."""
        ...


@define(frozen=True, slots=True)
class BaseModelMapper[TDBModel: SoundStatsDBBase, TDomainModel]:
    """Base implementation of ModelMapper.

    Usage:
        @define(frozen=True, slots=True)
        class UserMapper(BaseModelMapper[DBUser, User]):
            @staticmethod
            def to_domain(db_model: DBUser) -> User:
                return User(...)

            @staticmethod
            def to_row(domain_model: User) -> dict[str, Any]:
                return {...}
    """

    @staticmethod
    def to_domain(db_model: TDBModel) -> TDomainModel:
        raise NotImplementedError("Subclasses must implement to_domain")

    @staticmethod
    def to_row(domain_model: TDomainModel) -> dict[str, Any]:
        raise NotImplementedError("Subclasses must implement to_row")

    @classmethod
    def map_collection(cls, db_models: Iterable[TDBModel]) -> list[TDomainModel]:
        """Map a collection of DB models to domain models."""
        return [cls.to_domain(db_model) for db_model in db_models]


class BaseRepository[TDBModel: SoundStatsDBBase, TDomainModel]:
    """Base repository holding the shared session and model mapping."""

    def __init__(
        self,
        session: AsyncSession,
        model_class: type[TDBModel],
        mapper: ModelMapper[TDBModel, TDomainModel],
    ) -> None:
        """Initialize repository with session and model mappings."""
        self.session = session
        self.model_class = model_class
        self.mapper = mapper

    # -------------------------------------------------------------------------
    # STATEMENT BUILDERS
    # -------------------------------------------------------------------------

    def select(self, *columns: Any) -> Select:
        """Create select statement for the model or specific columns."""
        return select(*columns) if columns else select(self.model_class)

    # -------------------------------------------------------------------------
    # DIRECT DATABASE OPERATIONS (non-decorated helpers)
    # -------------------------------------------------------------------------

    async def _find_by(
        self,
        conditions: Sequence[ColumnElement[bool]],
        order_by: Sequence[Any] = (),
        limit: int | None = None,
    ) -> list[TDomainModel]:
        stmt = self.select().where(*conditions).order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.scalars(stmt)
        return self.mapper.map_collection(result.all())

    async def _find_one_by(
        self,
        conditions: Sequence[ColumnElement[bool]],
        order_by: Sequence[Any] = (),
    ) -> TDomainModel | None:
        found = await self._find_by(conditions, order_by=order_by, limit=1)
        return found[0] if found else None

    async def _insert_ignore(
        self,
        rows: Sequence[dict[str, Any]],
        model_class: type[SoundStatsDBBase] | None = None,
    ) -> int:
        """Insert rows, skipping any that conflict with an existing key.

        Returns:
            Number of rows actually inserted
        """
        if not rows:
            return 0

        target = model_class or self.model_class
        inserted = 0
        for chunk in partition_all(INSERT_CHUNK_SIZE, rows):
            stmt = sqlite_insert(target).values(list(chunk)).on_conflict_do_nothing()
            result = await self.session.execute(stmt)
            inserted += max(result.rowcount or 0, 0)
        return inserted

    async def _update_where(
        self, conditions: Sequence[ColumnElement[bool]], values: dict[str, Any]
    ) -> int:
        stmt = (
            update(self.model_class)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def _delete_where(self, conditions: Sequence[ColumnElement[bool]]) -> int:
        stmt = (
            delete(self.model_class)
            .where(*conditions)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount
