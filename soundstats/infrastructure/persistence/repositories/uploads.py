"""Repository for uploaded export files."""

from datetime import UTC, datetime
from typing import Any

from attrs import define
from sqlalchemy.ext.asyncio import AsyncSession

from soundstats.domain.entities import StreamingUpload
from soundstats.infrastructure.persistence.database.db_models import DBStreamingUpload
from soundstats.infrastructure.persistence.repositories.base_repo import (
    BaseModelMapper,
    BaseRepository,
)
from soundstats.infrastructure.persistence.repositories.repo_decorator import (
    db_operation,
)


@define(frozen=True, slots=True)
class StreamingUploadMapper(BaseModelMapper[DBStreamingUpload, StreamingUpload]):
    """Maps between DBStreamingUpload and StreamingUpload domain models."""

    @staticmethod
    def to_domain(db_model: DBStreamingUpload) -> StreamingUpload:
        return StreamingUpload(
            id=db_model.id,
            user_id=db_model.user_id,
            file_url=db_model.file_url,
            file_name=db_model.file_name,
            processed=db_model.processed,
            invalid_file=db_model.invalid_file,
            created_at=db_model.created_at,
        )

    @staticmethod
    def to_row(domain_model: StreamingUpload) -> dict[str, Any]:
        return {
            "user_id": domain_model.user_id,
            "file_url": domain_model.file_url,
            "file_name": domain_model.file_name,
            "processed": domain_model.processed,
            "invalid_file": domain_model.invalid_file,
            "created_at": domain_model.created_at or datetime.now(UTC),
        }


class StreamingUploadRepository(BaseRepository[DBStreamingUpload, StreamingUpload]):
    """Queue of uploaded export files."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(
            session=session,
            model_class=DBStreamingUpload,
            mapper=StreamingUploadMapper(),
        )

    @db_operation("add_upload")
    async def add_upload(
        self,
        user_id: str,
        file_url: str,
        file_name: str | None = None,
        created_at: datetime | None = None,
    ) -> StreamingUpload:
        """Queue a file for import."""
        db_upload = DBStreamingUpload(
            user_id=user_id,
            file_url=file_url,
            file_name=file_name,
            processed=False,
            invalid_file=False,
            created_at=created_at or datetime.now(UTC),
        )
        self.session.add(db_upload)
        await self.session.flush()
        return self.mapper.to_domain(db_upload)

    @db_operation("get_pending_uploads")
    async def get_pending_uploads(self, limit: int) -> list[StreamingUpload]:
        """Oldest unprocessed, valid uploads first."""
        return await self._find_by(
            [
                DBStreamingUpload.processed.is_(False),
                DBStreamingUpload.invalid_file.is_(False),
            ],
            order_by=[DBStreamingUpload.created_at, DBStreamingUpload.id],
            limit=limit,
        )

    @db_operation("mark_processed")
    async def mark_processed(self, upload_id: int) -> None:
        await self._update_where([DBStreamingUpload.id == upload_id], {"processed": True})

    @db_operation("mark_invalid")
    async def mark_invalid(self, upload_id: int) -> None:
        await self._update_where(
            [DBStreamingUpload.id == upload_id], {"invalid_file": True}
        )
