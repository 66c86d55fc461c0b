"""SQLAlchemy database models for the listening history engine.

Catalog tables are keyed by the external catalog's string IDs. The ledger
(`listening_history`) uses an integer surrogate key plus a natural unique key
so re-imports are idempotent.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    UniqueConstraint,
    inspect,
)
from sqlalchemy.ext.asyncio import AsyncAttrs, AsyncEngine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from soundstats.config import get_logger

logger = get_logger(__name__)

# Define naming convention for constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SoundStatsDBBase(AsyncAttrs, DeclarativeBase):
    """Base class for all database models."""

    metadata = metadata


class TimestampMixin:
    """Creation and update timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


# -------------------------------------------------------------------------
# CATALOG
# -------------------------------------------------------------------------


class DBArtist(TimestampMixin, SoundStatsDBBase):
    """Artist from the external catalog."""

    __tablename__ = "artists"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(1024))


class DBAlbum(TimestampMixin, SoundStatsDBBase):
    """Album from the external catalog."""

    __tablename__ = "albums"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    album_type: Mapped[str | None] = mapped_column(String(32))
    release_date: Mapped[str | None] = mapped_column(String(10))
    total_tracks: Mapped[int | None]
    image_url: Mapped[str | None] = mapped_column(String(1024))


class DBArtistAlbum(SoundStatsDBBase):
    """Artist credit on an album."""

    __tablename__ = "artist_albums"

    artist_id: Mapped[str] = mapped_column(
        ForeignKey("artists.id", ondelete="CASCADE"), primary_key=True
    )
    album_id: Mapped[str] = mapped_column(
        ForeignKey("albums.id", ondelete="CASCADE"), primary_key=True
    )


class DBTrack(TimestampMixin, SoundStatsDBBase):
    """Track from the external catalog."""

    __tablename__ = "tracks"
    __table_args__ = (Index("ix_tracks_album_id", "album_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    album_id: Mapped[str] = mapped_column(
        ForeignKey("albums.id", ondelete="CASCADE"), nullable=False
    )
    duration_ms: Mapped[int | None]
    popularity: Mapped[int | None]


class DBArtistTrack(SoundStatsDBBase):
    """Artist credit on a track; exactly one credit per track is primary."""

    __tablename__ = "artist_tracks"
    __table_args__ = (Index("ix_artist_tracks_track_id", "track_id"),)

    artist_id: Mapped[str] = mapped_column(
        ForeignKey("artists.id", ondelete="CASCADE"), primary_key=True
    )
    track_id: Mapped[str] = mapped_column(
        ForeignKey("tracks.id", ondelete="CASCADE"), primary_key=True
    )
    is_primary_artist: Mapped[bool] = mapped_column(Boolean, default=False)


# -------------------------------------------------------------------------
# USERS
# -------------------------------------------------------------------------


class DBUser(SoundStatsDBBase):
    """Tracked identity, keyed by the identity provider's user ID."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    spotify_id: Mapped[str | None] = mapped_column(String(64))
    premium_user: Mapped[bool] = mapped_column(Boolean, default=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )


class DBFriend(SoundStatsDBBase):
    """Directed friendship row; `accepted` rows form the social group."""

    __tablename__ = "friends"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    friend_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    status: Mapped[str] = mapped_column(String(16), default="pending")


# -------------------------------------------------------------------------
# LEDGER
# -------------------------------------------------------------------------


class DBListeningHistory(SoundStatsDBBase):
    """One listen in a user's ledger."""

    __tablename__ = "listening_history"
    __table_args__ = (
        UniqueConstraint("user_id", "track_id", "played_at"),
        Index("ix_listening_history_user_played_at", "user_id", "played_at"),
        Index("ix_listening_history_track_id", "track_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    track_id: Mapped[str] = mapped_column(ForeignKey("tracks.id"), nullable=False)
    played_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    progress_ms: Mapped[int] = mapped_column(Integer, nullable=False)
    device_name: Mapped[str | None] = mapped_column(String(255))
    device_type: Mapped[str | None] = mapped_column(String(64))
    imported: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class DBStreamingUpload(SoundStatsDBBase):
    """Uploaded export file awaiting reconciliation."""

    __tablename__ = "streaming_uploads"
    __table_args__ = (
        Index("ix_streaming_uploads_pending", "processed", "invalid_file", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    file_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    file_name: Mapped[str | None] = mapped_column(String(255))
    processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    invalid_file: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )


# -------------------------------------------------------------------------
# SCHEDULING
# -------------------------------------------------------------------------


class DBTaskLease(SoundStatsDBBase):
    """Mutual-exclusion lease for a scheduled task."""

    __tablename__ = "task_leases"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    holder: Mapped[str] = mapped_column(String(128), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Initialize database schema.

    Creates all tables if they don't exist; existing data is untouched.
    """
    from soundstats.infrastructure.persistence.database.db_connection import (
        get_engine,
    )

    engine = engine or get_engine()

    try:
        async with engine.connect() as conn:
            existing_tables = await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).get_table_names()
            )
            if existing_tables:
                logger.debug(f"Found existing tables: {existing_tables}")

        async with engine.begin() as conn:
            await conn.run_sync(SoundStatsDBBase.metadata.create_all)
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    logger.info("Database schema verified - all tables exist")
