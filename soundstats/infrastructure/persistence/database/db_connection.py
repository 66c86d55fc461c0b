"""SQLAlchemy database configuration and connection management.

This module is responsible for:
- Engine creation and SQLite connection tuning
- Session factory management
- Transaction handling for session-per-operation usage
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from soundstats.config import get_logger, settings

logger = get_logger(__name__)


def create_db_engine(connection_string: str | None = None) -> AsyncEngine:
    """Create async SQLAlchemy engine.

    SQLite connections get WAL journaling, enforced foreign keys and a busy
    timeout so concurrent per-user writers wait instead of failing.
    """
    db_url = connection_string or settings.database.url
    is_sqlite = db_url.startswith("sqlite")

    connect_args = {}
    if is_sqlite:
        connect_args = {
            "check_same_thread": False,
            "timeout": 60.0,
        }

    engine = create_async_engine(
        db_url,
        connect_args=connect_args,
        pool_pre_ping=True,
        echo=settings.database.echo,
    )

    if is_sqlite:

        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, _):  # pragma: no cover
            """Set SQLite PRAGMAs on connection creation."""
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA busy_timeout = 30000")
            cursor.execute("PRAGMA journal_mode = WAL")
            cursor.execute("PRAGMA synchronous = NORMAL")
            cursor.execute("PRAGMA foreign_keys = ON")
            cursor.close()

    logger.debug("Created database engine", sqlite=is_sqlite)
    return engine


# Global engine singleton
_engine: AsyncEngine | None = None

# Global session factory singleton
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get or create the global database engine singleton."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def create_session_factory(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory for the given engine."""
    return async_sessionmaker(
        bind=engine or get_engine(),
        expire_on_commit=False,
        autoflush=True,
    )


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the global session factory singleton."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory()
    return _session_factory


def configure_database(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Point the global engine and session factory at `engine`.

    Used by the CLI and tests to run against a specific database.
    """
    global _engine, _session_factory
    _engine = engine
    _session_factory = create_session_factory(engine)
    return _session_factory


async def dispose_engine() -> None:
    """Dispose the global engine and forget the singletons."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


@asynccontextmanager
async def get_session(rollback: bool = True) -> AsyncGenerator[AsyncSession]:
    """Get an asynchronous database session with automatic transaction management.

    Commits when the context exits without an exception.

    Args:
        rollback: If True (default), automatically rolls back on exception.

    Yields:
        AsyncSession: Managed database session
    """
    session = get_session_factory()()
    try:
        yield session
        await session.commit()
    except Exception:
        if rollback:
            await session.rollback()
        raise
    finally:
        await session.close()
