"""Shared fixtures: a fresh SQLite database per test and seeding helpers."""

import pytest

from soundstats.application.utilities.result_cache import AnalyticsCache
from soundstats.infrastructure.persistence.database.db_connection import (
    configure_database,
    create_db_engine,
    dispose_engine,
)
from soundstats.infrastructure.persistence.database.db_models import init_db
from soundstats.infrastructure.persistence.unit_of_work import unit_of_work_factory
from tests.fixtures.builders import Seeder


@pytest.fixture
async def session_factory(tmp_path):
    """Session factory bound to a fresh on-disk SQLite database."""
    engine = create_db_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    factory = configure_database(engine)
    await init_db(engine)
    yield factory
    await dispose_engine()


@pytest.fixture
def uow_factory(session_factory):
    return unit_of_work_factory(session_factory)


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)


@pytest.fixture
def cache():
    """Isolated analytics cache so tests never share results."""
    return AnalyticsCache(ttl_seconds=60, max_entries=16)
