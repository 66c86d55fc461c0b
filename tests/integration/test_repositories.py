"""Tests for the SQLite repositories behind the unit of work."""

from datetime import date, timedelta

import pytest

from soundstats.domain.entities import (
    DateRange,
    ListeningHistoryEntry,
    Metric,
    StreakType,
)
from soundstats.infrastructure.connectors import convert_spotify_track
from soundstats.infrastructure.persistence.database.db_connection import get_session
from soundstats.infrastructure.persistence.database.db_models import DBUser
from tests.fixtures.builders import track_payload, utc


class TestCatalogRepository:
    """Test insert-or-ignore catalog writes and lookups."""

    async def test_insert_is_idempotent(self, uow_factory):
        track, album, artists = convert_spotify_track(
            track_payload("t1", artists=[("a1", "Lead"), ("a2", "Guest")])
        )

        async with uow_factory() as uow:
            catalog = uow.get_catalog_repository()
            assert await catalog.insert_artists(artists) == 2
            assert await catalog.insert_albums([album]) == 1
            assert await catalog.insert_tracks([track]) == 1

        async with uow_factory() as uow:
            catalog = uow.get_catalog_repository()
            assert await catalog.insert_artists(artists) == 0
            assert await catalog.insert_tracks([track]) == 0
            assert await catalog.get_existing_track_ids(["t1", "t2"]) == {"t1"}
            assert await catalog.get_track_duration("t1") == 200_000

    async def test_find_tracks_by_primary_artist_and_name(self, uow_factory, seed):
        await seed.track(
            "t1",
            name="Creep",
            artist_ids=["radiohead", "guest"],
            artist_names={"radiohead": "Radiohead", "guest": "Guest"},
        )

        async with uow_factory() as uow:
            resolved = await uow.get_catalog_repository().find_tracks_by_names(
                [("radiohead", "CREEP"), ("Guest", "Creep"), ("Nobody", "Creep")]
            )

        assert resolved == {("radiohead", "CREEP"): "t1"}

    async def test_entity_names(self, uow_factory, seed):
        await seed.track("t1", name="Song", album_id="al1")

        async with uow_factory() as uow:
            catalog = uow.get_catalog_repository()
            assert await catalog.get_entity_names(StreakType.TRACK, ["t1"]) == {
                "t1": "Song"
            }
            assert await catalog.get_entity_names(StreakType.ALBUM, ["al1"]) == {
                "al1": "Album al1"
            }
            assert await catalog.get_entity_names(StreakType.OVERALL, ["x"]) == {}


class TestListeningHistoryRepository:
    """Test ledger reads and writes."""

    async def test_latest_entry_and_progress(self, uow_factory, seed):
        await seed.user("alice")
        await seed.track("t1")
        await seed.play("alice", "t1", utc(2024, 1, 1, 10))
        await seed.play("alice", "t1", utc(2024, 1, 1, 11))

        async with uow_factory() as uow:
            ledger = uow.get_listening_history_repository()
            latest = await ledger.get_latest_entry("alice")
            assert latest.played_at == utc(2024, 1, 1, 11)
            assert await ledger.update_progress(latest.id, 123_000) == 1

        async with uow_factory() as uow:
            latest = await uow.get_listening_history_repository().get_latest_entry(
                "alice"
            )
        assert latest.progress_ms == 123_000

    async def test_span_delete_spares_imported_and_outside(self, uow_factory, seed):
        await seed.user("alice")
        await seed.track("t1")
        await seed.play("alice", "t1", utc(2024, 1, 1))
        await seed.play("alice", "t1", utc(2024, 1, 2))
        await seed.play("alice", "t1", utc(2024, 1, 3), imported=True)
        await seed.play("alice", "t1", utc(2024, 1, 4))
        await seed.play("alice", "t1", utc(2024, 1, 5))

        async with uow_factory() as uow:
            ledger = uow.get_listening_history_repository()
            deleted = await ledger.delete_live_entries_in_span(
                "alice", utc(2024, 1, 2), utc(2024, 1, 4)
            )
        assert deleted == 2

        async with uow_factory() as uow:
            entries = await uow.get_listening_history_repository().get_entries("alice")
        assert [(e.played_at.day, e.imported) for e in entries] == [
            (1, False),
            (3, True),
            (5, False),
        ]

    async def test_imported_entries_ignore_duplicates(self, uow_factory, seed):
        await seed.user("alice")
        await seed.track("t1")
        entry = ListeningHistoryEntry(
            user_id="alice",
            track_id="t1",
            played_at=utc(2024, 1, 1, 10),
            progress_ms=60_000,
            imported=True,
        )

        async with uow_factory() as uow:
            ledger = uow.get_listening_history_repository()
            assert await ledger.insert_imported_entries([entry, entry]) == 1
            assert await ledger.insert_imported_entries([entry]) == 0

    async def test_first_live_played_at_ignores_imports(self, uow_factory, seed):
        await seed.user("alice")
        await seed.track("t1")
        await seed.play("alice", "t1", utc(2023, 1, 1), imported=True)
        await seed.play("alice", "t1", utc(2024, 2, 1))

        async with uow_factory() as uow:
            ledger = uow.get_listening_history_repository()
            first = await ledger.get_first_live_played_at("alice")
        assert first == utc(2024, 2, 1)

    async def test_qualifying_dates_use_primary_artist(self, uow_factory, seed):
        await seed.user("alice")
        await seed.track("t1", artist_ids=["lead", "guest"])
        await seed.play("alice", "t1", utc(2024, 1, 1, 23, 30))
        await seed.play("alice", "t1", utc(2024, 1, 2, 8), progress_ms=10_000)

        async with uow_factory() as uow:
            rows = await uow.get_listening_history_repository().get_qualifying_dates(
                "alice", StreakType.ARTIST, date(2024, 1, 2), 30_000
            )
        assert rows == [("lead", date(2024, 1, 1))]

    async def test_rank_members(self, uow_factory, seed):
        await seed.user("alice")
        await seed.user("bob")
        await seed.track("t1")
        start = utc(2024, 1, 1)
        for hour in range(3):
            await seed.play("alice", "t1", start + timedelta(hours=hour), 40_000)
        await seed.play("bob", "t1", start, 200_000)
        await seed.play("bob", "t1", start + timedelta(hours=1), 5_000)

        window = DateRange(start=start, end=start + timedelta(days=1))
        async with uow_factory() as uow:
            ledger = uow.get_listening_history_repository()
            playtime = await ledger.rank_members(
                ["alice", "bob"], Metric.PLAYTIME, window, 30_000
            )
            count = await ledger.rank_members(
                ["alice", "bob"], Metric.COUNT, window, 30_000
            )
            page_two = await ledger.rank_members(
                ["alice", "bob"], Metric.COUNT, window, 30_000, limit=1, offset=1
            )
            members = await ledger.count_ranked_members(
                ["alice", "bob"], Metric.COUNT, window, 30_000
            )

        assert [(r.user_id, r.value, r.rank) for r in playtime] == [
            ("bob", 205_000, 1),
            ("alice", 120_000, 2),
        ]
        assert [(r.user_id, r.value) for r in count] == [("alice", 3), ("bob", 1)]
        assert [(r.user_id, r.rank) for r in page_two] == [("bob", 2)]
        assert members == 2


class TestUserAndUploadRepositories:
    """Test user selection, social groups and the upload queue."""

    async def test_users_to_poll(self, uow_factory, seed):
        await seed.user("alice", premium=True)
        await seed.user("bob")
        await seed.user("carol", enabled=False)

        async with uow_factory() as uow:
            users = uow.get_user_repository()
            assert [u.id for u in await users.get_users_to_poll()] == ["alice", "bob"]
            assert [u.id for u in await users.get_users_to_poll(True)] == ["alice"]

    async def test_social_group_only_accepted(self, uow_factory, seed):
        for user_id in ("alice", "bob", "carol"):
            await seed.user(user_id)
        await seed.friends("alice", "bob")
        await seed.friends("alice", "carol", status="pending")

        async with uow_factory() as uow:
            group = await uow.get_user_repository().get_social_group("alice")
        assert group == ["alice", "bob"]

    async def test_add_upload_is_pending(self, uow_factory, seed):
        await seed.user("alice")

        async with uow_factory() as uow:
            upload = await uow.get_upload_repository().add_upload(
                "alice", "file:///exports/a.json", file_name="a.json"
            )

        assert upload.id is not None
        assert not upload.processed
        async with uow_factory() as uow:
            pending = await uow.get_upload_repository().get_pending_uploads(10)
        assert [u.file_name for u in pending] == ["a.json"]

    async def test_pending_uploads_oldest_first(self, uow_factory, seed):
        await seed.user("alice")
        newer = await seed.upload("alice", "file:///b.json", utc(2024, 1, 2))
        older = await seed.upload("alice", "file:///a.json", utc(2024, 1, 1))
        done = await seed.upload("alice", "file:///c.json", utc(2023, 1, 1))

        async with uow_factory() as uow:
            await uow.get_upload_repository().mark_invalid(done)

        async with uow_factory() as uow:
            pending = await uow.get_upload_repository().get_pending_uploads(10)
        assert [u.id for u in pending] == [older, newer]


class TestSessionScope:
    """Test the managed session context."""

    async def test_commits_on_success(self, session_factory):
        async with get_session() as session:
            session.add(DBUser(id="alice", created_at=utc(2024, 1, 1)))

        async with session_factory() as session:
            assert await session.get(DBUser, "alice") is not None

    async def test_rolls_back_on_error(self, session_factory):
        with pytest.raises(RuntimeError):
            async with get_session() as session:
                session.add(DBUser(id="bob", created_at=utc(2024, 1, 1)))
                await session.flush()
                raise RuntimeError("boom")

        async with session_factory() as session:
            assert await session.get(DBUser, "bob") is None
