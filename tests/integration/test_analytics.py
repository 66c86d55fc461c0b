"""Tests for streaks, leaderboards and listening summaries over a seeded ledger."""

from datetime import date, timedelta

import pytest

from soundstats.application.use_cases import (
    GetLeaderboardUseCase,
    GetListeningStreaksUseCase,
    GetListeningTotalsUseCase,
    GetPlaytimeSeriesUseCase,
    GetTopEntitiesUseCase,
)
from soundstats.domain.entities import EntityKind, Metric, StreakType, Timeframe
from tests.fixtures.builders import utc

NOW = utc(2024, 3, 10, 12)


@pytest.fixture
def streaks(uow_factory, cache):
    return GetListeningStreaksUseCase(
        uow_factory=uow_factory, cache=cache, qualifying_ms=30_000
    )


@pytest.fixture
def leaderboard(uow_factory, cache):
    return GetLeaderboardUseCase(
        uow_factory=uow_factory, cache=cache, qualifying_ms=30_000
    )


async def play_on_days(seed, user_id, track_id, days, progress_ms=60_000):
    for day in days:
        await seed.play(user_id, track_id, utc(2024, 1, day, 20), progress_ms)


class TestListeningStreaks:
    """Test per-entity and overall streaks."""

    async def test_track_streaks_with_names(self, streaks, seed):
        await seed.user("alice")
        await seed.track("t1", name="First")
        await seed.track("t2", name="Second")
        await play_on_days(seed, "alice", "t1", [1, 2, 3, 5])
        await play_on_days(seed, "alice", "t2", [3, 4, 5])

        result = await streaks.execute(
            "alice", StreakType.TRACK, as_of=date(2024, 1, 5)
        )

        assert [(s.entity_id, s.length, s.entity_name) for s in result] == [
            ("t2", 3, "Second"),
            ("t1", 1, "First"),
        ]
        assert all(s.is_extended_today for s in result)

    async def test_artist_streak_counts_primary_artist_only(self, streaks, seed):
        await seed.user("alice")
        await seed.track(
            "t1",
            artist_ids=["lead", "guest"],
            artist_names={"lead": "Lead", "guest": "Guest"},
        )
        await play_on_days(seed, "alice", "t1", [1, 2])

        result = await streaks.execute(
            "alice", StreakType.ARTIST, as_of=date(2024, 1, 3)
        )

        assert [(s.entity_id, s.entity_name, s.length) for s in result] == [
            ("lead", "Lead", 2)
        ]
        assert not result[0].is_extended_today

    async def test_album_streak(self, streaks, seed):
        await seed.user("alice")
        await seed.track("t1", album_id="al1")
        await seed.track("t2", album_id="al1")
        await play_on_days(seed, "alice", "t1", [1, 3])
        await play_on_days(seed, "alice", "t2", [2])

        result = await streaks.execute(
            "alice", StreakType.ALBUM, as_of=date(2024, 1, 3)
        )

        assert [(s.entity_id, s.length) for s in result] == [("al1", 3)]

    async def test_short_plays_do_not_qualify(self, streaks, seed):
        await seed.user("alice")
        await seed.track("t1")
        await play_on_days(seed, "alice", "t1", [1, 2], progress_ms=10_000)

        assert await streaks.execute(
            "alice", StreakType.TRACK, as_of=date(2024, 1, 2)
        ) == []

    async def test_limit(self, streaks, seed):
        await seed.user("alice")
        for track_id in ("t1", "t2", "t3"):
            await seed.track(track_id)
            await play_on_days(seed, "alice", track_id, [1])

        result = await streaks.execute(
            "alice", StreakType.TRACK, limit=2, as_of=date(2024, 1, 1)
        )

        assert [s.entity_id for s in result] == ["t1", "t2"]

    async def test_overall_streak(self, streaks, seed):
        await seed.user("alice")
        await seed.track("t1")
        await seed.track("t2")
        await play_on_days(seed, "alice", "t1", [1, 3])
        await play_on_days(seed, "alice", "t2", [2])

        streak = await streaks.get_overall_streak("alice", as_of=date(2024, 1, 4))

        assert streak.entity_id == "alice"
        assert streak.length == 3
        assert await streaks.get_overall_streak("alice", date(2024, 1, 9)) is None

    async def test_overall_streaks_for_several_users(self, streaks, seed):
        for user_id in ("alice", "bob", "carol"):
            await seed.user(user_id)
        await seed.track("t1")
        await play_on_days(seed, "alice", "t1", [2, 3])
        await play_on_days(seed, "bob", "t1", [1])

        result = await streaks.get_overall_streaks(
            ["alice", "bob", "carol"], as_of=date(2024, 1, 3)
        )

        assert {user_id: s.length for user_id, s in result.items()} == {"alice": 2}
        assert await streaks.get_overall_streaks([]) == {}

    async def test_results_are_cached(self, streaks, seed, cache):
        await seed.user("alice")
        await seed.track("t1")
        await play_on_days(seed, "alice", "t1", [1])

        as_of = date(2024, 1, 1)
        first = await streaks.execute("alice", StreakType.TRACK, as_of=as_of)
        await seed.track("t2")
        await play_on_days(seed, "alice", "t2", [1])
        second = await streaks.execute("alice", StreakType.TRACK, as_of=as_of)

        assert second == first
        assert [s.entity_id for s in second] == ["t1"]
        assert len(cache) == 1


class TestLeaderboard:
    """Test friend-group leaderboards."""

    @pytest.fixture
    async def group(self, seed):
        for user_id in ("alice", "bob", "carol", "dave"):
            await seed.user(user_id)
        await seed.friends("alice", "bob", "carol")
        await seed.friends("alice", "dave", status="pending")
        await seed.track("t1")

    async def plays(self, seed, user_id, count, days_ago, progress_ms=60_000):
        for index in range(count):
            played_at = NOW - timedelta(days=days_ago, minutes=index + 1)
            await seed.play(user_id, "t1", played_at, progress_ms)

    async def test_count_with_previous_window(self, leaderboard, seed, group):
        await self.plays(seed, "alice", 4, days_ago=1)
        await self.plays(seed, "bob", 2, days_ago=1)
        await self.plays(seed, "alice", 2, days_ago=8)
        await self.plays(seed, "bob", 4, days_ago=8)
        await self.plays(seed, "dave", 9, days_ago=1)

        page = await leaderboard.execute(
            "alice", Metric.COUNT, Timeframe.WEEK, now=NOW
        )

        assert (page.page, page.total_pages) == (1, 1)
        rows = [
            (e.user_id, e.value, e.rank, e.rank_change, e.percent_change)
            for e in page.entries
        ]
        assert rows == [
            ("alice", 4, 1, 1, pytest.approx(100.0)),
            ("bob", 2, 2, -1, pytest.approx(-50.0)),
        ]
        assert page.entries[0].is_current_user

    async def test_playtime(self, leaderboard, seed, group):
        await self.plays(seed, "alice", 1, days_ago=0, progress_ms=100_000)
        await self.plays(seed, "carol", 2, days_ago=0, progress_ms=100_000)

        page = await leaderboard.execute(
            "alice", Metric.PLAYTIME, Timeframe.DAY, now=NOW
        )

        assert [(e.user_id, e.value) for e in page.entries] == [
            ("carol", 200_000),
            ("alice", 100_000),
        ]
        assert all(e.previous_rank is None for e in page.entries)

    async def test_page_is_clamped(self, leaderboard, seed, group):
        for user_id, count in (("alice", 3), ("bob", 2), ("carol", 1)):
            await self.plays(seed, user_id, count, days_ago=0)

        page = await leaderboard.execute(
            "alice", Metric.COUNT, Timeframe.ALL_TIME, page=9, limit=2, now=NOW
        )

        assert (page.page, page.total_pages) == (2, 2)
        assert [(e.user_id, e.rank) for e in page.entries] == [("carol", 3)]
        assert page.entries[0].previous_rank is None

    async def test_ascending(self, leaderboard, seed, group):
        for user_id, count in (("alice", 3), ("bob", 1)):
            await self.plays(seed, user_id, count, days_ago=0)

        page = await leaderboard.execute(
            "alice",
            Metric.COUNT,
            Timeframe.MONTH,
            descending=False,
            now=NOW,
        )

        assert [e.user_id for e in page.entries] == ["bob", "alice"]

    async def test_empty_leaderboard_has_one_page(self, leaderboard, group):
        page = await leaderboard.execute(
            "alice", Metric.COUNT, Timeframe.DAY, page=3, now=NOW
        )

        assert (page.page, page.total_pages, page.entries) == (1, 1, [])

    async def test_streak_metric_has_no_deltas(self, leaderboard, seed, group):
        for days_ago in (0, 1, 2):
            await self.plays(seed, "bob", 1, days_ago=days_ago)
        await self.plays(seed, "alice", 1, days_ago=0)

        page = await leaderboard.execute(
            "alice", Metric.STREAK, Timeframe.WEEK, now=NOW
        )

        assert [(e.user_id, e.value, e.rank) for e in page.entries] == [
            ("bob", 3, 1),
            ("alice", 1, 2),
        ]
        assert all(e.percent_change is None for e in page.entries)
        assert all(e.previous_rank is None for e in page.entries)

    async def test_invalid_limit(self, leaderboard, group):
        with pytest.raises(ValueError):
            await leaderboard.execute(
                "alice", Metric.COUNT, Timeframe.DAY, limit=0, now=NOW
            )

    async def test_same_day_calls_use_their_own_window(self, leaderboard, seed, group):
        await seed.play("alice", "t1", NOW + timedelta(hours=1), 60_000)

        morning = await leaderboard.execute(
            "alice", Metric.COUNT, Timeframe.DAY, now=NOW
        )
        evening = await leaderboard.execute(
            "alice", Metric.COUNT, Timeframe.DAY, now=NOW + timedelta(hours=3)
        )

        assert morning.entries == []
        assert [(e.user_id, e.value) for e in evening.entries] == [("alice", 1)]


@pytest.fixture
def top(uow_factory, cache):
    return GetTopEntitiesUseCase(
        uow_factory=uow_factory, cache=cache, qualifying_ms=30_000
    )


@pytest.fixture
def totals(uow_factory, cache):
    return GetListeningTotalsUseCase(
        uow_factory=uow_factory, cache=cache, qualifying_ms=30_000
    )


@pytest.fixture
def series(uow_factory, cache):
    return GetPlaytimeSeriesUseCase(
        uow_factory=uow_factory, cache=cache, qualifying_ms=30_000
    )


async def recent_plays(
    seed, user_id, track_id, count, days_ago=0, progress_ms=60_000
):
    for index in range(count):
        played_at = NOW - timedelta(days=days_ago, minutes=index + 1)
        await seed.play(user_id, track_id, played_at, progress_ms)


class TestTopEntities:
    """Test a user's most played tracks, artists and albums."""

    async def test_artists_count_primary_credits_only(self, top, seed):
        await seed.user("alice")
        await seed.track(
            "t1",
            artist_ids=["lead", "guest"],
            artist_names={"lead": "Lead", "guest": "Guest"},
        )
        await seed.track("t2", artist_ids=["guest"])
        await recent_plays(seed, "alice", "t1", 3)
        await recent_plays(seed, "alice", "t2", 1)

        result = await top.execute(
            "alice", EntityKind.ARTIST, Timeframe.WEEK, now=NOW
        )

        assert [(e.entity_id, e.name, e.count) for e in result.entries] == [
            ("lead", "Lead", 3),
            ("guest", "Guest", 1),
        ]

    async def test_tracks_ordered_by_count_then_playtime(self, top, seed):
        await seed.user("alice")
        await seed.user("bob")
        for track_id in ("t1", "t2", "t3"):
            await seed.track(track_id)
        await recent_plays(seed, "alice", "t1", 2, progress_ms=60_000)
        await recent_plays(seed, "alice", "t2", 2, progress_ms=100_000)
        await recent_plays(seed, "alice", "t3", 1, progress_ms=10_000)
        await recent_plays(seed, "bob", "t3", 5)

        result = await top.execute("alice", EntityKind.TRACK, Timeframe.DAY, now=NOW)

        assert [(e.entity_id, e.rank, e.playtime_ms) for e in result.entries] == [
            ("t2", 1, 200_000),
            ("t1", 2, 120_000),
        ]

    async def test_albums_sum_their_tracks(self, top, seed):
        await seed.user("alice")
        await seed.track("t1", album_id="al1")
        await seed.track("t2", album_id="al1")
        await seed.track("t3", album_id="al2")
        await recent_plays(seed, "alice", "t1", 1)
        await recent_plays(seed, "alice", "t2", 1)
        await recent_plays(seed, "alice", "t3", 1)

        result = await top.execute("alice", EntityKind.ALBUM, Timeframe.DAY, now=NOW)

        assert [(e.entity_id, e.count) for e in result.entries] == [
            ("al1", 2),
            ("al2", 1),
        ]

    async def test_deltas_against_previous_window(self, top, seed):
        await seed.user("alice")
        await seed.track("t1")
        await seed.track("t2")
        await recent_plays(seed, "alice", "t1", 3, days_ago=1)
        await recent_plays(seed, "alice", "t2", 1, days_ago=1)
        await recent_plays(seed, "alice", "t2", 2, days_ago=8)
        await recent_plays(seed, "alice", "t1", 1, days_ago=8)

        result = await top.execute("alice", EntityKind.TRACK, Timeframe.WEEK, now=NOW)

        rows = [
            (e.entity_id, e.rank, e.previous_rank, e.rank_change, e.percent_change)
            for e in result.entries
        ]
        assert rows == [
            ("t1", 1, 2, 1, pytest.approx(200.0)),
            ("t2", 2, 1, -1, pytest.approx(-50.0)),
        ]

    async def test_all_time_has_no_deltas(self, top, seed):
        await seed.user("alice")
        await seed.track("t1")
        await recent_plays(seed, "alice", "t1", 1, days_ago=400)

        result = await top.execute(
            "alice", EntityKind.TRACK, Timeframe.ALL_TIME, now=NOW
        )

        assert [(e.entity_id, e.previous_rank) for e in result.entries] == [
            ("t1", None)
        ]

    async def test_limit(self, top, seed):
        await seed.user("alice")
        for track_id in ("t1", "t2", "t3"):
            await seed.track(track_id)
            await recent_plays(seed, "alice", track_id, 1)

        result = await top.execute(
            "alice", EntityKind.TRACK, Timeframe.DAY, limit=2, now=NOW
        )

        assert len(result.entries) == 2
        with pytest.raises(ValueError):
            await top.execute("alice", EntityKind.TRACK, Timeframe.DAY, limit=0)


class TestListeningTotals:
    """Test period totals with comparison."""

    async def test_totals_against_previous_week(self, totals, seed):
        await seed.user("alice")
        await seed.track("t1", artist_ids=["lead", "guest"])
        await seed.track("t2")
        await recent_plays(seed, "alice", "t1", 2, days_ago=1)
        await recent_plays(seed, "alice", "t2", 1, days_ago=1, progress_ms=10_000)
        await recent_plays(seed, "alice", "t1", 1, days_ago=8)

        result = await totals.execute("alice", Timeframe.WEEK, now=NOW)

        assert (result.playtime_ms.value, result.playtime_ms.previous_value) == (
            130_000,
            60_000,
        )
        assert result.playtime_ms.percent_change == pytest.approx(116.666, rel=1e-3)
        assert (result.tracks.value, result.tracks.percent_change) == (1, 0.0)
        assert (result.artists.value, result.artists.previous_value) == (2, 2)

    async def test_empty_previous_window_has_no_change(self, totals, seed):
        await seed.user("alice")
        await seed.track("t1")
        await recent_plays(seed, "alice", "t1", 1)

        result = await totals.execute("alice", Timeframe.DAY, now=NOW)

        assert result.playtime_ms.value == 60_000
        assert result.playtime_ms.previous_value == 0
        assert result.playtime_ms.percent_change is None


class TestPlaytimeSeries:
    """Test zero-filled playtime charts."""

    async def test_daily_buckets(self, series, seed):
        await seed.user("alice")
        await seed.track("t1")
        await seed.play("alice", "t1", utc(2024, 1, 1, 20), 60_000)
        await seed.play("alice", "t1", utc(2024, 1, 3, 8), 90_000)
        await seed.play("alice", "t1", utc(2024, 1, 3, 9), 10_000)
        await seed.play("alice", "t1", utc(2024, 1, 4, 9), 60_000)

        result = await series.execute("alice", date(2024, 1, 1), date(2024, 1, 3))

        assert [(b.start, b.playtime_ms) for b in result] == [
            (utc(2024, 1, 1), 60_000),
            (utc(2024, 1, 2), 0),
            (utc(2024, 1, 3), 90_000),
        ]

    async def test_single_day_is_hourly(self, series, seed):
        await seed.user("alice")
        await seed.track("t1")
        await seed.play("alice", "t1", utc(2024, 1, 1, 8, 15), 60_000)
        await seed.play("alice", "t1", utc(2024, 1, 1, 20), 60_000)
        await seed.play("alice", "t1", utc(2024, 1, 1, 20, 30), 60_000)

        result = await series.execute("alice", date(2024, 1, 1), date(2024, 1, 1))

        assert len(result) == 24
        assert {b.start.hour: b.playtime_ms for b in result if b.playtime_ms} == {
            8: 60_000,
            20: 120_000,
        }

    async def test_end_before_start(self, series):
        with pytest.raises(ValueError):
            await series.execute("alice", date(2024, 1, 2), date(2024, 1, 1))
