"""Analytics domain entities: streaks, windows, rankings and summaries."""

from datetime import date, datetime, timedelta
from enum import StrEnum

from attrs import define, field


class StreakType(StrEnum):
    """Which entity a streak is counted over."""

    TRACK = "track"
    ARTIST = "artist"
    ALBUM = "album"
    OVERALL = "overall"


class Metric(StrEnum):
    """Leaderboard ranking metric."""

    PLAYTIME = "playtime"
    COUNT = "count"
    STREAK = "streak"


class Timeframe(StrEnum):
    """Leaderboard time window, ending now."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    ALL_TIME = "all_time"

    @property
    def duration(self) -> timedelta | None:
        """Window length, or None for an unbounded window."""
        return {
            Timeframe.DAY: timedelta(hours=24),
            Timeframe.WEEK: timedelta(days=7),
            Timeframe.MONTH: timedelta(days=30),
        }.get(self)


@define(frozen=True, slots=True)
class DateRange:
    """Half-open instant range [start, end). A None start is unbounded."""

    start: datetime | None
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return (self.start is None or instant >= self.start) and instant < self.end


@define(frozen=True, slots=True)
class Streak:
    """A run of consecutive listening days that is still alive."""

    entity_id: str
    length: int
    start_date: date
    end_date: date
    is_extended_today: bool
    entity_name: str | None = None


@define(frozen=True, slots=True)
class RankedValue:
    """One member's metric value and 1-based rank within a window."""

    user_id: str
    value: int
    rank: int


@define(frozen=True, slots=True)
class LeaderboardEntry:
    """A leaderboard row with deltas against the previous window."""

    user_id: str
    rank: int
    value: int
    previous_rank: int | None = None
    previous_value: int | None = None
    rank_change: int | None = None
    percent_change: float | None = None
    is_current_user: bool = False


@define(frozen=True, slots=True)
class LeaderboardPage:
    """One page of a ranked leaderboard."""

    metric: Metric
    timeframe: Timeframe
    page: int
    total_pages: int
    limit: int
    entries: list[LeaderboardEntry] = field(factory=list)


class EntityKind(StrEnum):
    """Catalog entity a top-entities table ranks."""

    TRACK = "track"
    ARTIST = "artist"
    ALBUM = "album"


@define(frozen=True, slots=True)
class EntityPlays:
    """Qualifying plays of one entity within a window."""

    entity_id: str
    name: str
    count: int
    playtime_ms: int
    image_url: str | None = None


@define(frozen=True, slots=True)
class TopEntity:
    """A top-entities row with deltas against the previous window."""

    entity_id: str
    name: str
    rank: int
    count: int
    playtime_ms: int
    image_url: str | None = None
    previous_rank: int | None = None
    previous_count: int | None = None
    rank_change: int | None = None
    percent_change: float | None = None


@define(frozen=True, slots=True)
class TopEntities:
    """A user's most played tracks, artists or albums in a window."""

    kind: EntityKind
    timeframe: Timeframe
    entries: list[TopEntity] = field(factory=list)


@define(frozen=True, slots=True)
class WindowTotals:
    """Aggregate listening of one user within a window."""

    playtime_ms: int = 0
    artists: int = 0
    tracks: int = 0


@define(frozen=True, slots=True)
class PeriodTotal:
    """One total and its change against the previous window."""

    value: int
    previous_value: int | None = None
    percent_change: float | None = None


@define(frozen=True, slots=True)
class ListeningTotals:
    """Period totals for a user: playtime, distinct artists and distinct tracks."""

    timeframe: Timeframe
    playtime_ms: PeriodTotal
    artists: PeriodTotal
    tracks: PeriodTotal


@define(frozen=True, slots=True)
class PlaytimeBucket:
    """Qualifying playtime within one day or one hour starting at `start`."""

    start: datetime
    playtime_ms: int
