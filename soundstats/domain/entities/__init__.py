"""Core domain entities for listening history and analytics."""

from .analytics import (
    DateRange,
    EntityKind,
    EntityPlays,
    LeaderboardEntry,
    LeaderboardPage,
    ListeningTotals,
    Metric,
    PeriodTotal,
    PlaytimeBucket,
    RankedValue,
    Streak,
    StreakType,
    Timeframe,
    TopEntities,
    TopEntity,
    WindowTotals,
)
from .catalog import Album, Artist, Track
from .listening import ListeningHistoryEntry, NowPlaying, StreamingUpload, User
from .operations import (
    CatalogUpsertResult,
    NowPlayingResult,
    TaskLease,
    UploadBatchResult,
    UploadOutcome,
)
from .shared import ensure_utc, to_date, utc_today

__all__ = [
    "Album",
    "Artist",
    "CatalogUpsertResult",
    "DateRange",
    "EntityKind",
    "EntityPlays",
    "LeaderboardEntry",
    "LeaderboardPage",
    "ListeningHistoryEntry",
    "ListeningTotals",
    "Metric",
    "NowPlaying",
    "NowPlayingResult",
    "PeriodTotal",
    "PlaytimeBucket",
    "RankedValue",
    "Streak",
    "StreakType",
    "StreamingUpload",
    "TaskLease",
    "Timeframe",
    "TopEntities",
    "TopEntity",
    "Track",
    "UploadBatchResult",
    "UploadOutcome",
    "User",
    "WindowTotals",
    "ensure_utc",
    "to_date",
    "utc_today",
]
