"""Use cases for the listening history engine."""

from .get_leaderboard import GetLeaderboardUseCase
from .get_listening_streaks import GetListeningStreaksUseCase
from .get_listening_totals import GetListeningTotalsUseCase
from .get_playtime_series import GetPlaytimeSeriesUseCase
from .get_top_entities import GetTopEntitiesUseCase
from .process_uploads import ProcessUploadsUseCase
from .update_now_playing import UpdateNowPlayingUseCase, user_start_delay_ms
from .upsert_catalog import UpsertCatalogUseCase

__all__ = [
    "GetLeaderboardUseCase",
    "GetListeningStreaksUseCase",
    "GetListeningTotalsUseCase",
    "GetPlaytimeSeriesUseCase",
    "GetTopEntitiesUseCase",
    "ProcessUploadsUseCase",
    "UpdateNowPlayingUseCase",
    "UpsertCatalogUseCase",
    "user_start_delay_ms",
]
