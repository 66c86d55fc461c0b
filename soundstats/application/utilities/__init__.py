"""Application utilities shared by use cases."""

from .result_cache import AnalyticsCache, analytics_cache
from .task_lease import (
    PROCESS_UPLOADS_LEASE,
    UPDATE_NOW_PLAYING_LEASE,
    hold_lease,
    new_holder_id,
)
from .user_locks import UserLockRegistry, user_locks

__all__ = [
    "PROCESS_UPLOADS_LEASE",
    "UPDATE_NOW_PLAYING_LEASE",
    "AnalyticsCache",
    "UserLockRegistry",
    "analytics_cache",
    "hold_lease",
    "new_holder_id",
    "user_locks",
]
