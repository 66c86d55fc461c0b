"""In-process TTL cache for read-only analytics results."""

from collections import OrderedDict
from collections.abc import Awaitable, Callable, Hashable
import time
from typing import Any

from attrs import define, field

from soundstats.config import get_logger, settings

logger = get_logger(__name__)


@define(slots=True)
class AnalyticsCache:
    """Bounded cache of analytics results with per-entry expiry.

    Entries expire `ttl_seconds` after being stored. When full, the oldest
    entry is evicted first.
    """

    ttl_seconds: float = field(factory=lambda: settings.analytics.cache_ttl_seconds)
    max_entries: int = field(factory=lambda: settings.analytics.cache_max_entries)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    _entries: OrderedDict[Hashable, tuple[float, Any]] = field(
        factory=OrderedDict, init=False, repr=False
    )

    def get(self, key: Hashable) -> Any | None:
        """Cached value for `key`, or None when missing or expired."""
        item = self._entries.get(key)
        if item is None:
            return None
        expires_at, value = item
        if expires_at <= self.clock():
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: Any) -> None:
        self._entries.pop(key, None)
        self._entries[key] = (self.clock() + self.ttl_seconds, value)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    async def get_or_compute[T](
        self, key: Hashable, compute: Callable[[], Awaitable[T]]
    ) -> T:
        """Return the cached value or compute, store and return it."""
        cached = self.get(key)
        if cached is not None:
            logger.debug("Analytics cache hit", key=repr(key))
            return cached
        value = await compute()
        self.set(key, value)
        return value

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# Shared by the analytics use cases in this process
analytics_cache = AnalyticsCache()
