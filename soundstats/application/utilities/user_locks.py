"""Per-user locks serializing ledger read-then-write sequences."""

import asyncio

from attrs import define, field


@define(slots=True)
class UserLockRegistry:
    """Hands out one `asyncio.Lock` per user ID.

    Locks are process-local; cross-process exclusion comes from task leases.
    """

    _locks: dict[str, asyncio.Lock] = field(factory=dict, init=False, repr=False)

    def lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def __len__(self) -> int:
        return len(self._locks)


user_locks = UserLockRegistry()
