from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable

from app.domain import MarketState


@dataclass(frozen=True, slots=True)
class CacheEntry:
    state: MarketState
    stored_at: float


class MarketStateCache:
    """In-memory battle state cache with a fixed time-to-live.

    Entries are replaced wholesale. ``lock_for`` hands out one asyncio lock
    per key so a read-check-fetch-write sequence runs once per battle at a
    time.
    """

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, key: str) -> MarketState | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return entry.state

    def put(self, key: str, state: MarketState) -> None:
        self._entries[key] = CacheEntry(state=state, stored_at=self._clock())

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    def clear(self) -> None:
        self._entries.clear()
        self._locks = {key: lock for key, lock in self._locks.items() if lock.locked()}

    def lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
