"""In-memory counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Expired entries are evicted on access, and swept from the whole map
  every `sweep_interval` writes so keys that never return do not pile up.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable

from ratelimiter.adapters.store.base import AbstractCounterStore, block_key


@dataclass
class _Entry:
    value: int
    expires_at: float | None


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store keeping counters and block flags in a local dict.

    Reproduces the shared-store semantics exactly: expiry is set only on the
    absent-to-1 transition, and blocking a key deletes its counter.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: int = 1000,
    ) -> None:
        """Initialize the store.

        Args:
            clock: Time source in seconds; injectable for tests.
            sweep_interval: Writes between full sweeps of expired entries.

        Raises:
            ValueError: If sweep_interval is invalid.
        """
        if sweep_interval < 1:
            raise ValueError("sweep_interval must be >= 1")

        self._clock = clock
        self._sweep_interval = sweep_interval
        self._writes_since_sweep = 0
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _live_entry(self, key: str, now: float) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= now:
            del self._entries[key]
            return None
        return entry

    def _evict_expired_locked(self, now: float) -> None:
        expired_keys = [
            k for k, entry in self._entries.items()
            if entry.expires_at is not None and entry.expires_at <= now
        ]
        for key in expired_keys:
            del self._entries[key]

    def _record_write_locked(self, now: float) -> None:
        self._writes_since_sweep += 1
        if self._writes_since_sweep >= self._sweep_interval:
            self._writes_since_sweep = 0
            self._evict_expired_locked(now)

    async def increment(self, key: str, expiry: timedelta) -> int:
        now = self._clock()
        with self._lock:
            self._record_write_locked(now)
            entry = self._live_entry(key, now)
            if entry is None:
                entry = _Entry(value=0, expires_at=None)
                self._entries[key] = entry
            entry.value += 1
            if entry.value == 1:
                entry.expires_at = now + expiry.total_seconds()
            return entry.value

    async def get(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry(key, self._clock())
            return entry.value if entry is not None else 0

    async def set_expiration(self, key: str, expiry: timedelta) -> None:
        now = self._clock()
        with self._lock:
            entry = self._live_entry(key, now)
            if entry is not None:
                entry.expires_at = now + expiry.total_seconds()

    async def is_blocked(self, key: str) -> bool:
        with self._lock:
            return self._live_entry(block_key(key), self._clock()) is not None

    async def block(self, key: str, duration: timedelta) -> None:
        now = self._clock()
        with self._lock:
            self._record_write_locked(now)
            self._entries[block_key(key)] = _Entry(
                value=1,
                expires_at=now + duration.total_seconds(),
            )
            self._entries.pop(key, None)

    async def close(self) -> None:
        with self._lock:
            self._entries.clear()
