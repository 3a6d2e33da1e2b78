"""Counter store interface.

The rate limiter depends on this abstraction (not a concrete client), so the
backing key-value store can be swapped without touching the decision logic.

Contract every implementation must honor:
- ``increment`` is atomic and sets the expiry only when the counter goes
  from absent to 1. Later increments in the same window leave it untouched.
- Block flags live under ``BLOCK_KEY_PREFIX + key``, a namespace disjoint
  from counters.
- ``block`` deletes the counter so the next window starts from zero.
- Connectivity failures raise ``StoreUnavailableError``; absence is never an
  error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta

BLOCK_KEY_PREFIX = "block:"


def block_key(key: str) -> str:
    """Return the block flag key for a counter key."""
    return f"{BLOCK_KEY_PREFIX}{key}"


class AbstractCounterStore(ABC):
    """Interface for shared TTL counters with a cooldown flag per key."""

    @abstractmethod
    async def increment(self, key: str, expiry: timedelta) -> int:
        """Atomically increment the counter for ``key``.

        Args:
            key: Counter key.
            expiry: TTL applied when the counter is created (count == 1).

        Returns:
            The post-increment count.

        Raises:
            StoreUnavailableError: If the store cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod
    async def get(self, key: str) -> int:
        """Return the current count for ``key`` or 0 when absent."""
        raise NotImplementedError

    @abstractmethod
    async def set_expiration(self, key: str, expiry: timedelta) -> None:
        """Refresh the TTL of an existing counter."""
        raise NotImplementedError

    @abstractmethod
    async def is_blocked(self, key: str) -> bool:
        """Return whether a live block flag exists for ``key``."""
        raise NotImplementedError

    @abstractmethod
    async def block(self, key: str, duration: timedelta) -> None:
        """Set the block flag for ``key`` with TTL ``duration`` and drop its counter."""
        raise NotImplementedError

    async def ping(self) -> None:
        """Check connectivity; raise ``StoreUnavailableError`` on failure."""
        return None

    async def close(self) -> None:
        """Release any connection resources."""
        return None
