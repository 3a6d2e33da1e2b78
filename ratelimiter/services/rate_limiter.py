"""Fixed-window rate limit decision engine.

Per key, a request is:
1. denied without counting while the key's block flag is live;
2. otherwise counted; the first request of a window sets the window TTL;
3. denied when the count exceeds the limit, which also blocks the key for
   one window and clears its counter;
4. allowed otherwise.

The request that crosses the limit is both counted and rejected. Bursts that
straddle a window boundary can pass up to twice the limit.

The engine keeps no in-process state and takes no locks: concurrent
requests, possibly from other processes, are coordinated by the store's
atomic increment. Several over-limit requests racing each other may all
call ``block``; the redundant writes are harmless.
"""

from __future__ import annotations

import enum
import hashlib
import logging
from dataclasses import dataclass
from datetime import timedelta

from ratelimiter.adapters.store.base import AbstractCounterStore
from ratelimiter.core.errors import StoreUnavailableError
from ratelimiter.services.key_resolver import RateLimitKey
from ratelimiter.services.policy import PolicyResolver

logger = logging.getLogger(__name__)


class DecisionOutcome(str, enum.Enum):
    ALLOWED = "allowed"
    DENIED = "denied"
    FAILED = "failed"


@dataclass(frozen=True)
class Decision:
    """Result of one rate limit decision.

    Attributes:
        outcome: Allowed, denied (rate limited) or failed (store error).
        count: Post-increment count, or None when no increment happened.
        error: The store error when outcome is FAILED.
    """

    outcome: DecisionOutcome
    count: int | None = None
    error: StoreUnavailableError | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is DecisionOutcome.ALLOWED


def _hash_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing tokens."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


class RateLimiter:
    """Allow/deny decisions backed by a shared counter store."""

    def __init__(self, store: AbstractCounterStore, policies: PolicyResolver) -> None:
        self._store = store
        self._policies = policies

    @property
    def store(self) -> AbstractCounterStore:
        return self._store

    @property
    def policies(self) -> PolicyResolver:
        return self._policies

    async def check(self, key: RateLimitKey) -> Decision:
        """Resolve the policy for ``key`` and decide on one request."""
        policy = self._policies.resolve(key)
        return await self.allow(key.storage_key, policy.limit, policy.window)

    async def allow(self, key: str, limit: int, window: timedelta) -> Decision:
        """Decide whether one request for ``key`` may proceed.

        Args:
            key: Store key of the identity.
            limit: Requests allowed per window.
            window: Window length, also used as the cooldown length.

        Returns:
            Decision: ALLOWED, DENIED, or FAILED carrying the store error.
        """
        try:
            if await self._store.is_blocked(key):
                logger.info(
                    "rate_limit.denied",
                    extra={"key_hash": _hash_key(key), "reason": "blocked"},
                )
                return Decision(outcome=DecisionOutcome.DENIED)

            count = await self._store.increment(key, window)
            if count > limit:
                await self._store.block(key, window)
                logger.warning(
                    "rate_limit.blocked",
                    extra={
                        "key_hash": _hash_key(key),
                        "count": count,
                        "limit": limit,
                        "window_s": window.total_seconds(),
                    },
                )
                return Decision(outcome=DecisionOutcome.DENIED, count=count)
        except StoreUnavailableError as exc:
            logger.error(
                "rate_limit.store_failed",
                extra={
                    "key_hash": _hash_key(key),
                    "error_code": exc.code,
                    "error_msg": exc.message,
                },
            )
            return Decision(outcome=DecisionOutcome.FAILED, error=exc)

        logger.debug(
            "rate_limit.allowed",
            extra={"key_hash": _hash_key(key), "count": count, "limit": limit},
        )
        return Decision(outcome=DecisionOutcome.ALLOWED, count=count)
