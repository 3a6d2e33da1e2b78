"""Redis-backed counter store shared by every API process.

Counters are bumped with INCR and PEXPIRE ... NX in one MULTI/EXEC
transaction: NX only sets a TTL on a key that has none, so the first
increment of a window fixes its expiry and a cancelled request can never
leave a counter without one. Block flags are plain string keys under
``block:``, written with ``SET ... PX`` in the same transaction as the
counter DEL.

PEXPIRE NX needs Redis 7.0 or later.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ratelimiter.adapters.store.base import AbstractCounterStore, block_key
from ratelimiter.core.config import RedisSettings
from ratelimiter.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "t", "true"}
_FALSE_VALUES = {"0", "f", "false"}


def _to_millis(duration: timedelta) -> int:
    return max(1, int(duration.total_seconds() * 1000))


def _store_error(operation: str, exc: Exception) -> StoreUnavailableError:
    return StoreUnavailableError(
        code="store_unavailable",
        message=str(exc) or type(exc).__name__,
        details={"backend": "redis", "operation": operation},
    )


class RedisCounterStore(AbstractCounterStore):
    """Counter store on top of ``redis.asyncio``.

    Atomicity across processes comes from Redis itself: INCR is serialized
    per key, so every caller observes a distinct count.
    """

    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, redis_settings: RedisSettings) -> "RedisCounterStore":
        """Build a store with a client configured from settings."""
        client = Redis(
            host=redis_settings.host,
            port=redis_settings.port,
            password=redis_settings.password,
            db=redis_settings.db,
            socket_timeout=redis_settings.socket_timeout_seconds,
            socket_connect_timeout=redis_settings.socket_timeout_seconds,
            decode_responses=True,
        )
        return cls(client)

    async def increment(self, key: str, expiry: timedelta) -> int:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.pexpire(key, _to_millis(expiry), nx=True)
                count, _ = await pipe.execute()
        except RedisError as exc:
            raise _store_error("increment", exc) from exc
        return int(count)

    async def get(self, key: str) -> int:
        try:
            value = await self._client.get(key)
        except RedisError as exc:
            raise _store_error("get", exc) from exc
        if value is None:
            return 0
        try:
            return int(value)
        except ValueError as exc:
            raise _store_error("get", exc) from exc

    async def set_expiration(self, key: str, expiry: timedelta) -> None:
        try:
            await self._client.pexpire(key, _to_millis(expiry))
        except RedisError as exc:
            raise _store_error("set_expiration", exc) from exc

    async def is_blocked(self, key: str) -> bool:
        try:
            value = await self._client.get(block_key(key))
        except RedisError as exc:
            raise _store_error("is_blocked", exc) from exc
        if value is None:
            return False
        normalized = str(value).strip().lower()
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False
        raise _store_error("is_blocked", ValueError(f"invalid block flag value: {value!r}"))

    async def block(self, key: str, duration: timedelta) -> None:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.set(block_key(key), "true", px=_to_millis(duration))
                pipe.delete(key)
                await pipe.execute()
        except RedisError as exc:
            raise _store_error("block", exc) from exc

    async def ping(self) -> None:
        try:
            await self._client.ping()
        except RedisError as exc:
            raise _store_error("ping", exc) from exc

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except RedisError as exc:
            logger.warning(
                "store.close_failed",
                extra={"backend": "redis", "error_msg": str(exc)},
            )
