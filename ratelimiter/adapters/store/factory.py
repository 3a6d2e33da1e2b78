"""Factory pattern for creating counter store instances."""

from ratelimiter.adapters.store.base import AbstractCounterStore
from ratelimiter.adapters.store.in_memory import InMemoryCounterStore
from ratelimiter.adapters.store.redis_store import RedisCounterStore
from ratelimiter.core.config import RedisSettings, StoreSettings, settings
from ratelimiter.core.errors import ValidationAppError


def create_counter_store(
    store_settings: StoreSettings | None = None,
    redis_settings: RedisSettings | None = None,
) -> AbstractCounterStore:
    """Instantiate the configured counter store.

    Reads configuration from ratelimiter.core.config.settings unless explicit
    settings are passed. The returned store is not connected yet; call
    ``ping()`` to fail fast on an unreachable backend.

    Returns:
        AbstractCounterStore: Configured store instance.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    store_cfg = store_settings or settings.store
    backend = store_cfg.backend.lower()

    if backend == "redis":
        return RedisCounterStore.from_settings(redis_settings or settings.redis)

    if backend == "memory":
        return InMemoryCounterStore()

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown store backend: '{backend}'. Supported backends: redis, memory",
        details={"backend": backend},
    )
