"""Tests for counter store selection."""

from unittest.mock import MagicMock

import pytest

from ratelimiter.adapters.store.factory import create_counter_store
from ratelimiter.adapters.store.in_memory import InMemoryCounterStore
from ratelimiter.adapters.store.redis_store import RedisCounterStore
from ratelimiter.core.config import RedisSettings, StoreSettings
from ratelimiter.core.errors import ValidationAppError


def test_memory_backend() -> None:
    store = create_counter_store(StoreSettings(backend="memory"))

    assert isinstance(store, InMemoryCounterStore)


def test_redis_backend() -> None:
    store = create_counter_store(
        StoreSettings(backend="redis"),
        RedisSettings(addr="localhost:6379"),
    )

    assert isinstance(store, RedisCounterStore)


def test_unknown_backend_is_rejected() -> None:
    store_settings = MagicMock()
    store_settings.backend = "memcached"

    with pytest.raises(ValidationAppError) as exc_info:
        create_counter_store(store_settings)

    assert exc_info.value.code == "store_unknown_backend"
