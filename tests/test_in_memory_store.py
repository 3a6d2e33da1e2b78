"""Unit tests for the in-memory counter store."""

from datetime import timedelta

import pytest

from ratelimiter.adapters.store.base import block_key
from ratelimiter.adapters.store.in_memory import InMemoryCounterStore

WINDOW = timedelta(seconds=10)


@pytest.mark.asyncio
async def test_increment_counts_from_one(store) -> None:
    assert await store.increment("k", WINDOW) == 1
    assert await store.increment("k", WINDOW) == 2
    assert await store.get("k") == 2


@pytest.mark.asyncio
async def test_get_missing_key_returns_zero(store) -> None:
    assert await store.get("missing") == 0


@pytest.mark.asyncio
async def test_expiry_is_only_set_on_first_increment(store, clock) -> None:
    await store.increment("k", WINDOW)
    clock.advance(6)
    # A later increment with a longer expiry must not move the window
    await store.increment("k", timedelta(seconds=60))
    clock.advance(5)

    assert await store.get("k") == 0
    assert await store.increment("k", WINDOW) == 1


@pytest.mark.asyncio
async def test_set_expiration_refreshes_ttl(store, clock) -> None:
    await store.increment("k", WINDOW)
    clock.advance(8)
    await store.set_expiration("k", WINDOW)
    clock.advance(8)

    assert await store.get("k") == 1


@pytest.mark.asyncio
async def test_set_expiration_on_missing_key_is_noop(store) -> None:
    await store.set_expiration("missing", WINDOW)
    assert await store.get("missing") == 0


@pytest.mark.asyncio
async def test_block_sets_flag_and_deletes_counter(store) -> None:
    await store.increment("k", WINDOW)
    await store.increment("k", WINDOW)

    await store.block("k", WINDOW)

    assert await store.is_blocked("k") is True
    assert await store.get("k") == 0


@pytest.mark.asyncio
async def test_block_flag_expires(store, clock) -> None:
    await store.block("k", timedelta(seconds=1))
    clock.advance(1.01)

    assert await store.is_blocked("k") is False


@pytest.mark.asyncio
async def test_block_namespace_is_disjoint_from_counters(store) -> None:
    await store.block("k", WINDOW)

    assert await store.get("k") == 0
    assert await store.get(block_key("k")) == 1
    assert await store.is_blocked("other") is False
    assert await store.increment("k", WINDOW) == 1
    assert await store.is_blocked("k") is True


@pytest.mark.asyncio
async def test_close_drops_state(store) -> None:
    await store.increment("k", WINDOW)
    await store.block("j", WINDOW)

    await store.close()

    assert await store.get("k") == 0
    assert await store.is_blocked("j") is False


@pytest.mark.asyncio
async def test_expired_keys_that_never_return_are_swept(clock) -> None:
    store = InMemoryCounterStore(clock=clock, sweep_interval=100)
    for i in range(1000):
        await store.increment(f"ip:{i}", timedelta(seconds=1))
        await store.block(f"api_key:{i}", timedelta(seconds=1))

    clock.advance(3600)
    for i in range(100):
        await store.increment(f"fresh:{i}", WINDOW)

    assert len(store) <= 100
    assert await store.get("fresh:0") == 1


@pytest.mark.asyncio
async def test_sweep_keeps_live_entries(clock) -> None:
    store = InMemoryCounterStore(clock=clock, sweep_interval=1)
    await store.increment("short", timedelta(seconds=1))
    await store.increment("long", timedelta(seconds=60))
    await store.block("blocked", timedelta(seconds=60))

    clock.advance(2)
    await store.increment("new", WINDOW)

    assert len(store) == 3
    assert await store.get("long") == 1
    assert await store.is_blocked("blocked") is True


def test_invalid_sweep_interval() -> None:
    with pytest.raises(ValueError):
        InMemoryCounterStore(sweep_interval=0)
