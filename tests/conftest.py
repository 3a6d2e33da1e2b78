"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any ratelimiter import so the global
settings never point at a real Redis instance during tests.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import timedelta

import pytest

from ratelimiter.adapters.store.in_memory import InMemoryCounterStore
from ratelimiter.core.config import RateLimitSettings


class FakeClock:
    """Deterministic monotonic clock used to test expiration logic."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryCounterStore:
    return InMemoryCounterStore(clock=clock)


@pytest.fixture
def rate_limit_settings() -> RateLimitSettings:
    """Small, explicit policies independent of the process environment."""
    return RateLimitSettings(
        ip_rate_limit=2,
        ip_block_duration=timedelta(seconds=10),
        token_rate_limit=3,
        token_block_duration=timedelta(seconds=10),
        token_limits={"vip-token": {"limit": 5, "block_duration": 1}},
        rate_limit_exempt_paths=["/health"],
    )
