"""Tests for limit policy construction and resolution."""

from datetime import timedelta

import pytest

from ratelimiter.core.errors import PolicyMisconfigurationError
from ratelimiter.services.key_resolver import KeyType, RateLimitKey
from ratelimiter.services.policy import LimitPolicy, PolicyResolver


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver(
        ip_policy=LimitPolicy(limit=20, window=timedelta(minutes=2)),
        token_policy=LimitPolicy(limit=50, window=timedelta(minutes=5)),
        token_overrides={
            "existing_api_key": LimitPolicy(limit=100, window=timedelta(minutes=10)),
        },
    )


def test_token_override_takes_precedence(resolver) -> None:
    policy = resolver.resolve(RateLimitKey("existing_api_key", KeyType.TOKEN))

    assert policy == LimitPolicy(limit=100, window=timedelta(minutes=10))


def test_unknown_token_uses_default_token_policy(resolver) -> None:
    policy = resolver.resolve(RateLimitKey("non_existing_api_key", KeyType.TOKEN))

    assert policy == LimitPolicy(limit=50, window=timedelta(minutes=5))


def test_ip_keys_ignore_token_overrides(resolver) -> None:
    policy = resolver.resolve(RateLimitKey("existing_api_key", KeyType.IP))

    assert policy == LimitPolicy(limit=20, window=timedelta(minutes=2))


@pytest.mark.parametrize(
    ("limit", "window", "code"),
    [
        (0, timedelta(seconds=1), "invalid_limit"),
        (-5, timedelta(seconds=1), "invalid_limit"),
        (1, timedelta(0), "invalid_window"),
        (1, timedelta(seconds=-1), "invalid_window"),
    ],
)
def test_invalid_policy_is_rejected(limit, window, code) -> None:
    with pytest.raises(PolicyMisconfigurationError) as exc_info:
        LimitPolicy(limit=limit, window=window)

    assert exc_info.value.code == code


def test_from_settings_builds_every_policy(rate_limit_settings) -> None:
    resolver = PolicyResolver.from_settings(rate_limit_settings)

    assert resolver.ip_policy == LimitPolicy(limit=2, window=timedelta(seconds=10))
    assert resolver.token_policy == LimitPolicy(limit=3, window=timedelta(seconds=10))
    assert resolver.token_overrides == {
        "vip-token": LimitPolicy(limit=5, window=timedelta(seconds=1)),
    }
