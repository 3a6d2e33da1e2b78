"""Limit policy resolution.

Policies are built and validated once from settings; resolving a policy
for a request is a dictionary lookup and never fails.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Mapping

from ratelimiter.core.config import RateLimitSettings
from ratelimiter.core.errors import PolicyMisconfigurationError
from ratelimiter.services.key_resolver import KeyType, RateLimitKey


@dataclass(frozen=True)
class LimitPolicy:
    """Requests allowed per window; the window is also the cooldown length.

    Raises:
        PolicyMisconfigurationError: If limit < 1 or window <= 0.
    """

    limit: int
    window: timedelta

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise PolicyMisconfigurationError(
                code="invalid_limit",
                message="limit must be >= 1",
                details={"limit": self.limit},
            )
        if self.window <= timedelta(0):
            raise PolicyMisconfigurationError(
                code="invalid_window",
                message="window must be greater than zero",
                details={"window_seconds": self.window.total_seconds()},
            )


@dataclass(frozen=True)
class PolicyResolver:
    """Maps a rate limit key to its policy.

    Token keys honor per-token overrides (exact match); IP keys always get
    the default IP policy.
    """

    ip_policy: LimitPolicy
    token_policy: LimitPolicy
    token_overrides: Mapping[str, LimitPolicy] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, rate_limit_settings: RateLimitSettings) -> "PolicyResolver":
        """Build all policies from settings, validating each one."""
        overrides = {
            token: LimitPolicy(limit=cfg.limit, window=cfg.block_duration)
            for token, cfg in rate_limit_settings.token_limits.items()
        }
        return cls(
            ip_policy=LimitPolicy(
                limit=rate_limit_settings.ip_rate_limit,
                window=rate_limit_settings.ip_block_duration,
            ),
            token_policy=LimitPolicy(
                limit=rate_limit_settings.token_rate_limit,
                window=rate_limit_settings.token_block_duration,
            ),
            token_overrides=overrides,
        )

    def resolve(self, key: RateLimitKey) -> LimitPolicy:
        if key.key_type is KeyType.TOKEN:
            return self.token_overrides.get(key.identity, self.token_policy)
        return self.ip_policy
