"""Rate limiting middleware for the HTTP layer.

This module wires the decision engine into FastAPI and owns the user-visible
presentation of its three outcomes:

- allowed: the request continues to its route;
- denied: HTTP 429 with a fixed message;
- failed (counter store error or timeout): HTTP 500 with the error text.

The store timeout is applied here, around the whole decision, so a slow
store never hangs a request indefinitely.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from ratelimiter.adapters.store.base import AbstractCounterStore
from ratelimiter.core.config import RateLimitSettings
from ratelimiter.services.key_resolver import resolve_key
from ratelimiter.services.policy import PolicyResolver
from ratelimiter.services.rate_limiter import DecisionOutcome, RateLimiter

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = (
    "you have reached the maximum number of requests or actions allowed "
    "within a certain time frame"
)


def build_rate_limiter(
    store: AbstractCounterStore,
    rate_limit_settings: RateLimitSettings,
) -> RateLimiter:
    """Create a rate limiter, validating every configured policy.

    Raises:
        PolicyMisconfigurationError: If any policy is invalid.
    """
    return RateLimiter(store, PolicyResolver.from_settings(rate_limit_settings))


async def rate_limit_middleware(request: Request, call_next) -> Response:
    """HTTP middleware enforcing per-identity rate limits.

    Expects ``request.app.state.rate_limiter`` and
    ``request.app.state.rate_limit_settings`` to be set by the app factory.
    """

    cfg: RateLimitSettings = request.app.state.rate_limit_settings
    if not cfg.rate_limit_enabled or request.url.path in cfg.rate_limit_exempt_paths:
        return await call_next(request)

    limiter: RateLimiter = request.app.state.rate_limiter
    key = resolve_key(request, cfg.token_header)

    try:
        decision = await asyncio.wait_for(
            limiter.check(key),
            timeout=cfg.rate_limit_store_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error(
            "rate_limit.store_timeout",
            extra={
                "key_type": key.key_type.value,
                "timeout_s": cfg.rate_limit_store_timeout_seconds,
            },
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "rate limit store timed out"},
        )

    if decision.outcome is DecisionOutcome.FAILED:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(decision.error)},
        )

    if decision.outcome is DecisionOutcome.DENIED:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"error": RATE_LIMITED_MESSAGE},
        )

    return await call_next(request)
