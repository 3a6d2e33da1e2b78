"""Application factory for the rate limited FastAPI app.

Centralizes app construction (middleware, handlers, routers, store
lifecycle) so tests can build an app around an in-memory store.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from ratelimiter.adapters.store.factory import create_counter_store
from ratelimiter.api.routes import health_router, ping_router
from ratelimiter.core.config import RateLimitSettings, settings
from ratelimiter.core.exception_handlers import setup_exception_handlers
from ratelimiter.core.logging import configure_logging
from ratelimiter.core.middleware import request_id_middleware
from ratelimiter.core.rate_limit import build_rate_limiter, rate_limit_middleware
from ratelimiter.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Check the counter store on startup and close it on shutdown.

    An unreachable store aborts startup with StoreUnavailableError.
    """
    limiter: RateLimiter = app.state.rate_limiter
    await limiter.store.ping()
    logger.info(
        "app.startup",
        extra={
            "store": type(limiter.store).__name__,
            "rate_limit_enabled": app.state.rate_limit_settings.rate_limit_enabled,
        },
    )
    try:
        yield
    finally:
        await limiter.store.close()
        logger.info("app.shutdown")


def create_app(
    rate_limiter: RateLimiter | None = None,
    rate_limit_settings: RateLimitSettings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Prebuilt limiter; built from settings when omitted.
        rate_limit_settings: Middleware settings; global settings when omitted.

    Returns:
        Configured FastAPI app.

    Raises:
        PolicyMisconfigurationError: If a configured policy is invalid.
    """
    configure_logging(settings.log)

    cfg = rate_limit_settings or settings.rate_limit
    if rate_limiter is None:
        rate_limiter = build_rate_limiter(create_counter_store(), cfg)

    app = FastAPI(
        title="Rate Limiter",
        description=(
            "Throttles requests per client IP or API token with a fixed-window "
            "counter and a cooldown block kept in a shared store."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.rate_limiter = rate_limiter
    app.state.rate_limit_settings = cfg

    # Last registered runs first: request ids also cover 429/500 responses
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(ping_router)
    app.include_router(health_router)

    return app
