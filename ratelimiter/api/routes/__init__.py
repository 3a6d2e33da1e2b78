from __future__ import annotations

from ratelimiter.api.routes.health import router as health_router
from ratelimiter.api.routes.ping import router as ping_router

__all__ = ["health_router", "ping_router"]
