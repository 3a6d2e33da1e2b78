"""Counter store adapters.

The decision engine depends on the abstract interface only, so the same
rate limiting logic runs against an in-memory store (tests, single process)
or a shared Redis instance (production, many processes).
"""
