"""Redis connection management.

Mirrors engine.py: when REDIS_URL is configured we create a shared
connection pool; when it is unset (local dev, tests) redis_pool is None
and consumers fall back to in-process implementations.

The only consumer is the approval lock, which needs a key that every API
instance sees, with a TTL so a crashed holder releases it on its own.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
        socket_timeout=5,  # keep lock calls bounded
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis, mirroring lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured, approval lock is in-process")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        # Start anyway; approvals fail until Redis is reachable and
        # /health reports it as degraded.
        logger.exception("Redis connection failed on startup")

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
