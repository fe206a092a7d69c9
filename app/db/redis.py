"""Redis client for the certificate task queue.

Mirrors engine.py: with REDIS_URL set there is one shared async client
(a connection pool underneath); without it ``redis_pool`` is None and
the task queue keeps its tasks in process memory instead.

Redis holds nothing durable here.  Losing a queued certificate_render
task only means the file is produced on first download instead of in
the background.
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
        decode_responses=True,  # task bodies are JSON text
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Ping on startup, close the pool on shutdown.

    An unreachable Redis is logged, not fatal: completions still succeed
    and enqueue failures surface on the certificate download path.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured; task queue is in-memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
