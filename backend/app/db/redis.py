"""Shared Redis client. Only the dashboard cache depends on it."""

import redis.asyncio as redis
import structlog

from app.core.config import get_settings

logger = structlog.get_logger(__name__)

_redis: redis.Redis | None = None


async def init_redis(url: str | None = None) -> None:
    """Initialize the shared Redis connection pool.

    An unreachable server is logged, not raised: the client is kept and cache
    operations fall back to recomputing until Redis comes back.
    """
    global _redis

    if _redis is not None:
        return

    settings = get_settings()
    _redis = redis.from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )

    try:
        await _redis.ping()
        logger.info("redis_initialized")
    except redis.RedisError as exc:
        logger.warning("redis_unavailable", error=str(exc), error_type=type(exc).__name__)


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis

    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> redis.Redis:
    """Return the shared Redis client.

    Raises RuntimeError if init_redis() has not been called.
    """
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis
