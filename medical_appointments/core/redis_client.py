"""Redis client configuration and utilities."""

from arq import ArqRedis, create_pool
from arq.connections import RedisSettings

from medical_appointments.config import settings

# Process-wide pool, handed to topics, queues and workers by their factories
_redis_pool: ArqRedis | None = None


def get_redis_settings() -> RedisSettings:
    """Get Redis settings for the arq pool and workers."""
    return RedisSettings(
        host=settings.redis_host,
        port=settings.redis_port,
        username=settings.redis_username if settings.redis_password else None,
        password=settings.redis_password or None,
        conn_timeout=5,
        conn_retries=3,
        conn_retry_delay=1,
    )


async def get_redis_pool() -> ArqRedis:
    """
    Get or create the arq Redis pool.

    Returns:
        Redis client able to enqueue jobs
    """
    global _redis_pool

    if _redis_pool is None:
        _redis_pool = await create_pool(get_redis_settings())

    return _redis_pool


async def check_redis_connection() -> bool:
    """
    Check if Redis connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        pool = await get_redis_pool()
        await pool.ping()
        return True
    except Exception:
        return False


async def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_pool

    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None
