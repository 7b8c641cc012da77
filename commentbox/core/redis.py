"""Redis connection management.

Redis is optional: it only backs the shared submission rate limiter when
``RATE_LIMIT_BACKEND=redis``.
"""

import redis.asyncio as redis

from commentbox.config.settings import Settings
from commentbox.core.logging import get_logger


logger = get_logger(__name__)


async def create_redis(settings: Settings) -> redis.Redis:
    """Open a Redis client and verify the connection.

    Raises:
        redis.RedisError: If the server cannot be reached.
    """
    client = redis.from_url(
        settings.redis_url,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        decode_responses=True,
    )

    try:
        await client.ping()
    except redis.RedisError as e:
        logger.warning("redis_connection_failed", error=str(e))
        await client.aclose()
        raise

    logger.info("redis_connected", url=settings.redis_url)
    return client


async def close_redis(client: redis.Redis | None) -> None:
    """Close a Redis client if one was opened."""
    if client is not None:
        await client.aclose()
        logger.info("redis_disconnected")
