# ruff: noqa: PLW0603
"""Redis connection management.

Redis backs the per-IP submission rate limit. It is optional: when it cannot
be reached the application runs without rate limiting.
"""

import redis.asyncio as redis

from guestbook.config import get_settings
from guestbook.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Initialize Redis connection pool."""
    global _redis_client

    settings = get_settings()

    _redis_client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        decode_responses=True,
    )

    try:
        await _redis_client.ping()
        logger.info("redis_connected", url=settings.redis_url)
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        _redis_client = None
        raise

    return _redis_client


async def shutdown_redis() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def submission_rate_key(client_ip: str) -> str:
    """Key counting a client's submissions in the current minute."""
    return f"guestbook:submissions:{client_ip}:minute"
