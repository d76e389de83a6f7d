"""Optional Redis client shared by rate limiting and reward event publishing.

Redis is never required: with ``STORRA_REDIS_URL`` empty the client stays
``None`` and callers skip their Redis work.
"""

import redis.asyncio as redis
import structlog

logger = structlog.get_logger()

_client: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 20) -> None:
    global _client  # noqa: PLW0603
    if not url:
        logger.info("redis_disabled")
        return
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_optional_redis() -> redis.Redis | None:
    """FastAPI dependency: the shared client, or None when Redis is off."""
    return _client


async def redis_status() -> str:
    """Readiness check result: ``ok``, ``not configured`` or the error text."""
    if _client is None:
        return "not configured"
    try:
        await _client.ping()
    except redis.RedisError as exc:
        return f"error: {exc}"
    return "ok"
