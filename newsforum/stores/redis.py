"""Redis store for short-lived payload caching.

Handles:
- Caching with TTL policies
- Invalidation of cached feed pages by key prefix

TTL policies:
- Anonymous feed pages: ~30 seconds (configurable via FEED_CACHE_TTL_SECONDS)
"""

import json
import logging
from typing import Any
from urllib.parse import quote

import redis.asyncio as redis
from redis.exceptions import RedisError

from newsforum.settings import get_settings

# Key prefixes
PREFIX_FEED = "feed:"

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    client = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early (especially for `rediss://` in production).
    # The client is only kept once it answers, so an unreachable server leaves
    # the cache uninitialized and callers skip it.
    try:
        await client.ping()
    except (RedisError, OSError):
        await client.aclose()
        raise
    _redis = client
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


# ============================================================
# Generic cache operations
# ============================================================


async def cache_get(key: str) -> str | None:
    """Get value from cache.

    Args:
        key: Cache key.

    Returns:
        Cached value or None if not found.
    """
    return await _get_redis().get(key)


async def cache_set(key: str, value: str, ttl: int) -> None:
    """Set value in cache with TTL.

    Args:
        key: Cache key.
        value: Value to cache.
        ttl: Time-to-live in seconds.
    """
    await _get_redis().setex(key, ttl, value)


async def cache_get_json(key: str) -> Any | None:
    """Get JSON value from cache."""
    value = await cache_get(key)
    if value:
        return json.loads(value)
    return None


async def cache_set_json(key: str, value: Any, ttl: int) -> None:
    """Set JSON value in cache."""
    await cache_set(key, json.dumps(value, default=str), ttl)


async def cache_delete_prefix(prefix: str) -> int:
    """Delete every key starting with ``prefix``.

    Returns:
        Number of deleted keys.
    """
    client = _get_redis()
    deleted = 0
    async for key in client.scan_iter(match=f"{prefix}*", count=200):
        deleted += await client.delete(key)
    return deleted


# ============================================================
# Feed page cache (anonymous viewers only)
# ============================================================


def feed_cache_key(*parts: object) -> str:
    """Build a feed cache key from the listing parameters.

    Parts are percent-encoded so a free-text part (the title prefix) cannot
    contain the ``:`` separator.
    """
    return PREFIX_FEED + ":".join("" if p is None else quote(str(p), safe="") for p in parts)


async def get_feed_cache(key: str) -> list[dict[str, Any]] | None:
    """Get a cached anonymous feed page."""
    return await cache_get_json(key)


async def set_feed_cache(key: str, payload: list[dict[str, Any]], ttl: int) -> None:
    """Cache an anonymous feed page."""
    await cache_set_json(key, payload, ttl)


async def invalidate_feed_cache() -> int:
    """Drop all cached feed pages (after votes, flags, new or deleted posts)."""
    return await cache_delete_prefix(PREFIX_FEED)
