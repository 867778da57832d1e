"""
Redis caching for the GET /booking read path.

CACHING STRATEGY
================

What we cache:
  - The serialized response of GET /booking, per user
  - Cache key pattern: "booking:user:{user_id}:v{generation}"
  - Generation counter: "booking:user:{user_id}:gen" (no TTL)

Invalidation strategy:
  - On create/modify: INCR the caller's generation after the transaction
    commits. Entries written under older generations are never read again.
  - Readers fetch the generation BEFORE reading the database and write
    under that generation. A reader that loaded the old room before the
    commit therefore stores it under a stale generation nobody reads.
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

What we never cache:
  - Room occupancy. Allocation decisions always count bookings in the
    database under the room lock.

Redis is optional. When it is disabled or unreachable every function here
degrades to a no-op and reads fall through to PostgreSQL.
"""

import json
from typing import Optional

import redis.asyncio as redis
from hotel_booking.core.config import get_settings
from hotel_booking.core.logging import get_logger
from hotel_booking.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_generation_key(user_id: int) -> str:
    return f"booking:user:{user_id}:gen"


def _make_booking_key(user_id: int, generation: int) -> str:
    return f"booking:user:{user_id}:v{generation}"


async def get_cache_generation(user_id: int) -> Optional[int]:
    """
    Current cache generation for the user's booking.

    Read it BEFORE querying the database and pass it to get/set. Returns
    None when Redis is unavailable, in which case nothing should be cached.
    """
    client = await get_redis()
    if not client:
        return None

    key = _make_generation_key(user_id)
    try:
        value = await client.get(key)
        return int(value) if value is not None else 0
    except Exception as e:
        logger.error("cache_generation_error", key=key, error=str(e))
        return None


async def get_cached_booking(user_id: int, generation: Optional[int]) -> Optional[dict]:
    if generation is None:
        return None
    client = await get_redis()
    if not client:
        return None

    key = _make_booking_key(user_id, generation)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_booking(user_id: int, generation: Optional[int], data: dict) -> None:
    if generation is None:
        return
    client = await get_redis()
    if not client:
        return

    key = _make_booking_key(user_id, generation)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_booking_cache(user_id: int) -> None:
    """Bump the user's generation so every previously written entry is unreachable."""
    client = await get_redis()
    if not client:
        return

    key = _make_generation_key(user_id)
    try:
        generation = await client.incr(key)
        logger.debug("cache_invalidated", key=key, generation=generation)
    except Exception as e:
        logger.error("cache_invalidation_error", key=key, error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for the health endpoint."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
