import json

from loguru import logger
from redis.asyncio import Redis

from app import settings

_redis: Redis | None = None
EVENTS_KEY = "events:all"


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        _redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis


# The cache holds every event, drafts included. Visibility filtering happens
# per caller after the cache read.


async def get_events_cache() -> list | None:
    try:
        data = await get_redis().get(EVENTS_KEY)
        return json.loads(data) if data else None
    except Exception:
        logger.opt(exception=True).warning("Redis get failed, skipping events cache")
        return None


async def set_events_cache(events: list) -> None:
    try:
        await get_redis().setex(EVENTS_KEY, settings.events_cache_ttl, json.dumps(events))
    except Exception:
        logger.opt(exception=True).warning("Redis set failed, skipping events cache")


async def invalidate_events_cache() -> None:
    try:
        await get_redis().delete(EVENTS_KEY)
    except Exception:
        logger.opt(exception=True).warning("Redis invalidate failed for events cache")
