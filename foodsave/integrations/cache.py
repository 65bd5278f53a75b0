"""Cache service with Protocol pattern for dependency injection.

Used to memoise email-to-stakeholder lookups and recipe suggestions.
``RedisCacheService`` is the real cache; ``NullCacheService`` is the no-op
fallback when Redis is unreachable.
A cache failure is never an application failure: reads miss, writes are dropped.
"""

import json
import logging
from typing import Any, Protocol

import redis

from ..config import settings

logger = logging.getLogger(__name__)


class CacheService(Protocol):
    """Cache service interface."""

    def get_json(self, key: str) -> dict[str, Any] | None: ...
    def set_json(self, key: str, data: dict[str, Any], ttl: int) -> None: ...
    def delete(self, key: str) -> None: ...


class RedisCacheService:
    """Redis-backed cache implementation."""

    def __init__(self, redis_url: str) -> None:
        self._client = redis.from_url(redis_url, decode_responses=True)
        self._client.ping()

    def get_json(self, key: str) -> dict[str, Any] | None:
        try:
            raw = self._client.get(key)
        except redis.RedisError:
            logger.debug("Cache read failed for %s", key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None

    def set_json(self, key: str, data: dict[str, Any], ttl: int) -> None:
        try:
            self._client.setex(key, ttl, json.dumps(data, ensure_ascii=False))
        except redis.RedisError:
            logger.debug("Cache write failed for %s", key, exc_info=True)

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError:
            logger.debug("Cache delete failed for %s", key, exc_info=True)


class NullCacheService:
    """No-op cache for when Redis is unavailable."""

    def get_json(self, key: str) -> dict[str, Any] | None:
        return None

    def set_json(self, key: str, data: dict[str, Any], ttl: int) -> None:
        pass

    def delete(self, key: str) -> None:
        pass


def create_cache_service() -> CacheService:
    """Factory: create the appropriate cache service based on configuration."""
    if not settings.redis_url:
        return NullCacheService()
    try:
        return RedisCacheService(settings.redis_url)
    except redis.RedisError:
        logger.warning("Redis unavailable at startup, identity lookups will not be cached")
        return NullCacheService()
