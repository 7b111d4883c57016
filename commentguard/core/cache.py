"""
App-level Redis cache for the synchronous moderation services.

Backs the resolved-settings cache and the URL analysis cache.
Every operation is wrapped: a cache outage degrades to a miss, never an error.
"""

import json
import logging
from typing import Any, Optional

from redis import Redis as SyncRedis

from commentguard.core.config import get_settings

logger = logging.getLogger(__name__)

_sync_redis: Optional[SyncRedis] = None


def _get_cache_client() -> SyncRedis:
    global _sync_redis
    if _sync_redis is None:
        settings = get_settings()
        _sync_redis = SyncRedis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
    return _sync_redis


def cache_get(key: str) -> Optional[Any]:
    """Get a JSON-deserialized value. Returns None on miss or error."""
    try:
        raw = _get_cache_client().get(key)
        if raw is None:
            return None
        return json.loads(raw)
    except Exception:
        logger.warning("Cache get failed for key=%s", key, exc_info=True)
        return None


def cache_set(key: str, value: Any, ttl: int = 60) -> None:
    """Set a JSON-serialized value with a TTL in seconds."""
    try:
        _get_cache_client().set(key, json.dumps(value, default=str), ex=ttl)
    except Exception:
        logger.warning("Cache set failed for key=%s", key, exc_info=True)


def cache_delete(key: str) -> None:
    try:
        _get_cache_client().delete(key)
    except Exception:
        logger.warning("Cache delete failed for key=%s", key, exc_info=True)


def cache_delete_pattern(pattern: str) -> None:
    """Delete all keys matching a glob pattern using SCAN."""
    try:
        client = _get_cache_client()
        cursor = 0
        while True:
            cursor, keys = client.scan(cursor=cursor, match=pattern, count=100)
            if keys:
                client.delete(*keys)
            if cursor == 0:
                break
    except Exception:
        logger.warning("Cache delete pattern failed for pattern=%s", pattern, exc_info=True)


def cache_ping() -> bool:
    """Round-trip to Redis. Raises on failure, unlike the other helpers."""
    return bool(_get_cache_client().ping())


def close_cache_client() -> None:
    """Close the connection pool on shutdown."""
    global _sync_redis
    if _sync_redis is not None:
        _sync_redis.close()
        _sync_redis = None


def reset_cache_client() -> None:
    """Reset sync Redis client (for testing)."""
    global _sync_redis
    _sync_redis = None


class CacheKeys:
    """Key layout for cached moderation data."""

    @staticmethod
    def moderation_settings(owner_key: str, account_id: Optional[str]) -> str:
        return f"modsettings:{owner_key}:{account_id or 'global'}"

    @staticmethod
    def moderation_settings_pattern(owner_key: str) -> str:
        return f"modsettings:{owner_key}:*"

    @staticmethod
    def url_analysis(normalized_url: str) -> str:
        return f"urlanalysis:{normalized_url}"
