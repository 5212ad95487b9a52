"""
Redis Cache Management
=====================

Caches read-heavy template catalog queries in Redis.

Key Features:
- Async Redis client with connection pooling
- JSON serialization of cached payloads
- TTL management and namespaced keys
- Namespace invalidation after every committed template write
- Disabled unless CACHE_ENABLED is set; helpers then do nothing
"""

import hashlib
import json
from typing import Any, Dict, Optional

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from skillweave.config import settings
from skillweave.core.logging import get_logger

logger = get_logger(__name__)

TEMPLATES_NAMESPACE = "templates"

# session.info key holding namespaces to clear after commit
STALE_NAMESPACES_KEY = "stale_cache_namespaces"

# Global Redis client instance
redis_client: Optional[redis.Redis] = None


class CacheManager:
    """
    Redis cache manager for SkillWeave.

    Values are stored as JSON. Read and write failures are logged and
    treated as cache misses so a Redis outage never fails a request.
    """

    def __init__(self, redis_client: redis.Redis, default_ttl: Optional[int] = None):
        self.redis = redis_client
        self.default_ttl = default_ttl or settings.CACHE_TTL
        self.key_prefix = "skillweave:"

    def _generate_key(self, key: str, namespace: str = "") -> str:
        if namespace:
            return f"{self.key_prefix}{namespace}:{key}"
        return f"{self.key_prefix}{key}"

    async def get(self, key: str, namespace: str = "", default: Any = None) -> Any:
        try:
            value = await self.redis.get(self._generate_key(key, namespace))
            if value is None:
                return default
            return json.loads(value)
        except (redis.RedisError, json.JSONDecodeError, TypeError) as e:
            logger.error(f"Cache get error for key {key}: {e}")
            return default

    async def set(self, key: str, value: Any, ttl: Optional[int] = None, namespace: str = "") -> bool:
        try:
            await self.redis.setex(
                self._generate_key(key, namespace),
                ttl or self.default_ttl,
                json.dumps(value, default=str),
            )
            return True
        except (redis.RedisError, TypeError) as e:
            logger.error(f"Cache set error for key {key}: {e}")
            return False

    async def clear_namespace(self, namespace: str) -> int:
        """
        Clear all keys in a namespace.

        Returns:
            int: Number of keys deleted
        """
        try:
            keys = [k async for k in self.redis.scan_iter(match=self._generate_key("*", namespace))]
            if keys:
                return await self.redis.delete(*keys)
            return 0
        except redis.RedisError as e:
            logger.error(f"Cache clear namespace error for {namespace}: {e}")
            return 0


# Global cache manager instance
cache_manager: Optional[CacheManager] = None


async def init_cache():
    """
    Initialize the Redis cache connection when CACHE_ENABLED is set.

    Raises:
        Exception: If Redis is enabled but unreachable
    """
    global redis_client, cache_manager

    if not settings.CACHE_ENABLED:
        logger.info("Template cache disabled (CACHE_ENABLED=false)")
        return

    try:
        logger.info("Initializing Redis cache...")
        redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
            retry_on_timeout=True,
            socket_keepalive=True,
        )
        await redis_client.ping()
        cache_manager = CacheManager(redis_client)
        logger.info("✅ Cache manager initialized")
    except Exception as e:
        logger.error(f"❌ Cache initialization failed: {e}")
        raise


async def close_cache():
    """Close Redis connections on shutdown."""
    global redis_client, cache_manager

    if redis_client is None:
        return
    try:
        logger.info("Closing Redis connections...")
        await redis_client.aclose()
        logger.info("✅ Redis connections closed")
    except Exception as e:
        logger.error(f"❌ Error closing Redis connections: {e}")
    finally:
        redis_client = None
        cache_manager = None


def get_cache() -> Optional[CacheManager]:
    """The global cache manager, or None when caching is off."""
    return cache_manager


def query_key(name: str, params: Dict[str, Any]) -> str:
    """Stable cache key for a named query and its parameters."""
    digest = hashlib.sha1(json.dumps(params, sort_keys=True, default=str).encode("utf-8")).hexdigest()
    return f"{name}:{digest}"


async def get_cached_templates(name: str, params: Dict[str, Any]) -> Optional[Any]:
    cache = get_cache()
    if cache is None:
        return None
    return await cache.get(query_key(name, params), TEMPLATES_NAMESPACE)


async def cache_templates(name: str, params: Dict[str, Any], data: Any) -> bool:
    cache = get_cache()
    if cache is None:
        return False
    return await cache.set(query_key(name, params), data, namespace=TEMPLATES_NAMESPACE)


def mark_stale(db: AsyncSession, namespace: str = TEMPLATES_NAMESPACE) -> None:
    """Queue ``namespace`` to be cleared once ``db`` commits."""
    db.info.setdefault(STALE_NAMESPACES_KEY, set()).add(namespace)


def discard_stale(db: AsyncSession) -> None:
    """Forget queued invalidations; used when the transaction rolls back."""
    db.info.pop(STALE_NAMESPACES_KEY, None)


async def clear_stale(db: AsyncSession) -> int:
    """
    Clear the namespaces queued on ``db``. Call only after a successful
    commit, so concurrent readers cannot re-cache pre-commit rows.

    Returns:
        int: Number of keys deleted
    """
    namespaces = db.info.pop(STALE_NAMESPACES_KEY, set())
    cache = get_cache()
    if cache is None or not namespaces:
        return 0
    deleted = 0
    for namespace in sorted(namespaces):
        deleted += await cache.clear_namespace(namespace)
    logger.debug(f"Cleared cache namespaces {sorted(namespaces)}: {deleted} keys")
    return deleted


async def health_check() -> Optional[bool]:
    """
    Check Redis cache health.

    Returns:
        Optional[bool]: None when caching is disabled, else ping result
    """
    if redis_client is None:
        return None
    try:
        await redis_client.ping()
        return True
    except Exception as e:
        logger.error(f"Cache health check failed: {e}")
        return False
