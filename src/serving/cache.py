"""
Redis Cache Module

Optional read-through cache for expensive read endpoints (the admin
statistics report). When Redis is disabled or was not reachable at startup
the cache managers report a miss and skip writes, so requests fall through
to the database. Errors raised by Redis later on are logged and
treated the same way.
"""

import json
from typing import Any, Awaitable, Callable, Optional, Union
from datetime import timedelta

import structlog
from redis.asyncio import Redis, ConnectionPool
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import get_settings

logger = structlog.get_logger(__name__)

# Global Redis connection
_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


async def init_redis() -> Optional[Redis]:
    """Initialize Redis connection pool"""
    global _redis_pool, _redis_client

    if _redis_client is not None:
        return _redis_client

    settings = get_settings()
    if not settings.redis.enabled:
        logger.info("Redis disabled, caching off")
        return None

    _redis_pool = ConnectionPool.from_url(
        settings.redis.get_url(),
        max_connections=settings.redis.max_connections,
        socket_timeout=settings.redis.socket_timeout,
        decode_responses=settings.redis.decode_responses,
    )
    client = Redis(connection_pool=_redis_pool)

    try:
        await client.ping()
    except Exception as e:
        logger.error("Redis connection failed", error=str(e))
        await _redis_pool.disconnect()
        _redis_pool = None
        raise

    _redis_client = client
    logger.info("Redis connection established")
    return _redis_client


async def close_redis() -> None:
    """Close Redis connection pool"""
    global _redis_pool, _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool:
        await _redis_pool.disconnect()
        _redis_pool = None

    logger.info("Redis connection closed")


def get_redis() -> Redis:
    """Get Redis client instance"""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


def redis_available() -> bool:
    return _redis_client is not None


async def cache_get(key: str) -> Optional[Any]:
    """
    Get value from cache.

    Returns:
        Cached value or None if not found
    """
    value = await get_redis().get(key)
    if value is None:
        return None

    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


async def cache_set(
    key: str,
    value: Any,
    ttl: Optional[Union[int, timedelta]] = None,
) -> bool:
    """
    Set value in cache.

    Args:
        key: Cache key
        value: Value to cache (will be JSON serialized)
        ttl: Time-to-live in seconds or timedelta

    Returns:
        True if successful
    """
    try:
        serialized = json.dumps(value, default=str)
    except (TypeError, ValueError) as e:
        logger.warning("Failed to serialize value for cache", key=key, error=str(e))
        return False

    client = get_redis()
    if ttl:
        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())
        await client.setex(key, ttl, serialized)
    else:
        await client.set(key, serialized)

    return True


async def cache_delete_pattern(pattern: str) -> int:
    """Delete all keys matching pattern"""
    client = get_redis()
    keys = [key async for key in client.scan_iter(match=pattern)]
    if not keys:
        return 0
    return await client.delete(*keys)


class CacheManager:
    """
    Cache manager with namespace support.

    Example:
        cache = CacheManager("stats")
        report = await cache.get_or_set("admin", build_report, ttl=60)
    """

    def __init__(self, namespace: str, default_ttl: int = 300):
        self.namespace = namespace
        self.default_ttl = default_ttl

    def _key(self, key: str) -> str:
        """Generate namespaced key"""
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        if not redis_available():
            return None
        try:
            return await cache_get(self._key(key))
        except RedisError as e:
            logger.warning("Cache read failed", namespace=self.namespace, key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not redis_available():
            return False
        try:
            return await cache_set(self._key(key), value, ttl or self.default_ttl)
        except RedisError as e:
            logger.warning("Cache write failed", namespace=self.namespace, key=key, error=str(e))
            return False

    async def invalidate_all(self) -> int:
        """Invalidate all keys in namespace"""
        if not redis_available():
            return 0
        try:
            return await cache_delete_pattern(f"{self.namespace}:*")
        except RedisError as e:
            logger.warning("Cache invalidation failed", namespace=self.namespace, error=str(e))
            return 0

    async def invalidate_after_commit(self, db: AsyncSession) -> int:
        """Commit the caller's transaction, then invalidate the namespace."""
        await db.commit()
        return await self.invalidate_all()

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Get from cache or compute and cache.

        Args:
            key: Cache key
            factory: Async function computing a JSON-serializable value
            ttl: Time-to-live

        Returns:
            Cached or computed value
        """
        value = await self.get(key)
        if value is not None:
            logger.debug("Cache hit", namespace=self.namespace, key=key)
            return value

        value = await factory()
        await self.set(key, value, ttl)
        return value


stats_cache = CacheManager("stats", default_ttl=get_settings().statistics.cache_ttl_seconds)
