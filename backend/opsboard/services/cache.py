"""
Redis cache for dashboard view-models.

Dashboards are rebuilt from full table snapshots, so the finished
view-models are kept in Redis for a few seconds. Every write endpoint
drops them. Without Redis every request rebuilds.
"""

import json
import logging
import time
from typing import Any, Callable, Dict, Optional, TypeVar

import redis
from redis.exceptions import LockError, RedisError

from ..core.config import settings


logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheService:
    """
    View-model cache backed by Redis.

    Every Redis error is logged and degrades to a cache miss; a broken
    cache never fails a request.
    """

    NAMESPACE = "opsboard:dashboard"
    LOCK_NAMESPACE = "opsboard:lock"
    LOCK_WAIT_SECONDS = 0.5

    def __init__(self, client: Optional[redis.Redis] = None):
        self._redis: Optional[redis.Redis] = client
        self._connected = client is not None
        if client is None and settings.cache_enabled:
            self._connect()

    def _connect(self) -> None:
        try:
            client = redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            client.ping()
        except RedisError as e:
            logger.warning(f"Redis unavailable, dashboards will not be cached: {e}")
            self._redis, self._connected = None, False
            return
        self._redis, self._connected = client, True
        logger.info(f"Dashboard cache connected to {settings.redis_url}")

    @property
    def enabled(self) -> bool:
        return settings.cache_enabled or self._redis is not None

    @property
    def is_connected(self) -> bool:
        return self._connected and self._redis is not None

    def _available(self) -> bool:
        """True when Redis answers; reconnects once after a dropped connection."""
        if not self.enabled:
            return False
        if not self.is_connected and settings.cache_enabled:
            self._connect()
        return self.is_connected

    def key(self, name: str) -> str:
        return f"{self.NAMESPACE}:{name}"

    # ==========================================================================
    # Reads & Writes
    # ==========================================================================

    def get(self, key: str) -> Optional[Any]:
        """
        Read a JSON value.

        Returns:
            The decoded value, or None on a miss or any cache error
        """
        if not self._available():
            return None
        try:
            raw = self._redis.get(key)
        except RedisError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            self._connected = False
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding undecodable cache entry {key}")
            return None

    def set(self, key: str, value: Any, ttl: int) -> bool:
        """Store a JSON-serializable value for ttl seconds."""
        if not self._available():
            return False
        try:
            self._redis.setex(key, ttl, json.dumps(value))
        except (RedisError, TypeError) as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False
        return True

    def get_or_compute(self, key: str, compute: Callable[[], T], ttl: int) -> T:
        """
        Return the cached value or build it once under a Redis lock.

        Concurrent misses on the same key wait briefly for the lock holder
        instead of all rebuilding the dashboard.

        Args:
            key: Full cache key
            compute: Builds a JSON-serializable value
            ttl: Seconds to keep the value

        Returns:
            Cached or freshly computed value
        """
        cached = self.get(key)
        if cached is not None or not self.is_connected:
            return cached if cached is not None else compute()

        try:
            lock = self._redis.lock(f"{self.LOCK_NAMESPACE}:{key}", timeout=10, blocking_timeout=self.LOCK_WAIT_SECONDS)
            acquired = lock.acquire(blocking=True)
        except RedisError as e:
            logger.warning(f"Cache lock unavailable for {key}: {e}")
            return compute()

        if not acquired:
            time.sleep(self.LOCK_WAIT_SECONDS)
            cached = self.get(key)
            return cached if cached is not None else compute()

        try:
            cached = self.get(key)
            if cached is not None:
                return cached
            value = compute()
            self.set(key, value, ttl)
            return value
        finally:
            try:
                lock.release()
            except (LockError, RedisError) as e:
                logger.warning(f"Cache lock release failed for {key}: {e}")

    def invalidate_dashboards(self) -> int:
        """Drop every cached view-model. Returns the number of keys removed."""
        if not self._available():
            return 0
        try:
            keys = list(self._redis.scan_iter(match=f"{self.NAMESPACE}:*"))
            deleted = self._redis.delete(*keys) if keys else 0
        except RedisError as e:
            logger.warning(f"Dashboard cache invalidation failed: {e}")
            return 0
        logger.debug(f"Dashboard cache invalidated ({deleted} keys)")
        return deleted

    # ==========================================================================
    # Health
    # ==========================================================================

    def health_check(self) -> Dict[str, Any]:
        """Status for the health endpoints: disabled, healthy or unhealthy."""
        if not self.enabled:
            return {"status": "disabled", "connected": False}
        if not self._available():
            return {"status": "unhealthy", "connected": False, "error": "Not connected to Redis"}
        started = time.perf_counter()
        try:
            self._redis.ping()
        except RedisError as e:
            self._connected = False
            return {"status": "unhealthy", "connected": False, "error": str(e)}
        return {
            "status": "healthy",
            "connected": True,
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        }


_cache_service: Optional[CacheService] = None


def get_cache() -> CacheService:
    """Process-wide cache, created on first use."""
    global _cache_service
    if _cache_service is None:
        _cache_service = CacheService()
    return _cache_service
