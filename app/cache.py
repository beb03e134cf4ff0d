"""
Read-through caching for list endpoints that change rarely
(time slot templates, service catalog).

Entries live in process memory unless REDIS_URL is configured, in which
case they are shared through Redis. Either way the cache is a convenience:
capacity checks and availability never read from it.
"""
import enum
import json
import logging
import time
from threading import Lock
from typing import Any, Callable, Optional

import redis

from .config import READ_CACHE_TTL_SECONDS, REDIS_URL

logger = logging.getLogger(__name__)


class CacheNamespace(str, enum.Enum):
    TIME_SLOTS = "time_slots"
    SERVICES = "services"


class Cache:
    """Namespaced TTL cache with automatic JSON serialization"""

    def __init__(self, redis_url: Optional[str] = None, default_ttl: int = READ_CACHE_TTL_SECONDS):
        self.redis_url = redis_url
        self.default_ttl = default_ttl
        self.redis_client = None
        # {key: (expires_at, value)}
        self._memory: dict[str, tuple[float, Any]] = {}
        self._lock = Lock()

    def _get_client(self):
        """Lazy load Redis client"""
        if not self.redis_url:
            return None
        if self.redis_client is None:
            try:
                self.redis_client = redis.from_url(
                    self.redis_url,
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                )
            except Exception as e:
                logger.warning(f"Redis cache unavailable, using memory: {e}")
                self.redis_url = None
                return None
        return self.redis_client

    @staticmethod
    def _key(namespace: CacheNamespace, name: str) -> str:
        return f"{namespace.value}:{name}"

    def get(self, namespace: CacheNamespace, name: str) -> Optional[Any]:
        """Get value from cache"""
        key = self._key(namespace, name)
        client = self._get_client()
        if client is not None:
            try:
                value = client.get(key)
                if value:
                    logger.debug(f"Cache HIT: {key}")
                    return json.loads(value)
                logger.debug(f"Cache MISS: {key}")
                return None
            except Exception as e:
                logger.error(f"Cache get error for {key}: {e}")
                return None

        with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                logger.debug(f"Cache MISS: {key}")
                return None
            expires_at, value = entry
            if time.monotonic() > expires_at:
                del self._memory[key]
                logger.debug(f"Cache EXPIRED: {key}")
                return None
        logger.debug(f"Cache HIT: {key}")
        return value

    def set(self, namespace: CacheNamespace, name: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache with TTL (default READ_CACHE_TTL_SECONDS)"""
        key = self._key(namespace, name)
        ttl = ttl if ttl is not None else self.default_ttl
        client = self._get_client()
        if client is not None:
            try:
                client.setex(key, ttl, json.dumps(value))
                logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
                return True
            except Exception as e:
                logger.error(f"Cache set error for {key}: {e}")
                return False

        with self._lock:
            self._memory[key] = (time.monotonic() + ttl, value)
        logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
        return True

    def invalidate(self, namespace: CacheNamespace) -> int:
        """Drop every entry of a namespace; called by each write path"""
        prefix = f"{namespace.value}:"
        client = self._get_client()
        if client is not None:
            try:
                keys = list(client.scan_iter(match=f"{prefix}*"))
                deleted = client.delete(*keys) if keys else 0
                logger.debug(f"Cache INVALIDATE: {namespace.value} ({deleted} keys)")
                return deleted
            except Exception as e:
                logger.error(f"Cache invalidate error for {namespace.value}: {e}")
                return 0

        with self._lock:
            keys = [key for key in self._memory if key.startswith(prefix)]
            for key in keys:
                del self._memory[key]
        logger.debug(f"Cache INVALIDATE: {namespace.value} ({len(keys)} keys)")
        return len(keys)

    def clear(self) -> None:
        for namespace in CacheNamespace:
            self.invalidate(namespace)

    def get_or_load(self, namespace: CacheNamespace, name: str, loader: Callable[[], Any]) -> Any:
        """Return the cached value or call loader() and cache its JSON-ready result"""
        cached_value = self.get(namespace, name)
        if cached_value is not None:
            return cached_value

        value = loader()
        if value is not None:
            self.set(namespace, name, value)
        return value


# Global cache instance
cache = Cache(redis_url=REDIS_URL)
