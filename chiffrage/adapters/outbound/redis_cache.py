"""Cache adapters behind ``CachePort`` for mapping-memory lookups.

Values are stored as JSON under a per-application key prefix. Without a
reachable Redis server the adapter turns into a no-op and every lookup
goes to the database.
"""

from __future__ import annotations

import json
import logging
import time

import redis

from domain.ports import CachePort

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "chiffrage:"


class RedisCacheAdapter(CachePort):
    """JSON values in Redis, keys namespaced with *prefix*.

    ``redis_client=None`` disables the cache: reads miss, writes are dropped.
    """

    def __init__(self, redis_client=None, prefix: str = DEFAULT_PREFIX):
        self._redis = redis_client
        self._prefix = prefix

    @classmethod
    def from_url(cls, redis_url: str | None, prefix: str = DEFAULT_PREFIX) -> RedisCacheAdapter:
        if not redis_url:
            return cls(None, prefix)
        try:
            client = redis.from_url(redis_url)
            client.ping()
        except redis.RedisError as exc:
            logger.warning("Redis unavailable at %s (%s), cache disabled", redis_url, exc)
            return cls(None, prefix)
        logger.info("Mapping cache on %s", redis_url)
        return cls(client, prefix)

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    def get(self, key: str) -> object | None:
        if not self.enabled:
            return None
        raw = self._redis.get(self._prefix + key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Unreadable cache entry %s dropped", key)
            self._redis.delete(self._prefix + key)
            return None

    def set(self, key: str, value: object, ttl: int = 3600) -> None:
        if self.enabled:
            self._redis.setex(self._prefix + key, ttl, json.dumps(value, default=str))

    def invalidate(self, prefix: str) -> None:
        if not self.enabled:
            return
        keys = list(self._redis.scan_iter(f"{self._prefix}{prefix}*"))
        if keys:
            self._redis.delete(*keys)


class InMemoryCacheAdapter(CachePort):
    """Process-local cache; entries expire after their ttl."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._store: dict[str, tuple[float, object]] = {}

    def get(self, key: str) -> object | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: object, ttl: int = 3600) -> None:
        self._store[key] = (self._clock() + ttl, value)

    def invalidate(self, prefix: str) -> None:
        for key in [k for k in self._store if k.startswith(prefix)]:
            del self._store[key]


def get_cache_adapter(redis_url: str | None = None, prefix: str = DEFAULT_PREFIX) -> CachePort:
    """Redis adapter for *redis_url*, disabled when it is unset or unreachable."""
    return RedisCacheAdapter.from_url(redis_url, prefix)
