"""Cache adapters implementing CachePort for process reports.

Cached values are JSON documents (summary payloads); a cache failure is
never fatal, the caller simply recomputes.
"""

from __future__ import annotations

import json
import logging
import time

import redis

from domain.ports import CachePort

logger = logging.getLogger(__name__)


class RedisCacheAdapter(CachePort):
    """CachePort backed by Redis, values stored as JSON under a key prefix.

    With ``redis_client=None`` every call is a no-op and ``get`` always misses.
    Redis errors are logged and treated the same way.
    """

    PREFIX = "quotations:"
    SCAN_BATCH = 500

    def __init__(self, redis_client=None, prefix: str | None = None):
        self._redis = redis_client
        self._prefix = self.PREFIX if prefix is None else prefix

    def _key(self, key: str) -> str:
        return self._prefix + key

    # ── CachePort interface ──────────────────────────────────────────────

    def get(self, key: str) -> object | None:
        if self._redis is None:
            return None
        try:
            raw = self._redis.get(self._key(key))
        except redis.RedisError as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: object, ttl: int = 3600) -> None:
        if self._redis is None:
            return
        payload = json.dumps(value, default=str)
        try:
            self._redis.setex(self._key(key), ttl, payload)
        except redis.RedisError as e:
            logger.warning("Cache write failed for %s: %s", key, e)

    def invalidate(self, prefix: str) -> None:
        if self._redis is None:
            return
        try:
            keys = list(self._redis.scan_iter(match=f"{self._key(prefix)}*", count=self.SCAN_BATCH))
            if keys:
                self._redis.delete(*keys)
        except redis.RedisError as e:
            logger.warning("Cache invalidation failed for %s: %s", prefix, e)
            return
        logger.debug("Invalidated %d cached entries under %s", len(keys), prefix)


class InMemoryCacheAdapter(CachePort):
    """Dict-backed CachePort for tests and single-process runs.

    Values are stored as JSON like in Redis, so callers always get a fresh
    copy. Entries expire after their TTL as measured by *clock* (seconds,
    ``time.monotonic`` by default).
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    def get(self, key: str) -> object | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return json.loads(value)

    def set(self, key: str, value: object, ttl: int = 3600) -> None:
        self._entries[key] = (json.dumps(value, default=str), self._clock() + ttl)

    def invalidate(self, prefix: str) -> None:
        for key in [k for k in self._entries if k.startswith(prefix)]:
            del self._entries[key]
