"""
Cache-aside layer in front of the recommendation pipeline.

A ``CacheBackend`` is anything that speaks GET / SET-with-TTL /
DELETE-BY-PREFIX over bytes. ``CacheFront`` wraps a backend and turns every
backend failure into a miss (reads) or a no-op (writes), so an unreachable
cache only ever degrades to direct computation.
"""
from __future__ import annotations

import logging
import re
import time
from typing import Callable, Protocol

import redis
from pydantic import TypeAdapter, ValidationError

from .keys import DEFAULT_PREFIX
from .models import CacheEntry, RecommendationItem

logger = logging.getLogger(__name__)

DEFAULT_TTL = 1800  # 30 minutes

_items_adapter = TypeAdapter(list[RecommendationItem])


class CacheBackend(Protocol):
    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes, ttl_seconds: int) -> None: ...

    def delete_prefix(self, prefix: str) -> int: ...


class InMemoryCache:
    """Process-local backend with per-entry expiry."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._data: dict[str, tuple[bytes, float]] = {}
        self._clock = clock

    def get(self, key: str) -> bytes | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        self._data[key] = (value, self._clock() + ttl_seconds)

    def delete_prefix(self, prefix: str) -> int:
        doomed = [k for k in self._data if k.startswith(prefix)]
        for k in doomed:
            del self._data[k]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._data)


_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


class RedisCache:
    """Backend over a redis-py client. Errors propagate to ``CacheFront``."""

    def __init__(self, client: redis.Redis, scan_batch: int = 500) -> None:
        self._client = client
        self._scan_batch = scan_batch

    @classmethod
    def from_url(cls, url: str, timeout: float = 0.5) -> RedisCache:
        client = redis.Redis.from_url(
            url,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client)

    def get(self, key: str) -> bytes | None:
        return self._client.get(key)

    def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        self._client.set(key, value, ex=ttl_seconds)

    def delete_prefix(self, prefix: str) -> int:
        pattern = _GLOB_SPECIAL.sub(r"\\\1", prefix) + "*"
        deleted = 0
        batch: list[bytes] = []
        for key in self._client.scan_iter(match=pattern, count=self._scan_batch):
            batch.append(key)
            if len(batch) >= self._scan_batch:
                deleted += self._client.delete(*batch)
                batch = []
        if batch:
            deleted += self._client.delete(*batch)
        return deleted


class CacheFront:
    def __init__(
        self,
        backend: CacheBackend,
        ttl_seconds: int = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.backend = backend
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._errors = 0

    def get(self, key: str) -> list[RecommendationItem] | None:
        """Return the cached list, or ``None`` on a miss of any kind."""
        try:
            raw = self.backend.get(key)
        except Exception:
            self._errors += 1
            self._misses += 1
            logger.warning("Cache read failed for %s, treating as miss", key, exc_info=True)
            return None

        if raw is None:
            self._misses += 1
            logger.debug("Cache miss for %s", key)
            return None

        try:
            items = _items_adapter.validate_json(raw)
        except ValidationError:
            self._errors += 1
            self._misses += 1
            logger.warning("Discarding undecodable cache entry %s", key, exc_info=True)
            return None

        self._hits += 1
        logger.debug("Cache hit for %s", key)
        return items

    def entry(self, key: str, items: list[RecommendationItem], ttl_seconds: int | None = None) -> CacheEntry:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        return CacheEntry(key=key, value=list(items), expires_at=self._clock() + ttl)

    def put(self, key: str, items: list[RecommendationItem], ttl_seconds: int | None = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        entry = self.entry(key, items, ttl)
        try:
            self.backend.set(entry.key, _items_adapter.dump_json(entry.value), ttl)
        except Exception:
            self._errors += 1
            logger.warning("Cache write failed for %s, skipping", key, exc_info=True)

    def invalidate(self, prefix: str = DEFAULT_PREFIX) -> int:
        """Best-effort delete of every key under *prefix*.

        On failure the affected entries simply live out their TTL.
        """
        try:
            deleted = self.backend.delete_prefix(prefix)
        except Exception:
            self._errors += 1
            logger.warning(
                "Cache invalidation of %r failed; entries expire within %ss",
                prefix,
                self.ttl_seconds,
                exc_info=True,
            )
            return 0
        logger.info("Invalidated %d cache entries under %r", deleted, prefix)
        return deleted

    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "errors": self._errors,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }

    def reset_stats(self) -> None:
        self._hits = 0
        self._misses = 0
        self._errors = 0


def build_backend(redis_url: str = "", timeout: float = 0.5) -> CacheBackend:
    if redis_url:
        return RedisCache.from_url(redis_url, timeout=timeout)
    return InMemoryCache()
