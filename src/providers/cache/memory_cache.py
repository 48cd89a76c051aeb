"""In-memory cache provider using cachetools.TTLCache.

Backs the Retrieval Orchestrator's short-lived result cache.  Not shared
across processes; a Redis adapter implementing ICacheProvider can replace
it without touching the orchestrator.
"""

from __future__ import annotations

from typing import Any

import structlog
from cachetools import TTLCache

from src.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


class MemoryCacheProvider(ICacheProvider):
    """In-memory TTL cache backed by ``cachetools.TTLCache``.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the least-recently-used entry
        is evicted.
    ttl:
        Time-to-live in seconds applied to every entry.
    timer:
        Clock used by the TTL bookkeeping; tests pass a fake clock.
    """

    def __init__(self, max_size: int = 1024, ttl: int = 300, timer: Any = None) -> None:
        self._default_ttl = ttl
        if timer is None:
            self._cache: TTLCache[str, Any] = TTLCache(maxsize=max_size, ttl=ttl)
        else:
            self._cache = TTLCache(maxsize=max_size, ttl=ttl, timer=timer)

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        value = self._cache.get(key)
        logger.debug("cache_hit" if value is not None else "cache_miss", key=key)
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store *value* under *key*.

        ``TTLCache`` applies one TTL to all entries, so a per-item *ttl*
        different from the constructor value is ignored and logged.
        """
        if ttl is not None and ttl != self._default_ttl:
            logger.debug("cache_ttl_override_ignored", key=key, requested=ttl, applied=self._default_ttl)
        self._cache[key] = value
        logger.debug("cache_set", key=key)

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)
        logger.debug("cache_delete", key=key)

    async def exists(self, key: str) -> bool:
        return key in self._cache

    async def clear(self) -> None:
        self._cache.clear()
        logger.debug("cache_cleared")
