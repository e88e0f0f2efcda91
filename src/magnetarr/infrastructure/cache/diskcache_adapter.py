"""CachePort on top of diskcache (search results survive restarts)."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

import structlog
from diskcache import Cache as DiskCache

log = structlog.get_logger(__name__)


class DiskcacheAdapter:
    """Async CachePort over a diskcache directory.

    diskcache is synchronous, so every call runs in a worker thread; the
    semaphore caps how many of those hit the SQLite file at once.  Open it
    with ``async with`` (or ``__aenter__``) before the first read.
    """

    def __init__(
        self,
        directory: str | Path = "./cache",
        ttl_seconds: int = 3600,
        max_concurrent: int = 10,
    ) -> None:
        self.directory = Path(directory)
        self.default_ttl = ttl_seconds
        self._cache: DiskCache | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

        log.info(
            "diskcache_adapter_init",
            directory=str(self.directory),
            default_ttl=ttl_seconds,
            max_concurrent=max_concurrent,
        )

    # --- lifecycle ---
    async def __aenter__(self) -> DiskcacheAdapter:
        if self._cache is None:
            self._cache = await asyncio.to_thread(DiskCache, str(self.directory))
            log.info("diskcache_opened", directory=str(self.directory))
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._cache is None:
            return
        await asyncio.to_thread(self._cache.close)
        self._cache = None
        log.info("diskcache_closed", directory=str(self.directory))

    def _opened(self) -> DiskCache:
        if self._cache is None:
            raise RuntimeError(
                f"Disk cache at {self.directory} not initialized; open it first"
            )
        return self._cache

    # --- CachePort ---
    async def get(self, key: str) -> Optional[Any]:
        cache = self._opened()
        async with self._semaphore:
            value = await asyncio.to_thread(cache.get, key, default=None)
        log.debug("cache_get", key=key, hit=value is not None)
        return value

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        cache = self._opened()
        expire = self.default_ttl if ttl is None else ttl
        async with self._semaphore:
            await asyncio.to_thread(cache.set, key, value, expire=expire)
        log.debug("cache_set", key=key, ttl=expire)

    async def delete(self, key: str) -> bool:
        """False when the key was absent or the cache is closed."""
        if self._cache is None:
            return False
        async with self._semaphore:
            deleted = await asyncio.to_thread(self._cache.delete, key)
        log.debug("cache_delete", key=key, deleted=deleted)
        return bool(deleted)

    async def clear(self) -> None:
        if self._cache is None:
            return
        async with self._semaphore:
            removed = await asyncio.to_thread(self._cache.clear)
        log.warning("cache_cleared", directory=str(self.directory), removed=removed)
