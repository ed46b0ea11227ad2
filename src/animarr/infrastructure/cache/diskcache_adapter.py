"""Diskcache adapter - SQLite-backed store without a daemon process."""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path
from typing import Any

import structlog
from diskcache import Cache as DiskCache

from animarr.domain.entities import InternalError

log = structlog.get_logger(__name__)


class DiskcacheAdapter:
    """Async wrapper around ``diskcache.Cache`` (sync-only library).

    Disk I/O runs in ``asyncio.to_thread``; a semaphore bounds parallel
    SQLite access. ``ttl=0`` stores without expiry, which the slug-mapping
    repository relies on.

    Args:
        directory: SQLite directory (default: ``./cache``).
        ttl_seconds: Default TTL for ``set()`` without explicit value.
        max_concurrent: Max parallel disk ops.
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

    async def __aenter__(self) -> DiskcacheAdapter:
        if self._cache is None:
            try:
                self._cache = await asyncio.to_thread(DiskCache, str(self.directory))
            except (OSError, sqlite3.Error) as exc:
                log.error(
                    "diskcache_open_failed", path=str(self.directory), error=str(exc)
                )
                raise InternalError(f"cache unavailable: {exc}") from exc
            log.info("diskcache_opened", path=str(self.directory))
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._cache is not None:
            await asyncio.to_thread(self._cache.close)
            self._cache = None
            log.info("diskcache_closed", directory=str(self.directory))

    def _require(self) -> DiskCache:
        if self._cache is None:
            raise InternalError(
                "Cache not initialized. Use 'async with cache:' "
                "or await cache.__aenter__()"
            )
        return self._cache

    def _expire(self, ttl: int | None) -> int | None:
        effective = ttl if ttl is not None else self.default_ttl
        return effective if effective > 0 else None

    async def _run(self, op: str, key: str, func, *args, **kwargs) -> Any:
        async with self._semaphore:
            try:
                return await asyncio.to_thread(func, *args, **kwargs)
            except (OSError, sqlite3.Error) as exc:
                log.error("diskcache_op_failed", op=op, key=key, error=str(exc))
                raise InternalError(f"cache {op} failed: {exc}") from exc

    async def get(self, key: str) -> Any | None:
        cache = self._require()
        value = await self._run("get", key, cache.get, key, default=None)
        log.debug("cache_get", key=key, hit=value is not None)
        return value

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        cache = self._require()
        expire = self._expire(ttl)
        await self._run("set", key, cache.set, key, value, expire=expire)
        log.debug("cache_set", key=key, ttl=expire)

    async def delete(self, key: str) -> bool:
        if self._cache is None:
            return False
        deleted = bool(await self._run("delete", key, self._cache.delete, key))
        log.debug("cache_delete", key=key, deleted=deleted)
        return deleted

    async def exists(self, key: str) -> bool:
        if self._cache is None:
            return False
        cache = self._cache
        # Cache.__contains__ honours expiry.
        return bool(await self._run("exists", key, lambda: key in cache))

    async def clear(self) -> None:
        if self._cache is None:
            return
        await self._run("clear", "*", self._cache.clear)
        log.warning("cache_cleared", directory=str(self.directory))
