"""Builds the cache adapter selected by ``cache.backend``."""

from __future__ import annotations

from typing import Literal

import structlog

from animarr.domain.ports import CachePort
from animarr.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from animarr.infrastructure.cache.redis_adapter import RedisAdapter

log = structlog.get_logger(__name__)

CacheBackend = Literal["diskcache", "redis"]

# Redis round-trips are network-bound; the disk limit is too tight there.
_REDIS_CONCURRENCY = 50


def create_cache(
    backend: CacheBackend = "diskcache",
    *,
    directory: str = "./.cache/animarr",
    redis_url: str = "redis://localhost:6379/0",
    ttl_seconds: int = 3600,
    max_concurrent: int = 10,
) -> CachePort:
    """Return an unopened adapter; callers enter it with ``async with``."""
    adapter: CachePort
    if backend == "diskcache":
        adapter = DiskcacheAdapter(
            directory=directory,
            ttl_seconds=ttl_seconds,
            max_concurrent=max_concurrent,
        )
        location = directory
    elif backend == "redis":
        adapter = RedisAdapter(
            url=redis_url,
            ttl_seconds=ttl_seconds,
            max_concurrent=_REDIS_CONCURRENCY,
        )
        location = redis_url
    else:
        raise ValueError(
            f"Unknown cache backend: {backend!r} (expected diskcache or redis)"
        )

    log.info(
        "cache_backend_selected",
        backend=backend,
        location=location,
        default_ttl=ttl_seconds,
    )
    return adapter
