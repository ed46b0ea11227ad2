"""Redis-backed cache for deployments running more than one worker."""

from __future__ import annotations

import asyncio
import pickle
from collections.abc import Awaitable
from typing import Any, TypeVar

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from animarr.domain.entities import InternalError

log = structlog.get_logger(__name__)

T = TypeVar("T")


class RedisAdapter:
    """CachePort on ``redis.asyncio``.

    Values are pickled so JSON strings and catalog dicts round-trip the
    same way they do through diskcache. ``ttl=0`` uses plain ``SET``;
    positive TTLs use ``SETEX``. Transport errors become
    ``InternalError``; an undecodable value reads as a miss.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        ttl_seconds: int = 3600,
        max_concurrent: int = 50,
    ) -> None:
        self.url = url
        self.default_ttl = ttl_seconds
        self._client: Redis | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def __aenter__(self) -> RedisAdapter:
        if self._client is not None:
            return self
        client = Redis.from_url(self.url, decode_responses=False)
        try:
            await client.ping()
        except RedisError as exc:
            await client.aclose()
            log.error("redis_unreachable", url=self.url, error=str(exc))
            raise InternalError(f"redis unavailable: {exc}") from exc
        self._client = client
        log.info("redis_connected", url=self.url, default_ttl=self.default_ttl)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        log.info("redis_closed", url=self.url)

    def _require(self) -> Redis:
        if self._client is None:
            raise InternalError("redis cache used before 'async with'")
        return self._client

    async def _call(self, op: str, key: str, pending: Awaitable[T]) -> T:
        async with self._semaphore:
            try:
                return await pending
            except RedisError as exc:
                log.error("redis_op_failed", op=op, key=key, error=str(exc))
                raise InternalError(f"redis {op} failed: {exc}") from exc

    async def get(self, key: str) -> Any | None:
        client = self._require()
        raw = await self._call("get", key, client.get(key))
        if raw is None:
            log.debug("cache_get", key=key, hit=False)
            return None
        try:
            value = pickle.loads(raw)
        except (pickle.PickleError, EOFError, AttributeError) as exc:
            log.warning("redis_value_undecodable", key=key, error=str(exc))
            return None
        log.debug("cache_get", key=key, hit=True)
        return value

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        client = self._require()
        expire = self.default_ttl if ttl is None else ttl
        packed = pickle.dumps(value)
        if expire > 0:
            await self._call("set", key, client.setex(key, expire, packed))
        else:
            await self._call("set", key, client.set(key, packed))
        log.debug("cache_set", key=key, ttl=expire or None)

    async def delete(self, key: str) -> bool:
        if self._client is None:
            return False
        removed = await self._call("delete", key, self._client.delete(key))
        log.debug("cache_delete", key=key, deleted=removed > 0)
        return removed > 0

    async def exists(self, key: str) -> bool:
        if self._client is None:
            return False
        return await self._call("exists", key, self._client.exists(key)) > 0

    async def clear(self) -> None:
        if self._client is None:
            return
        await self._call("clear", "*", self._client.flushdb())
        log.warning("cache_cleared", url=self.url)
