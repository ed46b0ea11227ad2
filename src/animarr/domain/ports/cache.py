"""Key-value store contract shared by every cache-backed repository."""

from __future__ import annotations

from typing import Any, Protocol


class CachePort(Protocol):
    """Async TTL store behind slug mappings, streaming sets and codes.

    Keys are namespaced by the repositories (``slugmap:``, ``streaming:``,
    ``video:code:``, ``resolved:``, ``ledger:``, ``archive:``,
    ``catalog:``). Values are whatever the repository hands over,
    usually a JSON string.

    ``ttl=0`` keeps a value until it is deleted; ``ttl=None`` falls back
    to the backend's configured default. Expired values read as ``None``.
    Adapters are opened with ``async with`` before first use.
    """

    async def get(self, key: str) -> Any: ...

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None: ...

    async def delete(self, key: str) -> bool:
        """Return whether a live value was removed."""
        ...

    async def exists(self, key: str) -> bool: ...

    async def clear(self) -> None: ...

    async def aclose(self) -> None: ...

    async def __aenter__(self) -> CachePort: ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...
