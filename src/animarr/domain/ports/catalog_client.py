"""Port for the external anime catalog service."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from animarr.domain.entities import CatalogRecord


@runtime_checkable
class CatalogClientPort(Protocol):
    """Async interface for catalog lookups keyed by catalog id."""

    async def by_id(self, catalog_id: int) -> CatalogRecord | None:
        """Fetch one catalog record.

        Returns None when the catalog does not know the id.
        Raises UpstreamFetchError on network failure.
        """
        ...

    async def search(self, query: str) -> list[CatalogRecord]:
        """Free-text search, best matches first."""
        ...
