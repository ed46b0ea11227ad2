"""Jikan (MyAnimeList) catalog client: async httpx with caching."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from animarr.domain.entities import CatalogRecord, UpstreamFetchError
from animarr.domain.ports import CachePort

log = structlog.get_logger(__name__)

_BASE_URL = "https://api.jikan.moe/v4"

# Cache TTLs (seconds)
_TTL_RECORD = 86_400
_TTL_SEARCH = 3_600


def record_from_jikan(data: dict[str, Any]) -> CatalogRecord:
    """Map one Jikan ``anime`` object onto a CatalogRecord."""
    year = data.get("year")
    if year is None:
        year = (((data.get("aired") or {}).get("prop") or {}).get("from") or {}).get(
            "year"
        )
    images = (data.get("images") or {}).get("jpg") or {}
    return CatalogRecord(
        id=int(data["mal_id"]),
        title=data.get("title") or "",
        title_english=data.get("title_english"),
        title_japanese=data.get("title_japanese"),
        synonyms=tuple(data.get("title_synonyms") or ()),
        type=data.get("type") or "",
        year=int(year) if year else None,
        season=data.get("season"),
        studios=tuple(s["name"] for s in data.get("studios") or () if s.get("name")),
        source=data.get("source"),
        status=data.get("status") or "",
        score=data.get("score"),
        synopsis=data.get("synopsis"),
        genres=tuple(g["name"] for g in data.get("genres") or () if g.get("name")),
        cover_url=images.get("large_image_url") or images.get("image_url") or "",
        aired_from=(data.get("aired") or {}).get("from"),
    )


class JikanCatalogClient:
    """Implements ``CatalogClientPort`` against the Jikan v4 REST API.

    Raw API objects are cached under ``catalog:id:{id}``; a 404 is a
    definitive "unknown id" (None), anything else non-2xx raises
    ``UpstreamFetchError``.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        cache: CachePort,
        base_url: str = _BASE_URL,
        ttl_seconds: int = _TTL_RECORD,
        search_limit: int = 25,
    ) -> None:
        self._http = http_client
        self._cache = cache
        self._base_url = base_url.rstrip("/")
        self._ttl = ttl_seconds
        self._search_limit = search_limit

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get(self, path: str, **params: Any) -> dict[str, Any] | None:
        url = f"{self._base_url}{path}"
        try:
            resp = await self._http.get(url, params=params or None)
        except httpx.HTTPError as exc:
            log.warning("jikan_network_error", path=path, exc_info=True)
            raise UpstreamFetchError(f"catalog request failed: {exc}") from exc

        if resp.status_code == 404:
            log.debug("jikan_not_found", path=path)
            return None
        if resp.status_code >= 400:
            log.warning("jikan_http_error", path=path, status=resp.status_code)
            raise UpstreamFetchError(
                f"catalog returned {resp.status_code}", status_code=resp.status_code
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamFetchError(f"catalog answered non-JSON: {exc}") from exc

    # ------------------------------------------------------------------
    # Public API (CatalogClientPort)
    # ------------------------------------------------------------------

    async def by_id(self, catalog_id: int) -> CatalogRecord | None:
        cache_key = f"catalog:id:{catalog_id}"
        cached = await self._cache.get(cache_key)
        if cached is None:
            body = await self._get(f"/anime/{catalog_id}")
            if body is None or not isinstance(body.get("data"), dict):
                return None
            cached = body["data"]
            await self._cache.set(cache_key, cached, ttl=self._ttl)

        try:
            return record_from_jikan(cached)
        except (KeyError, TypeError, ValueError):
            log.warning("jikan_record_malformed", catalog_id=catalog_id, exc_info=True)
            return None

    async def search(self, query: str) -> list[CatalogRecord]:
        query = query.strip()
        if not query:
            return []
        cache_key = f"catalog:search:{query.lower()}"
        items = await self._cache.get(cache_key)
        if items is None:
            body = await self._get(
                "/anime", q=query, limit=self._search_limit, sfw="false"
            )
            items = (body or {}).get("data") or []
            await self._cache.set(cache_key, items, ttl=_TTL_SEARCH)

        records: list[CatalogRecord] = []
        for item in items:
            try:
                records.append(record_from_jikan(item))
            except (KeyError, TypeError, ValueError):
                log.debug("jikan_search_item_skipped", query=query)
        return records
