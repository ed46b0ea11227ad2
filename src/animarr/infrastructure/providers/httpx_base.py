"""Shared base class for httpx-based provider plugins.

Covers client lifecycle, the deterministic episode URL, safe fetch/parse
and cleanup. Subclasses implement the three scraping calls with their own
selectors.
"""

from __future__ import annotations

import json

import httpx
import structlog
from bs4 import BeautifulSoup

from animarr.domain.entities import ListingEntry, RawSource, ScrapedCandidate
from animarr.infrastructure.common.html_selectors import parse_html

from .constants import DEFAULT_CLIENT_TIMEOUT, DEFAULT_USER_AGENT


class HttpxScraperBase:
    """Shared base for httpx-based scraper adapters.

    Subclasses **must** set:
    - ``name``
    - ``_domains`` (list with at least one domain string)
    - ``episode_url_template`` with ``{base_url}``, ``{slug}`` and
      ``{episode}`` placeholders

    Subclasses **must** override:
    - ``listing()``, ``detail()``, ``episode_sources()``
    """

    name: str = ""
    episode_url_template: str = "{base_url}/{slug}-episode-{episode}/"

    _domains: list[str] = []  # noqa: RUF012  # subclass overrides
    _timeout: float = DEFAULT_CLIENT_TIMEOUT
    _user_agent: str = DEFAULT_USER_AGENT

    def __init__(self) -> None:
        self._client: httpx.AsyncClient | None = None
        self.base_url: str = f"https://{self._domains[0]}" if self._domains else ""
        self._log = structlog.get_logger(self.name or __name__)

    # ------------------------------------------------------------------
    # Client lifecycle
    # ------------------------------------------------------------------

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers={"User-Agent": self._user_agent},
            )
        return self._client

    async def cleanup(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------

    def episode_url(self, slug: str, episode: int) -> str:
        return self.episode_url_template.format(
            base_url=self.base_url, slug=slug, episode=episode
        )

    async def _safe_fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        context: str = "",
        **kwargs: object,
    ) -> httpx.Response | None:
        """Fetch *url* with structured error logging; None on failure."""
        client = await self._ensure_client()
        try:
            resp = await client.request(method, url, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.TimeoutException:
            self._log.warning(f"{self.name}_timeout", url=url, context=context)
        except httpx.HTTPStatusError as exc:
            self._log.warning(
                f"{self.name}_http_error",
                url=url,
                status=exc.response.status_code,
                context=context,
            )
        except httpx.HTTPError as exc:
            self._log.warning(
                f"{self.name}_fetch_error", url=url, error=str(exc), context=context
            )
        return None

    async def _fetch_soup(self, url: str, *, context: str = "") -> BeautifulSoup | None:
        resp = await self._safe_fetch(url, context=context)
        return parse_html(resp.text) if resp is not None else None

    def _safe_parse_json(
        self, response: httpx.Response, context: str = ""
    ) -> dict | list | None:
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError):
            self._log.warning(
                f"{self.name}_invalid_json", url=str(response.url), context=context
            )
            return None

    # ------------------------------------------------------------------
    # Scraping calls (subclass must implement)
    # ------------------------------------------------------------------

    async def listing(self) -> list[ListingEntry]:
        raise NotImplementedError(f"{type(self).__name__}.listing() not implemented")

    async def detail(self, slug: str) -> ScrapedCandidate | None:
        raise NotImplementedError(f"{type(self).__name__}.detail() not implemented")

    async def episode_sources(self, slug: str, episode: int) -> list[RawSource]:
        raise NotImplementedError(
            f"{type(self).__name__}.episode_sources() not implemented"
        )

    async def latest(self) -> list[ListingEntry]:
        """Recently updated titles from the provider home page.

        Optional; providers without such a page contribute nothing to
        the home feed.
        """
        return []
