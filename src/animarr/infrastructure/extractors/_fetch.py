"""Shared page fetch for extractors."""

from __future__ import annotations

import httpx

from animarr.domain.entities import UpstreamFetchError

EMBED_TIMEOUT = 30.0


async def fetch_text(
    http: httpx.AsyncClient,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    timeout: float = EMBED_TIMEOUT,
) -> str:
    """GET ``url`` and return the body text.

    Raises:
        UpstreamFetchError: non-2xx response.
        httpx.HTTPError: transport failure or timeout.
    """
    resp = await http.get(url, headers=headers, follow_redirects=True, timeout=timeout)
    if resp.status_code >= 400:
        raise UpstreamFetchError(
            f"{url} returned {resp.status_code}", status_code=resp.status_code
        )
    return resp.text
