"""End-to-end pipeline: catalog id -> slug mapping -> sources -> playback.

Real DiskcacheAdapter, repositories, extractors and DeliveryProxy; a
plugin file on disk stands in for a provider site and respx serves
the catalog API, the embed page and the media host.
"""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import httpx
import pytest
import respx

from animarr.application.use_cases import (
    CatalogDetailUseCase,
    StreamingAggregationUseCase,
    VideoDeliveryUseCase,
)
from animarr.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from animarr.infrastructure.catalog.jikan_client import JikanCatalogClient
from animarr.infrastructure.delivery.policy import HostPolicy
from animarr.infrastructure.delivery.proxy import DeliveryProxy
from animarr.infrastructure.extractors import ExtractorRegistry, default_extractors
from animarr.infrastructure.identity.listing_memo import ListingMemo
from animarr.infrastructure.identity.resolver import IdentityResolutionEngine
from animarr.infrastructure.persistence.catalog_detail_cache import (
    CacheCatalogDetailRepository,
)
from animarr.infrastructure.persistence.delivery_code_cache import (
    CacheDeliveryCodeRepository,
)
from animarr.infrastructure.persistence.resolved_url_cache import (
    CacheResolvedUrlRepository,
)
from animarr.infrastructure.persistence.slug_mapping_cache import (
    CacheSlugMappingRepository,
)
from animarr.infrastructure.persistence.storage_ledger_cache import (
    CacheStorageLedgerRepository,
)
from animarr.infrastructure.persistence.streaming_cache import (
    CacheStreamingRepository,
)
from animarr.infrastructure.providers import ProviderRegistry

pytestmark = pytest.mark.integration

_JIKAN = "https://api.jikan.moe/v4/anime/52991"
_EMBED = "https://www.blogger.com/video.g?token=sousou-no-frieren-1"
_MEDIA = "https://rr1---sn-abc.googlevideo.com/videoplayback?id=frieren1"
_BASE = "https://animarr.example"

_JIKAN_BODY = {
    "data": {
        "mal_id": 52991,
        "title": "Sousou no Frieren",
        "title_english": "Frieren: Beyond Journey's End",
        "type": "TV",
        "year": 2023,
        "season": "fall",
        "studios": [{"name": "Madhouse"}],
        "source": "Manga",
        "status": "Finished Airing",
    }
}
_BLOGGER_PAGE = (
    '<html><script>var VIDEO_CONFIG = {"streams":[{"play_url":"'
    + _MEDIA
    + '","format_id":18}]}</script></html>'
)


class _Pipeline:
    def __init__(
        self, cache: DiskcacheAdapter, http: httpx.AsyncClient, plugin_dir: Path
    ) -> None:
        providers = ProviderRegistry(plugin_dir)
        self.mappings = CacheSlugMappingRepository(cache)
        codes = CacheDeliveryCodeRepository(cache)
        extractors = ExtractorRegistry(
            default_extractors(http), url_cache=CacheResolvedUrlRepository(cache)
        )
        self.catalog_uc = CatalogDetailUseCase(
            catalog=JikanCatalogClient(http_client=http, cache=cache),
            identity=IdentityResolutionEngine(
                providers=providers,
                mappings=self.mappings,
                listing_memo=ListingMemo(),
            ),
            providers=providers,
            detail_cache=CacheCatalogDetailRepository(cache),
        )
        self.streaming_uc = StreamingAggregationUseCase(
            mappings=self.mappings,
            providers=providers,
            extractors=extractors,
            streaming_cache=CacheStreamingRepository(cache),
            delivery_codes=codes,
            ledger=CacheStorageLedgerRepository(cache),
            config=SimpleNamespace(
                deny_list=[],
                public_base_url=_BASE,
                provider_timeout_seconds=5.0,
                extract_concurrency=4,
            ),
        )
        self.video_uc = VideoDeliveryUseCase(
            delivery_codes=codes,
            extractors=extractors,
            proxy=DeliveryProxy(http_client=http, policy=HostPolicy()),
        )


class TestStreamingPipeline:
    async def test_catalog_to_playback(
        self,
        diskcache: DiskcacheAdapter,
        http_client: httpx.AsyncClient,
        respx_mock: respx.MockRouter,
        plugin_dir: Path,
    ) -> None:
        respx_mock.get(_JIKAN).respond(200, json=_JIKAN_BODY)
        embed = respx_mock.get(_EMBED).respond(200, text=_BLOGGER_PAGE)
        respx_mock.get(_MEDIA).respond(
            206,
            content=b"\x00\x01\x02\x03",
            headers={"Content-Type": "video/mp4", "Content-Range": "bytes 0-3/4"},
        )
        pipeline = _Pipeline(diskcache, http_client, plugin_dir)

        detail = await pipeline.catalog_uc.execute(52991)
        assert detail.slugs == {"animasu": "sousou-no-frieren"}

        mapping = await pipeline.mappings.get(52991)
        assert mapping is not None
        assert mapping.slug_for("animasu") == "sousou-no-frieren"

        result = await pipeline.streaming_uc.execute(52991, 1)
        assert len(result.sources) == 1
        source = result.sources[0]
        assert source.resolved_url == _MEDIA
        assert source.public_proxy_url is not None
        assert source.public_proxy_url.startswith(f"{_BASE}/video-proxy?url=")

        response = await pipeline.video_uc.execute(source.code, "bytes=0-3")
        assert response.stream is not None
        body = b"".join([chunk async for chunk in response.stream])
        assert response.status_code == 206
        assert body == b"\x00\x01\x02\x03"

        # second request is served from the streaming cache
        again = await pipeline.streaming_uc.execute(52991, 1)
        assert [s.code for s in again.sources] == [source.code]
        assert embed.call_count == 1

    async def test_unknown_catalog_id_has_no_sources(
        self,
        diskcache: DiskcacheAdapter,
        http_client: httpx.AsyncClient,
        respx_mock: respx.MockRouter,
        plugin_dir: Path,
    ) -> None:
        pipeline = _Pipeline(diskcache, http_client, plugin_dir)

        result = await pipeline.streaming_uc.execute(123, 1)

        assert result.sources == []
        assert respx_mock.calls.call_count == 0
