"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from animarr.application.use_cases import (
    CatalogDetailUseCase,
    HomeFeedUseCase,
    StreamingAggregationUseCase,
    VideoDeliveryUseCase,
)
from animarr.domain.ports import RangeReaderPort
from animarr.infrastructure.archive.github_dispatcher import GithubDispatcher
from animarr.infrastructure.cache.cache_factory import create_cache
from animarr.infrastructure.catalog.jikan_client import JikanCatalogClient
from animarr.infrastructure.config.schema import AppConfig
from animarr.infrastructure.delivery.policy import HostPolicy
from animarr.infrastructure.delivery.proxy import DeliveryProxy
from animarr.infrastructure.extractors import ExtractorRegistry, default_extractors
from animarr.infrastructure.identity.listing_memo import ListingMemo
from animarr.infrastructure.identity.resolver import IdentityResolutionEngine
from animarr.infrastructure.persistence.archive_queue_cache import (
    CacheArchiveQueueRepository,
)
from animarr.infrastructure.persistence.catalog_detail_cache import (
    CacheCatalogDetailRepository,
)
from animarr.infrastructure.persistence.delivery_code_cache import (
    CacheDeliveryCodeRepository,
)
from animarr.infrastructure.persistence.home_feed_cache import (
    CacheHomeFeedRepository,
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
from animarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def _build_dispatcher(
    config: AppConfig, http_client: httpx.AsyncClient
) -> GithubDispatcher | None:
    archive = config.archive
    if not archive.enabled:
        return None
    # Presence of owner/repo/token is enforced by ArchiveConfig validation.
    return GithubDispatcher(
        http_client=http_client,
        owner=archive.github_owner or "",
        repo=archive.github_repo or "",
        token=archive.github_token or "",
        event_type=archive.event_type,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. Cache (required by every repository)
        2. HTTP client (shared by catalog, extractors, proxy, dispatcher)
        3. Provider registry
        4. Repositories
        5. Extractor registry + delivery proxy
        6. Identity engine
        7. Use cases
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) Cache
    cache = create_cache(
        backend=config.cache.backend,
        directory=str(config.cache.directory),
        redis_url=config.cache.redis_url,
        ttl_seconds=config.cache.ttl_seconds,
        max_concurrent=config.cache.max_concurrent,
    )
    await cache.__aenter__()
    state.cache = cache
    log.info("cache_initialized", backend=config.cache.backend)

    # 2) HTTP client
    state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        follow_redirects=config.http_follow_redirects,
        headers={"User-Agent": config.http_user_agent},
    )
    log.info("http_client_initialized", timeout=config.http_timeout_seconds)

    # 3) Providers (lazy: files are indexed, imported on first use)
    state.providers = ProviderRegistry(plugin_dir=config.plugin_dir)
    state.providers.discover()
    log.info("providers_discovered", plugin_dir=str(config.plugin_dir))

    # 4) Repositories
    streaming = config.streaming
    mappings = CacheSlugMappingRepository(cache)
    streaming_cache = CacheStreamingRepository(
        cache, ttl_seconds=streaming.streaming_ttl_seconds
    )
    delivery_codes = CacheDeliveryCodeRepository(
        cache, ttl_seconds=streaming.delivery_code_ttl_seconds
    )
    url_cache = CacheResolvedUrlRepository(
        cache, ttl_seconds=streaming.resolved_url_ttl_seconds
    )
    detail_cache = CacheCatalogDetailRepository(
        cache, ttl_seconds=streaming.catalog_detail_ttl_seconds
    )
    state.ledger = CacheStorageLedgerRepository(cache)
    state.archive_queue = CacheArchiveQueueRepository(
        cache, ttl_seconds=config.archive.queue_ttl_seconds
    )

    # 5) Extraction + delivery
    extractors = default_extractors(
        state.http_client,
        chunk_size=config.delivery.chunk_size,
        storage_timeout=config.delivery.timeout_seconds,
    )
    state.extractors = ExtractorRegistry(
        extractors,
        url_cache=url_cache,
        extract_timeout=streaming.provider_timeout_seconds,
    )
    state.proxy = DeliveryProxy(
        http_client=state.http_client,
        policy=HostPolicy(config.delivery.allowed_domains),
        range_readers=[e for e in extractors if isinstance(e, RangeReaderPort)],
        timeout_seconds=config.delivery.timeout_seconds,
        chunk_size=config.delivery.chunk_size,
    )
    log.info("extractors_initialized", extractors=state.extractors.names)

    # 6) Catalog + identity
    state.catalog = JikanCatalogClient(
        http_client=state.http_client,
        cache=cache,
        base_url=config.catalog.base_url,
        ttl_seconds=config.catalog.ttl_seconds,
        search_limit=config.catalog.search_limit,
    )
    state.identity = IdentityResolutionEngine(
        providers=state.providers,
        mappings=mappings,
        listing_memo=ListingMemo(
            ttl_seconds=streaming.listing_memo_ttl_seconds,
            fetch_timeout=streaming.provider_timeout_seconds,
        ),
        detail_timeout=streaming.provider_timeout_seconds,
    )

    # 7) Use cases
    state.dispatcher = _build_dispatcher(config, state.http_client)
    state.catalog_detail_uc = CatalogDetailUseCase(
        catalog=state.catalog,
        identity=state.identity,
        providers=state.providers,
        detail_cache=detail_cache,
        provider_timeout=streaming.provider_timeout_seconds,
    )
    state.home_feed_uc = HomeFeedUseCase(
        catalog=state.catalog,
        providers=state.providers,
        feed_cache=CacheHomeFeedRepository(
            cache, ttl_seconds=streaming.home_feed_ttl_seconds
        ),
        provider_timeout=streaming.provider_timeout_seconds,
        max_titles=streaming.home_feed_max_titles,
    )
    state.streaming_uc = StreamingAggregationUseCase(
        mappings=mappings,
        providers=state.providers,
        extractors=state.extractors,
        streaming_cache=streaming_cache,
        delivery_codes=delivery_codes,
        ledger=state.ledger,
        config=streaming,
        archive_queue=state.archive_queue if config.archive.enabled else None,
        dispatcher=state.dispatcher,
    )
    state.video_uc = VideoDeliveryUseCase(
        delivery_codes=delivery_codes,
        extractors=state.extractors,
        proxy=state.proxy,
    )

    log.info("app_startup_complete", archive_enabled=config.archive.enabled)

    try:
        yield
    finally:
        await state.streaming_uc.aclose()

        await state.providers.cleanup()
        log.info("providers_cleaned_up")

        await state.extractors.cleanup()
        log.info("extractors_cleaned_up")

        await state.http_client.aclose()
        log.info("http_client_closed")

        await state.cache.aclose()
        log.info("cache_closed")

        log.info("app_shutdown_complete")
