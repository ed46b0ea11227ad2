"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from animarr.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from animarr.application.use_cases import (
        CatalogDetailUseCase,
        HomeFeedUseCase,
        StreamingAggregationUseCase,
        VideoDeliveryUseCase,
    )
    from animarr.domain.ports import (
        ArchiveDispatcherPort,
        ArchiveQueueRepository,
        CachePort,
        CatalogClientPort,
        StorageLedgerRepository,
    )
    from animarr.infrastructure.delivery.proxy import DeliveryProxy
    from animarr.infrastructure.extractors import ExtractorRegistry
    from animarr.infrastructure.identity.resolver import IdentityResolutionEngine
    from animarr.infrastructure.providers import ProviderRegistry


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    cache: CachePort
    http_client: httpx.AsyncClient

    # Providers and extraction
    providers: ProviderRegistry
    extractors: ExtractorRegistry
    identity: IdentityResolutionEngine
    catalog: CatalogClientPort
    proxy: DeliveryProxy

    # Archive
    ledger: StorageLedgerRepository
    archive_queue: ArchiveQueueRepository
    dispatcher: ArchiveDispatcherPort | None

    # Use cases
    catalog_detail_uc: CatalogDetailUseCase
    home_feed_uc: HomeFeedUseCase
    streaming_uc: StreamingAggregationUseCase
    video_uc: VideoDeliveryUseCase
