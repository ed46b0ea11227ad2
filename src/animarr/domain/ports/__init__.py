from .archive import ArchiveDispatcherPort
from .cache import CachePort
from .catalog_client import CatalogClientPort
from .repositories import (
    ArchiveQueueRepository,
    CatalogDetailCache,
    DeliveryCodeRepository,
    HomeFeedCache,
    ResolvedUrlCache,
    SlugMappingRepository,
    StorageLedgerRepository,
    StreamingCacheRepository,
)
from .scraper import ProviderRegistryPort, ScraperAdapterPort
from .video_extractor import RangeReaderPort, VideoExtractorPort

__all__ = [
    "ArchiveDispatcherPort",
    "ArchiveQueueRepository",
    "CachePort",
    "CatalogClientPort",
    "CatalogDetailCache",
    "DeliveryCodeRepository",
    "HomeFeedCache",
    "ProviderRegistryPort",
    "RangeReaderPort",
    "ResolvedUrlCache",
    "ScraperAdapterPort",
    "SlugMappingRepository",
    "StorageLedgerRepository",
    "StreamingCacheRepository",
    "VideoExtractorPort",
]
