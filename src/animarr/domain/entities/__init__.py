from .archive import ArchivedCopy, ArchiveQueueItem, QueueStatus, StorageLedgerEntry
from .catalog import (
    CatalogDetail,
    CatalogRecord,
    EpisodeRef,
    HomeFeedItem,
    ListingEntry,
    ScrapedCandidate,
    UnifiedEpisode,
)
from .errors import (
    AnimarrError,
    DuplicateProviderError,
    InternalError,
    InvalidRequestError,
    NotFoundError,
    ParseError,
    ProviderError,
    ProviderLoadError,
    ProviderNotFoundError,
    RateLimitedError,
    UpstreamFetchError,
)
from .identity import MatchResult, ProviderSlug, SlugMapping
from .streaming import (
    ByteRange,
    RawSource,
    ResolutionRank,
    ResolvedStream,
    StorageTier,
    StreamingSource,
)

__all__ = [
    "AnimarrError",
    "ArchiveQueueItem",
    "ArchivedCopy",
    "ByteRange",
    "CatalogDetail",
    "CatalogRecord",
    "DuplicateProviderError",
    "EpisodeRef",
    "HomeFeedItem",
    "InternalError",
    "InvalidRequestError",
    "ListingEntry",
    "MatchResult",
    "NotFoundError",
    "ParseError",
    "ProviderError",
    "ProviderLoadError",
    "ProviderNotFoundError",
    "ProviderSlug",
    "QueueStatus",
    "RateLimitedError",
    "RawSource",
    "ResolutionRank",
    "ResolvedStream",
    "ScrapedCandidate",
    "SlugMapping",
    "StorageLedgerEntry",
    "StorageTier",
    "StreamingSource",
    "UnifiedEpisode",
    "UpstreamFetchError",
]
