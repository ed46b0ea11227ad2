from .catalog_detail import CatalogDetailUseCase
from .home_feed import HomeFeedUseCase
from .streaming import StreamingAggregationUseCase, StreamingResult
from .video_delivery import VideoDeliveryUseCase

__all__ = [
    "CatalogDetailUseCase",
    "HomeFeedUseCase",
    "StreamingAggregationUseCase",
    "StreamingResult",
    "VideoDeliveryUseCase",
]
