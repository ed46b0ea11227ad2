from .httpx_base import HttpxScraperBase
from .loader import load_python_provider, validate_provider
from .registry import ProviderRegistry

__all__ = [
    "HttpxScraperBase",
    "ProviderRegistry",
    "load_python_provider",
    "validate_provider",
]
