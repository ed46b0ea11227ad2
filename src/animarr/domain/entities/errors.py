"""Error taxonomy shared by all layers."""

from __future__ import annotations


class AnimarrError(Exception):
    """Base error for animarr domain/use cases."""


class UpstreamFetchError(AnimarrError):
    """Network failure, timeout or non-2xx response from a third party."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(UpstreamFetchError):
    """The quota-limited storage backend refused service (throttled)."""


class ParseError(AnimarrError):
    """Markup, script or JSON shape did not match what was expected."""


class NotFoundError(AnimarrError):
    """No identity match, no slug mapping or unknown delivery code."""


class InvalidRequestError(AnimarrError):
    """Malformed id, episode or url parameter."""


class InternalError(AnimarrError):
    """Cache or store unreachable."""


class ProviderError(AnimarrError):
    """Base class for provider plugin errors."""


class ProviderLoadError(ProviderError):
    """A provider plugin failed to import or does not match the protocol."""


class ProviderNotFoundError(ProviderError):
    """A provider name is not known to the registry."""


class DuplicateProviderError(ProviderError):
    """Two provider plugins resolve to the same name."""
