"""Streaming source entities (raw, resolved, delivered)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Literal

StorageTier = Literal["live", "archived"]


class ResolutionRank(IntEnum):
    """Fixed resolution order used for sorting (higher = better)."""

    UNKNOWN = 0
    P360 = 1
    P480 = 2
    P720 = 3
    P1080 = 4

    @classmethod
    def from_label(cls, label: str | None) -> ResolutionRank:
        """Map a label such as ``"1080p"`` to its rank (unknown -> UNKNOWN)."""
        normalized = (label or "").strip().lower()
        return _LABEL_TO_RANK.get(normalized, cls.UNKNOWN)


_LABEL_TO_RANK: dict[str, ResolutionRank] = {
    "1080p": ResolutionRank.P1080,
    "720p": ResolutionRank.P720,
    "480p": ResolutionRank.P480,
    "360p": ResolutionRank.P360,
}


@dataclass(frozen=True)
class RawSource:
    """One embed reference scraped from a provider episode page."""

    provider: str
    embed_url: str
    resolution: str = "unknown"
    server: int = 0
    title: str = ""


@dataclass(frozen=True)
class ResolvedStream:
    """Result of turning an embed reference into a directly fetchable URL.

    Returned by VideoExtractorPort implementations.
    """

    video_url: str
    headers: dict[str, str] = field(default_factory=dict)
    is_hls: bool = False
    size: int | None = None  # known for remote-storage descriptors


@dataclass(frozen=True)
class StreamingSource:
    """A RawSource plus its resolution outcome and delivery code.

    The code is bound to exactly this snapshot for its whole lifetime.
    """

    code: str
    provider: str
    resolution: str
    server: int
    raw_url: str
    resolved_url: str | None = None
    public_proxy_url: str | None = None
    storage_tier: StorageTier = "live"

    def to_dict(self) -> dict[str, object]:
        """Serialize in the public field order."""
        return {
            "code": self.code,
            "provider": self.provider,
            "resolution": self.resolution,
            "server": self.server,
            "raw_url": self.raw_url,
            "resolved_url": self.resolved_url,
            "public_proxy_url": self.public_proxy_url,
            "storage_tier": self.storage_tier,
        }

    @classmethod
    def from_dict(cls, data: dict) -> StreamingSource:
        return cls(
            code=data["code"],
            provider=data["provider"],
            resolution=data.get("resolution", "unknown"),
            server=int(data.get("server", 0)),
            raw_url=data["raw_url"],
            resolved_url=data.get("resolved_url"),
            public_proxy_url=data.get("public_proxy_url"),
            storage_tier=data.get("storage_tier", "live"),
        )


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte offsets requested by a client."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1
