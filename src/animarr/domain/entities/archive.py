"""Archived copies and the archival queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

QueueStatus = Literal["pending", "processing", "completed", "failed"]


@dataclass(frozen=True)
class ArchivedCopy:
    """One uploaded copy of a video in cold storage."""

    account: str
    url: str


@dataclass(frozen=True)
class StorageLedgerEntry:
    """A video that was archived for (catalog id, episode)."""

    catalog_id: int
    episode: int
    resolution: str
    server: int
    archived_urls: tuple[ArchivedCopy, ...] = ()
    anime_title: str = ""
    file_name: str = ""
    file_size_bytes: int | None = None
    release_tag: str = ""
    created_at: str = ""

    @property
    def primary_url(self) -> str | None:
        return self.archived_urls[0].url if self.archived_urls else None

    def to_dict(self) -> dict[str, object]:
        return {
            "catalog_id": self.catalog_id,
            "episode": self.episode,
            "resolution": self.resolution,
            "server": self.server,
            "anime_title": self.anime_title,
            "file_name": self.file_name,
            "file_size_bytes": self.file_size_bytes,
            "release_tag": self.release_tag,
            "archived_urls": [
                {"account": c.account, "url": c.url} for c in self.archived_urls
            ],
            "created_at": self.created_at,
        }


@dataclass
class ArchiveQueueItem:
    """A deliverable source waiting to be archived by the external worker."""

    id: str
    catalog_id: int
    episode: int
    code: str
    provider: str
    resolution: str
    server: int
    url: str
    anime_title: str = ""
    status: QueueStatus = "pending"
    error_message: str | None = None
    created_at: str = ""
    updated_at: str = ""
    extra: dict[str, str] = field(default_factory=dict)
