"""Sequential extraction for the quota-limited storage provider.

Items are consumed by a single worker in descending resolution order. The
first failure (no URL, or throttling) is taken as a rate-limit signal: the
worker halts and every item not yet attempted is reported as skipped.
"""

from __future__ import annotations

import enum
import heapq
import itertools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog

from animarr.domain.entities import RateLimitedError, RawSource, ResolutionRank

log = structlog.get_logger(__name__)


class QueueOutcome(enum.Enum):
    RESOLVED = "resolved"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class QueueResult:
    source: RawSource
    outcome: QueueOutcome
    resolved_url: str | None = None


@dataclass
class QuotaQueueReport:
    results: list[QueueResult] = field(default_factory=list)

    def by_outcome(self, outcome: QueueOutcome) -> list[QueueResult]:
        return [r for r in self.results if r.outcome is outcome]

    @property
    def resolved(self) -> list[QueueResult]:
        return self.by_outcome(QueueOutcome.RESOLVED)

    @property
    def failed(self) -> list[QueueResult]:
        return self.by_outcome(QueueOutcome.FAILED)

    @property
    def skipped(self) -> list[QueueResult]:
        return self.by_outcome(QueueOutcome.SKIPPED)


class QuotaQueue:
    """Priority queue ordered by resolution rank (best first), then server."""

    def __init__(self, sources: list[RawSource] | None = None) -> None:
        self._heap: list[tuple[int, int, int, RawSource]] = []
        self._order = itertools.count()
        for source in sources or []:
            self.push(source)

    def __len__(self) -> int:
        return len(self._heap)

    def push(self, source: RawSource) -> None:
        rank = ResolutionRank.from_label(source.resolution)
        heapq.heappush(self._heap, (-rank, source.server, next(self._order), source))

    def pop(self) -> RawSource:
        return heapq.heappop(self._heap)[-1]

    async def drain(
        self, extract: Callable[[str], Awaitable[str | None]]
    ) -> QuotaQueueReport:
        """Extract items one at a time until the queue empties or one fails."""
        report = QuotaQueueReport()
        halted = False
        while self._heap:
            source = self.pop()
            if halted:
                report.results.append(QueueResult(source, QueueOutcome.SKIPPED))
                continue
            try:
                url = await extract(source.embed_url)
            except RateLimitedError:
                url = None
            if url:
                report.results.append(QueueResult(source, QueueOutcome.RESOLVED, url))
                continue
            report.results.append(QueueResult(source, QueueOutcome.FAILED))
            halted = True
            log.warning(
                "quota_queue_halted",
                provider=source.provider,
                resolution=source.resolution,
                remaining=len(self._heap),
            )
        return report
