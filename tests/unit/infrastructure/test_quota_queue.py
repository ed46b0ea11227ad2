"""Tests for the sequential quota-limited extraction queue."""

from __future__ import annotations

from animarr.domain.entities import RateLimitedError, RawSource
from animarr.infrastructure.extractors.quota_queue import QueueOutcome, QuotaQueue


def _source(resolution: str, server: int = 0) -> RawSource:
    return RawSource(
        provider="samehadaku",
        embed_url=f"https://mega.nz/embed/{resolution}-{server}#k",
        resolution=resolution,
        server=server,
    )


class TestOrdering:
    def test_pops_best_resolution_first(self) -> None:
        queue = QuotaQueue([_source("480p"), _source("1080p"), _source("720p")])
        order = [queue.pop().resolution for _ in range(len(queue))]
        assert order == ["1080p", "720p", "480p"]

    def test_server_breaks_ties(self) -> None:
        queue = QuotaQueue([_source("720p", 2), _source("720p", 1)])
        assert queue.pop().server == 1


class TestDrain:
    async def test_all_resolved(self) -> None:
        async def extract(url: str) -> str | None:
            return url.replace("embed", "file")

        report = await QuotaQueue([_source("720p"), _source("480p")]).drain(extract)

        assert len(report.resolved) == 2
        assert report.failed == []
        assert report.skipped == []

    async def test_first_failure_halts_and_skips_rest(self) -> None:
        attempted: list[str] = []

        async def extract(url: str) -> str | None:
            attempted.append(url)
            return None if "720p" in url else "https://mega.nz/file/x#k"

        sources = [_source("1080p"), _source("720p"), _source("480p"), _source("360p")]
        report = await QuotaQueue(sources).drain(extract)

        assert [r.source.resolution for r in report.resolved] == ["1080p"]
        assert [r.source.resolution for r in report.failed] == ["720p"]
        assert [r.source.resolution for r in report.skipped] == ["480p", "360p"]
        assert len(attempted) == 2
        assert all(r.outcome is QueueOutcome.SKIPPED for r in report.skipped)

    async def test_rate_limit_counts_as_failure(self) -> None:
        async def extract(url: str) -> str | None:
            raise RateLimitedError("throttled")

        report = await QuotaQueue([_source("720p"), _source("480p")]).drain(extract)

        assert len(report.failed) == 1
        assert len(report.skipped) == 1

    async def test_empty_queue(self) -> None:
        async def extract(url: str) -> str | None:
            raise AssertionError("not called")

        report = await QuotaQueue().drain(extract)
        assert report.results == []
