"""Tests for /video/{code} and /video-proxy."""

from __future__ import annotations

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from animarr.domain.entities import NotFoundError
from animarr.infrastructure.delivery.proxy import (
    CORS_HEADERS,
    ProxyResponse,
    error_response,
)
from animarr.interfaces.api.video.router import router


async def _body(*chunks: bytes) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


def _make_app(
    *, video_uc: AsyncMock | None = None, proxy: AsyncMock | None = None
) -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    app.state.video_uc = video_uc or AsyncMock()
    app.state.proxy = proxy or AsyncMock()
    return app


class TestVideoByCode:
    def test_streams_partial_content(self) -> None:
        video_uc = AsyncMock()
        video_uc.execute = AsyncMock(
            return_value=ProxyResponse(
                status_code=206,
                headers={
                    **CORS_HEADERS,
                    "Content-Range": "bytes 0-5/100",
                    "Accept-Ranges": "bytes",
                },
                media_type="video/mp4",
                stream=_body(b"abc", b"def"),
            )
        )
        client = TestClient(_make_app(video_uc=video_uc))

        resp = client.get("/video/abc123", headers={"Range": "bytes=0-5"})

        assert resp.status_code == 206
        assert resp.content == b"abcdef"
        assert resp.headers["content-range"] == "bytes 0-5/100"
        assert resp.headers["content-type"].startswith("video/mp4")
        video_uc.execute.assert_awaited_once_with("abc123", "bytes=0-5")

    def test_unknown_code(self) -> None:
        video_uc = AsyncMock()
        video_uc.execute = AsyncMock(
            side_effect=NotFoundError("Video code not found or expired")
        )
        resp = TestClient(_make_app(video_uc=video_uc)).get("/video/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Video code not found or expired"}

    def test_preflight(self) -> None:
        resp = TestClient(_make_app()).options("/video/abc")
        assert resp.status_code == 204
        assert resp.headers["access-control-allow-origin"] == "*"


class TestVideoProxy:
    def test_missing_url(self) -> None:
        resp = TestClient(_make_app()).get("/video-proxy")
        assert resp.status_code == 400

    def test_forbidden_domain(self) -> None:
        proxy = AsyncMock()
        proxy.deliver = AsyncMock(
            return_value=error_response(403, "Domain not allowed")
        )
        resp = TestClient(_make_app(proxy=proxy)).get(
            "/video-proxy", params={"url": "https://evil.example/v.mp4"}
        )
        assert resp.status_code == 403
        assert resp.json() == {"error": "Domain not allowed"}
        proxy.deliver.assert_awaited_once_with("https://evil.example/v.mp4", None)

    def test_manifest_text(self) -> None:
        proxy = AsyncMock()
        proxy.deliver = AsyncMock(
            return_value=ProxyResponse(
                status_code=200,
                headers=dict(CORS_HEADERS),
                media_type="application/vnd.apple.mpegurl",
                text="#EXTM3U\nhttps://cdn/seg.ts\n",
            )
        )
        resp = TestClient(_make_app(proxy=proxy)).get(
            "/video-proxy", params={"url": "https://cdn/master.m3u8"}
        )
        assert resp.status_code == 200
        assert resp.text == "#EXTM3U\nhttps://cdn/seg.ts\n"

    def test_proxy_preflight(self) -> None:
        resp = TestClient(_make_app()).options("/video-proxy")
        assert resp.status_code == 204
