"""Tests for the GitHub repository_dispatch notifier."""

from __future__ import annotations

import json

import httpx
import respx

from animarr.infrastructure.archive.github_dispatcher import GithubDispatcher

_URL = "https://api.github.com/repos/owner/archive/dispatches"


def _dispatcher(client: httpx.AsyncClient) -> GithubDispatcher:
    return GithubDispatcher(
        http_client=client, owner="owner", repo="archive", token="ghp_test"
    )


class TestDispatch:
    @respx.mock
    async def test_accepted(self) -> None:
        route = respx.post(_URL).respond(204)
        async with httpx.AsyncClient() as client:
            ok = await _dispatcher(client).dispatch({"catalog_id": 1, "episode": 2})

        assert ok is True
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer ghp_test"
        assert json.loads(request.content) == {
            "event_type": "process_queue",
            "client_payload": {"catalog_id": 1, "episode": 2},
        }

    @respx.mock
    async def test_without_payload(self) -> None:
        route = respx.post(_URL).respond(204)
        async with httpx.AsyncClient() as client:
            assert await _dispatcher(client).dispatch() is True
        assert json.loads(route.calls.last.request.content) == {
            "event_type": "process_queue"
        }

    @respx.mock
    async def test_rejected(self) -> None:
        respx.post(_URL).respond(422, json={"message": "Unprocessable"})
        async with httpx.AsyncClient() as client:
            assert await _dispatcher(client).dispatch() is False

    @respx.mock
    async def test_network_error(self) -> None:
        respx.post(_URL).mock(side_effect=httpx.ConnectError("refused"))
        async with httpx.AsyncClient() as client:
            assert await _dispatcher(client).dispatch() is False
