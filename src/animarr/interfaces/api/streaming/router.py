"""Aggregated streaming sources endpoint."""

from __future__ import annotations

from typing import cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from animarr.domain.entities import InvalidRequestError
from animarr.interfaces.api.responses import json_response, parse_positive_int
from animarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["streaming"])

_INVALID_ID = "Invalid MAL ID. Must be a positive integer."
_INVALID_EPISODE = "Invalid episode number. Must be a positive integer."


@router.get("/streaming/{catalog_id}/{episode}")
async def get_streaming_sources(
    catalog_id: str, episode: str, request: Request
) -> JSONResponse:
    """Sources for one episode, sorted by provider, resolution and server.

    An empty ``sources`` list is a valid answer (no mapping, nothing found).
    """
    state = cast(AppState, request.app.state)

    parsed_id = parse_positive_int(catalog_id)
    if parsed_id is None:
        return json_response({"error": _INVALID_ID, "sources": []}, status_code=400)
    parsed_episode = parse_positive_int(episode)
    if parsed_episode is None:
        return json_response(
            {"error": _INVALID_EPISODE, "sources": []}, status_code=400
        )

    try:
        result = await state.streaming_uc.execute(parsed_id, parsed_episode)
    except InvalidRequestError as exc:
        return json_response({"error": str(exc), "sources": []}, status_code=400)
    except Exception:
        log.error(
            "streaming_failed",
            catalog_id=parsed_id,
            episode=parsed_episode,
            exc_info=True,
        )
        return json_response(
            {
                "error": "Internal server error while fetching streaming links",
                "sources": [],
            },
            status_code=500,
        )

    if not result.sources:
        log.warning(
            "streaming_no_sources", catalog_id=parsed_id, episode=parsed_episode
        )
    return json_response(result.to_dict())
