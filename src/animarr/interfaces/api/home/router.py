"""Paginated home feed endpoint."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from animarr.application.use_cases.home_feed import home_item_to_dict
from animarr.domain.entities import UpstreamFetchError
from animarr.interfaces.api.responses import json_response, parse_positive_int
from animarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["home"])

ITEMS_PER_PAGE = 10


def _pagination(page: int, total: int) -> dict[str, int]:
    return {
        "current_page": page,
        "per_page": ITEMS_PER_PAGE,
        "total": total,
        "total_pages": math.ceil(total / ITEMS_PER_PAGE),
    }


@router.get("/home")
async def get_home_feed(request: Request, page: str = "1") -> JSONResponse:
    """Recently updated titles matched to catalog ids, ten per page."""
    state = cast(AppState, request.app.state)

    parsed = parse_positive_int(page)
    if parsed is None:
        return json_response(
            {
                "error": "Invalid page number",
                "data": [],
                "pagination": _pagination(1, 0),
            },
            status_code=400,
        )

    try:
        items = await state.home_feed_uc.execute()
    except UpstreamFetchError as exc:
        log.warning("home_feed_unavailable", error=str(exc))
        return json_response(
            {"error": str(exc), "data": [], "pagination": _pagination(parsed, 0)},
            status_code=502,
        )
    except Exception:
        log.error("home_feed_failed", exc_info=True)
        return json_response(
            {
                "error": "Internal server error",
                "data": [],
                "pagination": _pagination(parsed, 0),
            },
            status_code=500,
        )

    now = datetime.now(timezone.utc)
    start = (parsed - 1) * ITEMS_PER_PAGE
    return json_response(
        {
            "data": [
                home_item_to_dict(i, now) for i in items[start : start + ITEMS_PER_PAGE]
            ],
            "pagination": _pagination(parsed, len(items)),
        }
    )
