"""Media delivery endpoints: delivery codes and the generic proxy."""

from __future__ import annotations

from typing import cast

import structlog
from fastapi import APIRouter, Request
from starlette.responses import Response

from animarr.domain.entities import NotFoundError
from animarr.infrastructure.delivery.proxy import CORS_HEADERS
from animarr.interfaces.api.responses import from_proxy, json_response
from animarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["video"])


@router.options("/video/{code}")
@router.options("/video-proxy")
async def preflight() -> Response:
    return Response(status_code=204, headers=dict(CORS_HEADERS))


@router.get("/video/{code}")
async def stream_by_code(code: str, request: Request) -> Response:
    """Stream the source bound to a delivery code (honours Range)."""
    state = cast(AppState, request.app.state)
    log.info("video_code_requested", code=code)

    try:
        result = await state.video_uc.execute(code, request.headers.get("range"))
    except NotFoundError as exc:
        return json_response({"error": str(exc)}, status_code=404)
    except Exception:
        log.error("video_delivery_failed", code=code, exc_info=True)
        return json_response({"error": "Internal server error"}, status_code=500)
    return from_proxy(result)


@router.get("/video-proxy")
async def proxy_url(request: Request, url: str | None = None) -> Response:
    """Proxy an allow-listed media URL; 403 before any fetch otherwise."""
    state = cast(AppState, request.app.state)
    if not url:
        return json_response({"error": "Missing url parameter"}, status_code=400)

    try:
        result = await state.proxy.deliver(url, request.headers.get("range"))
    except Exception:
        log.error("video_proxy_failed", url=url, exc_info=True)
        return json_response({"error": "Internal server error"}, status_code=500)
    return from_proxy(result)
