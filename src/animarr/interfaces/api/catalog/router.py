"""Unified catalog detail endpoint."""

from __future__ import annotations

from typing import cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from animarr.application.use_cases.catalog_detail import detail_to_dict
from animarr.domain.entities import NotFoundError, UpstreamFetchError
from animarr.interfaces.api.responses import json_response, parse_positive_int
from animarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["catalog"])


@router.get("/catalog/{catalog_id}")
async def get_catalog_detail(catalog_id: str, request: Request) -> JSONResponse:
    """Catalog record, provider slugs and episodes merged across providers."""
    state = cast(AppState, request.app.state)

    parsed = parse_positive_int(catalog_id)
    if parsed is None:
        return json_response(
            {"error": "Invalid MAL ID. Must be a positive integer.", "data": None},
            status_code=400,
        )

    try:
        detail = await state.catalog_detail_uc.execute(parsed)
    except NotFoundError as exc:
        log.info("catalog_detail_not_found", catalog_id=parsed)
        return json_response({"error": str(exc), "data": None}, status_code=404)
    except UpstreamFetchError as exc:
        log.warning("catalog_upstream_failed", catalog_id=parsed, error=str(exc))
        return json_response(
            {"error": "Catalog service unavailable", "data": None}, status_code=502
        )
    except Exception:
        log.error("catalog_detail_failed", catalog_id=parsed, exc_info=True)
        return json_response(
            {"error": "Internal server error", "data": None}, status_code=500
        )

    return json_response(detail_to_dict(detail))
