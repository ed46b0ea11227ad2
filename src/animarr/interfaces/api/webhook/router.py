"""Webhooks used by the external archive worker.

All endpoints require ``Authorization: Bearer <secret>`` when
``archive.webhook_secret`` is configured.
"""

from __future__ import annotations

import hmac
from datetime import datetime, timezone
from typing import Any, Literal, cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from animarr.domain.entities import ArchivedCopy, StorageLedgerEntry
from animarr.interfaces.api.responses import json_response, parse_positive_int
from animarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhook"])


class QueueCompleteRequest(BaseModel):
    queue_id: str
    status: Literal["completed", "failed"]
    error_message: str | None = None


class ArchivedUrl(BaseModel):
    account: str = ""
    url: str


class SaveVideoStorageRequest(BaseModel):
    catalog_id: int = Field(gt=0)
    episode: int = Field(gt=0)
    resolution: str = "unknown"
    server: int = 0
    anime_title: str = ""
    file_name: str = ""
    file_size_bytes: int | None = None
    release_tag: str = ""
    archived_urls: list[ArchivedUrl] = Field(default_factory=list)


def _authorized(request: Request, state: AppState) -> bool:
    secret = state.config.archive.webhook_secret
    if not secret:
        return True
    header = request.headers.get("authorization", "")
    return hmac.compare_digest(header, f"Bearer {secret}")


def _unauthorized() -> JSONResponse:
    return json_response({"success": False, "error": "Unauthorized"}, status_code=401)


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


@router.get("/queue")
async def list_queue(request: Request) -> JSONResponse:
    """Pending archive queue items."""
    state = cast(AppState, request.app.state)
    if not _authorized(request, state):
        return _unauthorized()

    items = await state.archive_queue.list_pending()
    log.info("webhook_queue_listed", count=len(items))
    return json_response(
        {
            "success": True,
            "message": f"Found {len(items)} pending items",
            "items": [
                {
                    "id": i.id,
                    "catalog_id": i.catalog_id,
                    "episode": i.episode,
                    "code": i.code,
                    "provider": i.provider,
                    "resolution": i.resolution,
                    "server": i.server,
                    "url": i.url,
                    "anime_title": i.anime_title,
                    "status": i.status,
                    "created_at": i.created_at,
                }
                for i in items
            ],
        }
    )


@router.post("/queue-complete")
async def queue_complete(request: Request) -> JSONResponse:
    """Mark one queue item as completed or failed."""
    state = cast(AppState, request.app.state)
    if not _authorized(request, state):
        return _unauthorized()

    try:
        body = QueueCompleteRequest.model_validate(await _read_json(request))
    except ValidationError:
        return json_response(
            {"success": False, "error": "Missing required fields: queue_id, status"},
            status_code=400,
        )

    updated = await state.archive_queue.set_status(
        body.queue_id, body.status, body.error_message
    )
    if updated is None:
        return json_response(
            {"success": False, "error": f"Queue item not found: {body.queue_id}"},
            status_code=404,
        )
    return json_response(
        {
            "success": True,
            "message": f"Queue item {body.queue_id} updated to {body.status}",
        }
    )


@router.post("/save-video-storage")
async def save_video_storage(request: Request) -> JSONResponse:
    """Append an archived copy to the storage ledger."""
    state = cast(AppState, request.app.state)
    if not _authorized(request, state):
        return _unauthorized()

    try:
        body = SaveVideoStorageRequest.model_validate(await _read_json(request))
    except ValidationError:
        return json_response(
            {"success": False, "error": "Missing required fields"}, status_code=400
        )

    entry = StorageLedgerEntry(
        catalog_id=body.catalog_id,
        episode=body.episode,
        resolution=body.resolution,
        server=body.server,
        archived_urls=tuple(
            ArchivedCopy(account=u.account, url=u.url) for u in body.archived_urls
        ),
        anime_title=body.anime_title,
        file_name=body.file_name,
        file_size_bytes=body.file_size_bytes,
        release_tag=body.release_tag,
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    await state.ledger.add(entry)
    log.info(
        "video_storage_saved",
        catalog_id=entry.catalog_id,
        episode=entry.episode,
        file_name=entry.file_name,
    )
    return json_response(
        {"success": True, "message": "Video storage saved successfully"}
    )


@router.post("/invalidate/{catalog_id}")
async def invalidate_mapping(catalog_id: str, request: Request) -> JSONResponse:
    """Drop a stored slug mapping so the next lookup resolves it again."""
    state = cast(AppState, request.app.state)
    if not _authorized(request, state):
        return _unauthorized()

    parsed = parse_positive_int(catalog_id)
    if parsed is None:
        return json_response(
            {"success": False, "error": "Invalid MAL ID. Must be a positive integer."},
            status_code=400,
        )

    dropped = await state.catalog_detail_uc.invalidate(parsed)
    log.info("webhook_mapping_invalidated", catalog_id=parsed, dropped=dropped)
    return json_response(
        {
            "success": True,
            "message": (
                f"Mapping for {parsed} invalidated"
                if dropped
                else f"No stored mapping for {parsed}"
            ),
            "invalidated": dropped,
        }
    )
