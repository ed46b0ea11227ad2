"""Shared response builders for the HTTP routers."""

from __future__ import annotations

import re
from typing import Any

from fastapi.responses import JSONResponse
from starlette.responses import Response, StreamingResponse

from animarr.infrastructure.delivery.proxy import CORS_HEADERS, ProxyResponse

_DIGITS = re.compile(r"[0-9]+")


def parse_positive_int(value: str) -> int | None:
    """Path parameter as a positive integer, or None.

    Only plain ASCII digits pass; the signs, whitespace and underscores
    that ``int()`` tolerates are rejected.
    """
    if not _DIGITS.fullmatch(value):
        return None
    parsed = int(value)
    return parsed if parsed > 0 else None


def json_response(content: Any, status_code: int = 200) -> JSONResponse:
    """JSON body with permissive CORS headers."""
    return JSONResponse(
        content=content, status_code=status_code, headers=dict(CORS_HEADERS)
    )


def from_proxy(result: ProxyResponse) -> Response:
    """Turn a transport-neutral ProxyResponse into a Starlette response."""
    if result.stream is not None:
        return StreamingResponse(
            result.stream,
            status_code=result.status_code,
            headers=result.headers,
            media_type=result.media_type,
        )
    if result.text is not None:
        return Response(
            content=result.text,
            status_code=result.status_code,
            headers=result.headers,
            media_type=result.media_type,
        )
    return JSONResponse(
        content=result.json_body or {},
        status_code=result.status_code,
        headers=result.headers,
    )
