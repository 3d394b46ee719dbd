"""Mediation endpoint: every method on every path outside /_chaka.

The ADX body is translated and forwarded to the same path upstream.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from chaka.deps import get_mediator
from chaka.mediator import Mediator

router = APIRouter(tags=["mediate"])

OPENHIM_MEDIA_TYPE = "application/json+openhim"
METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD", "TRACE", "CONNECT"]


@router.api_route("/{path:path}", methods=METHODS)
async def mediate(request: Request, mediator: Mediator = Depends(get_mediator)):
    adx = await request.body()
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    result = await mediator.handle(request.method, path, adx)
    return JSONResponse(
        status_code=result.http_status,
        content=result.to_json(),
        media_type=OPENHIM_MEDIA_TYPE,
    )
