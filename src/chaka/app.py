"""Chaka: FastAPI mediator application.

The bridge between ADX reporting systems and their upstream consumer.
Local orgUnit ids are swapped for directory ids on the way through.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chaka.auth import make_api_key_checker
from chaka.config import ChakaConfig, load_config
from chaka.errors import ChakaError
from chaka.mediator import Mediator
from chaka.models import MediatorResponse
from chaka.routes import mediate, meta

logger = logging.getLogger("chaka")
audit_logger = logging.getLogger("chaka.audit")

# One connection per in-flight lookup: a document's lookups are never queued.
OUTBOUND_LIMITS = httpx.Limits(max_connections=None, max_keepalive_connections=20)


def _envelope(urn: str, status: int, message: str, headers=None) -> JSONResponse:
    result = MediatorResponse.failed(urn, status, message)
    return JSONResponse(
        status_code=result.http_status,
        content=result.to_json(),
        media_type=mediate.OPENHIM_MEDIA_TYPE,
        headers=headers,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: open the outbound connection pool. Shutdown: close it."""
    config: ChakaConfig = app.state.config
    logger.info(
        "Directory at %s (%s), upstream at %s, verify_only=%s",
        config.directory_url,
        config.directory_resource,
        config.upstream_url,
        config.verify_only,
    )
    http = httpx.AsyncClient(
        timeout=config.timeout,
        limits=OUTBOUND_LIMITS,
        transport=app.state.transport,
    )
    app.state.mediator = Mediator(config, http)
    logger.info("Chaka mediator ready")
    yield
    await http.aclose()
    logger.info("Chaka mediator shut down")


def create_app(
    config: ChakaConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Application factory.

    ``transport`` replaces the network for outbound calls (tests).
    """
    if config is None:
        config = load_config()

    app = FastAPI(
        title="Chaka",
        description="ADX orgUnit translation mediator",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.transport = transport

    check_key = make_api_key_checker(config.api_key)

    # ── Exception handlers ────────────────────────────────────

    @app.exception_handler(ChakaError)
    async def chaka_handler(request: Request, exc: ChakaError):
        logger.warning("Refused %s %s: %s", request.method, request.url.path, exc)
        return _envelope(config.mediator_urn, exc.status_code, str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_handler(request: Request, exc: StarletteHTTPException):
        return _envelope(
            config.mediator_urn, exc.status_code, str(exc.detail), exc.headers
        )

    @app.exception_handler(Exception)
    async def unexpected_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error while mediating %s", request.url.path)
        return _envelope(config.mediator_urn, 500, str(exc))

    # ── Audit middleware ──────────────────────────────────────

    @app.middleware("http")
    async def audit_log(request: Request, call_next):
        start = time.monotonic()
        response = await call_next(request)
        elapsed = time.monotonic() - start
        audit_logger.info(
            "%s %s %d %.3fs",
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
        )
        return response

    # ── Routers ───────────────────────────────────────────────

    # meta first: the mediation route matches every path
    app.include_router(meta.router, dependencies=[Depends(check_key)])
    app.include_router(mediate.router, dependencies=[Depends(check_key)])

    return app
