"""
FastAPI application.

Exposes search runs, run status, company enrichment and the phone webhook.
Caller identity arrives in the X-Org-Id / X-User-Id headers.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hirescout import __version__
from hirescout.core.config import AppConfig, load_app_config
from hirescout.core.errors import (
    HireScoutError,
    InsufficientCreditsError,
    NotFoundError,
    ValidationError,
)
from hirescout.core.logging import get_logger
from hirescout.core.services import Services
from hirescout.persistence.db import dispose_engines_async, get_async_engine

from .routers import enrichment, searches, webhooks

logger = get_logger("api")

ERROR_STATUS: dict[type[HireScoutError], int] = {
    ValidationError: 400,
    InsufficientCreditsError: 402,
    NotFoundError: 404,
}


def _status_for(exc: HireScoutError) -> int:
    for error_type, status in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status
    return 500


async def handle_domain_error(request: Request, exc: HireScoutError) -> JSONResponse:
    status = _status_for(exc)
    body: dict[str, object] = {"error": str(exc)}
    if isinstance(exc, InsufficientCreditsError):
        body["creditsUsed"] = exc.credits_used
        body["creditsLimit"] = exc.credits_limit
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        body = {"error": "Request failed", "details": str(exc)}
    return JSONResponse(status_code=status, content=body)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} failed unexpectedly")
    return JSONResponse(status_code=500, content={"error": "Request failed", "details": str(exc)})


def create_app(config: AppConfig | None = None, services: Services | None = None) -> FastAPI:
    """Build the application.

    Args:
        config: Application config (loaded from configs/app.yaml if omitted)
        services: Prebuilt service container, e.g. with fake collaborators
    """
    config = config or (services.config if services else load_app_config())
    services = services or Services(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await get_async_engine(config.database.url, echo=config.database.echo, pool_size=config.database.pool_size)
        logger.info(f"API ready on database {config.database.url}")
        try:
            yield
        finally:
            await services.close()
            await dispose_engines_async()

    app = FastAPI(
        title="HireScout API",
        description="Concurrent job-search runs and cache-first lead enrichment",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_exception_handler(HireScoutError, handle_domain_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(searches.router)
    app.include_router(enrichment.router)
    app.include_router(webhooks.router)

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app
