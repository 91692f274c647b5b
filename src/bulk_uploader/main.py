"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from bulk_uploader import __version__
from bulk_uploader.api import api_router
from bulk_uploader.api.dependencies import get_settings, get_upload_orchestrator


def create_app() -> FastAPI:
    """Build FastAPI application."""

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        """Build the singleton orchestrator at startup and drain it on shutdown."""

        orchestrator = get_upload_orchestrator()
        try:
            yield
        finally:
            await orchestrator.aclose()
            get_upload_orchestrator.cache_clear()

    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()


def run() -> None:
    """Run local development server."""

    logging.basicConfig(level=logging.INFO)
    settings = get_settings()
    uvicorn.run(
        "bulk_uploader.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
    )


__all__ = ["app", "create_app", "run"]
