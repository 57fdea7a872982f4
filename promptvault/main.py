"""
PromptVault - FastAPI Application

Main application entry point exposing the request facade over HTTP.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import __version__
from .api.v1.router import api_router
from .core.config import settings
from .core.logging import configure_logging
from .services.request_facade import RequestFacade
from .services.store_factory import create_store, remote_store_factory

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Opens the configured record store on startup and closes it on shutdown.
    A remote backend that cannot be configured aborts startup.
    """
    configure_logging(settings)
    logger.info(f"Starting PromptVault ({settings.backend} backend, {settings.environment})...")

    store = await create_store(settings)
    migration_target = remote_store_factory(settings) if settings.backend == "sqlite" else None
    app.state.store = store
    app.state.facade = RequestFacade(store, migration_target_factory=migration_target)

    yield

    logger.info("Shutting down PromptVault...")
    await store.close()


app = FastAPI(
    title="PromptVault API",
    description="Local-first prompt catalog",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# Include API router
app.include_router(api_router, prefix="/api")


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "PromptVault API",
        "version": __version__,
    }
