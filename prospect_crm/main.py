"""
FastAPI application entry point.

This module initializes the FastAPI application, builds the shared
collaborators in the lifespan and registers all API routers.
"""
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routers import imports, prospects, sheets
from .core.config import settings
from .core.logging_config import configure_logging
from .domain.imports.orchestrator import ImportPipeline
from .domain.prospects.store import ProspectStore
from .integrations.cache import LocalCache
from .integrations.sheets import SheetsClient

# Ensure logging is configured before the application starts serving requests.
configure_logging(settings.log_level, settings.log_timezone)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the cache, remote client, store and pipeline; tear them down on shutdown."""
    cache = LocalCache(settings.cache_path)
    client = SheetsClient(settings.google_script_url, timeout=settings.remote_timeout_seconds)
    store = ProspectStore(client, cache, remote_timeout=settings.remote_timeout_seconds)
    pipeline = ImportPipeline(cache, delimiter=settings.csv_delimiter)

    if not client.configured:
        logger.warning("GOOGLE_SCRIPT_URL is not set; remote reads use the bundled snapshot")
    if store.load_cached() == 0 and not cache.has_data():
        logger.info("No cached data at %s; call POST /prospects/refresh to load prospects", settings.cache_path)

    app.state.cache = cache
    app.state.client = client
    app.state.store = store
    app.state.pipeline = pipeline

    yield  # Application runs here

    await store.drain()
    await app.state.client.close()


app = FastAPI(
    title="Prospect CRM API",
    version="1.0.0",
    description="Sales prospect ingestion and reconciliation against a spreadsheet-backed CRM",
    lifespan=lifespan,
)

allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
allowed_origins = [origin.strip() for origin in allowed_origins]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(imports.router)
app.include_router(prospects.router)
app.include_router(sheets.router)


@app.get("/")
async def root():
    """Root endpoint returning API information."""
    return {
        "message": "Prospect CRM API",
        "version": "1.0.0",
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "service": "prospect-crm-api",
    }
