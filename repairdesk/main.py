"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from repairdesk.api.router import api_router
from repairdesk.db.engine import async_session_factory, create_tables, engine
from repairdesk.dependencies import get_settings_dep
from repairdesk.errors import BackendUnavailableError, RepairDeskError
from repairdesk.services.blob_store import build_blob_store
from repairdesk.services.ws_manager import ws_manager
from repairdesk.storage.facade import build_storage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings_dep()

    # Company details (and the local-document-db entries) live here
    await create_tables()

    app.state.settings = settings
    app.state.storage = build_storage(settings, async_session_factory)
    app.state.blobs = build_blob_store(settings)
    logger.info("Entry storage: %s (%s)", app.state.storage.backend_label, app.state.storage.backend)
    yield
    ws_manager.close_all()
    await app.state.storage.close()
    await app.state.blobs.close()
    await engine.dispose()


app = FastAPI(
    title="RepairDesk",
    description="Repair-shop job tracking: entries, parts billing, images and PDF bills over swappable storage.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(RepairDeskError)
async def repairdesk_error_handler(request: Request, exc: RepairDeskError):
    if isinstance(exc, BackendUnavailableError):
        logger.error("%s %s: backend unavailable: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(api_router)
