"""FastAPI dependency providers for settings, storage and the image store."""

from __future__ import annotations

from functools import lru_cache

from fastapi.requests import HTTPConnection

from repairdesk.config import Settings, get_settings
from repairdesk.services.blob_store import BlobStore
from repairdesk.storage.facade import StorageFacade


@lru_cache
def get_settings_dep() -> Settings:
    return get_settings()


def get_storage(conn: HTTPConnection) -> StorageFacade:
    """The façade built once at startup (HTTP and WebSocket routes)."""
    return conn.app.state.storage


def get_blob_store(conn: HTTPConnection) -> BlobStore:
    return conn.app.state.blobs
