"""Record store contract shared by the three entry backends.

Stores exchange plain documents keyed by the camelCase wire names
(``userId``, ``customerName``, ``createdAt`` ...). Driver failures are
wrapped in BackendUnavailableError so the façade can walk its fallback chain.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from enum import Enum
import logging

logger = logging.getLogger(__name__)

# Never written through update()
IMMUTABLE_FIELDS = ("id", "_id", "userId", "createdAt")


class StorageBackend(str, Enum):
    CLOUD_DOCUMENT_DB = "cloud-document-db"
    LOCAL_DOCUMENT_DB = "local-document-db"
    BROWSER_LOCAL = "browser-local"

    @classmethod
    def resolve(cls, value: str | None) -> "StorageBackend":
        """Map a config value to a backend; unset/unknown -> browser-local."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            logger.warning("Unknown storage backend %r, defaulting to %s", value, cls.BROWSER_LOCAL.value)
            return cls.BROWSER_LOCAL


class RecordStore(ABC):
    """One entry-persistence backend."""

    name: str = "record-store"
    label: str = "Record Store"
    # True when watch() delivers native change notifications
    push_capable: bool = False

    @abstractmethod
    async def create(self, document: dict) -> str:
        """Insert a new document and return its generated id."""

    @abstractmethod
    async def list(self, user_id: str) -> list[dict]:
        """All documents owned by user_id, newest createdAt first."""

    @abstractmethod
    async def get(self, entry_id: str, user_id: str | None = None) -> dict | None:
        ...

    @abstractmethod
    async def update(self, entry_id: str, fields: dict, user_id: str | None = None) -> None:
        """Apply a partial update. Raises NotFoundError if entry_id is absent."""

    @abstractmethod
    async def delete(self, entry_id: str, user_id: str | None = None) -> None:
        """Remove a document. Missing ids are not an error."""

    @abstractmethod
    async def entries_with_images(self) -> list[dict]:
        """Every document (any owner) with a non-empty imageUrl."""

    async def watch(self, user_id: str) -> AsyncIterator[None]:
        """Yield once per change affecting user_id (push-capable stores only)."""
        raise NotImplementedError(f"{self.name} does not push changes")
        yield  # pragma: no cover

    async def close(self) -> None:
        pass


def strip_immutable(fields: dict) -> dict:
    return {k: v for k, v in fields.items() if k not in IMMUTABLE_FIELDS}


def sort_newest_first(documents: list[dict]) -> list[dict]:
    return sorted(documents, key=lambda d: d.get("createdAt") or "", reverse=True)
