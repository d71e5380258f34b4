"""Image blob storage: validated streamed upload, id-keyed retrieval, deletion.

Blobs are immutable once written and keyed by a generated 24-hex-digit id.
Entries reference them as /images/{id}.
"""

from __future__ import annotations

import asyncio
import io
import json
import logging
import os
import re
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from bson import ObjectId

from repairdesk.config import Settings
from repairdesk.errors import BackendUnavailableError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})
MAX_IMAGE_BYTES = 5 * 1024 * 1024
IMAGE_URL_PREFIX = "/images/"
BLOB_ID_RE = re.compile(r"[a-f0-9]{24}")
IMAGE_URL_RE = re.compile(r"/images/([a-f0-9]{24})")

INVALID_TYPE_MESSAGE = "Please select a valid image file (JPEG, PNG, or WebP)"
TOO_LARGE_MESSAGE = "Image size must be less than 5MB"


def image_url(blob_id: str) -> str:
    return f"{IMAGE_URL_PREFIX}{blob_id}"


def is_blob_id(value: str) -> bool:
    return bool(value) and BLOB_ID_RE.fullmatch(value) is not None


def blob_id_from_url(url: str | None) -> str | None:
    """'/images/<24 hex>' -> id; anything else (absolute URLs, junk) -> None."""
    match = IMAGE_URL_RE.fullmatch(url or "")
    return match.group(1) if match else None


def validate_image(content_type: str | None, size: int | None) -> None:
    """Raise ValidationError unless the type is allowed and size <= 5 MiB."""
    if (content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
        raise ValidationError(INVALID_TYPE_MESSAGE)
    if size is None or size > MAX_IMAGE_BYTES:
        raise ValidationError(TOO_LARGE_MESSAGE)


def _measure(source: bytes | BinaryIO) -> int:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return len(source)
    pos = source.tell()
    source.seek(0, os.SEEK_END)
    size = source.tell() - pos
    source.seek(pos)
    return size


def _as_stream(source: bytes | BinaryIO) -> BinaryIO:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(source))
    return source


@dataclass
class BlobInfo:
    id: str
    metadata: dict = field(default_factory=dict)
    size: int = 0


class StoredBlob:
    """A blob found by get(): metadata plus a lazily read chunk stream."""

    def __init__(self, blob_id: str, content_type: str, metadata: dict, size: int,
                 chunks: Callable[[], AsyncIterator[bytes]]):
        self.id = blob_id
        self.content_type = content_type
        self.metadata = metadata
        self.size = size
        self._chunks = chunks

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._chunks()

    async def read(self) -> bytes:
        buf = bytearray()
        async for chunk in self:
            buf.extend(chunk)
        return bytes(buf)


class BlobStore(ABC):
    @abstractmethod
    async def put(self, source: bytes | BinaryIO, content_type: str, *, user_id: str,
                  original_name: str = "", entry_id: str | None = None,
                  size: int | None = None) -> str:
        """Validate, then stream the payload in. Returns the new blob id."""

    @abstractmethod
    async def get(self, blob_id: str) -> StoredBlob | None:
        ...

    @abstractmethod
    async def delete(self, blob_id: str) -> None:
        """Remove a blob; unknown ids are a no-op."""

    @abstractmethod
    async def list_all(self) -> list[BlobInfo]:
        ...

    async def close(self) -> None:
        pass

    @staticmethod
    def _metadata(content_type: str, user_id: str, original_name: str, entry_id: str | None) -> dict:
        if not user_id:
            raise ValidationError("User ID required")
        return {
            "userId": user_id,
            "entryId": entry_id or "temp",
            "originalName": original_name,
            "contentType": content_type,
            "uploadDate": datetime.now(timezone.utc).isoformat(),
        }


# ── Filesystem ────────────────────────────────────────────

class FilesystemBlobStore(BlobStore):
    """Blobs as files: {base_dir}/{id} + {base_dir}/{id}.json metadata."""

    def __init__(self, base_dir: str | Path, chunk_size: int = 64 * 1024):
        self._base = Path(base_dir)
        self._chunk_size = chunk_size

    def _data_path(self, blob_id: str) -> Path:
        return self._base / blob_id

    def _meta_path(self, blob_id: str) -> Path:
        return self._base / f"{blob_id}.json"

    def _put_sync(self, stream: BinaryIO, blob_id: str, metadata: dict) -> int:
        self._base.mkdir(parents=True, exist_ok=True)
        tmp = self._base / f".{blob_id}.part"
        written = 0
        try:
            with open(tmp, "wb") as out:
                while True:
                    chunk = stream.read(self._chunk_size)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > MAX_IMAGE_BYTES:
                        raise ValidationError(TOO_LARGE_MESSAGE)
                    out.write(chunk)
            metadata = {**metadata, "length": written}
            self._meta_path(blob_id).write_text(json.dumps(metadata), encoding="utf-8")
            os.replace(tmp, self._data_path(blob_id))
        except BaseException:
            tmp.unlink(missing_ok=True)
            self._meta_path(blob_id).unlink(missing_ok=True)
            raise
        return written

    async def put(self, source, content_type, *, user_id, original_name="", entry_id=None, size=None) -> str:
        validate_image(content_type, size if size is not None else _measure(source))
        metadata = self._metadata(content_type, user_id, original_name, entry_id)
        blob_id = str(ObjectId())
        try:
            written = await asyncio.to_thread(self._put_sync, _as_stream(source), blob_id, metadata)
        except OSError as e:
            raise BackendUnavailableError("filesystem-blob-store", str(e)) from e
        logger.info("Stored image %s (%d bytes) for user %s", blob_id, written, user_id)
        return blob_id

    def _read_meta_sync(self, blob_id: str) -> dict | None:
        meta = self._meta_path(blob_id)
        if not meta.exists() or not self._data_path(blob_id).exists():
            return None
        return json.loads(meta.read_text(encoding="utf-8"))

    async def get(self, blob_id: str) -> StoredBlob | None:
        if not is_blob_id(blob_id):
            return None
        metadata = await asyncio.to_thread(self._read_meta_sync, blob_id)
        if metadata is None:
            return None
        path = self._data_path(blob_id)
        chunk_size = self._chunk_size

        async def chunks() -> AsyncIterator[bytes]:
            f = await asyncio.to_thread(open, path, "rb")
            try:
                while True:
                    chunk = await asyncio.to_thread(f.read, chunk_size)
                    if not chunk:
                        break
                    yield chunk
            finally:
                f.close()

        return StoredBlob(
            blob_id,
            metadata.get("contentType") or "image/jpeg",
            metadata,
            metadata.get("length", 0),
            chunks,
        )

    def _delete_sync(self, blob_id: str) -> None:
        self._data_path(blob_id).unlink(missing_ok=True)
        self._meta_path(blob_id).unlink(missing_ok=True)

    async def delete(self, blob_id: str) -> None:
        if not is_blob_id(blob_id):
            return
        await asyncio.to_thread(self._delete_sync, blob_id)

    def _list_sync(self) -> list[BlobInfo]:
        if not self._base.exists():
            return []
        blobs = []
        for meta in self._base.glob("*.json"):
            if is_blob_id(meta.stem) and self._data_path(meta.stem).exists():
                data = json.loads(meta.read_text(encoding="utf-8"))
                blobs.append(BlobInfo(id=meta.stem, metadata=data, size=data.get("length", 0)))
        return blobs

    async def list_all(self) -> list[BlobInfo]:
        return await asyncio.to_thread(self._list_sync)


# ── GridFS ────────────────────────────────────────────────

class GridFSBlobStore(BlobStore):
    """Blobs in a MongoDB GridFS bucket named "images"."""

    def __init__(self, uri: str, database: str = "VehicleRepairDB", timeout_ms: int = 5000, client=None):
        from gridfs import AsyncGridFSBucket
        from pymongo import AsyncMongoClient

        self._client = client or AsyncMongoClient(uri, serverSelectionTimeoutMS=timeout_ms)
        self._bucket = AsyncGridFSBucket(self._client[database], bucket_name="images")

    async def put(self, source, content_type, *, user_id, original_name="", entry_id=None, size=None) -> str:
        from pymongo.errors import PyMongoError

        validate_image(content_type, size if size is not None else _measure(source))
        metadata = self._metadata(content_type, user_id, original_name, entry_id)
        filename = f"{int(time.time() * 1000)}_{original_name}"
        try:
            file_id = await self._bucket.upload_from_stream(filename, _as_stream(source), metadata=metadata)
        except PyMongoError as e:
            raise BackendUnavailableError("gridfs-blob-store", str(e)) from e
        logger.info("Stored image %s in GridFS for user %s", file_id, user_id)
        return str(file_id)

    async def get(self, blob_id: str) -> StoredBlob | None:
        from gridfs.errors import NoFile
        from pymongo.errors import PyMongoError

        if not is_blob_id(blob_id):
            return None
        try:
            grid_out = await self._bucket.open_download_stream(ObjectId(blob_id))
        except NoFile:
            return None
        except PyMongoError as e:
            raise BackendUnavailableError("gridfs-blob-store", str(e)) from e
        metadata = grid_out.metadata or {}

        async def chunks() -> AsyncIterator[bytes]:
            while True:
                chunk = await grid_out.readchunk()
                if not chunk:
                    break
                yield chunk

        return StoredBlob(blob_id, metadata.get("contentType") or "image/jpeg", metadata, grid_out.length, chunks)

    async def delete(self, blob_id: str) -> None:
        from gridfs.errors import NoFile

        if not is_blob_id(blob_id):
            return
        try:
            await self._bucket.delete(ObjectId(blob_id))
        except NoFile:
            pass

    async def list_all(self) -> list[BlobInfo]:
        blobs = []
        async for f in self._bucket.find({}):
            blobs.append(BlobInfo(id=str(f._id), metadata=f.metadata or {}, size=f.length))
        return blobs

    async def close(self) -> None:
        await self._client.close()


def build_blob_store(settings: Settings) -> BlobStore:
    cfg = settings.image_store
    if cfg.backend == "gridfs":
        return GridFSBlobStore(
            settings.storage.mongo_uri,
            settings.storage.mongo_database,
            settings.storage.mongo_timeout_ms,
        )
    if cfg.backend != "filesystem":
        logger.warning("Unknown image store backend %r, using filesystem", cfg.backend)
    return FilesystemBlobStore(cfg.base_dir, cfg.chunk_size)
