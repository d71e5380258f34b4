"""Cloud document database store (MongoDB via the pymongo async client).

The only push-capable backend: watch() follows a change stream. Change
streams need a replica set; on a standalone server watch() raises and the
subscription falls back to polling.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import AsyncMongoClient, DESCENDING
from pymongo.errors import PyMongoError

from repairdesk.errors import BackendUnavailableError, NotFoundError
from repairdesk.storage.base import RecordStore, strip_immutable

logger = logging.getLogger(__name__)

COLLECTION_NAME = "repairEntries"


def _object_id(entry_id: str) -> ObjectId | None:
    try:
        return ObjectId(entry_id)
    except (InvalidId, TypeError):
        return None


def _to_document(raw: dict) -> dict:
    doc = {k: v for k, v in raw.items() if k != "_id"}
    doc["id"] = str(raw["_id"])
    created = doc.get("createdAt")
    if isinstance(created, datetime):
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        doc["createdAt"] = created.isoformat()
    return doc


class MongoRecordStore(RecordStore):
    name = "cloud-document-db"
    label = "MongoDB (Cloud)"
    push_capable = True

    def __init__(self, uri: str, database: str = "VehicleRepairDB", timeout_ms: int = 5000,
                 client: AsyncMongoClient | None = None):
        self._client = client or AsyncMongoClient(
            uri,
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms,
        )
        self._collection = self._client[database][COLLECTION_NAME]

    async def create(self, document: dict) -> str:
        doc = {k: v for k, v in document.items() if k != "id"}
        doc["createdAt"] = datetime.now(timezone.utc)
        try:
            result = await self._collection.insert_one(doc)
        except PyMongoError as e:
            raise BackendUnavailableError(self.name, str(e)) from e
        return str(result.inserted_id)

    async def list(self, user_id: str) -> list[dict]:
        try:
            cursor = self._collection.find({"userId": user_id}).sort("createdAt", DESCENDING)
            return [_to_document(d) for d in await cursor.to_list()]
        except PyMongoError as e:
            raise BackendUnavailableError(self.name, str(e)) from e

    async def get(self, entry_id: str, user_id: str | None = None) -> dict | None:
        oid = _object_id(entry_id)
        if oid is None:
            return None
        query = {"_id": oid}
        if user_id:
            query["userId"] = user_id
        try:
            raw = await self._collection.find_one(query)
        except PyMongoError as e:
            raise BackendUnavailableError(self.name, str(e)) from e
        return _to_document(raw) if raw else None

    async def update(self, entry_id: str, fields: dict, user_id: str | None = None) -> None:
        oid = _object_id(entry_id)
        if oid is None:
            raise NotFoundError(f"Entry {entry_id} not found")
        updates = strip_immutable(fields)
        query = {"_id": oid}
        if user_id:
            query["userId"] = user_id
        try:
            if updates:
                result = await self._collection.update_one(query, {"$set": updates})
                matched = result.matched_count
            else:
                matched = await self._collection.count_documents(query, limit=1)
        except PyMongoError as e:
            raise BackendUnavailableError(self.name, str(e)) from e
        if not matched:
            raise NotFoundError(f"Entry {entry_id} not found")

    async def delete(self, entry_id: str, user_id: str | None = None) -> None:
        oid = _object_id(entry_id)
        if oid is None:
            return
        try:
            await self._collection.delete_one({"_id": oid})
        except PyMongoError as e:
            raise BackendUnavailableError(self.name, str(e)) from e

    async def entries_with_images(self) -> list[dict]:
        try:
            cursor = self._collection.find({"imageUrl": {"$exists": True, "$nin": [None, ""]}})
            return [_to_document(d) for d in await cursor.to_list()]
        except PyMongoError as e:
            raise BackendUnavailableError(self.name, str(e)) from e

    async def watch(self, user_id: str) -> AsyncIterator[None]:
        # deletes carry no fullDocument, so they always wake the subscriber
        pipeline = [{"$match": {"$or": [
            {"operationType": "delete"},
            {"fullDocument.userId": user_id},
        ]}}]
        try:
            async with await self._collection.watch(pipeline, full_document="updateLookup") as stream:
                async for _change in stream:
                    yield
        except PyMongoError as e:
            raise BackendUnavailableError(self.name, str(e)) from e

    async def close(self) -> None:
        await self._client.close()
