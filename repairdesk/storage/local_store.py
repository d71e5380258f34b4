"""Per-user local persistence: one JSON array per user key on disk.

Layout: {base_dir}/repairEntries_{userId}.json, newest entry first.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import quote, unquote

from repairdesk.errors import BackendUnavailableError, NotFoundError
from repairdesk.models.base import new_id
from repairdesk.storage.base import RecordStore, strip_immutable

logger = logging.getLogger(__name__)

KEY_PREFIX = "repairEntries_"


def partition_key(user_id: str) -> str:
    return f"{KEY_PREFIX}{user_id}"


class LocalRecordStore(RecordStore):
    name = "browser-local"
    label = "Local Storage"

    def __init__(self, base_dir: str | Path):
        self._base = Path(base_dir)
        self._lock = asyncio.Lock()

    # ── file helpers (run in a worker thread) ─────────────

    def _path(self, user_id: str) -> Path:
        return self._base / f"{quote(partition_key(user_id), safe='')}.json"

    def _read_sync(self, user_id: str) -> list[dict]:
        p = self._path(user_id)
        if not p.exists():
            return []
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.error("Corrupt local partition %s, treating as empty", p.name)
            return []
        return data if isinstance(data, list) else []

    def _write_sync(self, user_id: str, entries: list[dict]) -> None:
        self._base.mkdir(parents=True, exist_ok=True)
        p = self._path(user_id)
        tmp = p.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(entries), encoding="utf-8")
        os.replace(tmp, p)

    def _user_ids_sync(self) -> list[str]:
        if not self._base.exists():
            return []
        ids = []
        for f in self._base.glob("*.json"):
            key = unquote(f.stem)
            if key.startswith(KEY_PREFIX):
                ids.append(key[len(KEY_PREFIX):])
        return ids

    async def _read(self, user_id: str) -> list[dict]:
        try:
            return await asyncio.to_thread(self._read_sync, user_id)
        except OSError as e:
            raise BackendUnavailableError(self.name, str(e)) from e

    async def _write(self, user_id: str, entries: list[dict]) -> None:
        try:
            await asyncio.to_thread(self._write_sync, user_id, entries)
        except OSError as e:
            raise BackendUnavailableError(self.name, str(e)) from e

    async def _owner_of(self, entry_id: str) -> str | None:
        """Scan every partition for entry_id when the caller has no userId."""
        try:
            user_ids = await asyncio.to_thread(self._user_ids_sync)
        except OSError as e:
            raise BackendUnavailableError(self.name, str(e)) from e
        for uid in user_ids:
            if any(e.get("id") == entry_id for e in await self._read(uid)):
                return uid
        return None

    # ── RecordStore ───────────────────────────────────────

    async def create(self, document: dict) -> str:
        user_id = document["userId"]
        entry = {
            **document,
            "id": new_id(),
            "createdAt": document.get("createdAt") or datetime.now(timezone.utc).isoformat(),
        }
        async with self._lock:
            entries = await self._read(user_id)
            entries.insert(0, entry)
            await self._write(user_id, entries)
        return entry["id"]

    async def list(self, user_id: str) -> list[dict]:
        return await self._read(user_id)

    async def get(self, entry_id: str, user_id: str | None = None) -> dict | None:
        user_id = user_id or await self._owner_of(entry_id)
        if not user_id:
            return None
        for e in await self._read(user_id):
            if e.get("id") == entry_id:
                return e
        return None

    async def update(self, entry_id: str, fields: dict, user_id: str | None = None) -> None:
        async with self._lock:
            user_id = user_id or await self._owner_of(entry_id)
            if not user_id:
                raise NotFoundError(f"Entry {entry_id} not found")
            entries = await self._read(user_id)
            for i, e in enumerate(entries):
                if e.get("id") == entry_id:
                    entries[i] = {**e, **strip_immutable(fields)}
                    await self._write(user_id, entries)
                    return
        raise NotFoundError(f"Entry {entry_id} not found")

    async def delete(self, entry_id: str, user_id: str | None = None) -> None:
        async with self._lock:
            user_id = user_id or await self._owner_of(entry_id)
            if not user_id:
                return
            entries = await self._read(user_id)
            remaining = [e for e in entries if e.get("id") != entry_id]
            if len(remaining) != len(entries):
                await self._write(user_id, remaining)

    async def entries_with_images(self) -> list[dict]:
        try:
            user_ids = await asyncio.to_thread(self._user_ids_sync)
        except OSError as e:
            raise BackendUnavailableError(self.name, str(e)) from e
        found = []
        for uid in user_ids:
            found.extend(e for e in await self._read(uid) if e.get("imageUrl"))
        return found
