"""Storage façade: one entry API over the configured backend + fallback tiers.

Tiers are tried in order. A BackendUnavailableError moves the operation to
the next tier; validation failures surface immediately and untouched.
Writes that land on a fallback tier stay there; nothing promotes them back
to the primary later.
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import datetime, timezone

from pydantic import BaseModel, ValidationError as PydanticValidationError

from repairdesk.config import Settings
from repairdesk.errors import BackendUnavailableError, NotFoundError, ValidationError, from_pydantic
from repairdesk.schemas.repair_entry import RepairEntry, RepairEntryCreate, RepairEntryUpdate
from repairdesk.storage.base import RecordStore, StorageBackend, strip_immutable
from repairdesk.storage.local_store import LocalRecordStore
from repairdesk.storage.subscription import Callback, Subscription

logger = logging.getLogger(__name__)


class StorageFacade:
    def __init__(
        self,
        primary: RecordStore,
        fallbacks: Sequence[RecordStore] = (),
        poll_interval: float = 2.0,
    ):
        self.primary = primary
        self.fallbacks = tuple(fallbacks)
        self.poll_interval = poll_interval
        self._subscriptions: weakref.WeakSet[Subscription] = weakref.WeakSet()

    @property
    def tiers(self) -> tuple[RecordStore, ...]:
        return (self.primary, *self.fallbacks)

    @property
    def backend(self) -> str:
        return self.primary.name

    @property
    def backend_label(self) -> str:
        return self.primary.label

    # ── helpers ───────────────────────────────────────────

    async def _read(self, op: Callable[[RecordStore], Awaitable]):
        """Run a read on the first tier that is reachable."""
        last_error: BackendUnavailableError | None = None
        for store in self.tiers:
            try:
                return await op(store)
            except BackendUnavailableError as e:
                logger.warning("Read failed on %s, trying next tier: %s", store.name, e)
                last_error = e
        raise last_error

    # ── entries ───────────────────────────────────────────

    async def create(self, entry: RepairEntryCreate | Mapping) -> str:
        """Persist a new pending entry and return its id."""
        if not isinstance(entry, RepairEntryCreate):
            try:
                entry = RepairEntryCreate.model_validate(dict(entry))
            except PydanticValidationError as e:
                raise from_pydantic(e)
        if not entry.user_id.strip():
            raise ValidationError("User ID is required")

        document = entry.model_dump(by_alias=True)
        document.update(
            status="pending",
            deliveryDate="",
            totalAmount="0",
            parts=[],
            createdAt=datetime.now(timezone.utc).isoformat(),
        )

        last_error: BackendUnavailableError | None = None
        for store in self.tiers:
            try:
                entry_id = await store.create(dict(document))
            except BackendUnavailableError as e:
                logger.warning("Create failed on %s, trying next tier: %s", store.name, e)
                last_error = e
                continue
            if store is not self.primary:
                logger.warning("Entry %s saved to fallback tier %s", entry_id, store.name)
            return entry_id
        raise last_error

    async def list(self, user_id: str) -> list[RepairEntry]:
        if not user_id:
            return []
        docs = await self._read(lambda s: s.list(user_id))
        return [RepairEntry.model_validate(d) for d in docs]

    async def get(self, entry_id: str, user_id: str | None = None) -> RepairEntry | None:
        """Look up one entry; with a user_id, fallback tiers are searched too."""
        unavailable: BackendUnavailableError | None = None
        for store in self.tiers:
            try:
                doc = await store.get(entry_id, user_id)
            except BackendUnavailableError as e:
                logger.warning("Get failed on %s, trying next tier: %s", store.name, e)
                unavailable = e
                continue
            if doc is not None:
                return RepairEntry.model_validate(doc)
            if not user_id:
                return None
        if unavailable is not None:
            raise unavailable
        return None

    async def update(self, entry_id: str, fields: RepairEntryUpdate | Mapping, user_id: str | None = None) -> None:
        """Partial update; id, userId and createdAt are never written."""
        if isinstance(fields, BaseModel):
            raw = fields.model_dump(by_alias=True, exclude_unset=True)
        else:
            raw = dict(fields)
        user_id = user_id or raw.get("userId") or None
        try:
            parsed = RepairEntryUpdate.model_validate(strip_immutable(raw))
        except PydanticValidationError as e:
            raise from_pydantic(e)
        updates = parsed.model_dump(by_alias=True, exclude_unset=True)

        if updates.get("status") == "pending":
            current = await self.get(entry_id, user_id)
            if current is not None and current.status == "delivered":
                raise ValidationError("A delivered entry cannot be moved back to pending")

        unavailable: BackendUnavailableError | None = None
        for store in self.tiers:
            try:
                await store.update(entry_id, updates, user_id)
            except BackendUnavailableError as e:
                logger.warning("Update failed on %s, trying next tier: %s", store.name, e)
                unavailable = e
                continue
            except NotFoundError:
                if not user_id:
                    break
                continue
            if store is not self.primary:
                logger.warning("Entry %s updated on fallback tier %s", entry_id, store.name)
            return
        if unavailable is not None:
            raise unavailable
        raise NotFoundError(f"Entry {entry_id} not found")

    async def delete(self, entry_id: str, user_id: str | None = None) -> None:
        """Idempotent delete; with a user_id, every reachable tier is cleared."""
        last_error: BackendUnavailableError | None = None
        deleted = False
        for store in self.tiers:
            try:
                await store.delete(entry_id, user_id)
            except BackendUnavailableError as e:
                logger.warning("Delete failed on %s, trying next tier: %s", store.name, e)
                last_error = e
                continue
            deleted = True
            if not user_id:
                return
        if not deleted:
            raise last_error

    async def entries_with_images(self) -> list[RepairEntry]:
        docs = await self._read(lambda s: s.entries_with_images())
        return [RepairEntry.model_validate(d) for d in docs]

    # ── change notification ───────────────────────────────

    async def subscribe(self, user_id: str, callback: Callback) -> Subscription:
        """Deliver the list now and on every change; returns the cancel handle."""
        watch = self.primary.watch if self.primary.push_capable else None
        sub = Subscription(user_id, self.list, callback, interval=self.poll_interval, watch=watch)
        await sub.start(follow=bool(user_id))
        if sub.active:
            self._subscriptions.add(sub)
        return sub

    async def close(self) -> None:
        for sub in list(self._subscriptions):
            sub.cancel()
        for store in self.tiers:
            await store.close()


def build_storage(settings: Settings, session_factory=None) -> StorageFacade:
    """Select the configured backend once and wire its fallback chain."""
    cfg = settings.storage
    backend = StorageBackend.resolve(cfg.backend)
    local = LocalRecordStore(cfg.local_dir)
    if backend is StorageBackend.BROWSER_LOCAL:
        return StorageFacade(local, poll_interval=cfg.poll_interval_local)

    from repairdesk.storage.sql_store import SqlRecordStore

    if session_factory is None:
        from repairdesk.db.engine import async_session_factory as session_factory
    sql = SqlRecordStore(session_factory)
    if backend is StorageBackend.LOCAL_DOCUMENT_DB:
        return StorageFacade(sql, (local,), poll_interval=cfg.poll_interval_remote)

    from repairdesk.storage.mongo_store import MongoRecordStore

    mongo = MongoRecordStore(cfg.mongo_uri, cfg.mongo_database, cfg.mongo_timeout_ms)
    return StorageFacade(mongo, (sql, local), poll_interval=cfg.poll_interval_remote)
