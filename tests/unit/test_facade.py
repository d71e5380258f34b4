import asyncio

import pytest

from repairdesk.config import Settings, StorageConfig
from repairdesk.errors import BackendUnavailableError, NotFoundError, ValidationError
from repairdesk.storage.base import StorageBackend
from repairdesk.storage.facade import StorageFacade, build_storage
from repairdesk.storage.local_store import LocalRecordStore
from repairdesk.storage.mongo_store import MongoRecordStore
from repairdesk.storage.sql_store import SqlRecordStore


@pytest.fixture
def facade(local_store):
    return StorageFacade(local_store, poll_interval=0.05)


async def test_create_requires_user_id_before_touching_backend(down_store, entry_payload):
    facade = StorageFacade(down_store)
    with pytest.raises(ValidationError):
        await facade.create(entry_payload(user_id=""))
    assert down_store.calls == 0


async def test_create_sets_defaults(facade, entry_payload):
    payload = entry_payload()
    del payload["advancecash"]
    entry_id = await facade.create(payload)

    entry = await facade.get(entry_id, "u1")
    assert entry.status == "pending"
    assert entry.parts == []
    assert entry.advancecash == "0"
    assert entry.total_amount == "0"
    assert entry.created_at


async def test_create_rejects_invalid_fields(facade, entry_payload):
    with pytest.raises(ValidationError):
        await facade.create(entry_payload(contactNumber="98765432101"))
    with pytest.raises(ValidationError):
        await facade.create(entry_payload(advancecash="-10"))


async def test_create_falls_back_when_primary_is_down(down_store, local_store, entry_payload):
    facade = StorageFacade(down_store, [local_store])
    entry_id = await facade.create(entry_payload())

    assert down_store.calls == 1
    assert (await local_store.get(entry_id, "u1"))["customerName"] == "Ravi Kumar"
    assert [e.id for e in await facade.list("u1")] == [entry_id]


async def test_all_tiers_down_raises(down_store, entry_payload):
    facade = StorageFacade(down_store, [down_store])
    with pytest.raises(BackendUnavailableError):
        await facade.create(entry_payload())
    with pytest.raises(BackendUnavailableError):
        await facade.list("u1")


async def test_list_empty_user_is_empty(down_store):
    assert await StorageFacade(down_store).list("") == []


async def test_list_newest_first(facade, entry_payload):
    first = await facade.create(entry_payload(customerName="A"))
    second = await facade.create(entry_payload(customerName="B"))
    assert [e.id for e in await facade.list("u1")] == [second, first]


async def test_update_never_touches_identity_fields(facade, entry_payload):
    entry_id = await facade.create(entry_payload())
    before = await facade.get(entry_id, "u1")

    await facade.update(entry_id, {
        "id": "other", "userId": "u1", "createdAt": "1999-01-01T00:00:00+00:00", "repairType": "Overhaul",
    })
    after = await facade.get(entry_id, "u1")
    assert after.repair_type == "Overhaul"
    assert after.id == entry_id
    assert after.user_id == "u1"
    assert after.created_at == before.created_at


async def test_update_missing_entry(facade):
    with pytest.raises(NotFoundError):
        await facade.update("missing", {"repairType": "x"}, "u1")


async def test_update_validates_fields(facade, entry_payload):
    entry_id = await facade.create(entry_payload())
    with pytest.raises(ValidationError):
        await facade.update(entry_id, {"status": "cancelled"}, "u1")
    with pytest.raises(ValidationError):
        await facade.update(entry_id, {"advancecash": "abc"}, "u1")


async def test_delivered_cannot_return_to_pending(facade, entry_payload):
    entry_id = await facade.create(entry_payload())
    await facade.update(entry_id, {"status": "delivered"}, "u1")
    with pytest.raises(ValidationError):
        await facade.update(entry_id, {"status": "pending"}, "u1")
    assert (await facade.get(entry_id, "u1")).status == "delivered"


async def test_update_reaches_entry_on_fallback_tier(tmp_path, entry_payload):
    primary = LocalRecordStore(tmp_path / "primary")
    fallback = LocalRecordStore(tmp_path / "fallback")
    facade = StorageFacade(primary, [fallback])
    entry_id = await fallback.create(entry_payload())

    await facade.update(entry_id, {"bikeModel": "Pulsar"}, "u1")
    assert (await fallback.get(entry_id, "u1"))["bikeModel"] == "Pulsar"


async def test_delete_reaches_entry_on_fallback_tier(tmp_path, entry_payload):
    primary = LocalRecordStore(tmp_path / "primary")
    fallback = LocalRecordStore(tmp_path / "fallback")
    facade = StorageFacade(primary, [fallback])
    entry_id = await fallback.create(entry_payload())

    await facade.delete(entry_id, "u1")
    assert await fallback.get(entry_id, "u1") is None
    assert await facade.get(entry_id, "u1") is None


async def test_delete_skips_unavailable_tier(down_store, local_store, entry_payload):
    facade = StorageFacade(local_store, [down_store])
    entry_id = await local_store.create(entry_payload())

    await facade.delete(entry_id, "u1")
    assert await local_store.get(entry_id, "u1") is None


async def test_delete_all_tiers_down_raises(down_store):
    facade = StorageFacade(down_store)
    with pytest.raises(BackendUnavailableError):
        await facade.delete("e1", "u1")


async def test_update_falls_back_when_primary_down(down_store, local_store, entry_payload):
    facade = StorageFacade(down_store, [local_store])
    entry_id = await local_store.create(entry_payload())
    await facade.update(entry_id, {"bikeModel": "Pulsar"})
    assert (await local_store.get(entry_id))["bikeModel"] == "Pulsar"


async def test_delete_is_idempotent(facade, entry_payload):
    entry_id = await facade.create(entry_payload())
    await facade.delete(entry_id, "u1")
    await facade.delete(entry_id, "u1")
    assert await facade.list("u1") == []


async def test_entries_with_images(facade, entry_payload):
    await facade.create(entry_payload(imageUrl="/images/aaaaaaaaaaaaaaaaaaaaaaaa"))
    await facade.create(entry_payload())
    assert len(await facade.entries_with_images()) == 1


# ── subscriptions ─────────────────────────────────────────


async def test_subscribe_delivers_immediately_then_polls(facade, entry_payload):
    received = []
    sub = await facade.subscribe("u1", received.append)
    try:
        assert received == [[]]
        assert sub.mode == "poll"

        await facade.create(entry_payload())
        await asyncio.sleep(0.25)
        assert len(received) >= 3
        assert len(received[-1]) == 1
    finally:
        sub.cancel()


async def test_cancel_stops_delivery_and_is_idempotent(facade):
    received = []
    sub = await facade.subscribe("u1", received.append)
    await asyncio.sleep(0.12)

    sub()
    sub.cancel()
    assert not sub.active
    count = len(received)
    await asyncio.sleep(0.2)
    assert len(received) == count


async def test_async_callback(facade, entry_payload):
    await facade.create(entry_payload())
    seen = asyncio.Event()
    lists = []

    async def on_change(entries):
        lists.append(entries)
        seen.set()

    sub = await facade.subscribe("u1", on_change)
    await asyncio.wait_for(seen.wait(), 1)
    sub.cancel()
    assert lists[0][0].customer_name == "Ravi Kumar"


async def test_empty_user_subscription_delivers_once(facade):
    received = []
    sub = await facade.subscribe("", received.append)
    await asyncio.sleep(0.15)
    assert received == [[]]
    assert not sub.active


class _PushStore(LocalRecordStore):
    push_capable = True

    def __init__(self, base_dir):
        super().__init__(base_dir)
        self.changes = asyncio.Queue()

    async def watch(self, user_id):
        while True:
            await self.changes.get()
            yield


class _BrokenPushStore(LocalRecordStore):
    push_capable = True

    async def watch(self, user_id):
        raise BackendUnavailableError("push", "change streams need a replica set")
        yield


async def test_push_store_delivers_on_change(tmp_path, entry_payload):
    store = _PushStore(tmp_path / "push")
    facade = StorageFacade(store, poll_interval=60)
    received = []
    sub = await facade.subscribe("u1", received.append)
    try:
        assert sub.mode == "push"
        await store.create(entry_payload())
        store.changes.put_nowait(None)
        for _ in range(50):
            if len(received) == 2:
                break
            await asyncio.sleep(0.01)
        assert len(received) == 2
        assert len(received[1]) == 1
    finally:
        sub.cancel()


async def test_failed_watch_degrades_to_polling(tmp_path):
    facade = StorageFacade(_BrokenPushStore(tmp_path / "broken"), poll_interval=0.05)
    received = []
    sub = await facade.subscribe("u1", received.append)
    await asyncio.sleep(0.25)
    sub.cancel()
    assert len(received) >= 3
    assert sub.mode == "poll"


async def test_close_cancels_live_subscriptions(facade):
    sub = await facade.subscribe("u1", lambda entries: None)
    await facade.close()
    assert not sub.active


# ── unreachable cloud backend ─────────────────────────────


async def test_unreachable_mongo_falls_back_to_local(local_store, entry_payload):
    mongo = MongoRecordStore("mongodb://127.0.0.1:1", timeout_ms=200)
    facade = StorageFacade(mongo, [local_store])
    try:
        entry_id = await facade.create(entry_payload())
        assert (await local_store.get(entry_id, "u1")) is not None
        assert [e.id for e in await facade.list("u1")] == [entry_id]
    finally:
        await facade.close()


# ── backend selection ─────────────────────────────────────


def test_resolve_backend():
    assert StorageBackend.resolve("cloud-document-db") is StorageBackend.CLOUD_DOCUMENT_DB
    assert StorageBackend.resolve(" Local-Document-DB ") is StorageBackend.LOCAL_DOCUMENT_DB
    assert StorageBackend.resolve(None) is StorageBackend.BROWSER_LOCAL
    assert StorageBackend.resolve("firestore") is StorageBackend.BROWSER_LOCAL


def _settings(tmp_path, backend):
    return Settings(storage=StorageConfig(backend=backend, local_dir=str(tmp_path / "local")))


def test_build_browser_local(tmp_path):
    facade = build_storage(_settings(tmp_path, "browser-local"))
    assert isinstance(facade.primary, LocalRecordStore)
    assert facade.fallbacks == ()
    assert facade.poll_interval == 1.0
    assert facade.backend_label == "Local Storage"


def test_build_unknown_defaults_to_browser_local(tmp_path):
    facade = build_storage(_settings(tmp_path, "nonsense"))
    assert facade.backend == "browser-local"


async def test_build_local_document_db(tmp_path, session_factory):
    facade = build_storage(_settings(tmp_path, "local-document-db"), session_factory)
    assert isinstance(facade.primary, SqlRecordStore)
    assert [s.name for s in facade.fallbacks] == ["browser-local"]
    assert facade.poll_interval == 2.0


async def test_build_cloud_document_db(tmp_path, session_factory):
    facade = build_storage(_settings(tmp_path, "cloud-document-db"), session_factory)
    try:
        assert isinstance(facade.primary, MongoRecordStore)
        assert facade.primary.push_capable
        assert [s.name for s in facade.fallbacks] == ["local-document-db", "browser-local"]
    finally:
        await facade.close()
