import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from repairdesk.errors import BackendUnavailableError, NotFoundError
from repairdesk.storage.sql_store import SqlRecordStore


@pytest.fixture
def sql_store(session_factory):
    return SqlRecordStore(session_factory)


async def test_create_get_and_list_order(sql_store):
    old = await sql_store.create({"userId": "u1", "customerName": "Old", "createdAt": "2024-01-01T10:00:00+00:00"})
    new = await sql_store.create({"userId": "u1", "customerName": "New", "createdAt": "2024-02-01T10:00:00+00:00"})
    await sql_store.create({"userId": "u2", "customerName": "Other"})

    entries = await sql_store.list("u1")
    assert [e["id"] for e in entries] == [new, old]
    assert entries[0]["customerName"] == "New"
    assert entries[0]["createdAt"].startswith("2024-02-01T10:00:00")

    fetched = await sql_store.get(old)
    assert fetched["customerName"] == "Old"
    assert fetched["status"] == "pending"
    assert await sql_store.get(old, "u2") is None


async def test_update_fields_and_parts(sql_store):
    entry_id = await sql_store.create({"userId": "u1", "customerName": "A"})
    await sql_store.update(entry_id, {
        "parts": [{"description": "Clutch plate", "quantity": 1, "price": 450.0}],
        "totalAmount": "450.00",
        "userId": "hijack",
    }, "u1")

    entry = await sql_store.get(entry_id)
    assert entry["parts"] == [{"description": "Clutch plate", "quantity": 1, "price": 450.0}]
    assert entry["totalAmount"] == "450.00"
    assert entry["userId"] == "u1"


async def test_update_missing_or_foreign_raises(sql_store):
    entry_id = await sql_store.create({"userId": "u1"})
    with pytest.raises(NotFoundError):
        await sql_store.update("missing", {"customerName": "Z"})
    with pytest.raises(NotFoundError):
        await sql_store.update(entry_id, {"customerName": "Z"}, "u2")


async def test_delete_is_idempotent(sql_store):
    entry_id = await sql_store.create({"userId": "u1"})
    await sql_store.delete(entry_id)
    await sql_store.delete(entry_id)
    assert await sql_store.get(entry_id) is None


async def test_entries_with_images(sql_store):
    await sql_store.create({"userId": "u1", "imageUrl": "/images/aaaaaaaaaaaaaaaaaaaaaaaa"})
    await sql_store.create({"userId": "u1"})
    found = await sql_store.entries_with_images()
    assert [e["imageUrl"] for e in found] == ["/images/aaaaaaaaaaaaaaaaaaaaaaaa"]


async def test_unreachable_database_is_backend_unavailable(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'no-such-dir' / 'x.db'}")
    store = SqlRecordStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    try:
        with pytest.raises(BackendUnavailableError):
            await store.list("u1")
        with pytest.raises(BackendUnavailableError):
            await store.create({"userId": "u1"})
    finally:
        await engine.dispose()
