import io

import pytest
import pytest_asyncio
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from repairdesk.db.engine import create_tables
from repairdesk.errors import BackendUnavailableError
from repairdesk.services.blob_store import FilesystemBlobStore
from repairdesk.storage.base import RecordStore
from repairdesk.storage.local_store import LocalRecordStore


class DownStore(RecordStore):
    """A backend that is never reachable. Counts how often it was asked."""

    name = "down"
    label = "Unreachable"

    def __init__(self):
        self.calls = 0

    def _fail(self):
        self.calls += 1
        raise BackendUnavailableError(self.name, "connection refused")

    async def create(self, document):
        self._fail()

    async def list(self, user_id):
        self._fail()

    async def get(self, entry_id, user_id=None):
        self._fail()

    async def update(self, entry_id, fields, user_id=None):
        self._fail()

    async def delete(self, entry_id, user_id=None):
        self._fail()

    async def entries_with_images(self):
        self._fail()


@pytest.fixture
def down_store():
    return DownStore()


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'repairdesk.db'}")
    await create_tables(engine)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def local_store(tmp_path):
    return LocalRecordStore(tmp_path / "local")


@pytest.fixture
def blob_store(tmp_path):
    return FilesystemBlobStore(tmp_path / "images", chunk_size=1024)


@pytest.fixture
def png_bytes():
    img = Image.new("RGB", (64, 48), color=(200, 30, 30))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def jpeg_bytes():
    img = Image.new("RGB", (320, 240), color=(70, 130, 180))
    buf = io.BytesIO()
    img.save(buf, format="JPEG")
    return buf.getvalue()


def _entry_payload(user_id="u1", **overrides):
    payload = {
        "userId": user_id,
        "customerName": "Ravi Kumar",
        "contactNumber": "9876543210",
        "address": "12 MG Road",
        "bikeType": "Scooter",
        "bikeModel": "Activa 6G",
        "numberPlate": "GJ06AB1234",
        "repairType": "Service",
        "entryDate": "2024-03-01",
        "expectedDeliveryDate": "2024-03-03",
        "advancecash": "100",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def entry_payload():
    """Factory for a wire-format entry body: entry_payload("u1", customerName="...")."""
    return _entry_payload
