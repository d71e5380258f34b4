import io
import re

import pytest

from repairdesk.errors import ValidationError
from repairdesk.services.blob_store import (
    INVALID_TYPE_MESSAGE,
    MAX_IMAGE_BYTES,
    TOO_LARGE_MESSAGE,
    FilesystemBlobStore,
    blob_id_from_url,
    image_url,
    validate_image,
)


async def test_put_and_get_roundtrip(blob_store, png_bytes):
    blob_id = await blob_store.put(png_bytes, "image/png", user_id="u1", original_name="bike.png")
    assert re.fullmatch(r"[a-f0-9]{24}", blob_id)

    blob = await blob_store.get(blob_id)
    assert blob is not None
    assert blob.content_type == "image/png"
    assert blob.metadata["userId"] == "u1"
    assert blob.metadata["entryId"] == "temp"
    assert blob.metadata["originalName"] == "bike.png"
    assert blob.metadata["uploadDate"]
    assert await blob.read() == png_bytes


async def test_put_streams_file_objects_in_chunks(tmp_path, jpeg_bytes):
    blob_store = FilesystemBlobStore(tmp_path / "chunked", chunk_size=64)
    blob_id = await blob_store.put(io.BytesIO(jpeg_bytes), "image/jpeg", user_id="u1", entry_id="e1")

    blob = await blob_store.get(blob_id)
    chunks = [c async for c in blob]
    assert len(chunks) > 1
    assert b"".join(chunks) == jpeg_bytes
    assert blob.metadata["entryId"] == "e1"
    assert blob.size == len(jpeg_bytes)


async def test_wrong_type_rejected_before_write(blob_store, png_bytes):
    with pytest.raises(ValidationError) as exc:
        await blob_store.put(png_bytes, "image/gif", user_id="u1")
    assert exc.value.message == INVALID_TYPE_MESSAGE
    assert await blob_store.list_all() == []


async def test_oversized_payload_rejected_before_write(blob_store):
    with pytest.raises(ValidationError) as exc:
        await blob_store.put(b"\0" * (MAX_IMAGE_BYTES + 1), "image/jpeg", user_id="u1")
    assert exc.value.message == TOO_LARGE_MESSAGE
    assert await blob_store.list_all() == []


async def test_stream_longer_than_declared_size_is_aborted(blob_store, tmp_path):
    stream = io.BytesIO(b"\0" * (MAX_IMAGE_BYTES + 10))
    with pytest.raises(ValidationError):
        await blob_store.put(stream, "image/jpeg", user_id="u1", size=100)
    assert await blob_store.list_all() == []
    assert list((tmp_path / "images").iterdir()) == []


async def test_exactly_five_mib_is_accepted(blob_store):
    blob_id = await blob_store.put(b"\0" * MAX_IMAGE_BYTES, "image/webp", user_id="u1")
    assert (await blob_store.get(blob_id)).size == MAX_IMAGE_BYTES


async def test_user_id_required(blob_store, png_bytes):
    with pytest.raises(ValidationError):
        await blob_store.put(png_bytes, "image/png", user_id="")


async def test_unknown_and_malformed_ids(blob_store):
    assert await blob_store.get("0123456789abcdef01234567") is None
    assert await blob_store.get("../../etc/passwd") is None
    assert await blob_store.get("") is None


async def test_delete_is_idempotent(blob_store, png_bytes):
    blob_id = await blob_store.put(png_bytes, "image/png", user_id="u1")
    await blob_store.delete(blob_id)
    await blob_store.delete(blob_id)
    await blob_store.delete("not-an-id")
    assert await blob_store.get(blob_id) is None


async def test_list_all_reports_sizes(blob_store, png_bytes, jpeg_bytes):
    a = await blob_store.put(png_bytes, "image/png", user_id="u1")
    b = await blob_store.put(jpeg_bytes, "image/jpeg", user_id="u2")
    sizes = {info.id: info.size for info in await blob_store.list_all()}
    assert sizes == {a: len(png_bytes), b: len(jpeg_bytes)}


def test_validate_image():
    validate_image("image/png", 10)
    validate_image("IMAGE/JPEG", MAX_IMAGE_BYTES)
    validate_image("image/jpg", 1)
    with pytest.raises(ValidationError):
        validate_image("application/pdf", 10)
    with pytest.raises(ValidationError):
        validate_image(None, 10)
    with pytest.raises(ValidationError):
        validate_image("image/png", MAX_IMAGE_BYTES + 1)


def test_blob_id_from_url():
    blob_id = "65f0c2a1b3d4e5f601234567"
    assert blob_id_from_url(image_url(blob_id)) == blob_id
    assert blob_id_from_url(f"/api/images/{blob_id}") is None
    assert blob_id_from_url(f"https://cdn.example.com/images/{blob_id}") is None
    assert blob_id_from_url(f"/images/{blob_id.upper()}") is None
    assert blob_id_from_url("/images/short") is None
    assert blob_id_from_url("") is None
    assert blob_id_from_url(None) is None
