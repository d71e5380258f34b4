from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import StreamingResponse

from repairdesk.dependencies import get_blob_store
from repairdesk.errors import ValidationError
from repairdesk.schemas import ImageUploadResult
from repairdesk.services.blob_store import BlobStore, image_url

router = APIRouter(prefix="/images", tags=["images"])

CACHE_CONTROL = "public, max-age=31536000, immutable"


@router.post("")
async def upload_image(
    file: UploadFile | None = File(default=None),
    user_id: str = Form(default="", alias="userId"),
    entry_id: str = Form(default="", alias="entryId"),
    blobs: BlobStore = Depends(get_blob_store),
):
    if file is None:
        raise ValidationError("No file provided")
    if not user_id:
        raise ValidationError("User ID required")

    blob_id = await blobs.put(
        file.file,
        file.content_type or "",
        user_id=user_id,
        original_name=file.filename or "",
        entry_id=entry_id or None,
        size=file.size,
    )
    return ImageUploadResult(image_id=blob_id, image_url=image_url(blob_id)).model_dump(by_alias=True)


@router.get("/{image_id}")
async def get_image(image_id: str, blobs: BlobStore = Depends(get_blob_store)):
    blob = await blobs.get(image_id)
    if blob is None:
        raise HTTPException(404, "Image not found")
    headers = {"Cache-Control": CACHE_CONTROL}
    if blob.size:
        headers["Content-Length"] = str(blob.size)
    return StreamingResponse(blob, media_type=blob.content_type, headers=headers)


@router.delete("/{image_id}")
async def delete_image(image_id: str, blobs: BlobStore = Depends(get_blob_store)):
    await blobs.delete(image_id)
    return {"success": True}
