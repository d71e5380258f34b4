from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from repairdesk.config import Settings
from repairdesk.dependencies import get_blob_store, get_settings_dep, get_storage
from repairdesk.schemas import CleanupResult
from repairdesk.services.blob_store import BlobStore
from repairdesk.services.image_sweep import sweep_dangling_images
from repairdesk.services.summary import build_data_summary
from repairdesk.storage.facade import StorageFacade

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/image-cleanup")
async def image_cleanup(
    storage: StorageFacade = Depends(get_storage),
    blobs: BlobStore = Depends(get_blob_store),
):
    result = await sweep_dangling_images(storage, blobs)
    body = CleanupResult(
        cleaned_count=result.repaired,
        total_entries_checked=result.checked,
        valid_images_found=result.valid_images,
    ).model_dump(by_alias=True)
    return {"success": True, "message": f"Cleaned up {result.repaired} invalid image references", **body}


@router.get("/data-summary")
async def data_summary(
    user_id: str = Query(default="", alias="userId"),
    storage: StorageFacade = Depends(get_storage),
    blobs: BlobStore = Depends(get_blob_store),
):
    return await build_data_summary(storage, blobs, user_id or None)


@router.get("/storage")
async def storage_info(
    storage: StorageFacade = Depends(get_storage),
    settings: Settings = Depends(get_settings_dep),
):
    return {
        "backend": storage.backend,
        "label": storage.backend_label,
        "fallbacks": [s.name for s in storage.fallbacks],
        "pushCapable": storage.primary.push_capable,
        "pollInterval": storage.poll_interval,
        "imageStore": settings.image_store.backend,
    }
