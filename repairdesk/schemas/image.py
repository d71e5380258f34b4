from __future__ import annotations

from pydantic import BaseModel

from repairdesk.schemas.repair_entry import WIRE_CONFIG


class ImageUploadResult(BaseModel):
    model_config = WIRE_CONFIG

    image_id: str
    image_url: str


class CleanupResult(BaseModel):
    model_config = WIRE_CONFIG

    cleaned_count: int
    total_entries_checked: int
    valid_images_found: int
