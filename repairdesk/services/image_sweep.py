"""Consistency sweep: clear entry image references that point at nothing."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from repairdesk.errors import NotFoundError
from repairdesk.services.blob_store import BlobStore, blob_id_from_url
from repairdesk.storage.facade import StorageFacade

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    checked: int
    repaired: int
    valid_images: int


async def sweep_dangling_images(storage: StorageFacade, blobs: BlobStore) -> SweepResult:
    """Blank imageUrl on entries whose reference is malformed or whose blob is gone.

    Entries themselves are never deleted; a second run repairs nothing.
    """
    blob_ids = {b.id for b in await blobs.list_all()}
    entries = await storage.entries_with_images()
    logger.info("Image sweep: %d entries with images, %d stored images", len(entries), len(blob_ids))

    repaired = 0
    for entry in entries:
        blob_id = blob_id_from_url(entry.image_url)
        if blob_id is not None and blob_id in blob_ids:
            continue
        try:
            await storage.update(entry.id, {"imageUrl": ""}, entry.user_id)
        except NotFoundError:
            logger.info("Entry %s was removed during the sweep, skipping", entry.id)
            continue
        logger.info("Cleared image reference %r from entry %s", entry.image_url, entry.id)
        repaired += 1

    return SweepResult(checked=len(entries), repaired=repaired, valid_images=len(blob_ids))
