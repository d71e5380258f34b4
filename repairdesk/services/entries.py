"""Entry lifecycle operations that span more than one store call."""

from __future__ import annotations

import logging

from repairdesk.errors import NotFoundError, ValidationError
from repairdesk.schemas.repair_entry import DeliveryRequest, RepairEntry
from repairdesk.services.billing import compute_delivery, validate_delivery
from repairdesk.services.blob_store import BlobStore, blob_id_from_url
from repairdesk.storage.facade import StorageFacade

logger = logging.getLogger(__name__)


async def deliver_entry(
    storage: StorageFacade,
    entry_id: str,
    user_id: str | None,
    request: DeliveryRequest,
) -> RepairEntry:
    """pending -> delivered: validate, price the parts, write once."""
    validate_delivery(request.delivery_date, request.parts)

    entry = await storage.get(entry_id, user_id or None)
    if entry is None:
        raise NotFoundError(f"Entry {entry_id} not found")
    if entry.status == "delivered":
        raise ValidationError("Entry is already delivered")

    totals = compute_delivery(request.parts, entry.advancecash)
    updates = {
        "deliveryDate": request.delivery_date,
        "parts": [p.model_dump() for p in request.parts],
        "totalAmount": totals.total_amount,
        "finalAmount": totals.final_amount,
        "status": "delivered",
    }
    await storage.update(entry_id, updates, entry.user_id)
    logger.info("Entry %s delivered: total=%s final=%s", entry_id, totals.total_amount, totals.final_amount)

    return entry.model_copy(update={
        "delivery_date": request.delivery_date,
        "parts": list(request.parts),
        "total_amount": totals.total_amount,
        "final_amount": totals.final_amount,
        "status": "delivered",
    })


async def remove_entry(
    storage: StorageFacade,
    blobs: BlobStore,
    entry_id: str,
    user_id: str | None = None,
) -> None:
    """Delete an entry, then its image. Image cleanup never fails the delete."""
    entry = await storage.get(entry_id, user_id or None)
    await storage.delete(entry_id, user_id or None)

    blob_id = blob_id_from_url(entry.image_url) if entry else None
    if blob_id is None:
        return
    try:
        await blobs.delete(blob_id)
    except Exception:
        logger.exception("Could not delete image %s of entry %s", blob_id, entry_id)
