"""Data summary for the maintenance view and the CLI."""

from __future__ import annotations

from datetime import datetime, timezone

from repairdesk.services.blob_store import BlobStore
from repairdesk.storage.facade import StorageFacade

RECENT_LIMIT = 5


async def build_data_summary(storage: StorageFacade, blobs: BlobStore, user_id: str | None = None) -> dict:
    """Entry counts by status (per user) plus image totals across the store.

    Without a user_id the entry section is left out: entries are only ever
    listed per owner.
    """
    images = await blobs.list_all()
    total_size = sum(b.size for b in images)
    recent_images = sorted(images, key=lambda b: b.metadata.get("uploadDate") or "", reverse=True)

    summary = {
        "storage": {
            "backend": storage.backend,
            "label": storage.backend_label,
            "fallbacks": [s.name for s in storage.fallbacks],
        },
        "images": {
            "total": len(images),
            "totalSize": total_size,
            "totalSizeMB": f"{total_size / (1024 * 1024):.2f}",
            "recentImages": [
                {
                    "id": b.id,
                    "filename": b.metadata.get("originalName", ""),
                    "size": b.size,
                    "uploadDate": b.metadata.get("uploadDate"),
                    "contentType": b.metadata.get("contentType"),
                }
                for b in recent_images[:RECENT_LIMIT]
            ],
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if user_id:
        entries = await storage.list(user_id)
        recent = sorted(entries, key=lambda e: e.entry_date or "", reverse=True)
        summary["repairEntries"] = {
            "total": len(entries),
            "pending": sum(1 for e in entries if e.status == "pending"),
            "delivered": sum(1 for e in entries if e.status == "delivered"),
            "recentEntries": [
                {
                    "id": e.id,
                    "customerName": e.customer_name,
                    "bikeType": e.bike_type,
                    "status": e.status,
                    "entryDate": e.entry_date,
                    "hasImage": bool(e.image_url),
                }
                for e in recent[:RECENT_LIMIT]
            ],
        }
    return summary
