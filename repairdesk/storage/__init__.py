"""Entry persistence: backends, fallback façade and change subscriptions."""

from repairdesk.storage.base import RecordStore, StorageBackend
from repairdesk.storage.facade import StorageFacade, build_storage
from repairdesk.storage.local_store import LocalRecordStore
from repairdesk.storage.subscription import Subscription

__all__ = [
    "RecordStore", "StorageBackend", "StorageFacade", "build_storage",
    "LocalRecordStore", "Subscription",
]
