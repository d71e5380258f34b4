"""Pydantic request/response schemas."""

from repairdesk.schemas.repair_entry import (
    Part, RepairEntry, RepairEntryCreate, RepairEntryUpdate, DeliveryRequest,
)
from repairdesk.schemas.company_details import CompanyDetailsIn, CompanyDetailsRead
from repairdesk.schemas.image import ImageUploadResult, CleanupResult

__all__ = [
    "Part", "RepairEntry", "RepairEntryCreate", "RepairEntryUpdate", "DeliveryRequest",
    "CompanyDetailsIn", "CompanyDetailsRead",
    "ImageUploadResult", "CleanupResult",
]
