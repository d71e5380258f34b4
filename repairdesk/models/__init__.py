"""SQLAlchemy ORM models for the local relational store."""

from repairdesk.models.base import Base
from repairdesk.models.repair_entry import RepairEntryRow
from repairdesk.models.company_details import CompanyDetails

__all__ = ["Base", "RepairEntryRow", "CompanyDetails"]
