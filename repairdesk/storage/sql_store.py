"""Local relational-style document store (SQLAlchemy async, SQLite by default)."""

from __future__ import annotations

from datetime import datetime, timezone
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repairdesk.errors import BackendUnavailableError, NotFoundError
from repairdesk.models import RepairEntryRow
from repairdesk.storage.base import RecordStore, strip_immutable

logger = logging.getLogger(__name__)

# wire name -> column attribute
_COLUMNS = {
    "userId": "user_id",
    "customerName": "customer_name",
    "contactNumber": "contact_number",
    "address": "address",
    "vehicleCategory": "vehicle_category",
    "bikeType": "bike_type",
    "bikeModel": "bike_model",
    "numberPlate": "number_plate",
    "repairType": "repair_type",
    "entryDate": "entry_date",
    "expectedDeliveryDate": "expected_delivery_date",
    "deliveryDate": "delivery_date",
    "advancecash": "advancecash",
    "totalAmount": "total_amount",
    "finalAmount": "final_amount",
    "paymentMethod": "payment_method",
    "parts": "parts",
    "imageUrl": "image_url",
    "status": "status",
}


def _to_document(row: RepairEntryRow) -> dict:
    doc = {wire: getattr(row, attr) for wire, attr in _COLUMNS.items()}
    doc["id"] = row.id
    created = row.created_at
    if created is not None and created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    doc["createdAt"] = created.isoformat() if created else ""
    return doc


def _to_columns(document: dict) -> dict:
    return {_COLUMNS[k]: v for k, v in document.items() if k in _COLUMNS}


def _parse_created(value) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


class SqlRecordStore(RecordStore):
    name = "local-document-db"
    label = "Local Database"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create(self, document: dict) -> str:
        try:
            async with self._session_factory() as db:
                row = RepairEntryRow(**_to_columns(document))
                created = _parse_created(document.get("createdAt"))
                if created:
                    row.created_at = created
                db.add(row)
                await db.commit()
                await db.refresh(row)
                return row.id
        except SQLAlchemyError as e:
            raise BackendUnavailableError(self.name, str(e)) from e

    async def list(self, user_id: str) -> list[dict]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(RepairEntryRow)
                    .where(RepairEntryRow.user_id == user_id)
                    .order_by(RepairEntryRow.created_at.desc())
                )
                return [_to_document(r) for r in result.scalars().all()]
        except SQLAlchemyError as e:
            raise BackendUnavailableError(self.name, str(e)) from e

    async def get(self, entry_id: str, user_id: str | None = None) -> dict | None:
        try:
            async with self._session_factory() as db:
                row = await db.get(RepairEntryRow, entry_id)
        except SQLAlchemyError as e:
            raise BackendUnavailableError(self.name, str(e)) from e
        if row is None or (user_id and row.user_id != user_id):
            return None
        return _to_document(row)

    async def update(self, entry_id: str, fields: dict, user_id: str | None = None) -> None:
        values = _to_columns(strip_immutable(fields))
        try:
            async with self._session_factory() as db:
                row = await db.get(RepairEntryRow, entry_id)
                if row is None or (user_id and row.user_id != user_id):
                    raise NotFoundError(f"Entry {entry_id} not found")
                for k, v in values.items():
                    setattr(row, k, v)
                await db.commit()
        except SQLAlchemyError as e:
            raise BackendUnavailableError(self.name, str(e)) from e

    async def delete(self, entry_id: str, user_id: str | None = None) -> None:
        try:
            async with self._session_factory() as db:
                row = await db.get(RepairEntryRow, entry_id)
                if row is None:
                    return
                await db.delete(row)
                await db.commit()
        except SQLAlchemyError as e:
            raise BackendUnavailableError(self.name, str(e)) from e

    async def entries_with_images(self) -> list[dict]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(RepairEntryRow).where(
                        RepairEntryRow.image_url.is_not(None),
                        RepairEntryRow.image_url != "",
                    )
                )
                return [_to_document(r) for r in result.scalars().all()]
        except SQLAlchemyError as e:
            raise BackendUnavailableError(self.name, str(e)) from e
