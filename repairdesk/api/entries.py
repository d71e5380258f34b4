from __future__ import annotations

import asyncio

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from repairdesk.config import Settings
from repairdesk.db import crud
from repairdesk.db.engine import get_db
from repairdesk.dependencies import get_blob_store, get_settings_dep, get_storage
from repairdesk.errors import ValidationError, from_pydantic
from repairdesk.schemas import CompanyDetailsRead, DeliveryRequest
from repairdesk.services.bill_renderer import bill_filename, render_bill_pdf
from repairdesk.services.blob_store import BlobStore
from repairdesk.services.entries import deliver_entry, remove_entry
from repairdesk.storage.facade import StorageFacade

router = APIRouter(prefix="/entries", tags=["entries"])


@router.post("")
async def create_entry(
    payload: dict = Body(...),
    storage: StorageFacade = Depends(get_storage),
):
    entry_id = await storage.create(payload)
    return {"id": entry_id}


@router.get("")
async def list_entries(
    user_id: str = Query(default="", alias="userId"),
    storage: StorageFacade = Depends(get_storage),
):
    if not user_id:
        raise ValidationError("User ID is required")
    entries = await storage.list(user_id)
    return [e.model_dump(by_alias=True) for e in entries]


@router.put("")
async def update_entry(
    payload: dict = Body(...),
    storage: StorageFacade = Depends(get_storage),
):
    entry_id = payload.get("id")
    if not entry_id:
        raise ValidationError("Entry ID is required")
    await storage.update(entry_id, payload, payload.get("userId") or None)
    return {"success": True}


@router.delete("")
async def delete_entry(
    entry_id: str = Query(default="", alias="id"),
    user_id: str = Query(default="", alias="userId"),
    storage: StorageFacade = Depends(get_storage),
    blobs: BlobStore = Depends(get_blob_store),
):
    if not entry_id:
        raise ValidationError("Entry ID is required")
    await remove_entry(storage, blobs, entry_id, user_id or None)
    return {"success": True}


@router.post("/{entry_id}/deliver")
async def deliver(
    entry_id: str,
    payload: dict = Body(...),
    storage: StorageFacade = Depends(get_storage),
):
    try:
        request = DeliveryRequest.model_validate(payload)
    except PydanticValidationError as e:
        raise from_pydantic(e)
    entry = await deliver_entry(storage, entry_id, request.user_id or None, request)
    return entry.model_dump(by_alias=True)


@router.get("/{entry_id}/bill")
async def download_bill(
    entry_id: str,
    user_id: str = Query(default="", alias="userId"),
    storage: StorageFacade = Depends(get_storage),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    entry = await storage.get(entry_id, user_id or None)
    if not entry:
        raise HTTPException(404, "Entry not found")

    row = await crud.get_company_details(db, entry.user_id)
    company = CompanyDetailsRead.from_row(row) if row else None

    try:
        pdf_bytes = await asyncio.to_thread(render_bill_pdf, entry, company, settings.billing)
    except RuntimeError as e:
        raise HTTPException(500, str(e))

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{bill_filename(entry)}"'},
    )
