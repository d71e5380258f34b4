from __future__ import annotations

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from repairdesk.db import crud
from repairdesk.db.engine import get_db
from repairdesk.errors import ValidationError, from_pydantic
from repairdesk.schemas import CompanyDetailsIn, CompanyDetailsRead

router = APIRouter(prefix="/company", tags=["company"])


@router.get("/{user_id}")
async def get_company(user_id: str, db: AsyncSession = Depends(get_db)):
    row = await crud.get_company_details(db, user_id)
    if not row:
        raise HTTPException(404, "Company details not found")
    return CompanyDetailsRead.from_row(row).model_dump(by_alias=True)


@router.put("/{user_id}")
async def save_company(user_id: str, payload: dict = Body(...), db: AsyncSession = Depends(get_db)):
    try:
        details = CompanyDetailsIn.model_validate(payload)
    except PydanticValidationError as e:
        raise from_pydantic(e)
    missing = details.missing_fields()
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    row = await crud.save_company_details(db, user_id, **details.model_dump())
    return CompanyDetailsRead.from_row(row).model_dump(by_alias=True)
