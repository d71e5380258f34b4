"""CRUD operations for company details (local relational store)."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from repairdesk.models import CompanyDetails


async def get_company_details(db: AsyncSession, user_id: str) -> CompanyDetails | None:
    """Get the company profile owned by user_id."""
    result = await db.execute(select(CompanyDetails).where(CompanyDetails.user_id == user_id))
    return result.scalars().first()


async def create_company_details(db: AsyncSession, user_id: str, **fields) -> CompanyDetails:
    details = CompanyDetails(user_id=user_id, **fields)
    db.add(details)
    await db.commit()
    await db.refresh(details)
    return details


async def update_company_details(db: AsyncSession, details: CompanyDetails, **kwargs) -> CompanyDetails:
    for k, v in kwargs.items():
        if v is not None:
            setattr(details, k, v)
    await db.commit()
    await db.refresh(details)
    return details


async def save_company_details(db: AsyncSession, user_id: str, **fields) -> CompanyDetails:
    """Create the profile on first setup, update it afterwards."""
    existing = await get_company_details(db, user_id)
    if existing:
        return await update_company_details(db, existing, **fields)
    return await create_company_details(db, user_id, **fields)
