"""Company profile: one row per owning user."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from repairdesk.models.base import Base, ULIDMixin


class CompanyDetails(Base, ULIDMixin):
    __tablename__ = "company_details"

    user_id: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    company_name: Mapped[str] = mapped_column(String(200))
    address: Mapped[str] = mapped_column(Text, default="")
    owner1_name: Mapped[str] = mapped_column(String(200), default="")
    owner1_phone: Mapped[str] = mapped_column(String(50), default="")
    owner2_name: Mapped[str] = mapped_column(String(200), default="")
    owner2_phone: Mapped[str] = mapped_column(String(50), default="")
    vehicle_type: Mapped[str] = mapped_column(String(50), default="vehicle")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
