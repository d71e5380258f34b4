"""Repair entry row for the local relational-style document store."""

from __future__ import annotations

from sqlalchemy import String, JSON, Text
from sqlalchemy.orm import Mapped, mapped_column

from repairdesk.models.base import Base, ULIDMixin


class RepairEntryRow(Base, ULIDMixin):
    __tablename__ = "repair_entries"

    user_id: Mapped[str] = mapped_column(String(200), index=True)
    customer_name: Mapped[str] = mapped_column(String(200), default="")
    contact_number: Mapped[str] = mapped_column(String(10), default="")
    address: Mapped[str] = mapped_column(Text, default="")
    vehicle_category: Mapped[str] = mapped_column(String(100), default="")
    bike_type: Mapped[str] = mapped_column(String(100), default="")
    bike_model: Mapped[str] = mapped_column(String(100), default="")
    number_plate: Mapped[str] = mapped_column(String(50), default="")
    repair_type: Mapped[str] = mapped_column(String(100), default="")
    entry_date: Mapped[str] = mapped_column(String(10), default="")
    expected_delivery_date: Mapped[str] = mapped_column(String(10), default="")
    delivery_date: Mapped[str] = mapped_column(String(10), default="")
    advancecash: Mapped[str] = mapped_column(String(20), default="0")
    total_amount: Mapped[str] = mapped_column(String(20), default="0")
    final_amount: Mapped[str | None] = mapped_column(String(20), nullable=True, default=None)
    payment_method: Mapped[str] = mapped_column(String(50), default="")
    parts: Mapped[list] = mapped_column(JSON, default=list)
    image_url: Mapped[str] = mapped_column(String(200), default="")
    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending | delivered
