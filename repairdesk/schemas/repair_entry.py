from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from repairdesk.services.billing import to_minor_units

# camelCase on the wire and in the document stores, snake_case in Python
WIRE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)

EntryStatus = Literal["pending", "delivered"]


def _check_contact_number(v: str) -> str:
    v = v.strip()
    if v and (not v.isdigit() or len(v) > 10):
        raise ValueError("contactNumber must be digits only, at most 10 characters")
    return v


def _check_advance(v: str) -> str:
    v = (v or "0").strip() or "0"
    if to_minor_units(v) < 0:
        raise ValueError("advancecash must not be negative")
    return v


class Part(BaseModel):
    description: str = ""
    quantity: int = Field(default=1, ge=1)
    price: float = Field(default=0, ge=0)


class RepairEntryFields(BaseModel):
    """Customer + vehicle fields editable on a pending entry."""

    model_config = WIRE_CONFIG

    customer_name: str = ""
    contact_number: str = ""
    address: str = ""
    vehicle_category: str = ""
    bike_type: str = ""
    bike_model: str = ""
    number_plate: str = ""
    repair_type: str = ""
    entry_date: str = ""
    expected_delivery_date: str = ""
    advancecash: str = "0"
    payment_method: str = ""
    image_url: str = ""

    @field_validator("contact_number")
    @classmethod
    def validate_contact_number(cls, v: str) -> str:
        return _check_contact_number(v)

    @field_validator("advancecash")
    @classmethod
    def validate_advancecash(cls, v: str) -> str:
        return _check_advance(v)


class RepairEntryCreate(RepairEntryFields):
    user_id: str = ""
    entry_date: str = Field(default_factory=lambda: date.today().isoformat())


class RepairEntryUpdate(BaseModel):
    """Partial update. Unknown keys (id, userId, createdAt) are dropped."""

    model_config = WIRE_CONFIG

    customer_name: str | None = None
    contact_number: str | None = None
    address: str | None = None
    vehicle_category: str | None = None
    bike_type: str | None = None
    bike_model: str | None = None
    number_plate: str | None = None
    repair_type: str | None = None
    entry_date: str | None = None
    expected_delivery_date: str | None = None
    delivery_date: str | None = None
    advancecash: str | None = None
    total_amount: str | None = None
    final_amount: str | None = None
    payment_method: str | None = None
    parts: list[Part] | None = None
    image_url: str | None = None
    status: EntryStatus | None = None

    @field_validator("contact_number")
    @classmethod
    def validate_contact_number(cls, v: str | None) -> str | None:
        return v if v is None else _check_contact_number(v)

    @field_validator("advancecash")
    @classmethod
    def validate_advancecash(cls, v: str | None) -> str | None:
        return v if v is None else _check_advance(v)


class RepairEntry(RepairEntryFields):
    id: str
    user_id: str
    status: EntryStatus = "pending"
    delivery_date: str = ""
    total_amount: str = "0"
    final_amount: str | None = None
    parts: list[Part] = []
    created_at: str = ""

    @field_validator("advancecash", mode="before")
    @classmethod
    def validate_advancecash(cls, v):
        # stored documents may predate validation; keep them readable
        return str(v) if v not in (None, "") else "0"

    @field_validator("contact_number", mode="before")
    @classmethod
    def validate_contact_number(cls, v):
        return "" if v is None else str(v)

    @field_validator("image_url", "delivery_date", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return "" if v is None else v


class DeliveryRequest(BaseModel):
    model_config = WIRE_CONFIG

    user_id: str = ""
    delivery_date: str = ""
    parts: list[Part] = []
