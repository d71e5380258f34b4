from __future__ import annotations

from pydantic import BaseModel, field_validator

from repairdesk.schemas.repair_entry import WIRE_CONFIG


class CompanyDetailsIn(BaseModel):
    model_config = WIRE_CONFIG

    company_name: str = ""
    address: str = ""
    owner1_name: str = ""
    owner1_phone: str = ""
    owner2_name: str = ""
    owner2_phone: str = ""
    vehicle_type: str = "vehicle"

    @field_validator("vehicle_type")
    @classmethod
    def default_vehicle_type(cls, v: str) -> str:
        return v.strip() or "vehicle"

    def missing_fields(self) -> list[str]:
        required = {
            "companyName": self.company_name,
            "address": self.address,
            "owner1Name": self.owner1_name,
            "owner1Phone": self.owner1_phone,
        }
        return [k for k, v in required.items() if not v.strip()]


class CompanyDetailsRead(CompanyDetailsIn):
    user_id: str

    @classmethod
    def from_row(cls, row) -> "CompanyDetailsRead":
        return cls(
            user_id=row.user_id,
            company_name=row.company_name,
            address=row.address,
            owner1_name=row.owner1_name,
            owner1_phone=row.owner1_phone,
            owner2_name=row.owner2_name or "",
            owner2_phone=row.owner2_phone or "",
            vehicle_type=row.vehicle_type,
        )
