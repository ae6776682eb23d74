from pydantic import BaseModel, EmailStr, ConfigDict
from typing import Optional
from datetime import date

from fleetdesk.models.driver import DriverStatusEnum, LicenseClassEnum
from fleetdesk.schemas.base import RowModel


# ---------- BASE ----------
class DriverBase(BaseModel):
    first_name: str
    last_name: str
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    # License info
    license_number: Optional[str] = None
    license_class: Optional[LicenseClassEnum] = None
    license_expiry: Optional[date] = None

    # Employment
    hire_date: Optional[date] = None
    status: DriverStatusEnum = DriverStatusEnum.ACTIVE

    user_id: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)


# ---------- CREATE ----------
class DriverCreate(DriverBase):
    # Defaults to the caller's tenant when omitted
    company_id: Optional[str] = None


# ---------- UPDATE ----------
class DriverUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    license_number: Optional[str] = None
    license_class: Optional[LicenseClassEnum] = None
    license_expiry: Optional[date] = None
    hire_date: Optional[date] = None
    status: Optional[DriverStatusEnum] = None
    user_id: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)


# ---------- RESPONSE ----------
class DriverResponse(RowModel):
    company_id: str
    user_id: Optional[str] = None
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    license_number: Optional[str] = None
    license_class: Optional[LicenseClassEnum] = None
    license_expiry: Optional[date] = None
    hire_date: Optional[date] = None
    status: DriverStatusEnum = DriverStatusEnum.ACTIVE

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
